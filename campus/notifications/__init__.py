"""
Notification system: persisted inbox rows, live push and scheduled triggers.

Public API:
    NotificationFanout(engine, push_sink, dispatcher).register(bus) - turn
        every domain event into per-recipient notifications
    NotificationScheduler(engine, bus).start() - time-based event triggers
    PushHub / LoggingPushSink - push sink implementations

Inbox operations (list, count unread, mark read, delete) live in
campus.queries.notifications.
"""

from .fanout import EVENT_AUDIENCE, Audience, NotificationFanout, resolve_recipients
from .push import LoggingPushSink, PushHub, PushSink
from .scheduler import JOB_CONFIG, NotificationScheduler, check_single_fire_windows
from .templates import load_templates, render_notification

__all__ = [
    "NotificationFanout",
    "Audience",
    "EVENT_AUDIENCE",
    "resolve_recipients",
    "PushSink",
    "PushHub",
    "LoggingPushSink",
    "NotificationScheduler",
    "JOB_CONFIG",
    "check_single_fire_windows",
    "load_templates",
    "render_notification",
]
