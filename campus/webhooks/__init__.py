"""
Outbound webhooks: signing, delivery and owner-scoped management.

Public API:
    WebhookDispatcher.deliver(notifications) - sign and POST to active webhooks
    sign_payload / verify_webhook_signature - HMAC-SHA256 over canonical JSON
    create_webhook(...) - register a webhook; the secret is returned once
"""

from .dispatcher import DeliveryResult, WebhookDispatcher, build_webhook_payload
from .service import (
    create_webhook,
    delete_webhook,
    get_webhook,
    list_webhooks,
    toggle_webhook,
    update_webhook_url,
)
from .signing import (
    canonical_json,
    generate_webhook_secret,
    sign_payload,
    verify_webhook_signature,
)

__all__ = [
    "WebhookDispatcher",
    "DeliveryResult",
    "build_webhook_payload",
    "canonical_json",
    "generate_webhook_secret",
    "sign_payload",
    "verify_webhook_signature",
    "create_webhook",
    "list_webhooks",
    "get_webhook",
    "update_webhook_url",
    "toggle_webhook",
    "delete_webhook",
]
