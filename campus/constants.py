"""
Shared constants used across the campus core.
"""

# Day name list for ordering (day_of_week 1 = Monday)
DAY_NAMES = [
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
]

# Teaching days stored in course_on_semesters.day_of_week
MIN_TEACHING_DAY = 1
MAX_TEACHING_DAY = 6

# Fallbacks used when an event payload lacks a display name
UNKNOWN_COURSE = "the course"
UNKNOWN_SEMESTER = "the semester"
UNKNOWN_SESSION = "the enrollment session"

# Header carrying the hex HMAC-SHA256 of the webhook body
WEBHOOK_SIGNATURE_HEADER = "X-Webhook-Signature"
WEBHOOK_EVENT_NAME = "notification"
