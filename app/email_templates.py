"""
Email Templates
Default database-backed templates and {{placeholder}} rendering
"""

import re
from typing import Any, Optional

PLACEHOLDER_RE = re.compile(r"\{\{\s*([a-zA-Z0-9_]+)\s*\}\}")

CANCELLATION_FEE_TEMPLATE = "booking_cancellation_fee"
CANCELLATION_NO_FEE_TEMPLATE = "booking_cancellation_no_fee"

_CANCELLATION_BODY = """
<div style="font-family: sans-serif; color: #333;">
  <h2>Booking Cancellation Confirmed</h2>
  <p>Hi {{{{customer_first_name}}}},</p>
  <p>Your booking scheduled for {{{{scheduled_date}}}} at {{{{scheduled_time}}}} has been cancelled as requested.</p>
  <p><strong>Cancellation Reason:</strong> {{{{cancellation_reason}}}}</p>
  <p>{fee_line}</p>
  <p>Best regards,<br/>The Team</p>
</div>
"""

DEFAULT_TEMPLATES: list[dict[str, Any]] = [
    {
        "name": "customer_booking_confirmation",
        "recipient": "CUSTOMER",
        "category": "BOOKING_NEW_MODIFIED",
        "event": "booking_created",
        "subject": "Booking Confirmation: {{service_type}} on {{scheduled_date}}",
        "body": "Hi {{customer_first_name}},\n\nYour booking for {{service_type}} has been confirmed "
        "for {{scheduled_date}} at {{scheduled_time}}.\n\nThank you!",
        "description": "Sent to customer when a new booking is created",
    },
    {
        "name": "customer_booking_reminder_24h",
        "recipient": "CUSTOMER",
        "category": "REMINDERS",
        "event": "booking_reminder_24h",
        "subject": "Reminder: Cleaning scheduled for tomorrow",
        "body": "Hi {{customer_first_name}},\n\nThis is a reminder that you have a cleaning "
        "scheduled for tomorrow at {{scheduled_time}}.",
        "description": "Sent to customer 24 hours before booking",
    },
    {
        "name": "cleaner_job_assigned",
        "recipient": "CLEANER",
        "category": "BOOKING_NEW_MODIFIED",
        "event": "job_assigned",
        "subject": "You have been assigned to a new job",
        "body": "Hi {{cleaner_first_name}},\n\nYou have been confirmed for a cleaning on "
        "{{scheduled_date}} at {{scheduled_time}}.",
        "description": "Sent to cleaner when they are assigned to a booking",
    },
    {
        "name": "admin_new_booking",
        "recipient": "ADMIN",
        "category": "BOOKING_NEW_MODIFIED",
        "event": "new_booking_alert",
        "subject": "New Booking Received: {{customer_name}}",
        "body": "A new booking has been received from {{customer_name}} for {{scheduled_date}}.",
        "description": "Alert sent to admins upon new booking creation",
    },
    {
        "name": CANCELLATION_FEE_TEMPLATE,
        "recipient": "CUSTOMER",
        "category": "BOOKING_CANCELED_POSTPONED",
        "event": "booking_cancelled_with_fee",
        "subject": "Your booking has been cancelled",
        "body": _CANCELLATION_BODY.format(
            fee_line="Please note that a cancellation fee of <strong>{{cancellation_fee}}</strong> "
            "has been charged in accordance with our cancellation policy."
        ),
        "description": "Sent when a booking is cancelled and a fee is charged",
    },
    {
        "name": CANCELLATION_NO_FEE_TEMPLATE,
        "recipient": "CUSTOMER",
        "category": "BOOKING_CANCELED_POSTPONED",
        "event": "booking_cancelled_no_fee",
        "subject": "Your booking has been cancelled",
        "body": _CANCELLATION_BODY.format(fee_line="There is no cancellation fee for this cancellation."),
        "description": "Sent when a booking is cancelled without a fee",
    },
]

# Sample values used by the "send test email" action
SAMPLE_CONTEXT = {
    "customer_first_name": "John",
    "customer_last_name": "Doe",
    "customer_name": "John Doe",
    "cleaner_first_name": "Jane",
    "service_type": "Deep Cleaning",
    "scheduled_date": "January 1, 2025",
    "scheduled_time": "10:00 AM",
    "address": "123 Main St, Springfield",
    "cancellation_fee": "$50.00",
    "cancellation_reason": "Schedule conflict",
}


def render_placeholders(text: str, context: dict[str, Optional[Any]]) -> str:
    """Replace {{key}} tokens; unknown keys are left untouched"""

    def replace(match: re.Match) -> str:
        key = match.group(1)
        if key not in context:
            return match.group(0)
        value = context[key]
        return "" if value is None else str(value)

    return PLACEHOLDER_RE.sub(replace, text)


def text_to_html(body: str) -> str:
    """Plain-text template bodies get line breaks; HTML bodies pass through"""
    if "<" in body and ">" in body:
        return body
    return body.replace("\n", "<br/>")
