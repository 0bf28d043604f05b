"""Notification services for booking lifecycle emails."""

from __future__ import annotations

import logging
from typing import Iterable

from django.conf import settings  # type: ignore
from django.contrib.auth import get_user_model  # type: ignore
from django.core.mail import send_mail  # type: ignore
from django.template.loader import render_to_string  # type: ignore
from django.utils.html import strip_tags  # type: ignore

logger = logging.getLogger(__name__)


# ============================================================================
# EMAIL NOTIFICATIONS
# ============================================================================

def send_email_notification(
    recipient_email: str,
    subject: str,
    template_name: str | None,
    context: dict,
    *,
    html_message: str | None = None,
) -> bool:
    """
    Send one email.

    Args:
        recipient_email: Recipient address
        subject: Subject line
        template_name: Django template to render (optional)
        context: Template context; ``message`` is used as plain text when
            no template is given
        html_message: Ready HTML body (optional)

    Returns:
        bool: True if the email was sent
    """
    try:
        if html_message:
            text_message = strip_tags(html_message)
        elif template_name:
            html_message = render_to_string(template_name, context)
            text_message = strip_tags(html_message)
        else:
            text_message = context.get("message", "")
            html_message = None

        send_mail(
            subject=subject,
            message=text_message,
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[recipient_email],
            html_message=html_message,
            fail_silently=False,
        )

        logger.info(f"Email sent successfully to {recipient_email}: {subject}")
        return True

    except Exception as e:
        logger.error(f"Failed to send email to {recipient_email}: {e}", exc_info=True)
        return False


# ============================================================================
# BOOKING EVENTS
# ============================================================================

RENTER = "renter"
OWNER = "owner"
ADMIN = "admin"

EVENT_RECIPIENTS = {
    "booking-created": (OWNER, ADMIN),
    "payment-verified": (RENTER, OWNER),
    "approved": (RENTER,),
    "rejected": (RENTER,),
    "cancelled": (RENTER, OWNER),
    "refunded": (RENTER,),
    "completed": (RENTER, OWNER),
}

SUBJECTS = {
    "booking-created": "New storage request {booking_id}",
    "payment-verified": "Payment received for booking {booking_id}",
    "approved": "Booking {booking_id} approved",
    "rejected": "Booking {booking_id} rejected",
    "cancelled": "Booking {booking_id} cancelled",
    "refunded": "Refund issued for booking {booking_id}",
    "completed": "Booking {booking_id} completed",
}


def _format_amount(value) -> str:
    if isinstance(value, dict) and "amount" in value:
        return f"{value['amount']} {value.get('currency', '')}".strip()
    return str(value)


def _build_message(event: str, payload: dict) -> str:
    booking_id = payload.get("booking_id", "")
    lines = [f"Booking {booking_id}: {event.replace('-', ' ')}."]

    if payload.get("start_date") and payload.get("end_date"):
        lines.append(f"Storage period: {payload['start_date']} to {payload['end_date']}")
    if payload.get("quantity"):
        lines.append(f"Quantity: {payload['quantity']}")
    for key, label in (
        ("total_amount", "Total"),
        ("amount", "Amount"),
        ("refund_amount", "Refund"),
        ("refund_due", "Refund due"),
    ):
        if payload.get(key):
            lines.append(f"{label}: {_format_amount(payload[key])}")
    if payload.get("reason"):
        lines.append(f"Reason: {payload['reason']}")
    if payload.get("notes"):
        lines.append(f"Notes: {payload['notes']}")

    return "\n".join(lines)


def _recipient_emails(event: str, payload: dict) -> list[str]:
    User = get_user_model()
    roles: Iterable[str] = EVENT_RECIPIENTS.get(event, ())

    user_ids = []
    if RENTER in roles and payload.get("renter_id"):
        user_ids.append(payload["renter_id"])
    if OWNER in roles and payload.get("owner_id"):
        user_ids.append(payload["owner_id"])

    emails = list(
        User.objects.filter(pk__in=user_ids, is_active=True)
        .exclude(email="")
        .values_list("email", flat=True)
    )

    admin_email = getattr(settings, "ADMIN_NOTIFICATION_EMAIL", "")
    if ADMIN in roles and admin_email:
        emails.append(admin_email)

    return emails


def notify(event: str, payload: dict) -> bool:
    """
    Fire-and-forget notification about a booking event.

    Never raises: lookup and delivery failures are logged and reported as
    False so the booking flow is never interrupted by email trouble.
    """
    try:
        if event not in EVENT_RECIPIENTS:
            logger.debug(f"No notification configured for event {event}")
            return False

        recipients = _recipient_emails(event, payload)
        if not recipients:
            logger.warning(f"No recipients for {event} notification of booking {payload.get('booking_id')}")
            return False

        subject = SUBJECTS[event].format(booking_id=payload.get("booking_id", ""))
        context = {"message": _build_message(event, payload), **payload}

        results = [
            send_email_notification(email, subject, None, context)
            for email in recipients
        ]
        return all(results)

    except Exception as e:
        logger.error(f"Failed to notify {event}: {e}", exc_info=True)
        return False
