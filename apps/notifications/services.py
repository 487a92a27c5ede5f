import logging
import re

from django.conf import settings
from django.core.mail import send_mail
from twilio.base.exceptions import TwilioRestException
from twilio.rest import Client as TwilioClient

from .models import NotificationLog
from .rate_limiter import limiter_for

logger = logging.getLogger(__name__)

PHONE_PATTERN = re.compile(r'^\+\d{9,15}$')


def _send_sms(phone_number, body):
    if not settings.TWILIO_ACCOUNT_SID:
        logger.debug("Twilio is not configured; skipping SMS")
        return False
    twilio_client = TwilioClient(settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN)
    twilio_client.messages.create(
        body=body,
        from_=settings.TWILIO_PHONE_NUMBER,
        to=phone_number
    )
    return True


def send_notification(user, title, body, metadata=None, notification_type=''):
    """
    Send a notification to a user via email and SMS.

    Best effort: failures are logged and recorded on the NotificationLog,
    never raised. Returns the number of channels that delivered.
    """
    metadata = metadata or {}
    has_phone = bool(user.phone_number and PHONE_PATTERN.match(user.phone_number))
    log = NotificationLog.objects.create(
        recipient=user,
        notification_type=notification_type,
        subject=title,
        message=body,
        metadata=metadata,
        channel='both' if user.email and has_phone else ('sms' if has_phone else 'email'),
    )

    delivered = 0
    errors = []

    if user.email:
        try:
            send_mail(
                subject=title,
                message=body,
                from_email=settings.DEFAULT_FROM_EMAIL,
                recipient_list=[user.email],
                fail_silently=False,
            )
            delivered += 1
            logger.info(f"Email notification sent to user {user.id}")
        except Exception as e:
            logger.error(f"Failed to send email to user {user.id}: {str(e)}")
            errors.append(f"email: {e}")

    if user.phone_number and not has_phone:
        logger.warning(f"Invalid phone number format for user {user.id}: {user.phone_number}")
    elif has_phone:
        try:
            if _send_sms(user.phone_number, body):
                delivered += 1
                logger.info(f"SMS notification sent to user {user.id}")
        except TwilioRestException as e:
            logger.error(f"Twilio rejected SMS to user {user.id}: {str(e)}")
            errors.append(f"sms: {e}")
        except Exception as e:
            logger.error(f"Failed to send SMS to user {user.id}: {str(e)}")
            errors.append(f"sms: {e}")

    if delivered:
        log.mark_as_sent()
    else:
        log.mark_as_failed('; '.join(errors) or 'No delivery channel available')
    return delivered


def notify(user, notification_type, title, body, metadata=None, window_hours=None):
    """
    Send a typed notification, optionally gated by the per-user cooldown for
    that type. Returns the number of channels that delivered (0 if throttled).
    """
    try:
        if window_hours is not None and not limiter_for(user.id, notification_type).can_notify(window_hours):
            logger.info(f"Notification '{notification_type}' for user {user.id} throttled")
            return 0
        return send_notification(user, title, body, metadata=metadata, notification_type=notification_type)
    except Exception:
        logger.exception(f"Notification '{notification_type}' for user {user.id} could not be recorded")
        return 0
