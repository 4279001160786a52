"""Outgoing mail over SMTP with STARTTLS"""
import asyncio
import functools
import logging
import smtplib
from email.message import EmailMessage
from typing import Any, Dict, Optional

from config import settings_conf, feature_enabled

logger = logging.getLogger(__name__)

SMTP_TIMEOUT = 15


class MailError(Exception):
    """Raised when a message cannot be delivered to the SMTP server"""
    pass

class MailerDisabledError(MailError):
    """Raised when SMTP is not configured"""
    pass


def build_message(to: str, subject: str, body: str, sender: str, reply_to: Optional[str] = None) -> EmailMessage:
    message = EmailMessage()
    message['From'] = sender
    message['To'] = to
    message['Subject'] = subject
    if reply_to:
        message['Reply-To'] = reply_to
    message.set_content(body)
    return message


def _send(message: EmailMessage, settings: Dict[str, Any]) -> None:
    with smtplib.SMTP(settings['smtp_host'], settings['smtp_port'], timeout=SMTP_TIMEOUT) as smtp:
        smtp.starttls()
        smtp.login(settings['smtp_user'], settings['smtp_pass'])
        smtp.send_message(message)


async def send_mail(
    to: str,
    subject: str,
    body: str,
    reply_to: Optional[str] = None,
    settings: Optional[Dict[str, Any]] = None
) -> None:
    """Send a plain-text message without blocking the event loop.

    Raises:
        MailerDisabledError: If SMTP is not configured
        MailError: If the SMTP exchange fails
    """
    settings = settings or settings_conf
    if not feature_enabled('smtp', settings):
        raise MailerDisabledError("SMTP is not configured")

    sender = settings.get('smtp_from') or settings['smtp_user']
    message = build_message(to, subject, body, sender, reply_to)

    loop = asyncio.get_running_loop()
    try:
        await loop.run_in_executor(None, functools.partial(_send, message, settings))
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"Failed to send mail to {to}: {e}")
        raise MailError(f"Failed to send mail: {str(e)}")

    logger.info(f"Sent mail to {to}: {subject}")


__all__ = ['send_mail', 'build_message', 'MailError', 'MailerDisabledError']
