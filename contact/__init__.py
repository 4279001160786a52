"""Contact module for support messages sent from the site's contact form.

Visitors submit messages, admins read them and reply by email.
"""
import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional
from uuid import UUID

from auth import validate_email, ValidationError as EmailValidationError
from config import settings_conf
from mailer import send_mail, MailError, MailerDisabledError
from products import paginate
from .repository import ContactRepository

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 5000


class ContactError(Exception):
    """Base exception for contact operations."""
    pass

class InvalidMessageError(ContactError):
    """Raised when a submitted message or reply is incomplete."""
    pass

class MessageNotFoundError(ContactError):
    """Raised when a contact message does not exist."""
    pass


class ContactManager:
    """Manager class for contact messages."""

    def __init__(
        self,
        messages: Optional[ContactRepository] = None,
        mail: Callable = send_mail,
        admin_email: Optional[str] = None
    ):
        self.messages = messages or ContactRepository()
        self.mail = mail
        self.admin_email = admin_email or settings_conf.get('admin_email')

    async def submit_message(
        self,
        name: Optional[str],
        email: Optional[str],
        message: Optional[str],
        subject: Optional[str] = None
    ) -> Dict[str, Any]:
        """Store a contact message and notify the admin mailbox.

        Raises:
            InvalidMessageError: If name, email or message are missing or invalid
        """
        name = (name or '').strip()
        message = (message or '').strip()
        if not name or not email or not message:
            raise InvalidMessageError("Name, email and message are required")
        try:
            email = validate_email(email)
        except EmailValidationError as e:
            raise InvalidMessageError(str(e))
        if len(message) > MAX_MESSAGE_LENGTH:
            raise InvalidMessageError(
                f"Message must be at most {MAX_MESSAGE_LENGTH} characters"
            )

        try:
            stored = await self.messages.create({
                'name': name,
                'email': email,
                'subject': (subject or '').strip() or None,
                'message': message
            })
        except Exception as e:
            logger.error(f"Error saving contact message: {e}")
            raise ContactError(f"Failed to save contact message: {str(e)}")

        if self.admin_email:
            try:
                await self.mail(
                    self.admin_email,
                    f"New contact message: {stored['subject'] or 'No subject'}",
                    f"From: {name} <{email}>\n\n{message}",
                    reply_to=email
                )
            except MailError as e:
                # Admins still see the message in the dashboard
                logger.warning(f"Contact notification not sent: {e}")

        return stored

    async def list_messages(self, page: int = 1, limit: int = 20) -> Dict[str, Any]:
        paging = paginate(page, limit)
        rows, total = await self.messages.list(offset=paging['offset'], limit=paging['limit'])
        return {
            'messages': rows,
            'total': total,
            'page': paging['page'],
            'limit': paging['limit']
        }

    async def reply_to_message(self, message_id: UUID, reply: Optional[str], admin: Dict[str, Any]) -> Dict[str, Any]:
        """Email a reply to the sender and record it.

        The reply is only recorded once the mail has been handed to SMTP.

        Raises:
            MessageNotFoundError: If the message does not exist
            InvalidMessageError: If the reply is empty
            MailerDisabledError: If SMTP is not configured
            MailError: If sending fails
        """
        reply = (reply or '').strip()
        if not reply:
            raise InvalidMessageError("Reply message is required")

        original = await self.messages.get(message_id)
        if not original:
            raise MessageNotFoundError(f"Contact message {message_id} not found")

        subject = f"Re: {original['subject']}" if original.get('subject') else "Re: Your message to AnarchyBay"
        body = (
            f"Hi {original['name']},\n\n"
            f"{reply}\n\n"
            f"---\n"
            f"Your original message:\n{original['message']}"
        )
        await self.mail(original['email'], subject, body)

        updated = await self.messages.update(message_id, {
            'reply_message': reply,
            'replied_at': datetime.utcnow(),
            'replied_by': admin['id'],
            'status': 'replied'
        })
        logger.info(f"Admin {admin['id']} replied to contact message {message_id}")
        return updated

    async def unread_count(self) -> int:
        return await self.messages.count(status='new')


__all__ = [
    'ContactManager',
    'ContactRepository',
    'ContactError',
    'InvalidMessageError',
    'MessageNotFoundError',
    'MailError',
    'MailerDisabledError',
]
