"""Tests for contact messages and admin replies."""

import uuid

import pytest
import pytest_asyncio

from contact import (
    ContactManager,
    InvalidMessageError,
    MessageNotFoundError,
    MailError,
    MailerDisabledError,
)
from mailer import build_message, send_mail
from tests.fakes import FakeMailer


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest_asyncio.fixture
async def manager(messages, mailer):
    return ContactManager(messages=messages, mail=mailer, admin_email='support@anarchybay.test')


@pytest.mark.asyncio
async def test_submit_message_stores_and_notifies(manager, mailer, messages):
    stored = await manager.submit_message('Ann', ' Ann@Example.com ', ' Where is my download? ', 'Order help')

    assert stored['status'] == 'new'
    assert stored['email'] == 'ann@example.com'
    assert stored['message'] == 'Where is my download?'
    assert await manager.unread_count() == 1

    assert len(mailer.sent) == 1
    assert mailer.sent[0]['to'] == 'support@anarchybay.test'
    assert mailer.sent[0]['reply_to'] == 'ann@example.com'
    assert 'Order help' in mailer.sent[0]['subject']

@pytest.mark.asyncio
async def test_submit_message_validation(manager, messages):
    for name, email, message in [
        ('', 'a@example.com', 'hi'),
        ('Ann', '', 'hi'),
        ('Ann', 'a@example.com', '   '),
        ('Ann', 'not-an-email', 'hi'),
        ('Ann', 'a@example.com', 'x' * 5001),
    ]:
        with pytest.raises(InvalidMessageError):
            await manager.submit_message(name, email, message)
    assert messages.rows == {}

@pytest.mark.asyncio
async def test_submit_message_survives_mail_failure(messages):
    manager = ContactManager(
        messages=messages,
        mail=FakeMailer(error=MailError('SMTP down')),
        admin_email='support@anarchybay.test'
    )
    stored = await manager.submit_message('Ann', 'ann@example.com', 'Hello')
    assert stored['id'] in messages.rows

@pytest.mark.asyncio
async def test_reply_sends_mail_and_records(manager, mailer, messages, admin):
    stored = await messages.create({'name': 'Ann', 'email': 'ann@example.com', 'message': 'Refund?'})

    updated = await manager.reply_to_message(stored['id'], 'Refund issued.', admin)

    assert updated['status'] == 'replied'
    assert updated['reply_message'] == 'Refund issued.'
    assert updated['replied_by'] == admin['id']
    assert updated['replied_at'] is not None

    sent = mailer.sent[-1]
    assert sent['to'] == 'ann@example.com'
    assert 'Refund issued.' in sent['body']
    assert 'Refund?' in sent['body']

@pytest.mark.asyncio
async def test_reply_not_recorded_when_mail_fails(messages, admin):
    manager = ContactManager(messages=messages, mail=FakeMailer(error=MailError('SMTP down')))
    stored = await messages.create({'name': 'Ann', 'email': 'ann@example.com', 'message': 'Refund?'})

    with pytest.raises(MailError):
        await manager.reply_to_message(stored['id'], 'Refund issued.', admin)
    assert (await messages.get(stored['id']))['status'] == 'new'

@pytest.mark.asyncio
async def test_reply_validation(manager, messages, admin):
    with pytest.raises(InvalidMessageError):
        await manager.reply_to_message(uuid.uuid4(), '  ', admin)
    with pytest.raises(MessageNotFoundError):
        await manager.reply_to_message(uuid.uuid4(), 'Hello', admin)

@pytest.mark.asyncio
async def test_list_messages(manager, messages):
    for i in range(3):
        await messages.create({'name': f'n{i}', 'email': f'n{i}@example.com', 'message': 'hi'})
    result = await manager.list_messages(page=1, limit=2)
    assert result['total'] == 3
    assert [m['name'] for m in result['messages']] == ['n2', 'n1']

def test_build_message():
    message = build_message('to@example.com', 'Hi', 'Body', 'from@example.com', reply_to='r@example.com')
    assert message['To'] == 'to@example.com'
    assert message['Reply-To'] == 'r@example.com'
    assert message.get_content().strip() == 'Body'

@pytest.mark.asyncio
async def test_send_mail_disabled_without_smtp():
    with pytest.raises(MailerDisabledError):
        await send_mail('to@example.com', 'Hi', 'Body', settings={'smtp_host': None})
