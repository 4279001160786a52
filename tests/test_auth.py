"""Tests for signup, login and session verification."""

import pytest
import pytest_asyncio
from jose import jwt

from auth import (
    AuthManager,
    AuthError,
    ValidationError,
    DuplicateAccountError,
    InvalidCredentialsError,
    AccountDisabledError,
    SessionExpiredError,
    hash_password,
    verify_password,
    token_subject,
    JWT_SECRET,
    JWT_ALGORITHM,
)


@pytest_asyncio.fixture
async def manager(profiles, sessions):
    return AuthManager(profiles=profiles, sessions=sessions)


def test_password_hashing():
    hashed = hash_password('hunter22')
    assert hashed != 'hunter22'
    assert verify_password('hunter22', hashed)
    assert not verify_password('hunter23', hashed)

@pytest.mark.asyncio
async def test_signup_creates_customer(manager, profiles):
    result = await manager.signup('  New.User@Example.com ', 'secret1', name='New User')

    user = result['user']
    assert user['email'] == 'new.user@example.com'
    assert user['roles'] == ['customer']
    assert 'password_hash' not in user
    assert result['token']

    stored = await profiles.get_by_email('new.user@example.com')
    assert verify_password('secret1', stored['password_hash'])

@pytest.mark.asyncio
async def test_signup_validation(manager):
    with pytest.raises(ValidationError):
        await manager.signup('not-an-email', 'secret1')
    with pytest.raises(ValidationError):
        await manager.signup('a@example.com', '123')
    with pytest.raises(ValidationError):
        await manager.signup('a@example.com', 'secret1', username='no spaces allowed')

@pytest.mark.asyncio
async def test_signup_duplicate_email(manager):
    await manager.signup('dup@example.com', 'secret1')
    with pytest.raises(DuplicateAccountError):
        await manager.signup('DUP@example.com', 'secret2')

@pytest.mark.asyncio
async def test_signup_duplicate_username(manager):
    await manager.signup('one@example.com', 'secret1', username='maker')
    with pytest.raises(DuplicateAccountError):
        await manager.signup('two@example.com', 'secret1', username='MAKER')

@pytest.mark.asyncio
async def test_login_and_verify(manager):
    await manager.signup('login@example.com', 'secret1')
    result = await manager.login('login@example.com', 'secret1')

    profile = await manager.verify_session(result['token'])
    assert profile['email'] == 'login@example.com'
    assert token_subject(result['token']) == str(profile['id'])

@pytest.mark.asyncio
async def test_login_wrong_password(manager):
    await manager.signup('login@example.com', 'secret1')
    with pytest.raises(InvalidCredentialsError):
        await manager.login('login@example.com', 'wrong-password')
    with pytest.raises(InvalidCredentialsError):
        await manager.login('nobody@example.com', 'secret1')

@pytest.mark.asyncio
async def test_login_deactivated(manager, profiles):
    result = await manager.signup('gone@example.com', 'secret1')
    await profiles.update(result['user']['id'], {'is_active': False})
    with pytest.raises(AccountDisabledError):
        await manager.login('gone@example.com', 'secret1')

@pytest.mark.asyncio
async def test_logout_revokes_sessions(manager):
    result = await manager.signup('bye@example.com', 'secret1')
    await manager.logout(result['user']['id'])
    with pytest.raises(AuthError):
        await manager.verify_session(result['token'])

@pytest.mark.asyncio
async def test_verify_rejects_garbage(manager):
    with pytest.raises(AuthError):
        await manager.verify_session('not-a-token')
    assert token_subject('not-a-token') is None
    assert token_subject(None) is None

@pytest.mark.asyncio
async def test_verify_rejects_expired_token(manager, customer):
    token = jwt.encode({'sub': str(customer['id']), 'exp': 1}, JWT_SECRET, algorithm=JWT_ALGORITHM)
    with pytest.raises(SessionExpiredError):
        await manager.verify_session(token)
