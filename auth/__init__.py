"""Authentication module using email/password credentials and JWT sessions.

This module provides:
1. Signup and login with bcrypt password hashes
2. JWT session tokens backed by revocable session rows
3. FastAPI dependencies for protecting routes by session and role
"""

import logging
import re
import secrets
from datetime import datetime, timedelta
from typing import Optional, Dict, Any
from uuid import UUID

from fastapi import Request, HTTPException, status, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from passlib.context import CryptContext

from config import settings_conf
from profiles import ProfileRepository, public_profile
from roles import RoleSet, has_role, CREATOR_ROLES
from .sessions import SessionRepository

# Configure logging
logger = logging.getLogger(__name__)

# Constants
SESSION_EXPIRY_DAYS = settings_conf['session_expiry_days']
JWT_ALGORITHM = "HS256"
MIN_PASSWORD_LENGTH = 6
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_]{3,30}$")

if settings_conf.get('jwt_secret'):
    JWT_SECRET = settings_conf['jwt_secret']
else:
    logger.warning("JWT_SECRET not set, sessions will not survive a restart")
    JWT_SECRET = secrets.token_urlsafe(32)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class AuthError(Exception):
    """Base exception for authentication errors."""
    pass

class ValidationError(AuthError):
    """Raised when signup or login input is malformed."""
    pass

class DuplicateAccountError(AuthError):
    """Raised when the email or username is already registered."""
    pass

class InvalidCredentialsError(AuthError):
    """Raised when the email/password pair does not match."""
    pass

class AccountDisabledError(AuthError):
    """Raised when a deactivated profile tries to authenticate."""
    pass

class SessionExpiredError(AuthError):
    """Raised when a session has expired."""
    pass


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def validate_email(email: Optional[str]) -> str:
    """Normalize and check an email address."""
    email = (email or '').strip().lower()
    if not EMAIL_PATTERN.match(email):
        raise ValidationError("A valid email is required")
    return email


def token_subject(token: Optional[str]) -> Optional[str]:
    """Profile id carried by a valid token, without checking the session row."""
    if not token:
        return None
    try:
        return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM]).get('sub')
    except JWTError:
        return None


class AuthManager:
    """Manages credentials and sessions."""

    def __init__(self, profiles: Optional[ProfileRepository] = None, sessions: Optional[SessionRepository] = None):
        """Initialize auth manager.

        Args:
            profiles: Optional profile repository
            sessions: Optional session repository
        """
        self.profiles = profiles or ProfileRepository()
        self.sessions = sessions or SessionRepository()

    async def signup(
        self,
        email: str,
        password: str,
        name: Optional[str] = None,
        username: Optional[str] = None,
        request: Optional[Request] = None
    ) -> Dict[str, Any]:
        """Register a new customer profile and open a session.

        Returns:
            Dict containing:
                - token: Session token for future requests
                - expires_at: Session expiration timestamp
                - user: The public profile

        Raises:
            ValidationError: If the input is malformed
            DuplicateAccountError: If the email or username is taken
        """
        email = validate_email(email)
        if not password or len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
            )
        if username is not None and not USERNAME_PATTERN.match(username):
            raise ValidationError(
                "Username must be 3-30 letters, digits or underscores"
            )

        try:
            if await self.profiles.get_by_email(email):
                raise DuplicateAccountError("An account with this email already exists")
            if username and await self.profiles.get_by_username(username):
                raise DuplicateAccountError("Username is already taken")

            profile = await self.profiles.create({
                'email': email,
                'password_hash': hash_password(password),
                'name': name,
                'username': username,
                'roles': RoleSet().to_list(),
            })
            logger.info(f"Created profile {profile['id']}")

        except AuthError:
            raise
        except Exception as e:
            logger.error(f"Error creating profile: {e}")
            raise AuthError(f"Failed to sign up: {str(e)}")

        return await self._open_session(profile, request)

    async def login(
        self,
        email: str,
        password: str,
        request: Optional[Request] = None
    ) -> Dict[str, Any]:
        """Verify credentials and open a session.

        Raises:
            InvalidCredentialsError: If the email/password pair is wrong
            AccountDisabledError: If the profile is deactivated
        """
        email = validate_email(email)
        if not password:
            raise ValidationError("Password is required")

        try:
            profile = await self.profiles.get_by_email(email)
        except Exception as e:
            logger.error(f"Error loading profile for login: {e}")
            raise AuthError(f"Failed to log in: {str(e)}")

        if not profile or not verify_password(password, profile['password_hash']):
            raise InvalidCredentialsError("Invalid email or password")
        if not profile.get('is_active', True):
            raise AccountDisabledError("Account is deactivated")

        return await self._open_session(profile, request)

    async def _open_session(self, profile: Dict[str, Any], request: Optional[Request]) -> Dict[str, Any]:
        expires_at = datetime.utcnow() + timedelta(days=SESSION_EXPIRY_DAYS)
        token = jwt.encode(
            {
                'sub': str(profile['id']),
                'exp': expires_at,
                'jti': secrets.token_hex(8)
            },
            JWT_SECRET,
            algorithm=JWT_ALGORITHM
        )

        try:
            await self.sessions.create(
                profile['id'],
                token,
                expires_at,
                user_agent=request.headers.get('user-agent') if request else None,
                ip_address=request.client.host if request and request.client else None
            )
        except Exception as e:
            logger.error(f"Error storing session: {e}")
            raise AuthError(f"Failed to create session: {str(e)}")

        return {
            'token': token,
            'expires_at': expires_at.isoformat(),
            'user': public_profile(profile)
        }

    async def verify_session(self, token: str) -> Dict[str, Any]:
        """Verify a session token.

        Returns:
            The authenticated profile (including private columns)

        Raises:
            SessionExpiredError: If session has expired
            AuthError: For other verification errors
        """
        try:
            payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
            profile_id = UUID(payload['sub'])
        except jwt.ExpiredSignatureError:
            raise SessionExpiredError("Session has expired")
        except (JWTError, KeyError, ValueError) as e:
            raise AuthError(f"Invalid token: {str(e)}")

        try:
            session = await self.sessions.get_active(profile_id, token)
            if not session:
                raise AuthError("Session not found or revoked")
            if session['expires_at'] < datetime.utcnow():
                raise SessionExpiredError("Session has expired")

            profile = await self.profiles.get(profile_id)
            if not profile:
                raise AuthError("Profile not found")
            if not profile.get('is_active', True):
                raise AccountDisabledError("Account is deactivated")

            await self.sessions.touch(profile_id, token)
            return profile

        except AuthError:
            raise
        except Exception as e:
            logger.error(f"Error verifying session: {e}")
            raise AuthError(f"Failed to verify session: {str(e)}")

    async def logout(self, profile_id: UUID) -> None:
        """Log out by revoking every active session of the profile."""
        try:
            await self.sessions.revoke_all(profile_id)
        except Exception as e:
            logger.error(f"Error logging out: {e}")
            raise AuthError(f"Failed to log out: {str(e)}")


# Create global instance
manager = AuthManager()

# FastAPI security schemes
auth_scheme = HTTPBearer(
    auto_error=True,  # Return 401 automatically if token is missing
    description="JWT Bearer token required"
)
optional_auth_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(auth_scheme)
) -> Dict[str, Any]:
    """FastAPI dependency for getting the authenticated profile.

    Raises:
        HTTPException: If authentication fails
    """
    try:
        return await manager.verify_session(credentials.credentials)
    except SessionExpiredError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session has expired"
        )
    except AuthError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e)
        )


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_auth_scheme)
) -> Optional[Dict[str, Any]]:
    """Like get_current_user, but anonymous or invalid sessions yield None."""
    if not credentials:
        return None
    try:
        return await manager.verify_session(credentials.credentials)
    except AuthError:
        return None


def require_role(*roles: str):
    """Build a dependency that admits profiles holding any of ``roles``."""
    async def dependency(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
        if not has_role(user, *roles):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires role: {' or '.join(roles)}"
            )
        return user
    return dependency


require_admin = require_role('admin')
require_creator = require_role(*sorted(CREATOR_ROLES), 'admin')


# Export public interface
__all__ = [
    'manager',
    'AuthManager',
    'get_current_user',
    'get_optional_user',
    'require_role',
    'require_admin',
    'require_creator',
    'hash_password',
    'verify_password',
    'token_subject',
    'AuthError',
    'ValidationError',
    'DuplicateAccountError',
    'InvalidCredentialsError',
    'AccountDisabledError',
    'SessionExpiredError'
]
