"""Authentication API endpoints."""

from fastapi import APIRouter, HTTPException, Request, status, Depends
from typing import Any, Dict, Optional
from pydantic import BaseModel

from auth import (
    AuthManager, get_current_user, AuthError, ValidationError,
    DuplicateAccountError, InvalidCredentialsError, AccountDisabledError
)
from profiles import public_profile
from ratelimit import rate_limit

router = APIRouter(
    prefix="/auth",
    tags=["Authentication"]
)

class SignupRequest(BaseModel):
    """Request model for creating an account."""
    email: str
    password: str
    name: Optional[str] = None
    username: Optional[str] = None

class LoginRequest(BaseModel):
    """Request model for logging in."""
    email: str
    password: str

class SessionResponse(BaseModel):
    """Response model for signup and login."""
    token: str
    expires_at: str
    user: Dict[str, Any]


def get_auth_manager() -> AuthManager:
    return AuthManager()


@router.post(
    "/signup",
    response_model=SessionResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit('auth'))]
)
async def signup(
    body: SignupRequest,
    request: Request,
    manager: AuthManager = Depends(get_auth_manager)
):
    """Create a customer account and open a session."""
    try:
        return await manager.signup(
            body.email,
            body.password,
            name=body.name,
            username=body.username,
            request=request
        )
    except (ValidationError, DuplicateAccountError) as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )

@router.post(
    "/login",
    response_model=SessionResponse,
    dependencies=[Depends(rate_limit('auth'))]
)
async def login(
    body: LoginRequest,
    request: Request,
    manager: AuthManager = Depends(get_auth_manager)
):
    """Verify credentials and open a session."""
    try:
        return await manager.login(body.email, body.password, request=request)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except InvalidCredentialsError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e)
        )
    except AccountDisabledError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=str(e)
        )
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )

@router.post("/logout")
async def logout(
    user: Dict[str, Any] = Depends(get_current_user),
    manager: AuthManager = Depends(get_auth_manager)
):
    """Revoke every session of the current user."""
    try:
        await manager.logout(user['id'])
        return {"message": "Successfully logged out"}
    except AuthError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )

@router.get("/me")
async def get_me(user: Dict[str, Any] = Depends(get_current_user)):
    """Get the current user's profile."""
    return public_profile(user)
