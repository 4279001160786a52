"""Admin dashboard API endpoints."""

from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel

from admin import (
    AdminManager, UserNotFoundError, ProductNotFoundError, ReportNotFoundError,
    InvalidRequestError, SelfModificationError, InvalidRoleError
)
from auth import require_admin
from contact import ContactManager, InvalidMessageError, MessageNotFoundError, MailError, MailerDisabledError

router = APIRouter(
    prefix="/api/admin",
    tags=["Admin"],
    dependencies=[Depends(require_admin)]
)

class RolesRequest(BaseModel):
    """Request model for replacing a user's roles."""
    roles: List[str]

class VerifiedSellerRequest(BaseModel):
    is_verified: bool

class AdminBadgeRequest(BaseModel):
    show_badge: bool

class UserStatusRequest(BaseModel):
    """Request model for activating or restricting a user."""
    is_active: Optional[bool] = None
    is_restricted: Optional[bool] = None

class FeaturedRequest(BaseModel):
    is_featured: bool

class ReportStatusRequest(BaseModel):
    """Request model for moderating a report."""
    status: str
    admin_notes: Optional[str] = None
    deactivate_product: bool = False

class ReplyRequest(BaseModel):
    reply: str


def get_admin_manager() -> AdminManager:
    return AdminManager()


def get_contact_manager() -> ContactManager:
    return ContactManager()


def admin_http_error(e: Exception) -> HTTPException:
    """Translate admin and contact errors to HTTP errors."""
    if isinstance(e, (UserNotFoundError, ProductNotFoundError, ReportNotFoundError, MessageNotFoundError)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if isinstance(e, (InvalidRequestError, InvalidRoleError, InvalidMessageError, SelfModificationError)):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if isinstance(e, MailerDisabledError):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    if isinstance(e, MailError):
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@router.get("/stats")
async def get_stats(manager: AdminManager = Depends(get_admin_manager)):
    """Get dashboard statistics."""
    try:
        return await manager.get_stats()
    except Exception as e:
        raise admin_http_error(e)

# Users
@router.get("/users")
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    role: Optional[str] = None,
    manager: AdminManager = Depends(get_admin_manager)
):
    try:
        return await manager.list_users(page, limit, role=role)
    except Exception as e:
        raise admin_http_error(e)

@router.get("/users/{user_id}")
async def get_user(user_id: UUID, manager: AdminManager = Depends(get_admin_manager)):
    try:
        return await manager.get_user(user_id)
    except Exception as e:
        raise admin_http_error(e)

@router.put("/users/{user_id}/roles")
@router.put("/users/{user_id}/role")
async def update_user_roles(
    user_id: UUID,
    body: RolesRequest,
    admin: Dict[str, Any] = Depends(require_admin),
    manager: AdminManager = Depends(get_admin_manager)
):
    """Replace a user's roles."""
    try:
        return await manager.update_user_roles(user_id, body.roles, admin)
    except Exception as e:
        raise admin_http_error(e)

@router.post("/users/{user_id}/roles/{role}")
async def add_role(
    user_id: UUID,
    role: str,
    admin: Dict[str, Any] = Depends(require_admin),
    manager: AdminManager = Depends(get_admin_manager)
):
    try:
        return await manager.add_role(user_id, role, admin)
    except Exception as e:
        raise admin_http_error(e)

@router.delete("/users/{user_id}/roles/{role}")
async def remove_role(
    user_id: UUID,
    role: str,
    admin: Dict[str, Any] = Depends(require_admin),
    manager: AdminManager = Depends(get_admin_manager)
):
    try:
        return await manager.remove_role(user_id, role, admin)
    except Exception as e:
        raise admin_http_error(e)

@router.put("/users/{user_id}/verified-seller")
async def set_verified_seller(
    user_id: UUID,
    body: VerifiedSellerRequest,
    manager: AdminManager = Depends(get_admin_manager)
):
    try:
        return await manager.set_verified_seller(user_id, body.is_verified)
    except Exception as e:
        raise admin_http_error(e)

@router.put("/users/{user_id}/admin-badge")
async def set_admin_badge(
    user_id: UUID,
    body: AdminBadgeRequest,
    manager: AdminManager = Depends(get_admin_manager)
):
    try:
        return await manager.set_admin_badge(user_id, body.show_badge)
    except Exception as e:
        raise admin_http_error(e)

@router.put("/users/{user_id}/status")
async def set_user_status(
    user_id: UUID,
    body: UserStatusRequest,
    admin: Dict[str, Any] = Depends(require_admin),
    manager: AdminManager = Depends(get_admin_manager)
):
    """Activate, deactivate, restrict or unrestrict a user."""
    try:
        return await manager.set_user_status(
            user_id,
            admin,
            is_active=body.is_active,
            is_restricted=body.is_restricted
        )
    except Exception as e:
        raise admin_http_error(e)

# Products
@router.get("/products")
async def list_products(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: str = 'all',
    manager: AdminManager = Depends(get_admin_manager)
):
    try:
        return await manager.list_products(page, limit, status=status)
    except Exception as e:
        raise admin_http_error(e)

@router.put("/products/{product_id}/featured")
async def set_featured(
    product_id: UUID,
    body: FeaturedRequest,
    manager: AdminManager = Depends(get_admin_manager)
):
    try:
        return await manager.set_featured(product_id, body.is_featured)
    except Exception as e:
        raise admin_http_error(e)

@router.put("/products/{product_id}/activate")
async def activate_product(product_id: UUID, manager: AdminManager = Depends(get_admin_manager)):
    try:
        return await manager.activate_product(product_id)
    except Exception as e:
        raise admin_http_error(e)

@router.delete("/products/{product_id}")
async def deactivate_product(product_id: UUID, manager: AdminManager = Depends(get_admin_manager)):
    try:
        return await manager.deactivate_product(product_id)
    except Exception as e:
        raise admin_http_error(e)

# Reports
@router.get("/reports")
async def list_reports(
    status: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    manager: AdminManager = Depends(get_admin_manager)
):
    try:
        return await manager.list_reports(status, page, limit)
    except Exception as e:
        raise admin_http_error(e)

@router.put("/reports/{report_id}/status")
async def update_report_status(
    report_id: UUID,
    body: ReportStatusRequest,
    admin: Dict[str, Any] = Depends(require_admin),
    manager: AdminManager = Depends(get_admin_manager)
):
    """Move a report through moderation."""
    try:
        return await manager.update_report_status(
            report_id,
            body.status,
            admin,
            admin_notes=body.admin_notes,
            deactivate_product=body.deactivate_product
        )
    except Exception as e:
        raise admin_http_error(e)

# Contact messages
@router.get("/contact-messages")
async def list_contact_messages(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    manager: ContactManager = Depends(get_contact_manager)
):
    try:
        return await manager.list_messages(page, limit)
    except Exception as e:
        raise admin_http_error(e)

@router.post("/contact-messages/{message_id}/reply")
async def reply_to_contact_message(
    message_id: UUID,
    body: ReplyRequest,
    admin: Dict[str, Any] = Depends(require_admin),
    manager: ContactManager = Depends(get_contact_manager)
):
    """Email a reply to the sender of a contact message."""
    try:
        return await manager.reply_to_message(message_id, body.reply, admin)
    except Exception as e:
        raise admin_http_error(e)
