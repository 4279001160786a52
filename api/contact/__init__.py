"""Contact form API endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel

from auth import require_admin
from contact import ContactManager, InvalidMessageError
from ratelimit import rate_limit

router = APIRouter(
    prefix="/api/contact",
    tags=["Contact"]
)

class ContactRequest(BaseModel):
    """Request model for the contact form."""
    name: Optional[str] = None
    email: Optional[str] = None
    subject: Optional[str] = None
    message: Optional[str] = None


def get_contact_manager() -> ContactManager:
    return ContactManager()


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit('contact'))]
)
async def submit_message(body: ContactRequest, manager: ContactManager = Depends(get_contact_manager)):
    """Submit a message to the site's support inbox."""
    try:
        data = await manager.submit_message(body.name, body.email, body.message, subject=body.subject)
        return {
            "success": True,
            "message": "Message submitted successfully",
            "data": data
        }
    except InvalidMessageError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )

@router.get("", dependencies=[Depends(require_admin)])
async def list_messages(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    manager: ContactManager = Depends(get_contact_manager)
):
    """List contact messages, newest first."""
    try:
        return await manager.list_messages(page, limit)
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )
