"""Purchase and Razorpay checkout API endpoints."""

from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from auth import get_current_user, require_creator
from purchases import (
    PurchaseManager, InvalidOrderError, NotFoundError,
    InvalidSignatureError, PaymentsDisabledError, AccessDeniedError
)
from ratelimit import rate_limit

router = APIRouter(
    prefix="/api/purchases",
    tags=["Purchases"]
)

class CheckoutRequest(BaseModel):
    """Request model for creating a Razorpay order."""
    product_id: Optional[UUID] = None
    product_ids: Optional[List[UUID]] = None
    variant_id: Optional[UUID] = None
    discount_amount: Decimal = Decimal('0')
    discount_code_id: Optional[UUID] = None

class VerifyRequest(BaseModel):
    """Request model for verifying a Razorpay payment."""
    razorpay_order_id: str
    razorpay_payment_id: str
    razorpay_signature: str


def get_purchase_manager() -> PurchaseManager:
    return PurchaseManager()


def purchase_http_error(e: Exception) -> HTTPException:
    """Translate purchase errors to HTTP errors."""
    if isinstance(e, (InvalidOrderError, InvalidSignatureError)):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if isinstance(e, AccessDeniedError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    if isinstance(e, PaymentsDisabledError):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    # OrderCreationError carries the provider's message
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@router.post(
    "/checkout/razorpay",
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit('payment'))]
)
async def create_razorpay_order(
    body: CheckoutRequest,
    user: Dict[str, Any] = Depends(get_current_user),
    manager: PurchaseManager = Depends(get_purchase_manager)
):
    """Create a Razorpay order and pending purchases for the caller."""
    try:
        return await manager.create_order(
            user,
            product_id=body.product_id,
            product_ids=body.product_ids,
            variant_id=body.variant_id,
            discount_amount=body.discount_amount,
            discount_code_id=body.discount_code_id
        )
    except Exception as e:
        raise purchase_http_error(e)

@router.post("/verify/razorpay")
async def verify_razorpay_payment(
    body: VerifyRequest,
    user: Dict[str, Any] = Depends(get_current_user),
    manager: PurchaseManager = Depends(get_purchase_manager)
):
    """Verify a payment signature and complete the order's purchases."""
    try:
        purchases = await manager.verify_payment(
            body.razorpay_order_id,
            body.razorpay_payment_id,
            body.razorpay_signature
        )
        return {
            "success": True,
            "purchase": purchases[0],
            "purchases": purchases
        }
    except Exception as e:
        raise purchase_http_error(e)

@router.get("/my")
async def get_my_purchases(
    user: Dict[str, Any] = Depends(get_current_user),
    manager: PurchaseManager = Depends(get_purchase_manager)
):
    try:
        return {"purchases": await manager.get_my_purchases(user)}
    except Exception as e:
        raise purchase_http_error(e)

@router.get("/sales")
async def get_creator_sales(
    user: Dict[str, Any] = Depends(require_creator),
    manager: PurchaseManager = Depends(get_purchase_manager)
):
    try:
        return await manager.get_creator_sales(user)
    except Exception as e:
        raise purchase_http_error(e)

@router.get("/check/{product_id}")
async def check_purchase(
    product_id: UUID,
    user: Dict[str, Any] = Depends(get_current_user),
    manager: PurchaseManager = Depends(get_purchase_manager)
):
    """Check whether the caller owns a product."""
    try:
        return await manager.check_purchase(user, product_id)
    except Exception as e:
        raise purchase_http_error(e)

@router.get("/order/{order_id}")
async def get_purchases_by_order(
    order_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    manager: PurchaseManager = Depends(get_purchase_manager)
):
    try:
        return {"purchases": await manager.get_purchases_by_order(order_id, user)}
    except Exception as e:
        raise purchase_http_error(e)

@router.get("/{purchase_id}")
async def get_purchase(
    purchase_id: UUID,
    user: Dict[str, Any] = Depends(get_current_user),
    manager: PurchaseManager = Depends(get_purchase_manager)
):
    try:
        return await manager.get_purchase(purchase_id, user)
    except Exception as e:
        raise purchase_http_error(e)
