"""Product API endpoints."""

from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from pydantic import BaseModel

from auth import get_current_user, get_optional_user, require_creator
from products import (
    ProductManager, ProductNotFoundError, VariantNotFoundError,
    InvalidProductError, PermissionDeniedError, DuplicateReportError
)
from ratelimit import rate_limit

router = APIRouter(
    prefix="/api/products",
    tags=["Products"]
)

class VariantRequest(BaseModel):
    """Request model for creating a variant."""
    name: str
    price: Decimal
    description: Optional[str] = None

class VariantUpdateRequest(BaseModel):
    """Request model for updating a variant."""
    name: Optional[str] = None
    price: Optional[Decimal] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None

class ReportRequest(BaseModel):
    """Request model for reporting a product."""
    reason: str
    description: Optional[str] = None


def get_product_manager() -> ProductManager:
    return ProductManager()


def product_http_error(e: Exception) -> HTTPException:
    """Translate product errors to HTTP errors."""
    if isinstance(e, (ProductNotFoundError, VariantNotFoundError)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if isinstance(e, PermissionDeniedError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    if isinstance(e, (InvalidProductError, DuplicateReportError)):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


# Catalog reads first (most specific)
@router.get("/list")
async def list_products(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    category: Optional[str] = None,
    featured: Optional[bool] = None,
    manager: ProductManager = Depends(get_product_manager)
):
    """List active products, newest first."""
    try:
        return await manager.list_products(page, limit, category=category, featured=featured)
    except Exception as e:
        raise product_http_error(e)

@router.get("/search")
async def search_products(
    q: Optional[str] = None,
    category: Optional[str] = None,
    min_price: Optional[Decimal] = None,
    max_price: Optional[Decimal] = None,
    sort: str = 'newest',
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    manager: ProductManager = Depends(get_product_manager)
):
    """Search active products by text, category and price."""
    try:
        return await manager.search_products(
            q=q,
            category=category,
            min_price=min_price,
            max_price=max_price,
            sort=sort,
            page=page,
            limit=limit
        )
    except Exception as e:
        raise product_http_error(e)

@router.get("/total")
async def total_products(manager: ProductManager = Depends(get_product_manager)):
    try:
        return {"total": await manager.total_products()}
    except Exception as e:
        raise product_http_error(e)

@router.get("/featured")
async def featured_products(
    limit: int = Query(8, ge=1, le=100),
    manager: ProductManager = Depends(get_product_manager)
):
    """List featured active products."""
    try:
        result = await manager.list_products(1, limit, featured=True)
        return {"products": result['products']}
    except Exception as e:
        raise product_http_error(e)

@router.get("/my/list")
async def my_products(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    user: Dict[str, Any] = Depends(require_creator),
    manager: ProductManager = Depends(get_product_manager)
):
    """List the caller's own products, including inactive ones."""
    try:
        return await manager.my_products(user, page, limit)
    except Exception as e:
        raise product_http_error(e)

@router.post(
    "/create",
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit('upload'))]
)
async def create_product(
    name: str = Form(...),
    price: str = Form(...),
    description: Optional[str] = Form(None),
    short_description: Optional[str] = Form(None),
    long_description: Optional[str] = Form(None),
    currency: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    categories: Optional[str] = Form(None),
    tags: Optional[str] = Form(None),
    preview_videos: Optional[str] = Form(None),
    page_color: Optional[str] = Form(None),
    files: List[UploadFile] = File(default=[]),
    thumbnail: Optional[UploadFile] = File(None),
    preview_images: List[UploadFile] = File(default=[]),
    user: Dict[str, Any] = Depends(require_creator),
    manager: ProductManager = Depends(get_product_manager)
):
    """Create a product from a multipart form with its files."""
    fields = {
        'name': name,
        'price': price,
        'description': description,
        'short_description': short_description,
        'long_description': long_description,
        'currency': currency,
        'category': category,
        'categories': categories,
        'tags': tags,
        'preview_videos': preview_videos,
        'page_color': page_color
    }
    try:
        return await manager.create_product(
            user,
            fields,
            files=files,
            thumbnail=thumbnail,
            preview_images=preview_images
        )
    except Exception as e:
        raise product_http_error(e)

# Variant endpoints keyed by variant id
@router.get("/variants/{variant_id}")
async def get_variant(variant_id: UUID, manager: ProductManager = Depends(get_product_manager)):
    try:
        return await manager.get_variant(variant_id)
    except Exception as e:
        raise product_http_error(e)

@router.put("/variants/{variant_id}")
async def update_variant(
    variant_id: UUID,
    body: VariantUpdateRequest,
    user: Dict[str, Any] = Depends(require_creator),
    manager: ProductManager = Depends(get_product_manager)
):
    try:
        return await manager.update_variant(variant_id, user, body.model_dump(exclude_unset=True))
    except Exception as e:
        raise product_http_error(e)

@router.delete("/variants/{variant_id}")
async def delete_variant(
    variant_id: UUID,
    user: Dict[str, Any] = Depends(require_creator),
    manager: ProductManager = Depends(get_product_manager)
):
    try:
        await manager.delete_variant(variant_id, user)
        return {"message": "Variant deleted"}
    except Exception as e:
        raise product_http_error(e)

# Endpoints keyed by product id
@router.get("/{product_id}")
async def get_product(
    product_id: UUID,
    viewer: Optional[Dict[str, Any]] = Depends(get_optional_user),
    manager: ProductManager = Depends(get_product_manager)
):
    """Get a product with its variants."""
    try:
        return await manager.get_product(product_id, viewer)
    except Exception as e:
        raise product_http_error(e)

@router.put("/{product_id}")
async def update_product(
    product_id: UUID,
    name: Optional[str] = Form(None),
    price: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    short_description: Optional[str] = Form(None),
    long_description: Optional[str] = Form(None),
    currency: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    categories: Optional[str] = Form(None),
    tags: Optional[str] = Form(None),
    preview_videos: Optional[str] = Form(None),
    page_color: Optional[str] = Form(None),
    files: List[UploadFile] = File(default=[]),
    thumbnail: Optional[UploadFile] = File(None),
    user: Dict[str, Any] = Depends(require_creator),
    manager: ProductManager = Depends(get_product_manager)
):
    """Update a product owned by the caller."""
    fields = {
        'name': name,
        'price': price,
        'description': description,
        'short_description': short_description,
        'long_description': long_description,
        'currency': currency,
        'category': category,
        'categories': categories,
        'tags': tags,
        'preview_videos': preview_videos,
        'page_color': page_color
    }
    try:
        return await manager.update_product(product_id, user, fields, files=files, thumbnail=thumbnail)
    except Exception as e:
        raise product_http_error(e)

@router.delete("/{product_id}")
async def delete_product(
    product_id: UUID,
    user: Dict[str, Any] = Depends(require_creator),
    manager: ProductManager = Depends(get_product_manager)
):
    """Deactivate a product owned by the caller."""
    try:
        await manager.delete_product(product_id, user)
        return {"message": "Product deleted"}
    except Exception as e:
        raise product_http_error(e)

@router.get("/{product_id}/files")
async def get_product_files(product_id: UUID, manager: ProductManager = Depends(get_product_manager)):
    try:
        return {"files": await manager.get_product_files(product_id)}
    except Exception as e:
        raise product_http_error(e)

@router.get("/{product_id}/variants")
async def list_variants(product_id: UUID, manager: ProductManager = Depends(get_product_manager)):
    try:
        return {"variants": await manager.list_variants(product_id)}
    except Exception as e:
        raise product_http_error(e)

@router.post("/{product_id}/variants", status_code=status.HTTP_201_CREATED)
async def create_variant(
    product_id: UUID,
    body: VariantRequest,
    user: Dict[str, Any] = Depends(require_creator),
    manager: ProductManager = Depends(get_product_manager)
):
    try:
        return await manager.create_variant(
            product_id,
            user,
            name=body.name,
            price=body.price,
            description=body.description
        )
    except Exception as e:
        raise product_http_error(e)

@router.post("/{product_id}/report", status_code=status.HTTP_201_CREATED)
async def report_product(
    product_id: UUID,
    body: ReportRequest,
    user: Dict[str, Any] = Depends(get_current_user),
    manager: ProductManager = Depends(get_product_manager)
):
    """Report a product to the moderators."""
    try:
        report = await manager.report_product(product_id, user, body.reason, body.description)
        return {"message": "Report submitted", "report": report}
    except Exception as e:
        raise product_http_error(e)
