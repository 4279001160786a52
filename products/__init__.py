"""Products module for managing marketplace listings of digital goods.

This module provides functionality for:
- Browsing, searching and counting the catalog
- Creating and editing products with their downloadable files
- Managing price variants
- Reporting products for moderation
"""

import json
import logging
import uuid
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import UploadFile

from roles import is_admin, is_creator
from storage import save_upload, remove_files, StorageError
from .repository import ProductRepository, ReportRepository, SORT_ORDERS

logger = logging.getLogger(__name__)

DEFAULT_CURRENCY = 'INR'
MAX_PAGE_SIZE = 100

# Fields a creator may set on create or update
MUTABLE_FIELDS = {
    'name',
    'description',
    'short_description',
    'long_description',
    'price',
    'currency',
    'categories',
    'tags',
    'preview_videos',
    'page_color'
}

# List-valued fields that multipart forms send as JSON strings
LIST_FIELDS = {'categories', 'tags', 'preview_videos'}


class ProductError(Exception):
    """Base exception for product operations."""
    pass

class ProductNotFoundError(ProductError):
    """Raised when a product is not found or not visible to the caller."""
    pass

class VariantNotFoundError(ProductError):
    """Raised when a variant is not found."""
    pass

class InvalidProductError(ProductError):
    """Raised when product input fails validation."""
    pass

class PermissionDeniedError(ProductError):
    """Raised when the caller may not modify the product."""
    pass

class DuplicateReportError(ProductError):
    """Raised when a reporter already has a pending report for the product."""
    pass


def paginate(page: int, limit: int) -> Dict[str, int]:
    """Clamp page/limit and compute the offset."""
    page = max(1, int(page or 1))
    limit = min(MAX_PAGE_SIZE, max(1, int(limit or 20)))
    return {'page': page, 'limit': limit, 'offset': (page - 1) * limit}


def parse_price(value: Any, field: str = 'price') -> Decimal:
    """Parse a non-negative price with at most two decimal places."""
    try:
        price = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidProductError(f"{field} must be a number")
    if not price.is_finite() or price < 0:
        raise InvalidProductError(f"{field} must be zero or more")
    if price != price.quantize(Decimal('0.01')):
        raise InvalidProductError(f"{field} can have at most 2 decimal places")
    return price


def parse_list(value: Any, field: str) -> List[str]:
    """Accept a list or a JSON-encoded list of strings."""
    if value is None or value == '':
        return []
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            value = [part.strip() for part in value.split(',')]
    if not isinstance(value, list):
        raise InvalidProductError(f"{field} must be a list")
    return [str(item).strip() for item in value if str(item).strip()]


def normalize_fields(fields: Dict[str, Any], creating: bool) -> Dict[str, Any]:
    """Validate and coerce creator-supplied product fields.

    Raises:
        InvalidProductError: If a field is unknown or invalid
    """
    fields = {k: v for k, v in fields.items() if v is not None}
    if 'category' in fields and 'categories' not in fields:
        fields['categories'] = fields.pop('category')
    fields.pop('category', None)

    unknown = set(fields) - MUTABLE_FIELDS
    if unknown:
        raise InvalidProductError(f"Cannot set fields: {', '.join(sorted(unknown))}")

    if 'name' in fields or creating:
        name = str(fields.get('name') or '').strip()
        if not name:
            raise InvalidProductError("Product name is required")
        fields['name'] = name

    if 'price' in fields:
        fields['price'] = parse_price(fields['price'])
    elif creating:
        raise InvalidProductError("Product price is required")

    if 'currency' in fields or creating:
        currency = str(fields.get('currency') or DEFAULT_CURRENCY).strip().upper()
        if len(currency) != 3 or not currency.isalpha():
            raise InvalidProductError("currency must be a 3-letter code")
        fields['currency'] = currency

    for field in LIST_FIELDS & set(fields):
        fields[field] = parse_list(fields[field], field)

    return fields


def can_manage(product: Dict[str, Any], user: Dict[str, Any]) -> bool:
    """Owners and admins may change a product."""
    return product['creator_id'] == user['id'] or is_admin(user)


class ProductManager:
    """Manager class for handling product operations."""

    def __init__(self, products: Optional[ProductRepository] = None, reports: Optional[ReportRepository] = None):
        self.products = products or ProductRepository()
        self.reports = reports or ReportRepository()

    async def list_products(
        self,
        page: int = 1,
        limit: int = 20,
        category: Optional[str] = None,
        featured: Optional[bool] = None
    ) -> Dict[str, Any]:
        """List active products newest first with pagination metadata."""
        paging = paginate(page, limit)
        rows, total = await self.products.list(
            offset=paging['offset'],
            limit=paging['limit'],
            category=category,
            featured=featured,
            is_active=True
        )
        return {
            'products': rows,
            'total': total,
            'page': paging['page'],
            'limit': paging['limit']
        }

    async def search_products(
        self,
        q: Optional[str] = None,
        category: Optional[str] = None,
        min_price: Optional[Any] = None,
        max_price: Optional[Any] = None,
        sort: str = 'newest',
        page: int = 1,
        limit: int = 20
    ) -> Dict[str, Any]:
        """Search active products."""
        if sort not in SORT_ORDERS:
            raise InvalidProductError(
                f"sort must be one of: {', '.join(SORT_ORDERS)}"
            )
        min_price = parse_price(min_price, 'min_price') if min_price is not None else None
        max_price = parse_price(max_price, 'max_price') if max_price is not None else None
        if min_price is not None and max_price is not None and min_price > max_price:
            raise InvalidProductError("min_price cannot exceed max_price")

        paging = paginate(page, limit)
        rows, total = await self.products.search(
            q=(q or '').strip() or None,
            category=category,
            min_price=min_price,
            max_price=max_price,
            sort=sort,
            offset=paging['offset'],
            limit=paging['limit']
        )
        return {
            'products': rows,
            'total': total,
            'page': paging['page'],
            'limit': paging['limit']
        }

    async def total_products(self) -> int:
        return await self.products.count(is_active=True)

    async def get_product(self, product_id: UUID, viewer: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Get a product with its variants.

        Inactive products are only visible to their owner and admins.

        Raises:
            ProductNotFoundError: If the product is missing or hidden
        """
        product = await self.products.get(product_id)
        if not product:
            raise ProductNotFoundError(f"Product {product_id} not found")
        if not product['is_active'] and not (viewer and can_manage(product, viewer)):
            raise ProductNotFoundError(f"Product {product_id} not found")

        product['variants'] = await self.products.list_variants(product_id)
        return product

    async def my_products(self, creator: Dict[str, Any], page: int = 1, limit: int = 50) -> Dict[str, Any]:
        """List every product of a creator, active or not."""
        paging = paginate(page, limit)
        rows, total = await self.products.list(
            offset=paging['offset'],
            limit=paging['limit'],
            is_active=None,
            creator_id=creator['id']
        )
        return {
            'products': rows,
            'total': total,
            'page': paging['page'],
            'limit': paging['limit']
        }

    async def create_product(
        self,
        creator: Dict[str, Any],
        fields: Dict[str, Any],
        files: Optional[List[UploadFile]] = None,
        thumbnail: Optional[UploadFile] = None,
        preview_images: Optional[List[UploadFile]] = None
    ) -> Dict[str, Any]:
        """Create a product and store its uploads.

        Raises:
            PermissionDeniedError: If the creator is restricted or lacks the role
            InvalidProductError: If validation or an upload fails
        """
        if not (is_creator(creator) or is_admin(creator)):
            raise PermissionDeniedError("Only creators can list products")
        if creator.get('is_restricted'):
            raise PermissionDeniedError("Account is restricted from listing products")

        fields = normalize_fields(fields, creating=True)
        fields['creator_id'] = creator['id']
        fields['id'] = uuid.uuid4()

        # Uploads are stored before any row is written and removed if the create fails
        stored_paths: List[str] = []
        downloads: List[Dict[str, Any]] = []
        product = None
        try:
            if thumbnail is not None:
                stored = await save_upload(thumbnail, 'thumbnails', image_only=True)
                stored_paths.append(stored['path'])
                fields['thumbnail_url'] = stored['path']
            if preview_images:
                fields['preview_images'] = []
                for image in preview_images:
                    stored = await save_upload(image, 'previews', image_only=True)
                    stored_paths.append(stored['path'])
                    fields['preview_images'].append(stored['path'])
            for upload in files or []:
                stored = await save_upload(upload, f"products/{fields['id']}")
                stored_paths.append(stored['path'])
                downloads.append(stored)

            product = await self.products.create_with_files(fields, downloads)

        except StorageError as e:
            raise InvalidProductError(str(e))
        except ProductError:
            raise
        except Exception as e:
            logger.error(f"Error creating product: {e}")
            raise ProductError(f"Failed to create product: {str(e)}")
        finally:
            if product is None:
                await remove_files(stored_paths)

        logger.info(f"Creator {creator['id']} created product {product['id']}")
        return product

    async def update_product(
        self,
        product_id: UUID,
        user: Dict[str, Any],
        fields: Dict[str, Any],
        files: Optional[List[UploadFile]] = None,
        thumbnail: Optional[UploadFile] = None
    ) -> Dict[str, Any]:
        """Update a product owned by the caller."""
        product = await self._get_managed(product_id, user)
        updates = normalize_fields(fields, creating=False)

        try:
            if thumbnail is not None:
                stored = await save_upload(thumbnail, 'thumbnails', image_only=True)
                updates['thumbnail_url'] = stored['path']
            for upload in files or []:
                stored = await self.products.add_file(
                    product_id,
                    await save_upload(upload, f"products/{product_id}")
                )
                logger.debug(f"Added file {stored['id']} to product {product_id}")

            if updates:
                product = await self.products.update(product_id, updates)

        except StorageError as e:
            raise InvalidProductError(str(e))
        except Exception as e:
            logger.error(f"Error updating product {product_id}: {e}")
            raise ProductError(f"Failed to update product: {str(e)}")

        return product

    async def delete_product(self, product_id: UUID, user: Dict[str, Any]) -> Dict[str, Any]:
        """Soft delete: the product is deactivated so purchases keep their reference."""
        await self._get_managed(product_id, user)
        product = await self.products.update(product_id, {'is_active': False})
        logger.info(f"Product {product_id} deactivated by {user['id']}")
        return product

    async def get_product_files(self, product_id: UUID) -> List[Dict[str, Any]]:
        if not await self.products.get(product_id):
            raise ProductNotFoundError(f"Product {product_id} not found")
        return await self.products.list_files(product_id)

    async def _get_managed(self, product_id: UUID, user: Dict[str, Any]) -> Dict[str, Any]:
        product = await self.products.get(product_id)
        if not product:
            raise ProductNotFoundError(f"Product {product_id} not found")
        if not can_manage(product, user):
            raise PermissionDeniedError("Not authorized to modify this product")
        return product

    # Variants

    async def list_variants(self, product_id: UUID) -> List[Dict[str, Any]]:
        if not await self.products.get(product_id):
            raise ProductNotFoundError(f"Product {product_id} not found")
        return await self.products.list_variants(product_id)

    async def get_variant(self, variant_id: UUID) -> Dict[str, Any]:
        variant = await self.products.get_variant(variant_id)
        if not variant:
            raise VariantNotFoundError(f"Variant {variant_id} not found")
        return variant

    async def create_variant(
        self,
        product_id: UUID,
        user: Dict[str, Any],
        name: str,
        price: Any,
        description: Optional[str] = None
    ) -> Dict[str, Any]:
        await self._get_managed(product_id, user)
        name = (name or '').strip()
        if not name:
            raise InvalidProductError("Variant name is required")
        return await self.products.create_variant({
            'product_id': product_id,
            'name': name,
            'description': description,
            'price': parse_price(price)
        })

    async def update_variant(self, variant_id: UUID, user: Dict[str, Any], fields: Dict[str, Any]) -> Dict[str, Any]:
        variant = await self.get_variant(variant_id)
        await self._get_managed(variant['product_id'], user)

        updates = {k: v for k, v in fields.items() if v is not None}
        if 'price' in updates:
            updates['price'] = parse_price(updates['price'])
        if 'name' in updates and not str(updates['name']).strip():
            raise InvalidProductError("Variant name is required")
        if not updates:
            return variant
        return await self.products.update_variant(variant_id, updates)

    async def delete_variant(self, variant_id: UUID, user: Dict[str, Any]) -> None:
        variant = await self.get_variant(variant_id)
        await self._get_managed(variant['product_id'], user)
        await self.products.delete_variant(variant_id)

    # Reports

    async def report_product(
        self,
        product_id: UUID,
        reporter: Dict[str, Any],
        reason: Optional[str],
        description: Optional[str] = None
    ) -> Dict[str, Any]:
        """File a moderation report against a product.

        Raises:
            InvalidProductError: If no reason is given
            ProductNotFoundError: If the product does not exist
            DuplicateReportError: If the reporter already has a pending report
        """
        reason = (reason or '').strip()
        if not reason:
            raise InvalidProductError("Report reason is required")
        if not await self.products.get(product_id):
            raise ProductNotFoundError(f"Product {product_id} not found")
        if await self.reports.find_pending(product_id, reporter['id']):
            raise DuplicateReportError("You have already reported this product")

        report = await self.reports.create({
            'product_id': product_id,
            'reporter_id': reporter['id'],
            'reason': reason,
            'description': description
        })
        logger.info(f"Product {product_id} reported by {reporter['id']}: {reason}")
        return report


__all__ = [
    'ProductManager',
    'ProductRepository',
    'ReportRepository',
    'ProductError',
    'ProductNotFoundError',
    'VariantNotFoundError',
    'InvalidProductError',
    'PermissionDeniedError',
    'DuplicateReportError',
    'paginate',
    'parse_price',
    'parse_list',
    'normalize_fields',
]
