"""Admin module for the marketplace dashboard.

This module provides:
- Dashboard statistics
- User role and flag management
- Product moderation (feature, activate, deactivate)
- The product report queue
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from contact import ContactRepository
from products import paginate
from products.repository import ProductRepository, ReportRepository
from profiles import ProfileRepository, public_profile
from purchases.repository import PurchaseRepository
from roles import RoleSet, InvalidRoleError, validate_role

logger = logging.getLogger(__name__)

REPORT_STATUSES = ('pending', 'reviewed', 'resolved', 'dismissed')
PRODUCT_STATUSES = {'all': None, 'active': True, 'inactive': False}


class AdminError(Exception):
    """Base exception for admin operations."""
    pass

class UserNotFoundError(AdminError):
    """Raised when a profile does not exist."""
    pass

class ProductNotFoundError(AdminError):
    """Raised when a product does not exist."""
    pass

class ReportNotFoundError(AdminError):
    """Raised when a report does not exist."""
    pass

class InvalidRequestError(AdminError):
    """Raised when an admin request is malformed."""
    pass

class SelfModificationError(AdminError):
    """Raised when an admin would lock themselves out."""
    pass


class AdminManager:
    """Manager class for admin operations."""

    def __init__(
        self,
        profiles: Optional[ProfileRepository] = None,
        products: Optional[ProductRepository] = None,
        reports: Optional[ReportRepository] = None,
        purchases: Optional[PurchaseRepository] = None,
        messages: Optional[ContactRepository] = None
    ):
        self.profiles = profiles or ProfileRepository()
        self.products = products or ProductRepository()
        self.reports = reports or ReportRepository()
        self.purchases = purchases or PurchaseRepository()
        self.messages = messages or ContactRepository()

    async def get_stats(self) -> Dict[str, Any]:
        """Collect dashboard counters."""
        try:
            totals = await self.purchases.totals()
            return {
                'total_users': await self.profiles.count(),
                'total_products': await self.products.count(),
                'active_products': await self.products.count(is_active=True),
                'completed_purchases': totals['completed'],
                'total_revenue': totals['revenue'],
                'platform_fees': totals['platform_fees'],
                'pending_reports': await self.reports.count(status='pending'),
                'unread_messages': await self.messages.count(status='new')
            }
        except Exception as e:
            logger.error(f"Error collecting admin stats: {e}")
            raise AdminError(f"Failed to collect stats: {str(e)}")

    # Users

    async def list_users(self, page: int = 1, limit: int = 20, role: Optional[str] = None) -> Dict[str, Any]:
        if role is not None:
            validate_role(role)
        paging = paginate(page, limit)
        rows, total = await self.profiles.list(offset=paging['offset'], limit=paging['limit'], role=role)
        return {
            'users': [public_profile(row) for row in rows],
            'total': total,
            'page': paging['page'],
            'limit': paging['limit']
        }

    async def get_user(self, user_id: UUID) -> Dict[str, Any]:
        return public_profile(await self._get_profile(user_id))

    async def _get_profile(self, user_id: UUID) -> Dict[str, Any]:
        profile = await self.profiles.get(user_id)
        if not profile:
            raise UserNotFoundError(f"User {user_id} not found")
        return profile

    async def _save_roles(self, user_id: UUID, roles: RoleSet, admin: Dict[str, Any]) -> Dict[str, Any]:
        if user_id == admin['id'] and 'admin' not in roles:
            raise SelfModificationError("You cannot remove your own admin role")
        updated = await self.profiles.update(user_id, {'roles': roles.to_list()})
        logger.info(f"Admin {admin['id']} set roles of {user_id} to {roles.to_list()}")
        return public_profile(updated)

    async def update_user_roles(self, user_id: UUID, roles: List[str], admin: Dict[str, Any]) -> Dict[str, Any]:
        """Replace a user's roles.

        Raises:
            InvalidRoleError: If any role is unknown
            UserNotFoundError: If the user does not exist
        """
        if not isinstance(roles, list):
            raise InvalidRequestError("roles must be a list")
        role_set = RoleSet.from_list(roles)
        await self._get_profile(user_id)
        return await self._save_roles(user_id, role_set, admin)

    async def add_role(self, user_id: UUID, role: str, admin: Dict[str, Any]) -> Dict[str, Any]:
        validate_role(role)
        profile = await self._get_profile(user_id)
        current = RoleSet.from_list(profile.get('roles'))
        updated = current.add(role)
        if updated is current:
            return public_profile(profile)
        return await self._save_roles(user_id, updated, admin)

    async def remove_role(self, user_id: UUID, role: str, admin: Dict[str, Any]) -> Dict[str, Any]:
        validate_role(role)
        profile = await self._get_profile(user_id)
        current = RoleSet.from_list(profile.get('roles'))
        if role not in current:
            return public_profile(profile)
        return await self._save_roles(user_id, current.remove(role), admin)

    async def _set_flag(self, user_id: UUID, flag: str, value: bool) -> Dict[str, Any]:
        if not isinstance(value, bool):
            raise InvalidRequestError(f"{flag} must be true or false")
        await self._get_profile(user_id)
        return public_profile(await self.profiles.update(user_id, {flag: value}))

    async def set_verified_seller(self, user_id: UUID, is_verified: bool) -> Dict[str, Any]:
        return await self._set_flag(user_id, 'is_verified_seller', is_verified)

    async def set_admin_badge(self, user_id: UUID, show_badge: bool) -> Dict[str, Any]:
        return await self._set_flag(user_id, 'show_admin_badge', show_badge)

    async def set_user_status(
        self,
        user_id: UUID,
        admin: Dict[str, Any],
        is_active: Optional[bool] = None,
        is_restricted: Optional[bool] = None
    ) -> Dict[str, Any]:
        """Activate, deactivate, restrict or unrestrict a user."""
        updates = {}
        if is_active is not None:
            updates['is_active'] = is_active
        if is_restricted is not None:
            updates['is_restricted'] = is_restricted
        if not updates:
            raise InvalidRequestError("Provide is_active and/or is_restricted")
        if user_id == admin['id'] and (is_active is False or is_restricted):
            raise SelfModificationError("You cannot deactivate or restrict yourself")

        await self._get_profile(user_id)
        updated = await self.profiles.update(user_id, updates)
        logger.info(f"Admin {admin['id']} updated status of {user_id}: {updates}")
        return public_profile(updated)

    # Products

    async def list_products(self, page: int = 1, limit: int = 20, status: str = 'all') -> Dict[str, Any]:
        if status not in PRODUCT_STATUSES:
            raise InvalidRequestError(f"status must be one of: {', '.join(PRODUCT_STATUSES)}")
        paging = paginate(page, limit)
        rows, total = await self.products.list(
            offset=paging['offset'],
            limit=paging['limit'],
            is_active=PRODUCT_STATUSES[status]
        )
        return {
            'products': rows,
            'total': total,
            'page': paging['page'],
            'limit': paging['limit']
        }

    async def _update_product(self, product_id: UUID, fields: Dict[str, Any]) -> Dict[str, Any]:
        product = await self.products.update(product_id, fields)
        if not product:
            raise ProductNotFoundError(f"Product {product_id} not found")
        logger.info(f"Product {product_id} updated by admin: {fields}")
        return product

    async def set_featured(self, product_id: UUID, is_featured: bool) -> Dict[str, Any]:
        if not isinstance(is_featured, bool):
            raise InvalidRequestError("is_featured must be true or false")
        return await self._update_product(product_id, {'is_featured': is_featured})

    async def activate_product(self, product_id: UUID) -> Dict[str, Any]:
        return await self._update_product(product_id, {'is_active': True})

    async def deactivate_product(self, product_id: UUID) -> Dict[str, Any]:
        return await self._update_product(product_id, {'is_active': False})

    # Reports

    async def list_reports(self, status: Optional[str] = None, page: int = 1, limit: int = 20) -> Dict[str, Any]:
        if status is not None and status not in REPORT_STATUSES:
            raise InvalidRequestError(f"status must be one of: {', '.join(REPORT_STATUSES)}")
        paging = paginate(page, limit)
        rows, total = await self.reports.list(status=status, offset=paging['offset'], limit=paging['limit'])
        return {
            'reports': rows,
            'total': total,
            'page': paging['page'],
            'limit': paging['limit']
        }

    async def update_report_status(
        self,
        report_id: UUID,
        status: str,
        admin: Dict[str, Any],
        admin_notes: Optional[str] = None,
        deactivate_product: bool = False
    ) -> Dict[str, Any]:
        """Move a report through moderation and optionally pull the product.

        Raises:
            InvalidRequestError: If the status is unknown
            ReportNotFoundError: If the report does not exist
        """
        if status not in REPORT_STATUSES:
            raise InvalidRequestError(f"status must be one of: {', '.join(REPORT_STATUSES)}")

        report = await self.reports.get(report_id)
        if not report:
            raise ReportNotFoundError(f"Report {report_id} not found")

        updates = {
            'status': status,
            'reviewed_by': admin['id'],
            'reviewed_at': datetime.utcnow()
        }
        if admin_notes is not None:
            updates['admin_notes'] = admin_notes
        updated = await self.reports.update(report_id, updates)

        if deactivate_product:
            await self.products.update(report['product_id'], {'is_active': False})
            logger.info(f"Product {report['product_id']} deactivated from report {report_id}")

        logger.info(f"Admin {admin['id']} marked report {report_id} as {status}")
        return updated


__all__ = [
    'AdminManager',
    'AdminError',
    'UserNotFoundError',
    'ProductNotFoundError',
    'ReportNotFoundError',
    'InvalidRequestError',
    'SelfModificationError',
    'InvalidRoleError',
    'REPORT_STATUSES',
]
