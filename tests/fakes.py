"""In-memory stand-ins for the pool-backed repositories and HTTP clients."""
import itertools
import uuid
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

_clock = itertools.count()
_EPOCH = datetime(2024, 1, 1)


def _now() -> datetime:
    """Strictly increasing timestamps so newest-first ordering is stable."""
    return _EPOCH + timedelta(seconds=next(_clock))


def _page(rows: List[Dict[str, Any]], offset: int, limit: int):
    return [dict(r) for r in rows[offset:offset + limit]], len(rows)


def make_profile(email: str, roles: Optional[List[str]] = None, **overrides) -> Dict[str, Any]:
    profile = {
        'id': uuid.uuid4(),
        'email': email,
        'password_hash': None,
        'name': email.split('@')[0],
        'username': None,
        'display_name': None,
        'bio': None,
        'avatar_url': None,
        'roles': roles or ['customer'],
        'is_verified_seller': False,
        'show_admin_badge': False,
        'is_active': True,
        'is_restricted': False,
        'created_at': _now(),
        'updated_at': _now(),
    }
    profile.update(overrides)
    return profile


def make_product(creator_id, name: str = 'Product', price: str = '100.00', **overrides) -> Dict[str, Any]:
    product = {
        'id': uuid.uuid4(),
        'creator_id': creator_id,
        'name': name,
        'description': None,
        'short_description': None,
        'long_description': None,
        'price': Decimal(price),
        'currency': 'INR',
        'categories': ['Code'],
        'tags': [],
        'thumbnail_url': None,
        'preview_images': [],
        'preview_videos': [],
        'page_color': None,
        'is_active': True,
        'is_featured': False,
        'created_at': _now(),
        'updated_at': _now(),
    }
    product.update(overrides)
    return product


class FakeProfileRepository:

    def __init__(self):
        self.rows: Dict[uuid.UUID, Dict[str, Any]] = {}

    def add(self, profile: Dict[str, Any]) -> Dict[str, Any]:
        self.rows[profile['id']] = profile
        return dict(profile)

    async def get(self, profile_id):
        row = self.rows.get(profile_id)
        return dict(row) if row else None

    async def get_by_email(self, email):
        for row in self.rows.values():
            if row['email'].lower() == email.lower():
                return dict(row)
        return None

    async def get_by_username(self, username):
        for row in self.rows.values():
            if row.get('username') and row['username'].lower() == username.lower():
                return dict(row)
        return None

    async def create(self, fields):
        return self.add(make_profile(**fields))

    async def update(self, profile_id, fields):
        row = self.rows.get(profile_id)
        if not row:
            return None
        row.update(fields)
        return dict(row)

    async def list(self, offset=0, limit=20, role=None):
        rows = [r for r in self.rows.values() if role is None or role in r['roles']]
        rows.sort(key=lambda r: r['created_at'], reverse=True)
        return _page(rows, offset, limit)

    async def count(self):
        return len(self.rows)


class FakeSessionRepository:

    def __init__(self):
        self.rows: List[Dict[str, Any]] = []

    async def create(self, profile_id, token, expires_at, user_agent=None, ip_address=None):
        row = {
            'id': uuid.uuid4(),
            'profile_id': profile_id,
            'token': token,
            'expires_at': expires_at,
            'revoked': False,
            'user_agent': user_agent,
            'ip_address': ip_address,
        }
        self.rows.append(row)
        return dict(row)

    async def get_active(self, profile_id, token):
        for row in self.rows:
            if row['profile_id'] == profile_id and row['token'] == token and not row['revoked']:
                return dict(row)
        return None

    async def touch(self, profile_id, token):
        pass

    async def revoke_all(self, profile_id):
        for row in self.rows:
            if row['profile_id'] == profile_id:
                row['revoked'] = True


class FakeProductRepository:

    def __init__(self):
        self.rows: Dict[uuid.UUID, Dict[str, Any]] = {}
        self.variants: Dict[uuid.UUID, Dict[str, Any]] = {}
        self.files: List[Dict[str, Any]] = []
        self.fail_on_create: Optional[Exception] = None

    def add(self, product: Dict[str, Any]) -> Dict[str, Any]:
        self.rows[product['id']] = product
        return dict(product)

    def add_variant(self, product_id, name: str, price: str) -> Dict[str, Any]:
        variant = {
            'id': uuid.uuid4(),
            'product_id': product_id,
            'name': name,
            'description': None,
            'price': Decimal(price),
            'is_active': True,
        }
        self.variants[variant['id']] = variant
        return dict(variant)

    async def get(self, product_id):
        row = self.rows.get(product_id)
        return dict(row) if row else None

    def _filter(self, category=None, featured=None, is_active=True, creator_id=None):
        return [
            r for r in self.rows.values()
            if (category is None or category in r['categories'])
            and (featured is None or r['is_featured'] == featured)
            and (is_active is None or r['is_active'] == is_active)
            and (creator_id is None or r['creator_id'] == creator_id)
        ]

    async def list(self, offset=0, limit=20, category=None, featured=None, is_active=True, creator_id=None):
        rows = self._filter(category, featured, is_active, creator_id)
        rows.sort(key=lambda r: r['created_at'], reverse=True)
        return _page(rows, offset, limit)

    async def search(self, q=None, category=None, min_price=None, max_price=None,
                     sort='newest', offset=0, limit=20):
        rows = [
            r for r in self._filter(category=category)
            if (q is None or q.lower() in r['name'].lower()
                or q.lower() in (r['description'] or '').lower())
            and (min_price is None or r['price'] >= min_price)
            and (max_price is None or r['price'] <= max_price)
        ]
        if sort.startswith('price'):
            rows.sort(key=lambda r: r['price'], reverse=sort == 'price_desc')
        else:
            rows.sort(key=lambda r: r['created_at'], reverse=sort == 'newest')
        return _page(rows, offset, limit)

    async def count(self, is_active=None):
        return len(self._filter(is_active=is_active))

    async def create_with_files(self, fields, files):
        if self.fail_on_create:
            raise self.fail_on_create
        product = self.add(make_product(**fields))
        product['files'] = [await self.add_file(product['id'], stored) for stored in files]
        return product

    async def update(self, product_id, fields):
        row = self.rows.get(product_id)
        if not row:
            return None
        row.update(fields)
        return dict(row)

    async def list_files(self, product_id):
        return [dict(f) for f in self.files if f['product_id'] == product_id]

    async def add_file(self, product_id, stored):
        row = {
            'id': uuid.uuid4(),
            'product_id': product_id,
            'file_name': stored['name'],
            'file_path': stored['path'],
            'file_size': stored['size'],
            'content_type': stored['content_type'],
        }
        self.files.append(row)
        return dict(row)

    async def get_variant(self, variant_id):
        row = self.variants.get(variant_id)
        return dict(row) if row else None

    async def list_variants(self, product_id):
        rows = [v for v in self.variants.values() if v['product_id'] == product_id and v['is_active']]
        return [dict(v) for v in sorted(rows, key=lambda v: v['price'])]

    async def create_variant(self, fields):
        variant = self.add_variant(fields['product_id'], fields['name'], str(fields['price']))
        self.variants[variant['id']]['description'] = fields.get('description')
        return dict(self.variants[variant['id']])

    async def update_variant(self, variant_id, fields):
        row = self.variants.get(variant_id)
        if not row:
            return None
        row.update(fields)
        return dict(row)

    async def delete_variant(self, variant_id):
        return self.variants.pop(variant_id, None) is not None


class FakeReportRepository:

    def __init__(self):
        self.rows: Dict[uuid.UUID, Dict[str, Any]] = {}

    async def get(self, report_id):
        row = self.rows.get(report_id)
        return dict(row) if row else None

    async def find_pending(self, product_id, reporter_id):
        for row in self.rows.values():
            if (row['product_id'] == product_id and row['reporter_id'] == reporter_id
                    and row['status'] == 'pending'):
                return dict(row)
        return None

    async def create(self, fields):
        row = {
            'id': uuid.uuid4(),
            'product_id': fields['product_id'],
            'reporter_id': fields['reporter_id'],
            'reason': fields['reason'],
            'description': fields.get('description'),
            'status': 'pending',
            'admin_notes': None,
            'reviewed_by': None,
            'reviewed_at': None,
            'created_at': _now(),
        }
        self.rows[row['id']] = row
        return dict(row)

    async def list(self, status=None, offset=0, limit=20):
        rows = [r for r in self.rows.values() if status is None or r['status'] == status]
        rows.sort(key=lambda r: r['created_at'], reverse=True)
        return _page(rows, offset, limit)

    async def update(self, report_id, fields):
        row = self.rows.get(report_id)
        if not row:
            return None
        row.update(fields)
        return dict(row)

    async def count(self, status=None):
        return len([r for r in self.rows.values() if status is None or r['status'] == status])


class FakePurchaseRepository:

    def __init__(self):
        self.rows: Dict[uuid.UUID, Dict[str, Any]] = {}
        self.fail_create = False

    async def get(self, purchase_id):
        row = self.rows.get(purchase_id)
        return dict(row) if row else None

    async def create(self, fields):
        if self.fail_create:
            raise RuntimeError("insert failed")
        row = dict(fields)
        row.update({
            'id': uuid.uuid4(),
            'razorpay_payment_id': None,
            'purchased_at': None,
            'created_at': _now(),
        })
        self.rows[row['id']] = row
        return dict(row)

    async def list_by_order(self, order_id):
        rows = [r for r in self.rows.values() if r['razorpay_order_id'] == order_id]
        return [dict(r) for r in sorted(rows, key=lambda r: r['created_at'])]

    async def complete(self, purchase_id, payment_id, purchased_at):
        row = self.rows.get(purchase_id)
        if not row or row['status'] != 'pending':
            return None
        row.update({
            'status': 'completed',
            'razorpay_payment_id': payment_id,
            'purchased_at': purchased_at,
        })
        return dict(row)

    async def update(self, purchase_id, fields):
        row = self.rows.get(purchase_id)
        if not row:
            return None
        row.update(fields)
        return dict(row)

    async def list_by_customer(self, customer_id):
        return [dict(r) for r in self.rows.values()
                if r['customer_id'] == customer_id and r['status'] == 'completed']

    async def list_by_seller(self, seller_id):
        return [dict(r) for r in self.rows.values()
                if r['seller_id'] == seller_id and r['status'] == 'completed']

    async def find_completed(self, customer_id, product_id):
        for row in self.rows.values():
            if (row['customer_id'] == customer_id and row['product_id'] == product_id
                    and row['status'] == 'completed'):
                return dict(row)
        return None

    async def totals(self):
        completed = [r for r in self.rows.values() if r['status'] == 'completed']
        return {
            'completed': len(completed),
            'revenue': sum((r['amount'] for r in completed), Decimal('0')),
            'platform_fees': sum((r['platform_fee'] for r in completed), Decimal('0')),
        }


class FakeContactRepository:

    def __init__(self):
        self.rows: Dict[uuid.UUID, Dict[str, Any]] = {}

    async def create(self, fields):
        row = {
            'id': uuid.uuid4(),
            'name': fields['name'],
            'email': fields['email'],
            'subject': fields.get('subject'),
            'message': fields['message'],
            'status': 'new',
            'reply_message': None,
            'replied_at': None,
            'replied_by': None,
            'created_at': _now(),
        }
        self.rows[row['id']] = row
        return dict(row)

    async def get(self, message_id):
        row = self.rows.get(message_id)
        return dict(row) if row else None

    async def list(self, offset=0, limit=20):
        rows = sorted(self.rows.values(), key=lambda r: r['created_at'], reverse=True)
        return _page(rows, offset, limit)

    async def update(self, message_id, fields):
        row = self.rows.get(message_id)
        if not row:
            return None
        row.update(fields)
        return dict(row)

    async def count(self, status=None):
        return len([r for r in self.rows.values() if status is None or r['status'] == status])


class FakeRazorpay:
    """Records order requests instead of calling Razorpay."""

    def __init__(self, key_id='rzp_test_key', key_secret='rzp_test_secret', error=None):
        self.key_id = key_id
        self.key_secret = key_secret
        self.error = error
        self.orders: List[Dict[str, Any]] = []

    @property
    def enabled(self):
        return bool(self.key_id and self.key_secret)

    def create_order(self, amount, currency, receipt, notes=None):
        if self.error:
            raise self.error
        order = {
            'id': f"order_{len(self.orders) + 1:04d}",
            'amount': amount,
            'currency': currency,
            'receipt': receipt,
            'status': 'created',
        }
        self.orders.append(order)
        return order


class FakeGemini:

    def __init__(self, reply='Hello from the assistant', error=None, api_key='test-key'):
        self.reply = reply
        self.error = error
        self.api_key = api_key
        self.prompts: List[str] = []

    @property
    def enabled(self):
        return bool(self.api_key)

    def generate(self, prompt):
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        return self.reply


class FakeMailer:
    """Async callable with the signature of mailer.send_mail."""

    def __init__(self, error=None):
        self.error = error
        self.sent: List[Dict[str, Any]] = []

    async def __call__(self, to, subject, body, reply_to=None, settings=None):
        if self.error:
            raise self.error
        self.sent.append({'to': to, 'subject': subject, 'body': body, 'reply_to': reply_to})
