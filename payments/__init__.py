"""Razorpay REST client for creating and fetching payment orders"""
import logging
from typing import Any, Dict, Optional

import requests

from config import settings_conf

logger = logging.getLogger(__name__)

API_URL = 'https://api.razorpay.com/v1'
TIMEOUT = 15


class RazorpayError(Exception):
    """Base exception for Razorpay errors"""
    def __init__(self, message: str, code: Optional[str] = None, status_code: Optional[int] = None):
        self.code = code
        self.status_code = status_code
        super().__init__(f"Razorpay Error [{code}]: {message}" if code else message)

class RazorpayConnectionError(RazorpayError):
    """Raised when the Razorpay API cannot be reached"""
    pass

class RazorpayAuthError(RazorpayError):
    """Raised when the key id/secret pair is rejected"""
    pass

class PaymentsNotConfiguredError(RazorpayError):
    """Raised when Razorpay keys are missing"""
    pass


class RazorpayClient:
    """Razorpay orders API client"""

    def __init__(
        self,
        key_id: Optional[str] = None,
        key_secret: Optional[str] = None,
        base_url: str = API_URL
    ):
        """Initialize client with keys from settings unless given explicitly"""
        self.key_id = key_id or settings_conf.get('razorpay_key_id')
        self.key_secret = key_secret or settings_conf.get('razorpay_key_secret')
        self.url = base_url.rstrip('/')

        self.session = requests.Session()
        self.session.auth = (self.key_id or '', self.key_secret or '')
        self.session.headers['content-type'] = 'application/json'

    @property
    def enabled(self) -> bool:
        return bool(self.key_id and self.key_secret)

    def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Make a call to the Razorpay API

        Raises:
            PaymentsNotConfiguredError: Keys are not configured
            RazorpayConnectionError: Connection to Razorpay failed
            RazorpayAuthError: Authentication failed
            RazorpayError: Razorpay returned an error
        """
        if not self.enabled:
            raise PaymentsNotConfiguredError("Razorpay keys are not configured")

        url = f"{self.url}{path}"
        try:
            response = self.session.request(method, url, json=payload, timeout=TIMEOUT)

            if response.status_code == 401:
                raise RazorpayAuthError(
                    "Authentication failed - check RAZORPAY_KEY_ID/RAZORPAY_KEY_SECRET",
                    status_code=401
                )

            result = response.json()

            # Razorpay wraps failures as {"error": {"code": ..., "description": ...}}
            if response.status_code >= 400:
                error = result.get('error') or {}
                raise RazorpayError(
                    error.get('description', 'Unknown error'),
                    error.get('code'),
                    response.status_code
                )

            return result

        except requests.exceptions.Timeout as e:
            raise RazorpayConnectionError(
                f"Request timed out after {TIMEOUT} seconds"
            ) from e
        except requests.exceptions.ConnectionError as e:
            raise RazorpayConnectionError(
                f"Failed to connect to Razorpay at {self.url}"
            ) from e
        except requests.exceptions.RequestException as e:
            raise RazorpayConnectionError(
                f"Request failed: {str(e)}"
            ) from e
        except ValueError as e:
            raise RazorpayConnectionError(
                f"Invalid response format: {str(e)}"
            ) from e

    def create_order(
        self,
        amount: int,
        currency: str,
        receipt: str,
        notes: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Create an order for ``amount`` minor currency units."""
        order = self._request('POST', '/orders', {
            'amount': amount,
            'currency': currency,
            'receipt': receipt,
            'notes': notes or {}
        })
        logger.info(f"Created Razorpay order {order.get('id')} for {amount} {currency}")
        return order

    def fetch_order(self, order_id: str) -> Dict[str, Any]:
        return self._request('GET', f'/orders/{order_id}')


__all__ = [
    'RazorpayClient',
    'RazorpayError',
    'RazorpayConnectionError',
    'RazorpayAuthError',
    'PaymentsNotConfiguredError',
]
