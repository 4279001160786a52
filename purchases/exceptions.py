class PurchaseError(Exception):
    """Base class for purchase-related errors."""
    pass

class InvalidOrderError(PurchaseError):
    """Raised when an order request is malformed."""
    pass

class NotFoundError(PurchaseError):
    """Raised when a product, variant, purchase or order is not found."""
    pass

class OrderCreationError(PurchaseError):
    """Raised when the payment provider refuses to create an order."""
    pass

class InvalidSignatureError(PurchaseError):
    """Raised when a payment signature does not match the order and payment ids."""
    pass

class PaymentsDisabledError(PurchaseError):
    """Raised when Razorpay is not configured."""
    pass

class AccessDeniedError(PurchaseError):
    """Raised when the caller may not see a purchase."""
    pass
