# storefront/domain/errors.py
"""
Error taxonomy of the cart engine.

ValidationError and NotFound are raised before/inside a transaction and are
never retried. InsufficientStock and everything else go through the
unit-of-work retry loop.
"""


class CartError(Exception):
    """Base class for all cart engine errors."""


class ValidationError(CartError, ValueError):
    """Missing identifier or non-positive quantity."""


class NotFound(CartError, LookupError):
    """Missing cart, cart item or product variation."""


class InsufficientStock(CartError):
    def __init__(self, variation_id: str, available: int, requested: int):
        self.variation_id = variation_id
        self.available = available
        self.requested = requested
        # filled in by the retry loop when it gives up
        self.attempts: int | None = None
        super().__init__(
            f"Insufficient stock for variation {variation_id}: "
            f"available {available}, requested {requested}"
        )


class TransactionFailure(CartError, RuntimeError):
    def __init__(self, operation: str, attempts: int, cause: BaseException | None = None):
        self.operation = operation
        self.attempts = attempts
        self.cause = cause
        super().__init__(f"Failed to {operation} after {attempts} attempts: {cause}")


class TransactionTimeout(TransactionFailure):
    def __init__(self, timeout: float, elapsed: float):
        super().__init__("transaction", 1, None)
        self.timeout = timeout
        self.elapsed = elapsed
        self.args = (f"Transaction exceeded {timeout:.1f}s (took {elapsed:.2f}s)",)
