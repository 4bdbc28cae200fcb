"""
Checkout error taxonomy.

Local validation errors are raised at the call that breaks the precondition.
Gateway errors wrap anything the PayPal SDK or the network surfaces.
"""


class CheckoutError(Exception):
    pass


class InvalidItemError(CheckoutError):
    pass


class EmptyCartError(CheckoutError):
    pass


class ConfigurationError(CheckoutError):
    pass


class GatewayError(CheckoutError):
    """Failure reported by (or while talking to) the payment gateway."""

    def __init__(
        self,
        code: str | int | None,
        message: str,
        operation: str | None = None,
        correlation_id: str | None = None,
    ):
        self.code = code
        self.message = message
        self.operation = operation
        self.correlation_id = correlation_id
        super().__init__(str(self))

    def __str__(self) -> str:
        parts = [f"[{self.code}] {self.message}" if self.code else self.message]
        if self.operation:
            parts.append(f"operation={self.operation}")
        if self.correlation_id:
            parts.append(f"correlation_id={self.correlation_id}")
        return " ".join(parts)

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "operation": self.operation,
            "correlation_id": self.correlation_id,
        }
