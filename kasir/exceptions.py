"""
Domain errors raised by the services.
Messages are user-facing (Indonesian); the status code picks the HTTP category.
"""


class POSError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationFailed(POSError):
    status_code = 400


class NotFound(POSError):
    status_code = 404


class StateConflict(POSError):
    """Mutation of a record that is already in a terminal state."""
    status_code = 400


class InsufficientStock(POSError):
    status_code = 400

    def __init__(self, product_id: int, product_name: str, available: int, requested: int):
        super().__init__(
            f"Stok {product_name} tidak mencukupi (tersisa {available}, diminta {requested})"
        )
        self.product_id = product_id
        self.available = available
        self.requested = requested
