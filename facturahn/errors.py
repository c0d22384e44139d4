"""
Service-layer exceptions.

Raised by the services and turned into JSON error responses by the API
blueprint's error handler.
"""


class ServiceError(Exception):
    status_code = 400

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict:
        return {"error": self.message}


class NotFoundError(ServiceError):
    status_code = 404


class FiscalValidationError(ServiceError):
    """An invoice number was rejected by the fiscal engine."""

    status_code = 422

    def __init__(self, result):
        super().__init__(result.message)
        self.result = result

    def to_dict(self) -> dict:
        return {"error": self.message, "kind": type(self.result).__name__}


class InsufficientStockError(ServiceError):
    status_code = 409

    def __init__(self, shortages):
        super().__init__("Inventario insuficiente para entregar la factura")
        self.shortages = list(shortages)

    def to_dict(self) -> dict:
        return {
            "error": self.message,
            "shortages": [s.as_dict() for s in self.shortages],
        }
