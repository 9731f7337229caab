"""Failures raised by the stores and services, translated to HTTP in main.py."""


class StoreError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthenticated(StoreError):
    status_code = 401
    default_message = "Unauthorized: Please sign in"


class NotFound(StoreError):
    status_code = 404
    default_message = "Not found"


class InvalidArgument(StoreError):
    status_code = 400
    default_message = "Invalid request"


class InvalidTransition(InvalidArgument):
    default_message = "Invalid status transition"


class InsufficientStock(InvalidArgument):
    default_message = "Not enough stock available"

    def __init__(self, product_name=None):
        self.product_name = product_name
        super().__init__(f"Not enough stock for {product_name}" if product_name else None)


class Internal(StoreError):
    pass
