from typing import List, Optional


class OrderNotFoundError(Exception):
    """Raised when an order does not exist for the requesting user."""

    def __init__(self, order_id):
        self.order_id = order_id
        super().__init__(f"Order {order_id} not found")


class InvoiceNotFoundError(Exception):
    def __init__(self, order_id):
        self.order_id = order_id
        super().__init__(f"No invoice found for order {order_id}")


class InvalidTransitionError(Exception):
    """Raised when an action is not allowed from the order's current status."""

    def __init__(self, current_status: str, target_status: str):
        self.current_status = current_status
        self.target_status = target_status
        super().__init__(f"Cannot move order from '{current_status}' to '{target_status}'")


class DuplicateOrderCodeError(Exception):
    def __init__(self, order_code: str):
        self.order_code = order_code
        super().__init__(f"Order ID '{order_code}' already exists")


class DuplicateCheckError(Exception):
    """Raised when a persisted-duplicate lookup chunk fails; the batch is aborted."""

    def __init__(self, message: str, codes: Optional[List[str]] = None):
        self.codes = codes or []
        super().__init__(message)
