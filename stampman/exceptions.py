"""Stampman exceptions."""


class StampmanError(Exception):
    """
    Structured exception for stamp card operations.

    Usage:
        try:
            result = StampLedger.redeem_free_item(customer_id)
        except StampmanError as e:
            if e.code == "LOYALTY_INSUFFICIENT_STAMPS":
                show_progress(e.data["stamps"])
    """

    _default_messages = {
        "CUSTOMER_NOT_FOUND": "Customer not found",
        "DUPLICATE_PHONE": "Phone number already registered",
        "STORAGE_ERROR": "Storage backend unavailable, please try again",
        "INVALID_PHONE": "Invalid phone number",
        "INVALID_NAME": "Invalid name",
        "INVALID_SUFFIX": "Enter exactly 4 digits",
        "INVALID_LABEL": "Invalid employee label",
        "QUERY_TOO_SHORT": "Search query is too short",
        "LOYALTY_INSUFFICIENT_STAMPS": "Not enough stamps for a free item",
        "LOYALTY_FREE_ITEM_NOT_AVAILABLE": "No free item available",
        "EMPLOYEE_AUTH_FAILED": "Incorrect password",
    }

    _categories = {
        "CUSTOMER_NOT_FOUND": "not_found",
        "DUPLICATE_PHONE": "conflict",
        "STORAGE_ERROR": "storage",
        "INVALID_PHONE": "validation",
        "INVALID_NAME": "validation",
        "INVALID_SUFFIX": "validation",
        "INVALID_LABEL": "validation",
        "QUERY_TOO_SHORT": "validation",
        "LOYALTY_INSUFFICIENT_STAMPS": "rule",
        "LOYALTY_FREE_ITEM_NOT_AVAILABLE": "rule",
        "EMPLOYEE_AUTH_FAILED": "auth",
    }

    def __init__(self, code: str, message: str | None = None, **data):
        self.code = code
        self.message = message or self._default_messages.get(code, code)
        self.data = data
        super().__init__(f"[{code}] {self.message}")

    @property
    def category(self) -> str:
        return self._categories.get(self.code, "error")

    @property
    def is_retryable(self) -> bool:
        """Storage failures can be retried as-is; the rest need new input."""
        return self.category == "storage"

    def as_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "category": self.category,
            "data": self.data,
        }
