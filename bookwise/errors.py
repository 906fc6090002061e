"""Domain errors.

Each carries the HTTP status the API answers with; ``main`` turns them into
JSON responses. Classification never raises, it reports ``unknown`` instead.
"""


class BookwiseError(Exception):
    status_code = 400
    title = "Request failed"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailed(BookwiseError):
    title = "Validation failed"


class InvalidRange(ValidationFailed):
    title = "Invalid date range"


class NotFound(BookwiseError):
    status_code = 404
    title = "Not found"


class OwnershipViolation(BookwiseError):
    status_code = 403
    title = "Access denied"


class DuplicateCategory(BookwiseError):
    status_code = 409
    title = "Duplicate category"


class ReferentialBlock(BookwiseError):
    status_code = 409
    title = "Cannot delete"

    def __init__(self, category_id: int, usage_count: int):
        super().__init__(
            f"Category still has {usage_count} transactions attached and cannot be deleted"
        )
        self.category_id = category_id
        self.usage_count = usage_count


class AuthenticationFailed(BookwiseError):
    status_code = 401
    title = "Authentication failed"


class DuplicateUser(BookwiseError):
    status_code = 409
    title = "Registration failed"
