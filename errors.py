"""
Error taxonomy for the content platform.

Only the query/repository boundary and the write services raise these; the
resolver, policy predicates, scorer and schema generator are total functions.
The HTTP layer maps them to responses in ``app.py``.
"""

from typing import Dict, List, Optional


class ContentError(Exception):
    """Base class for errors surfaced by the content platform."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict:
        return {"message": self.message}


class NotFound(ContentError):
    """
    A slug or id lookup yielded no visible item.

    Public paths use one message for "does not exist" and "exists but is not
    live" so unpublished content cannot be probed.
    """

    status_code = 404

    def __init__(self, message: str = "Blog post not found.", **context):
        super().__init__(message)
        self.context = context

    def to_dict(self) -> Dict:
        # context is for logs only; the body is the same for every miss
        return {"message": self.message}


class ValidationError(ContentError):
    """Malformed input rejected before any repository access."""

    status_code = 422

    def __init__(self, message: str = "The given data was invalid.",
                 errors: Optional[Dict[str, List[str]]] = None):
        super().__init__(message)
        self.errors = errors or {}

    def to_dict(self) -> Dict:
        result = {"message": self.message}
        if self.errors:
            result["errors"] = self.errors
        return result


class InvalidStatus(ValidationError):
    """A status value outside its fixed enum."""

    def __init__(self, value, allowed, field: str = "status"):
        allowed = list(allowed)
        message = f"Invalid status '{value}'. Allowed values: {', '.join(allowed)}."
        super().__init__(message, {field: [message]})
        self.value = value
        self.allowed = allowed
