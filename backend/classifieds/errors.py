"""Domain errors raised by services and rendered by the route layer.

Every error carries a machine-readable ``kind`` and a human ``message``.
Services never return HTTP status codes; ``status_code`` is the mapping the
exception handler in ``classifieds.main`` applies.
"""

from pydantic import ValidationError as PydanticValidationError


class DomainError(Exception):
    kind = "error"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"detail": self.message, "code": self.kind}


class ValidationError(DomainError):
    """Caller-supplied data failed a documented constraint."""
    kind = "validation_error"
    status_code = 422

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field

    def to_dict(self) -> dict:
        return {"detail": self.message, "code": self.kind, "field": self.field}

    @classmethod
    def from_pydantic(cls, exc: PydanticValidationError) -> "ValidationError":
        """Collapse a pydantic error into one ValidationError naming every bad field."""
        fields = []
        messages = []
        for error in exc.errors():
            field = ".".join(str(part) for part in error.get("loc", ())) or "body"
            fields.append(field)
            msg = error.get("msg", "Invalid value")
            # pydantic prefixes custom validator messages
            if msg.startswith("Value error, "):
                msg = msg[len("Value error, "):]
            messages.append(f"{field}: {msg}")
        return cls(",".join(fields), "; ".join(messages))


class NotFound(DomainError):
    kind = "not_found"
    status_code = 404


class Forbidden(DomainError):
    kind = "forbidden"
    status_code = 403

    def __init__(self, message: str, reason: str | None = None):
        super().__init__(message)
        self.reason = reason

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.reason:
            data["reason"] = self.reason
        return data


class Conflict(DomainError):
    kind = "conflict"
    status_code = 409


class AlreadyApplied(Conflict):
    kind = "already_applied"

    def __init__(self, message: str = "You have already applied for this job"):
        super().__init__(message)


class Unavailable(DomainError):
    """Transient infrastructure failure that survived the retry budget."""
    kind = "unavailable"
    status_code = 503

    def __init__(self, message: str = "Service temporarily unavailable. Please try again."):
        super().__init__(message)


class InvalidCredentials(DomainError):
    kind = "invalid_credentials"
    status_code = 401

    def __init__(self, message: str = "Invalid username or password"):
        super().__init__(message)


class AuthenticationRequired(DomainError):
    kind = "authentication_required"
    status_code = 401

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)
