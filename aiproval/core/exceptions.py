"""
Platform-wide exception hierarchy.

Services raise these types; blueprints register handlers against them once
(see ``aiproval.blueprints.register_error_handlers``) and get consistent
HTTP status codes and the ``{success: false, error}`` envelope everywhere.

Usage:
    from aiproval.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Project", resource_id=42, org_id=7)
    raise ValidationError("Workflow name is required", details={"name": "required"})

Status mapping:
    ValidationError    400
    AuthError          401
    ForbiddenError     403
    NotFoundError      404
    ConflictError      409
    InvalidStateError  409
    UpstreamError      502
"""


class NotFoundError(Exception):
    """Raised when a requested resource does not exist within the caller's organization.

    Used for BOTH genuinely missing records AND cross-org access attempts;
    a 403 would confirm the resource exists, a 404 does not.

    Args:
        resource: Human-readable entity name (e.g. "Project", "Reviewer").
        resource_id: The PK that was looked up. Included in logs, not in HTTP response.
        org_id: Optional scope that was enforced. For debug logging only.
    """

    def __init__(
        self,
        resource: str,
        resource_id: int | str | None = None,
        org_id: int | None = None,
    ) -> None:
        self.resource = resource
        self.resource_id = resource_id
        self.org_id = org_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        if org_id is not None:
            msg += f" (org={org_id})"
        super().__init__(msg)

    @property
    def public_message(self) -> str:
        return f"{self.resource} not found"


class ValidationError(Exception):
    """Raised when input is missing, malformed, or violates a business rule.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class AuthError(Exception):
    """Raised when a request carries no usable identity."""

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message)


class ForbiddenError(Exception):
    """Raised when the caller is authenticated but lacks the role or ownership required."""

    def __init__(self, message: str = "Forbidden") -> None:
        super().__init__(message)


class ConflictError(Exception):
    """Raised when an operation would violate a uniqueness constraint.

    Args:
        resource: Model name.
        field: The unique field (or field tuple) that would be duplicated.
        value: The conflicting value (logged, not returned).
        message: Optional user-facing message overriding the generated one.
    """

    def __init__(
        self,
        resource: str,
        field: str,
        value: str | None = None,
        message: str | None = None,
    ) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        self.public_message = message or f"{resource} already exists"
        super().__init__(f"{resource} with {field}={value!r} already exists")


class InvalidStateError(Exception):
    """Raised when stored state breaks an invariant the code relies on.

    Example: a mockup with more than one stage in review at once.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class UpstreamError(Exception):
    """Raised when an external dependency (AI provider, document host, webhook) fails.

    Args:
        service: Short name of the dependency ("openai", "document").
        message: Human-readable failure description.
    """

    def __init__(self, service: str, message: str) -> None:
        self.service = service
        super().__init__(message)
