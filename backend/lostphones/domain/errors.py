"""Error taxonomy shared by every domain service.

Each error carries a stable ``kind`` the API renders verbatim, an HTTP status
and a human-readable ``detail``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Sequence

from fastapi import status


@dataclass(slots=True, frozen=True)
class FieldViolation:
    field: str
    message: str

    def as_dict(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message}


class DomainError(Exception):
    """Base class for errors surfaced to API callers."""

    kind: str = "error"
    status_code: int = status.HTTP_400_BAD_REQUEST
    detail: str = "error"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.detail)
        if detail:
            self.detail = detail

    def payload(self) -> dict[str, Any]:
        return {"kind": self.kind, "detail": self.detail}


class ValidationError(DomainError):
    """Malformed or out-of-range input; carries every violated field."""

    kind = "validation_error"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    detail = "validation_failed"

    def __init__(self, violations: Iterable[FieldViolation], detail: str | None = None) -> None:
        super().__init__(detail)
        self.violations: tuple[FieldViolation, ...] = tuple(violations)

    @classmethod
    def single(cls, field: str, message: str) -> "ValidationError":
        return cls([FieldViolation(field=field, message=message)])

    @property
    def fields(self) -> Sequence[str]:
        return [violation.field for violation in self.violations]

    def payload(self) -> dict[str, Any]:
        body = super().payload()
        body["errors"] = [violation.as_dict() for violation in self.violations]
        return body


class Unauthenticated(DomainError):
    kind = "unauthenticated"
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "authentication_required"


class Forbidden(DomainError):
    """Authorization failure. The detail never names the missing role."""

    kind = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN
    detail = "forbidden"

    def __init__(self, reason: str | None = None) -> None:
        super().__init__()
        # kept for logs only, never rendered
        self.reason = reason or "forbidden"


class NotFound(DomainError):
    """Missing target. Uniform regardless of entity type."""

    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND
    detail = "not_found"

    def __init__(self, entity: str | None = None) -> None:
        super().__init__()
        self.entity = entity


class Conflict(DomainError):
    kind = "conflict"
    status_code = status.HTTP_409_CONFLICT
    detail = "conflict"


class AlreadyApproved(DomainError):
    kind = "already_approved"
    status_code = status.HTTP_409_CONFLICT
    detail = "shop_already_approved"


class PendingApproval(DomainError):
    """Login refused because the shop is still awaiting an admin decision."""

    kind = "pending_approval"
    status_code = status.HTTP_403_FORBIDDEN
    detail = "shop_pending_approval"


class UpstreamFailure(DomainError):
    kind = "upstream_failure"
    status_code = status.HTTP_502_BAD_GATEWAY
    detail = "upstream_failure"


class RateLimited(DomainError):
    kind = "rate_limited"
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    detail = "rate_limited"
