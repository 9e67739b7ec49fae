# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Error values carried by ``Err`` results across the lifecycle services.

Services never raise these. Each one is an immutable value describing why an
operation could not complete, so the calling layer can map it onto its own
transport (HTTP status, webhook acknowledgement, CLI exit code) without
string matching.

Retry semantics
---------------
``ValidationError``, ``NotFound`` and its subclasses, ``Forbidden`` and
``InvalidTransition`` are terminal. ``AuthenticationRequired`` asks the caller
to authenticate and resubmit the held values. ``TransientError`` reports an
infrastructure failure the caller's own retry policy may re-attempt; the
engine never retries.
"""

from typing import TYPE_CHECKING, Any, ClassVar

from attrs import field, frozen

if TYPE_CHECKING:
    from ..models.quotation import PendingQuotation


@frozen
class FieldIssue:
    """A single invalid or missing input field."""

    name: str = field()
    message: str = field()


@frozen
class LifecycleError:
    """Base class for every lifecycle error value."""

    code: ClassVar[str] = "lifecycle_error"

    message: str = field()

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


@frozen
class ValidationError(LifecycleError):
    """Malformed or missing input; the client must correct and resubmit."""

    code: ClassVar[str] = "validation_error"

    fields: tuple[FieldIssue, ...] = field(factory=tuple, converter=tuple)

    @property
    def field_names(self) -> list[str]:
        """Names of the offending fields, in reporting order."""
        return [issue.name for issue in self.fields]

    @classmethod
    def for_field(cls, name: str, message: str) -> "ValidationError":
        """Build an error about a single field."""
        return cls(message=message, fields=(FieldIssue(name, message),))

    @classmethod
    def from_pydantic(cls, exc: Any) -> "ValidationError":
        """Convert a ``pydantic.ValidationError`` into a field listing."""
        issues = []
        for error in exc.errors():
            location = ".".join(str(part) for part in error.get("loc", ())) or "__root__"
            issues.append(FieldIssue(location, error.get("msg", "Invalid value")))
        names = ", ".join(issue.name for issue in issues)
        return cls(message=f"Invalid or missing fields: {names}", fields=tuple(issues))


@frozen
class NotFound(LifecycleError):
    """No entity matches the identifier."""

    code: ClassVar[str] = "not_found"


@frozen
class PolicyNotFound(NotFound):
    """No issued order carries the policy number."""

    code: ClassVar[str] = "policy_not_found"


@frozen
class OrderNotFound(NotFound):
    """No order carries the gateway correlation token."""

    code: ClassVar[str] = "order_not_found"


@frozen
class Forbidden(LifecycleError):
    """Entity exists but belongs to someone else."""

    code: ClassVar[str] = "forbidden"


@frozen
class InvalidTransition(LifecycleError):
    """Entity is in a state incompatible with the requested mutation."""

    code: ClassVar[str] = "invalid_transition"


@frozen
class AuthenticationRequired(LifecycleError):
    """An identified owner is needed before the request can be persisted."""

    code: ClassVar[str] = "authentication_required"

    pending: "PendingQuotation | None" = field(default=None)


@frozen
class TransientError(LifecycleError):
    """Infrastructure failure such as a persistence timeout."""

    code: ClassVar[str] = "transient_error"


FORBIDDEN_MESSAGE = "You do not have permission to access this resource"


def forbidden() -> Forbidden:
    """Generic denial that never reveals details about the entity."""
    return Forbidden(FORBIDDEN_MESSAGE)
