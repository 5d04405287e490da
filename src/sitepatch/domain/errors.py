"""Failure taxonomy raised inside the engine and reported as data at its boundary."""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar

from .model import ErrorCategory, MutationError

if TYPE_CHECKING:
    from .model import RateLimitState


class MutationFailure(RuntimeError):
    """Base class for failures that map onto a :class:`MutationError`."""

    label: ClassVar[str] = "Unknown Error"
    category: ClassVar[ErrorCategory] = ErrorCategory.UNKNOWN
    default_code: ClassVar[int] = 500

    def __init__(self, message: str, *, code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code if code is not None else self.default_code

    def to_error(self) -> MutationError:
        return MutationError(
            err=self.label,
            code=self.code,
            msg=self.message,
            category=self.category,
        )


class ValidationError(MutationFailure):
    """The request is malformed or violates a content rule."""

    label = "Validation Error"
    category = ErrorCategory.VALIDATION
    default_code = 400


class PermissionDeniedError(MutationFailure):
    """The active credential lacks the scope the request needs."""

    label = "Insufficient permissions"
    category = ErrorCategory.PERMISSION
    default_code = 403


class RateLimitedError(MutationFailure):
    """The Webflow API reported that the request budget is exhausted."""

    label = "Rate Limited"
    category = ErrorCategory.RATE_LIMITED
    default_code = 429

    def __init__(self, message: str, *, state: RateLimitState | None = None) -> None:
        super().__init__(message)
        self.state = state


class ApiError(MutationFailure):
    """A backend answered with a structured failure."""

    label = "API Error"
    category = ErrorCategory.API

    def __init__(self, message: str, *, code: int = 500, err: str | None = None) -> None:
        super().__init__(message, code=code)
        self.err = err

    def to_error(self) -> MutationError:
        return MutationError(
            err=self.err or self.label,
            code=self.code,
            msg=self.message,
            category=self.category,
        )


class UnknownError(MutationFailure):
    """Wraps an exception that matches none of the categories above."""

    @classmethod
    def wrap(cls, exc: BaseException) -> UnknownError:
        message = str(exc) or "An unknown error occurred"
        wrapped = cls(message)
        wrapped.__cause__ = exc
        return wrapped


def to_mutation_error(exc: Exception) -> MutationError:
    if isinstance(exc, MutationFailure):
        return exc.to_error()
    return UnknownError.wrap(exc).to_error()
