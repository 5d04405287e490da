"""Domain records exchanged with the mutation engine."""

# switch off type warnings because of default_factory=list
# pyright: reportUnknownVariableType=false

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Final, Literal

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

CodeLocation = Literal["head", "body_end"]


class MutationKind(StrEnum):
    PAGE_TITLE = "page_title"
    META_DESCRIPTION = "meta_description"
    PAGE_SLUG = "page_slug"
    CUSTOM_CODE = "custom_code"
    PAGE_SEO = "page_seo"
    CMS_FIELD = "cms_field"
    H1_HEADING = "h1_heading"
    H2_HEADING = "h2_heading"
    INTRODUCTION_TEXT = "introduction_text"

    @property
    def is_cms(self) -> bool:
        return self is MutationKind.CMS_FIELD


SEO_FIELDS: Final[tuple[str, ...]] = ("title", "description")
PREVIEWABLE_KINDS: Final[frozenset[MutationKind]] = frozenset(
    {
        MutationKind.PAGE_TITLE,
        MutationKind.META_DESCRIPTION,
        MutationKind.PAGE_SLUG,
        MutationKind.PAGE_SEO,
    }
)


class ErrorCategory(StrEnum):
    VALIDATION = "validation"
    PERMISSION = "permission"
    RATE_LIMITED = "rate_limited"
    API = "api"
    UNKNOWN = "unknown"


@dataclass(slots=True)
class MutationRequest:
    """A single content edit handed to the engine."""

    kind: MutationKind
    value: object
    page_id: str | None = None
    cms_item_id: str | None = None
    field_id: str | None = None
    element_index: int | None = None
    location: CodeLocation = "head"
    preview: bool = False

    def __post_init__(self) -> None:
        self.kind = MutationKind(self.kind)

    @property
    def target_id(self) -> str:
        return (self.cms_item_id if self.kind.is_cms else self.page_id) or ""


@dataclass(slots=True, frozen=True)
class MutationError:
    """Structured failure attached to a :class:`MutationResult`."""

    err: str
    code: int
    msg: str
    category: ErrorCategory = ErrorCategory.UNKNOWN


@dataclass(slots=True, frozen=True)
class RateLimitState:
    remaining: int
    limit: int
    reset_time: float
    retry_after: float | None = None


@dataclass(slots=True)
class MutationResult:
    success: bool
    data: object | None = None
    error: MutationError | None = None
    rate_limit_info: RateLimitState | None = None

    @classmethod
    def ok(cls, data: object | None = None) -> MutationResult:
        return cls(success=True, data=data)

    @classmethod
    def failed(
        cls,
        error: MutationError,
        *,
        rate_limit_info: RateLimitState | None = None,
    ) -> MutationResult:
        return cls(success=False, error=error, rate_limit_info=rate_limit_info)


@dataclass(slots=True)
class BatchRequest:
    operations: Sequence[MutationRequest] = field(default_factory=list)
    confirmation_required: bool = False
    rollback_enabled: bool = False


@dataclass(slots=True, frozen=True)
class BatchProgress:
    current: int
    total: int
    percentage: int
    current_operation: MutationRequest


@dataclass(slots=True)
class BatchResult:
    success: bool
    results: list[MutationResult]
    succeeded: int
    failed: int
    rollback_id: str | None = None


@dataclass(slots=True, frozen=True)
class BatchConfirmation:
    """Side-effect-free summary shown before a batch is applied."""

    operations: tuple[MutationRequest, ...]
    estimated_time_ms: int
    affected_pages: tuple[str, ...]
    affected_cms_items: tuple[str, ...]
    requires_confirmation: bool


@dataclass(slots=True, frozen=True)
class RollbackEntry:
    kind: MutationKind
    target_id: str
    original_value: object
    new_value: object
    field_id: str | None = None
    element_index: int | None = None
    location: CodeLocation = "head"

    def to_request(self) -> MutationRequest:
        """Build the request that restores ``original_value``."""

        if self.kind.is_cms:
            return MutationRequest(
                kind=self.kind,
                value=self.original_value,
                cms_item_id=self.target_id,
                field_id=self.field_id,
            )
        return MutationRequest(
            kind=self.kind,
            value=self.original_value,
            page_id=self.target_id,
            element_index=self.element_index,
            location=self.location,
        )


@dataclass(slots=True, frozen=True)
class RollbackRecord:
    id: str
    timestamp: float
    entries: tuple[RollbackEntry, ...]


@dataclass(slots=True)
class RollbackResult:
    success: bool
    errors: list[str] | None = None


def page_seo_fields(value: Mapping[str, object]) -> dict[str, object]:
    """Return the recognised SEO sub-fields present in ``value``."""

    return {key: value[key] for key in SEO_FIELDS if value.get(key) not in (None, "")}

