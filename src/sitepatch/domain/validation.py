"""Request validation performed before any backend is touched."""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Final

from .errors import ValidationError
from .model import SEO_FIELDS, MutationKind, page_seo_fields

if TYPE_CHECKING:
    from collections.abc import Collection

    from .model import MutationError, MutationRequest

MAX_VALUE_LENGTHS: Final[dict[MutationKind, int]] = {
    MutationKind.PAGE_TITLE: 500,
    MutationKind.META_DESCRIPTION: 1000,
    MutationKind.PAGE_SLUG: 256,
    MutationKind.H1_HEADING: 500,
    MutationKind.H2_HEADING: 500,
    MutationKind.INTRODUCTION_TEXT: 5000,
}

# page_seo sub-fields borrow the ceilings of the kinds they mirror
SEO_FIELD_LIMITS: Final[dict[str, MutationKind]] = {
    "title": MutationKind.PAGE_TITLE,
    "description": MutationKind.META_DESCRIPTION,
}

STRING_KINDS: Final[frozenset[MutationKind]] = frozenset(
    {
        MutationKind.PAGE_TITLE,
        MutationKind.META_DESCRIPTION,
        MutationKind.PAGE_SLUG,
        MutationKind.CUSTOM_CODE,
        MutationKind.H1_HEADING,
        MutationKind.H2_HEADING,
        MutationKind.INTRODUCTION_TEXT,
    }
)

LABELS: Final[dict[MutationKind, str]] = {
    MutationKind.PAGE_TITLE: "Page title",
    MutationKind.META_DESCRIPTION: "Meta description",
    MutationKind.PAGE_SLUG: "Page slug",
    MutationKind.CUSTOM_CODE: "Custom code",
    MutationKind.PAGE_SEO: "Page SEO",
    MutationKind.CMS_FIELD: "CMS field value",
    MutationKind.H1_HEADING: "H1 heading",
    MutationKind.H2_HEADING: "H2 heading",
    MutationKind.INTRODUCTION_TEXT: "Introduction text",
}

PAGE_ID_REQUIRED = "Page ID is required for page operations"
CMS_IDS_REQUIRED = "CMS Item ID and Field ID are required for CMS operations"
EMPTY_VALUE = "Value cannot be empty"
SEO_SHAPE = "Page SEO value must be an object with title and/or description"


def validate_request(
    request: MutationRequest,
    *,
    disabled_kinds: Collection[MutationKind] = (),
) -> MutationError | None:
    """Return the first rule the request breaks, or ``None`` when it is valid.

    Rules run in a fixed order: disabled kind, required identifiers, value
    presence, value shape, length ceilings. Nothing here performs I/O.
    """

    try:
        _check(request, disabled_kinds)
    except ValidationError as exc:
        return exc.to_error()
    return None


def _check(request: MutationRequest, disabled_kinds: Collection[MutationKind]) -> None:
    kind = request.kind
    if kind in disabled_kinds:
        raise ValidationError(f"{kind} mutations are disabled")

    if kind.is_cms:
        if not request.cms_item_id or not request.field_id:
            raise ValidationError(CMS_IDS_REQUIRED)
    elif not request.page_id:
        raise ValidationError(PAGE_ID_REQUIRED)

    value = request.value
    _check_presence(kind, value)
    _check_shape(kind, value)
    _check_length(kind, value)

    if kind is MutationKind.H2_HEADING and (request.element_index or 0) < 0:
        raise ValidationError("H2 heading index must be zero or greater")


def _check_presence(kind: MutationKind, value: object) -> None:
    if value is None:
        raise ValidationError(EMPTY_VALUE)
    if isinstance(value, str) and not value.strip():
        raise ValidationError(EMPTY_VALUE)
    if isinstance(value, Mapping):
        if kind is MutationKind.PAGE_SEO and not page_seo_fields(value):
            raise ValidationError(SEO_SHAPE)
        if not value:
            raise ValidationError(EMPTY_VALUE)
    elif isinstance(value, (list, tuple, set, frozenset)) and not value:
        raise ValidationError(EMPTY_VALUE)


def _check_shape(kind: MutationKind, value: object) -> None:
    if kind is MutationKind.PAGE_SEO:
        if not isinstance(value, Mapping):
            raise ValidationError(SEO_SHAPE)
        return
    if kind in STRING_KINDS and not isinstance(value, str):
        raise ValidationError(f"{LABELS[kind]} must be a string")


def _check_length(kind: MutationKind, value: object) -> None:
    if kind is MutationKind.PAGE_SEO and isinstance(value, Mapping):
        for key in SEO_FIELDS:
            sub_value = value.get(key)
            if isinstance(sub_value, str):
                _enforce_limit(SEO_FIELD_LIMITS[key], sub_value, label=f"SEO {key}")
        return
    if isinstance(value, str) and kind in MAX_VALUE_LENGTHS:
        _enforce_limit(kind, value, label=LABELS[kind])


def _enforce_limit(kind: MutationKind, value: str, *, label: str) -> None:
    limit = MAX_VALUE_LENGTHS[kind]
    if len(value) > limit:
        raise ValidationError(f"{label} must be {limit} characters or fewer")
