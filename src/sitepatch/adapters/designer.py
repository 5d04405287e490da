"""Direct backend backed by the Webflow Designer extension host.

The host object is duck-typed: each mutation kind maps to a method name, and a
method that is missing counts as a declared failure. The capability probe runs
once per backend instance.
"""

from __future__ import annotations

import inspect
from logging import getLogger
from typing import TYPE_CHECKING, Final

from sitepatch.domain.model import MutationKind

if TYPE_CHECKING:
    from collections.abc import Callable

    from sitepatch.domain.model import MutationRequest
    from sitepatch.domain.ports import DirectBackend

log = getLogger(__name__)

HOST_METHODS: Final[dict[MutationKind, str]] = {
    MutationKind.PAGE_TITLE: "set_title",
    MutationKind.META_DESCRIPTION: "set_meta_description",
    MutationKind.PAGE_SLUG: "set_slug",
    MutationKind.CUSTOM_CODE: "set_custom_code",
    MutationKind.PAGE_SEO: "set_seo",
    MutationKind.CMS_FIELD: "set_cms_field",
    MutationKind.H1_HEADING: "set_h1_heading",
    MutationKind.H2_HEADING: "set_h2_heading",
    MutationKind.INTRODUCTION_TEXT: "set_introduction",
}


def probe_capabilities(host: object | None) -> dict[MutationKind, Callable[..., object]]:
    if host is None:
        return {}
    capabilities: dict[MutationKind, Callable[..., object]] = {}
    for kind, method_name in HOST_METHODS.items():
        method = getattr(host, method_name, None)
        if callable(method):
            capabilities[kind] = method
    return capabilities


class DesignerBackend:
    name = "designer"

    def __init__(self, host: object | None) -> None:
        self._host = host
        self._capabilities = probe_capabilities(host)
        if host is not None:
            supported = ", ".join(sorted(self._capabilities)) or "nothing"
            log.info(f"Designer host detected; supports {supported}")

    @property
    def available(self) -> bool:
        return bool(self._capabilities)

    def supports(self, kind: MutationKind) -> bool:
        return kind in self._capabilities

    async def apply(self, request: MutationRequest) -> bool:
        method = self._capabilities.get(request.kind)
        if method is None:
            return False
        outcome = method(*_host_arguments(request))
        if inspect.isawaitable(outcome):
            outcome = await outcome
        return bool(outcome)


def _host_arguments(request: MutationRequest) -> tuple[object, ...]:
    value = request.value
    match request.kind:
        case MutationKind.CMS_FIELD:
            return (request.cms_item_id, request.field_id, value)
        case MutationKind.CUSTOM_CODE:
            return (request.page_id, value, request.location)
        case MutationKind.H2_HEADING:
            return (request.page_id, value, request.element_index or 0)
        case MutationKind.PAGE_SEO:
            return (request.page_id, dict(value) if isinstance(value, dict) else value)
        case _:
            return (request.page_id, value)


if TYPE_CHECKING:
    _direct_check: DirectBackend = DesignerBackend(None)
