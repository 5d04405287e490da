"""Route a mutation to the Designer host or the Webflow API."""

from __future__ import annotations

from collections.abc import Mapping
from logging import getLogger
from typing import TYPE_CHECKING

from .collections import CollectionResolver
from .errors import ApiError, RateLimitedError, to_mutation_error
from .model import PREVIEWABLE_KINDS, MutationKind, MutationResult, page_seo_fields

if TYPE_CHECKING:
    from sitepatch.adapters.webflow.schema import Page

    from .model import MutationRequest
    from .ports import DirectBackend, RemoteBackend

log = getLogger(__name__)


class DualPathExecutor:
    """Apply one already-validated request through at most two backends.

    The Designer host is tried first when it advertises the kind. A truthy
    answer ends the call; a falsy answer, a missing capability or an exception
    falls through to exactly one Webflow API attempt. Every failure comes back
    as a failed :class:`MutationResult`.
    """

    def __init__(
        self,
        *,
        remote: RemoteBackend,
        direct: DirectBackend | None = None,
        resolver: CollectionResolver | None = None,
    ) -> None:
        self._remote = remote
        self._direct = direct
        self.resolver = resolver or CollectionResolver(remote)

    async def execute(self, request: MutationRequest) -> MutationResult:
        if self._direct is not None and self._direct.supports(request.kind):
            if await self._try_direct(request):
                return MutationResult.ok(
                    {
                        "kind": str(request.kind),
                        "target_id": request.target_id,
                        "value": request.value,
                        "backend": self._direct.name,
                    }
                )

        try:
            data = await self._apply_remote(request)
        except RateLimitedError as exc:
            log.warning(f"{request.kind} on {request.target_id} rate limited: {exc.message}")
            return MutationResult.failed(
                exc.to_error(), rate_limit_info=self._remote.rate_limit_info
            )
        except Exception as exc:  # noqa: BLE001
            log.warning(f"{request.kind} on {request.target_id} failed: {exc}")
            return MutationResult.failed(to_mutation_error(exc))
        return MutationResult.ok(data)

    async def preview(self, request: MutationRequest) -> MutationResult:
        if request.kind not in PREVIEWABLE_KINDS:
            return MutationResult.failed(
                ApiError(
                    "Preview mode is not supported for this operation type",
                    code=400,
                    err="Preview not supported",
                ).to_error()
            )
        try:
            current = await self._remote.get_page(request.page_id or "")
        except RateLimitedError as exc:
            return MutationResult.failed(
                exc.to_error(), rate_limit_info=self._remote.rate_limit_info
            )
        except Exception as exc:  # noqa: BLE001
            return MutationResult.failed(to_mutation_error(exc))
        preview = _preview_page(current, request)
        return MutationResult.ok(
            {"current": current.model_dump(mode="json"), "preview": preview.model_dump(mode="json")}
        )

    async def read_current_value(self, request: MutationRequest) -> object | None:
        """Read the value ``request`` would overwrite, or ``None`` if it cannot be read.

        Only Webflow API state is read; content elements that live in the
        Designer canvas have no remote representation.
        """

        kind = request.kind
        if kind is MutationKind.CMS_FIELD:
            item_id = request.cms_item_id or ""
            collection_id = await self.resolver.resolve_collection_id(item_id)
            item = await self._remote.get_collection_item(collection_id, item_id)
            return item.field_data.get(request.field_id or "")

        if kind not in PREVIEWABLE_KINDS:
            return None
        page = await self._remote.get_page(request.page_id or "")
        match kind:
            case MutationKind.PAGE_TITLE:
                return page.title
            case MutationKind.META_DESCRIPTION:
                return page.seo.description
            case MutationKind.PAGE_SLUG:
                return page.slug
            case _:
                return {"title": page.seo.title, "description": page.seo.description}

    async def _try_direct(self, request: MutationRequest) -> bool:
        assert self._direct is not None
        try:
            applied = await self._direct.apply(request)
        except Exception as exc:  # noqa: BLE001
            log.warning(f"{self._direct.name} failed {request.kind}; falling back to Webflow API: {exc}")
            return False
        if not applied:
            log.info(f"{self._direct.name} declined {request.kind}; falling back to Webflow API")
        return applied

    async def _apply_remote(self, request: MutationRequest) -> dict[str, object]:
        kind = request.kind
        if kind is MutationKind.CMS_FIELD:
            return await self._apply_cms_field(request)

        update = _page_update(request)
        if update is None:
            raise ApiError(
                f"{kind} is only supported inside the Webflow Designer",
                code=501,
                err="Not Supported",
            )
        page = await self._remote.update_page(request.page_id or "", update)
        return page.model_dump(mode="json")

    async def _apply_cms_field(self, request: MutationRequest) -> dict[str, object]:
        item_id = request.cms_item_id or ""
        collection_id = await self.resolver.resolve_collection_id(item_id)
        try:
            item = await self._remote.update_collection_item(
                collection_id, item_id, {request.field_id or "": request.value}
            )
        except ApiError as exc:
            if exc.code == 404:
                # the item may have moved; re-resolve on the next attempt
                self.resolver.invalidate(item_id)
            raise
        return item.model_dump(mode="json")


def _page_update(request: MutationRequest) -> dict[str, object] | None:
    value = request.value
    match request.kind:
        case MutationKind.PAGE_TITLE:
            return {"title": value}
        case MutationKind.META_DESCRIPTION:
            return {"seo": {"description": value}}
        case MutationKind.PAGE_SLUG:
            return {"slug": value}
        case MutationKind.PAGE_SEO if isinstance(value, Mapping):
            return {"seo": page_seo_fields(value)}
        case _:
            return None


def _preview_page(page: Page, request: MutationRequest) -> Page:
    value = request.value
    match request.kind:
        case MutationKind.PAGE_TITLE:
            return page.model_copy(update={"title": value})
        case MutationKind.PAGE_SLUG:
            return page.model_copy(update={"slug": value})
        case MutationKind.META_DESCRIPTION:
            seo = page.seo.model_copy(update={"description": value})
        case _:
            fields = page_seo_fields(value) if isinstance(value, Mapping) else {}
            seo = page.seo.model_copy(update=fields)
    return page.model_copy(update={"seo": seo})
