"""Sequential batch application with progress reporting and rollback capture."""

from __future__ import annotations

import inspect
from collections.abc import Mapping
from logging import getLogger
from typing import TYPE_CHECKING

from .model import (
    BatchConfirmation,
    BatchProgress,
    BatchResult,
    MutationKind,
    RollbackEntry,
    page_seo_fields,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from .model import BatchRequest, MutationRequest, MutationResult
    from .rollback import ApplyFn, RollbackManager

    type SnapshotFn = Callable[[MutationRequest], Awaitable[object | None]]
    type ProgressCallback = Callable[[BatchProgress], Awaitable[None] | None]

log = getLogger(__name__)


class BatchOrchestrator:
    def __init__(
        self,
        *,
        apply: ApplyFn,
        snapshot: SnapshotFn,
        rollbacks: RollbackManager,
        estimated_ms_per_operation: int,
    ) -> None:
        self._apply = apply
        self._snapshot = snapshot
        self._rollbacks = rollbacks
        self._estimated_ms_per_operation = estimated_ms_per_operation

    async def apply_batch(
        self,
        batch: BatchRequest,
        on_progress: ProgressCallback | None = None,
    ) -> BatchResult:
        """Apply every operation in order, never aborting on a failed one.

        When ``batch.rollback_enabled`` is set, all current values are read
        before the first mutation and stored as one rollback record.
        """

        operations = list(batch.operations)
        total = len(operations)

        rollback_id: str | None = None
        if batch.rollback_enabled:
            entries = await self._capture(operations)
            rollback_id = self._rollbacks.record(entries).id

        results: list[MutationResult] = []
        for index, operation in enumerate(operations):
            await _notify(on_progress, _progress(index, total, operation))
            results.append(await self._apply(operation))

        if operations:
            await _notify(on_progress, _progress(total, total, operations[-1]))

        succeeded = sum(1 for result in results if result.success)
        failed = total - succeeded
        log.info(f"Batch finished: {succeeded} succeeded, {failed} failed")
        return BatchResult(
            success=failed == 0,
            results=results,
            succeeded=succeeded,
            failed=failed,
            rollback_id=rollback_id,
        )

    def prepare_batch_confirmation(self, batch: BatchRequest) -> BatchConfirmation:
        operations = tuple(batch.operations)
        pages: dict[str, None] = {}
        items: dict[str, None] = {}
        for operation in operations:
            if operation.kind.is_cms:
                if operation.cms_item_id:
                    items.setdefault(operation.cms_item_id)
            elif operation.page_id:
                pages.setdefault(operation.page_id)

        return BatchConfirmation(
            operations=operations,
            estimated_time_ms=len(operations) * self._estimated_ms_per_operation,
            affected_pages=tuple(pages),
            affected_cms_items=tuple(items),
            requires_confirmation=batch.confirmation_required,
        )

    async def _capture(self, operations: list[MutationRequest]) -> list[RollbackEntry]:
        entries: list[RollbackEntry] = []
        for operation in operations:
            try:
                original = await self._snapshot(operation)
            except Exception as exc:  # noqa: BLE001
                log.warning(f"No snapshot for {operation.kind} on {operation.target_id}: {exc}")
                continue
            original = _restorable(operation.kind, original)
            if original is None:
                log.debug(f"No restorable state for {operation.kind} on {operation.target_id}")
                continue
            entries.append(
                RollbackEntry(
                    kind=operation.kind,
                    target_id=operation.target_id,
                    original_value=original,
                    new_value=operation.value,
                    field_id=operation.field_id,
                    element_index=operation.element_index,
                    location=operation.location,
                )
            )
        return entries


def _restorable(kind: MutationKind, original: object | None) -> object | None:
    """Return ``original`` in a form ``apply`` accepts, or ``None`` if it was empty."""

    if kind is MutationKind.PAGE_SEO and isinstance(original, Mapping):
        original = page_seo_fields(original)
    if isinstance(original, str) and not original.strip():
        return None
    if isinstance(original, (Mapping, list, tuple)) and not original:
        return None
    return original


def _progress(current: int, total: int, operation: MutationRequest) -> BatchProgress:
    percentage = round(current / total * 100) if total else 100
    return BatchProgress(
        current=current,
        total=total,
        percentage=percentage,
        current_operation=operation,
    )


async def _notify(callback: ProgressCallback | None, progress: BatchProgress) -> None:
    if callback is None:
        return
    outcome = callback(progress)
    if inspect.isawaitable(outcome):
        await outcome
