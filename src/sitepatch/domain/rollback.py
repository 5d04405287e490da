"""Keep pre-batch snapshots and replay them on request."""

from __future__ import annotations

import time
import uuid
from logging import getLogger
from typing import TYPE_CHECKING

from .model import RollbackRecord, RollbackResult

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable

    from .model import MutationRequest, MutationResult, RollbackEntry

    type ApplyFn = Callable[[MutationRequest], Awaitable[MutationResult]]

log = getLogger(__name__)


def new_rollback_id() -> str:
    return f"rollback_{uuid.uuid4().hex}"


class RollbackManager:
    """In-memory store of :class:`RollbackRecord` objects.

    A record is consumed by its first rollback attempt, successful or not.
    """

    def __init__(
        self,
        apply: ApplyFn,
        *,
        id_factory: Callable[[], str] = new_rollback_id,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._apply = apply
        self._id_factory = id_factory
        self._clock = clock
        self._records: dict[str, RollbackRecord] = {}

    def __contains__(self, rollback_id: object) -> bool:
        return rollback_id in self._records

    def __len__(self) -> int:
        return len(self._records)

    def record(self, entries: Iterable[RollbackEntry]) -> RollbackRecord:
        record = RollbackRecord(
            id=self._id_factory(),
            timestamp=self._clock(),
            entries=tuple(entries),
        )
        self._records[record.id] = record
        log.info(f"Stored rollback {record.id} with {len(record.entries)} entries")
        return record

    def get(self, rollback_id: str) -> RollbackRecord | None:
        return self._records.get(rollback_id)

    async def rollback(self, rollback_id: str) -> RollbackResult:
        record = self._records.pop(rollback_id, None)
        if record is None:
            log.warning(f"Rollback {rollback_id} not found")
            return RollbackResult(success=False, errors=["Rollback data not found"])

        errors: list[str] = []
        for entry in record.entries:
            result = await self._apply(entry.to_request())
            if result.success:
                continue
            message = result.error.msg if result.error else "Unknown error"
            errors.append(f"Failed to rollback {entry.kind} for {entry.target_id}: {message}")

        if errors:
            log.warning(f"Rollback {rollback_id} finished with {len(errors)} failure(s)")
            return RollbackResult(success=False, errors=errors)
        log.info(f"Rollback {rollback_id} restored {len(record.entries)} entries")
        return RollbackResult(success=True)
