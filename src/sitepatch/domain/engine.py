"""Public entry point that ties validation, permissions, execution and rollback together."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from .batch import BatchOrchestrator
from .executor import DualPathExecutor
from .model import MutationKind, MutationResult
from .permissions import check_permissions
from .rollback import RollbackManager
from .validation import validate_request

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .batch import ProgressCallback
    from .collections import CollectionResolver
    from .model import (
        BatchConfirmation,
        BatchRequest,
        BatchResult,
        MutationRequest,
        RollbackResult,
    )
    from .ports import CredentialProvider, DirectBackend, RemoteBackend

log = getLogger(__name__)

DEFAULT_ESTIMATED_MS_PER_OPERATION = 2000


class MutationEngine:
    """Apply content mutations to one Webflow site.

    ``apply`` is the single path every mutation takes, including batch
    operations and rollback replays: validate, check scopes, then either
    preview or execute. None of the public coroutines raise for a failed
    mutation; the failure is reported in the returned result.
    """

    def __init__(
        self,
        *,
        remote: RemoteBackend,
        credentials: CredentialProvider,
        direct: DirectBackend | None = None,
        resolver: CollectionResolver | None = None,
        disabled_kinds: Iterable[MutationKind | str] = (MutationKind.INTRODUCTION_TEXT,),
        estimated_ms_per_operation: int = DEFAULT_ESTIMATED_MS_PER_OPERATION,
    ) -> None:
        self.credentials = credentials
        self.disabled_kinds = frozenset(MutationKind(kind) for kind in disabled_kinds)
        self.executor = DualPathExecutor(remote=remote, direct=direct, resolver=resolver)
        self.rollbacks = RollbackManager(self.apply)
        self.batches = BatchOrchestrator(
            apply=self.apply,
            snapshot=self.snapshot,
            rollbacks=self.rollbacks,
            estimated_ms_per_operation=estimated_ms_per_operation,
        )

    async def apply(self, request: MutationRequest) -> MutationResult:
        error = validate_request(request, disabled_kinds=self.disabled_kinds)
        if error is not None:
            log.info(f"Rejected {request.kind} for {request.target_id or '?'}: {error.msg}")
            return MutationResult.failed(error)

        error = check_permissions(request.kind, self.credentials)
        if error is not None:
            return MutationResult.failed(error)

        if request.preview:
            return await self.executor.preview(request)
        return await self.executor.execute(request)

    async def apply_batch(
        self,
        batch: BatchRequest,
        on_progress: ProgressCallback | None = None,
    ) -> BatchResult:
        return await self.batches.apply_batch(batch, on_progress)

    def prepare_batch_confirmation(self, batch: BatchRequest) -> BatchConfirmation:
        return self.batches.prepare_batch_confirmation(batch)

    async def rollback(self, rollback_id: str) -> RollbackResult:
        return await self.rollbacks.rollback(rollback_id)

    async def snapshot(self, request: MutationRequest) -> object | None:
        """Return the value ``request`` would overwrite, if it can be read.

        Invalid requests are not read; they will fail in ``apply`` anyway.
        """

        if validate_request(request, disabled_kinds=self.disabled_kinds) is not None:
            return None
        return await self.executor.read_current_value(request)
