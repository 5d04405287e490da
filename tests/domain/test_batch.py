from __future__ import annotations

import asyncio

import pytest

from sitepatch.domain.engine import MutationEngine
from sitepatch.domain.errors import ApiError
from sitepatch.domain.model import (
    BatchProgress,
    BatchRequest,
    MutationKind,
    MutationRequest,
    RollbackResult,
)
from tests.helpers.webflow import FakeRemoteBackend, make_credentials, make_page


def _remote() -> FakeRemoteBackend:
    return FakeRemoteBackend(
        pages={"page-1": make_page("page-1"), "page-2": make_page("page-2", title="About")},
        collections={"blog": {"post-1": {"name": "Old"}}},
    )


def _engine(remote: FakeRemoteBackend) -> MutationEngine:
    return MutationEngine(remote=remote, credentials=make_credentials())


def _operations() -> list[MutationRequest]:
    return [
        MutationRequest(kind=MutationKind.PAGE_TITLE, value="One", page_id="page-1"),
        MutationRequest(kind=MutationKind.PAGE_TITLE, value="", page_id="page-2"),
        MutationRequest(kind=MutationKind.PAGE_SLUG, value="two", page_id="page-2"),
    ]


def test_batch_continues_after_failures() -> None:
    engine = _engine(_remote())

    result = asyncio.run(engine.apply_batch(BatchRequest(operations=_operations())))

    assert [r.success for r in result.results] == [True, False, True]
    assert result.succeeded == 2
    assert result.failed == 1
    assert not result.success
    assert result.rollback_id is None


def test_progress_is_reported_before_each_operation_and_at_the_end() -> None:
    engine = _engine(_remote())
    operations = _operations()
    seen: list[BatchProgress] = []

    asyncio.run(engine.apply_batch(BatchRequest(operations=operations), seen.append))

    assert [(p.current, p.total, p.percentage) for p in seen] == [
        (0, 3, 0),
        (1, 3, 33),
        (2, 3, 67),
        (3, 3, 100),
    ]
    assert seen[-1].current_operation is operations[-1]


def test_async_progress_callbacks_are_awaited() -> None:
    engine = _engine(_remote())
    seen: list[int] = []

    async def on_progress(progress: BatchProgress) -> None:
        await asyncio.sleep(0)
        seen.append(progress.current)

    asyncio.run(engine.apply_batch(BatchRequest(operations=_operations()), on_progress))

    assert seen == [0, 1, 2, 3]


def test_empty_batch_succeeds_without_progress() -> None:
    engine = _engine(_remote())
    seen: list[BatchProgress] = []

    result = asyncio.run(engine.apply_batch(BatchRequest(), seen.append))

    assert result.success
    assert result.results == []
    assert seen == []


def test_rollback_snapshot_happens_before_first_mutation() -> None:
    remote = _remote()
    engine = _engine(remote)
    batch = BatchRequest(
        operations=[
            MutationRequest(kind=MutationKind.PAGE_TITLE, value="First", page_id="page-1"),
            MutationRequest(kind=MutationKind.PAGE_TITLE, value="Second", page_id="page-1"),
        ],
        rollback_enabled=True,
    )

    result = asyncio.run(engine.apply_batch(batch))

    assert result.rollback_id is not None
    assert result.rollback_id.startswith("rollback_")
    record = engine.rollbacks.get(result.rollback_id)
    assert record is not None
    assert [entry.original_value for entry in record.entries] == ["Home", "Home"]
    assert [entry.new_value for entry in record.entries] == ["First", "Second"]


def test_unreadable_operations_produce_no_rollback_entry() -> None:
    remote = _remote()
    remote.fail("get_page", ApiError("gone", code=404))
    engine = _engine(remote)
    batch = BatchRequest(
        operations=[
            MutationRequest(kind=MutationKind.PAGE_TITLE, value="A", page_id="page-1"),
            MutationRequest(kind=MutationKind.H1_HEADING, value="B", page_id="page-1"),
            MutationRequest(
                kind=MutationKind.CMS_FIELD, value="New", cms_item_id="post-1", field_id="name"
            ),
        ],
        rollback_enabled=True,
    )

    result = asyncio.run(engine.apply_batch(batch))

    assert result.rollback_id is not None
    record = engine.rollbacks.get(result.rollback_id)
    assert record is not None
    assert [(entry.kind, entry.original_value) for entry in record.entries] == [
        (MutationKind.CMS_FIELD, "Old")
    ]


def test_confirmation_lists_distinct_targets_in_order() -> None:
    remote = _remote()
    engine = _engine(remote)
    batch = BatchRequest(
        operations=[
            MutationRequest(kind=MutationKind.PAGE_TITLE, value="A", page_id="page-2"),
            MutationRequest(
                kind=MutationKind.CMS_FIELD, value="B", cms_item_id="post-1", field_id="name"
            ),
            MutationRequest(kind=MutationKind.PAGE_SLUG, value="c", page_id="page-1"),
            MutationRequest(kind=MutationKind.PAGE_SLUG, value="d", page_id="page-2"),
        ],
        confirmation_required=True,
    )

    confirmation = engine.prepare_batch_confirmation(batch)

    assert confirmation.affected_pages == ("page-2", "page-1")
    assert confirmation.affected_cms_items == ("post-1",)
    assert confirmation.estimated_time_ms == 8000
    assert confirmation.requires_confirmation
    assert sum(remote.calls.values()) == 0


def test_cancellation_propagates_out_of_a_batch() -> None:
    remote = _remote()
    engine = _engine(remote)
    started = 0

    async def on_progress(progress: BatchProgress) -> None:
        nonlocal started
        started = progress.current
        if progress.current == 1:
            await asyncio.sleep(10)

    async def scenario() -> None:
        async with asyncio.timeout(0.05):
            await engine.apply_batch(BatchRequest(operations=_operations()), on_progress)

    with pytest.raises(TimeoutError):
        asyncio.run(scenario())

    assert started == 1
    assert remote.calls["update_page"] == 1



def test_backend_failure_mid_batch_does_not_stop_the_rest() -> None:
    remote = FakeRemoteBackend(
        pages={page_id: make_page(page_id) for page_id in ("page-1", "page-2", "page-3")}
    )
    engine = _engine(remote)
    operations = [
        MutationRequest(kind=MutationKind.PAGE_TITLE, value=f"Title {n}", page_id=f"page-{n}")
        for n in (1, 2, 3)
    ]

    def on_progress(progress: BatchProgress) -> None:
        if progress.current == 1:
            remote.fail("update_page", ApiError("Page not found", code=404, err="Not Found"))

    result = asyncio.run(engine.apply_batch(BatchRequest(operations=operations), on_progress))

    assert result.succeeded == 2
    assert result.failed == 1
    assert [r.success for r in result.results] == [True, False, True]
    error = result.results[1].error
    assert error is not None
    assert (error.code, error.msg) == (404, "Page not found")
    assert remote.calls["update_page"] == 3
    assert remote.pages["page-3"].title == "Title 3"


def test_empty_originals_are_not_recorded_for_rollback() -> None:
    remote = FakeRemoteBackend(
        pages={"page-1": make_page("page-1", seo={"title": "Home | Site", "description": ""})}
    )
    engine = _engine(remote)
    batch = BatchRequest(
        operations=[
            MutationRequest(kind=MutationKind.META_DESCRIPTION, value="New", page_id="page-1"),
            MutationRequest(
                kind=MutationKind.PAGE_SEO,
                value={"title": "SEO", "description": "Also new"},
                page_id="page-1",
            ),
        ],
        rollback_enabled=True,
    )

    async def scenario() -> RollbackResult:
        result = await engine.apply_batch(batch)
        assert result.success
        assert result.rollback_id is not None
        record = engine.rollbacks.get(result.rollback_id)
        assert record is not None
        assert [(entry.kind, entry.original_value) for entry in record.entries] == [
            (MutationKind.PAGE_SEO, {"title": "Home | Site"})
        ]
        return await engine.rollback(result.rollback_id)

    restored = asyncio.run(scenario())

    assert restored.success
    assert remote.pages["page-1"].seo.title == "Home | Site"
