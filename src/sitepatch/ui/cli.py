from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING, cast

from dotenv import load_dotenv

from sitepatch.app import open_engine
from sitepatch.config import configure_logging
from sitepatch.domain.model import BatchRequest, MutationKind, MutationRequest

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from types import FrameType

    from sitepatch.domain.engine import MutationEngine
    from sitepatch.domain.model import BatchProgress, CodeLocation

log = logging.getLogger(__name__)

KIND_CHOICES = [str(kind) for kind in MutationKind]


def _add_mutation_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("kind", choices=KIND_CHOICES, help="Mutation kind")
    parser.add_argument("value", help="New value (JSON when --json is given)")
    parser.add_argument("--page-id", type=str, help="Target page id")
    parser.add_argument("--item-id", type=str, help="Target CMS item id")
    parser.add_argument("--field-id", type=str, help="Target CMS field id")
    parser.add_argument(
        "--index",
        type=int,
        help="Element index for h2_heading mutations (default: 0)",
    )
    parser.add_argument(
        "--location",
        choices=["head", "body_end"],
        default="head",
        help="Placement for custom_code mutations (default: %(default)s)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Decode the value as JSON, e.g. for page_seo objects",
    )


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Apply content mutations to a Webflow site")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    apply = subparsers.add_parser("apply", help="Apply a single mutation")
    _add_mutation_arguments(apply)

    preview = subparsers.add_parser("preview", help="Show a page before and after a mutation")
    _add_mutation_arguments(preview)

    batch = subparsers.add_parser("batch", help="Apply a batch of mutations from a JSON file")
    batch.add_argument("file", type=Path, help="JSON file with an operations list")
    batch.add_argument(
        "--rollback-on-failure",
        action="store_true",
        help="Snapshot current values and restore them if any operation fails",
    )
    batch.add_argument(
        "--yes",
        action="store_true",
        help="Confirm batches that set confirmation_required",
    )

    confirm = subparsers.add_parser("confirm", help="Summarise a batch without applying it")
    confirm.add_argument("file", type=Path, help="JSON file with an operations list")

    return parser.parse_args(list(argv))


def _parse_value(raw: str, *, as_json: bool) -> object:
    if not as_json:
        return raw
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON value: {exc.msg}") from exc


def _request_from_args(args: argparse.Namespace, *, preview: bool) -> MutationRequest:
    return MutationRequest(
        kind=MutationKind(args.kind),
        value=_parse_value(args.value, as_json=args.json),
        page_id=args.page_id,
        cms_item_id=args.item_id,
        field_id=args.field_id,
        element_index=args.index,
        location=cast("CodeLocation", args.location),
        preview=preview,
    )


def request_from_mapping(payload: Mapping[str, object]) -> MutationRequest:
    """Build a request from one entry of a batch file."""

    try:
        kind = MutationKind(str(payload["kind"]))
    except KeyError as exc:
        raise ValueError("Operation is missing 'kind'") from exc
    except ValueError as exc:
        raise ValueError(f"Unknown mutation kind: {payload['kind']}") from exc

    location = payload.get("location", "head")
    if location not in ("head", "body_end"):
        raise ValueError(f"Unknown custom code location: {location}")
    index = payload.get("element_index")
    if index is not None and not isinstance(index, int):
        raise ValueError("element_index must be an integer")

    return MutationRequest(
        kind=kind,
        value=payload.get("value"),
        page_id=_optional_str(payload, "page_id"),
        cms_item_id=_optional_str(payload, "cms_item_id"),
        field_id=_optional_str(payload, "field_id"),
        element_index=index,
        location=cast("CodeLocation", location),
    )


def load_batch(path: Path, *, rollback_enabled: bool = False) -> BatchRequest:
    """Read a batch file: either a list of operations or an object with ``operations``."""

    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ValueError(f"Cannot read batch file {path}: {exc.strerror}") from exc
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path}: {exc.msg}") from exc

    confirmation_required = False
    if isinstance(payload, dict):
        confirmation_required = bool(payload.get("confirmation_required", False))
        rollback_enabled = rollback_enabled or bool(payload.get("rollback_enabled", False))
        payload = payload.get("operations")
    if not isinstance(payload, list):
        raise ValueError(f"{path} must contain a list of operations")

    operations: list[MutationRequest] = []
    for position, entry in enumerate(payload):
        if not isinstance(entry, dict):
            raise ValueError(f"Operation {position} must be an object")
        operations.append(request_from_mapping(cast("dict[str, object]", entry)))
    return BatchRequest(
        operations=operations,
        confirmation_required=confirmation_required,
        rollback_enabled=rollback_enabled,
    )


def _optional_str(payload: Mapping[str, object], key: str) -> str | None:
    value = payload.get(key)
    return None if value is None else str(value)


def _emit(payload: object) -> None:
    sys.stdout.write(json.dumps(payload, indent=2, default=str) + "\n")


def _log_progress(progress: BatchProgress) -> None:
    operation = progress.current_operation
    log.info(
        f"[{progress.current}/{progress.total}] {progress.percentage}% "
        f"{operation.kind} {operation.target_id}"
    )


async def _run_batch(engine: MutationEngine, args: argparse.Namespace, batch: BatchRequest) -> bool:
    if batch.confirmation_required and not args.yes:
        _emit(asdict(engine.prepare_batch_confirmation(batch)))
        log.error("Batch requires confirmation; re-run with --yes to apply it")
        return False

    result = await engine.apply_batch(batch, _log_progress)
    _emit(asdict(result))
    if result.success or not args.rollback_on_failure or result.rollback_id is None:
        return result.success

    log.warning(f"{result.failed} operation(s) failed; rolling back {result.rollback_id}")
    restored = await engine.rollback(result.rollback_id)
    _emit({"rollback": asdict(restored)})
    return False


async def _run(args: argparse.Namespace, payload: MutationRequest | BatchRequest) -> bool:
    async with open_engine() as engine:
        if isinstance(payload, MutationRequest):
            result = await engine.apply(payload)
            _emit(asdict(result))
            return result.success
        if args.command == "confirm":
            _emit(asdict(engine.prepare_batch_confirmation(payload)))
            return True
        return await _run_batch(engine, args, payload)


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args: argparse.Namespace
    payload: MutationRequest | BatchRequest
    try:
        parsed_args = _parse_args(args_list)
        configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)
        if parsed_args.command in ("apply", "preview"):
            payload = _request_from_args(parsed_args, preview=parsed_args.command == "preview")
        else:
            payload = load_batch(
                parsed_args.file,
                rollback_enabled=getattr(parsed_args, "rollback_on_failure", False),
            )
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        succeeded = asyncio.run(_run(parsed_args, payload))
    except Exception:
        log.exception("Fatal error while applying mutations")
        sys.exit(1)
    if not succeeded:
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
