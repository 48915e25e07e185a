# ruff: noqa: T201

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from leadmerge.adapters.records import load_records
from leadmerge.app import (
    consolidate_contacts,
    preview_matches,
    reindex_contacts,
    resolve_records,
)
from leadmerge.config import ConfigurationError, configure_logging
from leadmerge.domain.identity import ValidationError
from leadmerge.domain.model import Confidence

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from leadmerge.domain.model import RawRecord

log = logging.getLogger(__name__)


def _confidence(value: str) -> Confidence:
    try:
        return Confidence.parse(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def _non_negative(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Invalid integer: {value}") from exc
    if parsed < 0:
        raise argparse.ArgumentTypeError("Offset must be non-negative")
    return parsed


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Resolve and merge lead contacts")
    subparsers = parser.add_subparsers(dest="command", required=True)

    resolve = subparsers.add_parser("resolve", help="Resolve records into canonical contacts")
    resolve.add_argument("file", type=Path, help="JSON lines file with one record per line")
    resolve.add_argument(
        "--min-confidence",
        type=_confidence,
        default=None,
        help="Lowest match confidence to merge into (defaults to config)",
    )
    resolve.add_argument(
        "--offset",
        type=_non_negative,
        default=0,
        help="Number of records to skip, e.g. to resume a failed run (default: %(default)s)",
    )
    resolve.add_argument(
        "--no-update",
        dest="update_if_found",
        action="store_false",
        help="Link matched records without updating the existing contact",
    )

    match = subparsers.add_parser("match", help="Preview the best match of each record")
    match.add_argument("file", type=Path, help="JSON lines file with one record per line")

    subparsers.add_parser("consolidate", help="Merge stored contacts sharing an email")
    subparsers.add_parser("reindex", help="Rebuild contact lookup keys")

    return parser.parse_args(list(argv))


def _require_file(path: Path) -> Path:
    if not path.is_file():
        raise ValueError(f"No such file: {path}")
    return path


def _print_matches(entries: list[RawRecord | ValidationError]) -> None:
    records = [entry for entry in entries if not isinstance(entry, ValidationError)]
    matches = iter(preview_matches(records))
    for position, entry in enumerate(entries):
        if isinstance(entry, ValidationError):
            log.warning("Skipping record %s: %s", position, entry)
            print(f"{position}\tinvalid\t-\tinvalid_record")
            continue
        match = next(matches)
        contact_id = match.contact.id if match.contact is not None else "-"
        print(f"{position}\t{match.confidence.label}\t{contact_id}\t{match.reason}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    try:
        configure_logging()
        if parsed_args.command in {"resolve", "match"}:
            _require_file(parsed_args.file)
    except (ConfigurationError, ValueError):
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        if parsed_args.command == "resolve":
            result = resolve_records(
                load_records(parsed_args.file),
                min_confidence=parsed_args.min_confidence,
                offset=parsed_args.offset,
                update_if_found=parsed_args.update_if_found,
            )
            print(
                f"processed={result.processed} matched={result.matched} "
                f"created={result.created} skipped={result.skipped} "
                f"next_offset={result.next_offset}"
            )
        elif parsed_args.command == "match":
            _print_matches(list(load_records(parsed_args.file)))
        elif parsed_args.command == "consolidate":
            consolidation = consolidate_contacts()
            print(f"groups={consolidation.groups} merged={consolidation.merged}")
        elif parsed_args.command == "reindex":
            count = reindex_contacts()
            print(f"reindexed={count}")
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except ConfigurationError:
        log.exception("Invalid configuration")
        sys.exit(2)
    except ValidationError:
        log.exception("Invalid input")
        sys.exit(2)
    except Exception:
        log.exception("Fatal error during %s", parsed_args.command)
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
