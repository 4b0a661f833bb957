from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import timedelta
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING, cast

from dotenv import load_dotenv

from indexledger.app import describe_indexer, open_ledger
from indexledger.config import configure_logging, get_monitor_config
from indexledger.domain.errors import MalformedProofError
from indexledger.domain.merkle import parse_merkle_path, verify_hash
from indexledger.domain.types import BlockRange

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from types import FrameType

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Inspect and maintain the indexer ledger")
    parser.add_argument(
        "--database-uri",
        type=str,
        help="Database URI (defaults to DATABASE_URI or the local data directory)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init-db", help="Apply schema migrations")

    status = subparsers.add_parser("status", help="Show progress of an indexer")
    status.add_argument("--indexer", type=str, required=True, help="Indexer id")

    fix = subparsers.add_parser("fix", help="Manage the block fix worklist")
    fix_sub = fix.add_subparsers(dest="fix_command", required=True)
    fix_add = fix_sub.add_parser("add", help="Register a range for re-processing")
    fix_add.add_argument("--indexer", type=str, required=True, help="Indexer id")
    fix_add.add_argument("--start", type=int, required=True, help="First height (inclusive)")
    fix_add.add_argument("--end", type=int, required=True, help="Last height (exclusive)")
    fix_list = fix_sub.add_parser("list", help="Show pending fix ranges")
    fix_list.add_argument("--indexer", type=str, required=True, help="Indexer id")

    monitor = subparsers.add_parser("monitor", help="Pick the next block due for a recheck")
    monitor.add_argument("--indexer", type=str, required=True, help="Indexer id")
    monitor.add_argument(
        "--consensus-height",
        type=int,
        required=True,
        help="Height already finalized on the counterparty chain",
    )
    monitor.add_argument(
        "--min-interval-seconds",
        type=float,
        default=None,
        help="Minimum seconds between checks of one block (defaults to config)",
    )

    verify = subparsers.add_parser("verify-proof", help="Verify a Merkle inclusion proof")
    verify.add_argument("--root", type=str, required=True, help="Trusted root (hex)")
    verify.add_argument("--leaf", type=str, required=True, help="Leaf hash (hex)")
    verify.add_argument(
        "--path",
        type=Path,
        required=True,
        help="JSON file holding a list of {hash, direction} items",
    )

    return parser.parse_args(list(argv))


def _parse_hex(value: str, *, what: str) -> bytes:
    try:
        return bytes.fromhex(value.removeprefix("0x"))
    except ValueError as exc:
        raise ValueError(f"Invalid {what} hex: {value}") from exc


def _min_interval(args: argparse.Namespace) -> timedelta:
    if args.min_interval_seconds is None:
        return get_monitor_config().min_interval
    if args.min_interval_seconds < 0:
        raise ValueError("Minimum interval must be non-negative")
    return timedelta(seconds=args.min_interval_seconds)


def _verify_proof(args: argparse.Namespace) -> bool:
    root = _parse_hex(args.root, what="root")
    leaf = _parse_hex(args.leaf, what="leaf")
    with args.path.open() as handle:
        payload = json.load(handle)
    if not isinstance(payload, list):
        raise MalformedProofError("Proof path must be a JSON list")
    path = parse_merkle_path(cast("list[Mapping[str, object]]", payload))
    return verify_hash(root, path, leaf)


def _run(args: argparse.Namespace) -> int:
    if args.command == "verify-proof":
        valid = _verify_proof(args)
        log.info("Inclusion proof %s", "valid" if valid else "INVALID")
        return 0 if valid else 1

    uow_factory = open_ledger(database_uri=args.database_uri)
    if args.command == "init-db":
        log.info("Database schema is up to date")
        return 0

    with uow_factory() as uow:
        if args.command == "status":
            snapshot = describe_indexer(uow, args.indexer)
            log.info(
                "Indexer %s: height=%s, finalize=%s, next_fix=%s",
                snapshot.indexer_id,
                snapshot.current_height,
                snapshot.range_to_finalize,
                snapshot.range_to_fix,
            )
        elif args.command == "fix" and args.fix_command == "add":
            block_range = BlockRange(args.start, args.end)
            uow.repositories.block_fix.add_block_range_to_fix(args.indexer, block_range)
            uow.commit()
            log.info("Registered fix range %s for %s", block_range, args.indexer)
        elif args.command == "fix" and args.fix_command == "list":
            ranges = uow.repositories.block_fix.list_block_ranges_to_fix(args.indexer)
            log.info(
                "Pending fix ranges for %s: %s",
                args.indexer,
                ", ".join(str(block_range) for block_range in ranges) or "none",
            )
        elif args.command == "monitor":
            height = uow.repositories.block_status.get_next_block_to_monitor(
                args.indexer, args.consensus_height, _min_interval(args)
            )
            log.info("Next block to monitor for %s: %s", args.indexer, height)
        else:
            raise ValueError(f"Unsupported command: {args.command}")
    return 0


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    configure_logging()
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)

    try:
        exit_code = _run(parsed_args)
    except (ValueError, OSError):
        log.exception("CLI validation error")
        sys.exit(2)
    except Exception:
        log.exception("Fatal error")
        sys.exit(1)
    sys.exit(exit_code)


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
