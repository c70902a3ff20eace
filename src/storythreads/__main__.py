"""CLI entry-point: ``python -m storythreads run`` / ``python -m storythreads show``."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from storythreads import config
from storythreads.pipeline import run_pipeline
from storythreads.store import ThreadDB


def _show_threads(profile: str, status: str | None) -> None:
    """Print persisted threads for *profile*, most significant first."""
    db_path = config.profile_paths(profile)["db"]
    if not db_path.exists():
        print(f"No thread database for profile '{profile}' at {db_path}", file=sys.stderr)
        sys.exit(1)

    threads = ThreadDB(db_path).threads(status=status)  # type: ignore[arg-type]
    if not threads:
        print("No threads.")
        return

    for thread in threads:
        print(
            f"[{thread.significance_score:.2f}] {thread.topic} "
            f"({thread.status}, {thread.update_count} updates) {thread.id}"
        )
        for update in thread.updates[-3:]:
            print(f"    - {update.update_type}: {update.summary}")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="storythreads",
        description="Group a stream of short posts into evolving story threads.",
    )
    sub = parser.add_subparsers(dest="command")

    # ── run ────────────────────────────────────────────────────────────
    run_parser = sub.add_parser(
        "run", help="Thread new posts from a feed file into the profile's thread database."
    )
    run_parser.add_argument(
        "--profile",
        default=config.DEFAULT_PROFILE,
        help=f"Config profile to use (default: {config.DEFAULT_PROFILE}).",
    )
    run_parser.add_argument(
        "--feed",
        type=Path,
        default=None,
        help="JSON-lines feed to ingest (default: the profile's feed.jsonl).",
    )
    run_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Thread the feed but do not write to the thread database.",
    )

    # ── show ───────────────────────────────────────────────────────────
    show_parser = sub.add_parser("show", help="List persisted threads for a profile.")
    show_parser.add_argument(
        "--profile",
        default=config.DEFAULT_PROFILE,
        help=f"Config profile to read (default: {config.DEFAULT_PROFILE}).",
    )
    show_parser.add_argument(
        "--status",
        choices=["active", "archived"],
        default=None,
        help="Only list threads with this status.",
    )

    args = parser.parse_args(argv)

    if args.command == "run":
        run_pipeline(profile=args.profile, feed_path=args.feed, dry_run=args.dry_run)
    elif args.command == "show":
        _show_threads(profile=args.profile, status=args.status)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
