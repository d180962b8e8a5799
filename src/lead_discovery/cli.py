#!/usr/bin/env python3
"""Command-line interface for the lead discovery pipeline.

Runs one lead table request and prints the resulting table.

Usage:
    lead-discovery --prompt "R&D companies in Toronto" --size 10
    lead-discovery --list-id 4821
    lead-discovery --prompt "engineers at stripe.com" --json

Environment Variables:
    WIZA_API_KEY: Primary prospect provider key
    HUNTER_API_KEY: Fallback contact provider key
    GEMINI_API_KEY: AI model key (heuristic translation when unset)
"""

import argparse
import json
import sys
from typing import List, Optional

from pydantic import ValidationError

from .logging_utils import get_logger, setup_logging
from .models import SearchRequest, TableSpec
from .orchestrator import LeadTablePipeline, PipelineOutcome

SUCCESS_STATUSES = {200, 202}


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI.

    Returns:
        Configured ArgumentParser instance.
    """
    parser = argparse.ArgumentParser(
        prog="lead-discovery",
        description="Turn a free-text lead request into a contact table",
        epilog="""
Examples:
  %(prog)s --prompt "R&D companies in Toronto"
  %(prog)s --prompt "engineers at stripe.com" --size 20 --json
  %(prog)s --list-id 4821
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    request = parser.add_argument_group("request options")
    request.add_argument(
        "--prompt",
        "-p",
        default="",
        help="Free-text description of the contacts wanted",
    )
    request.add_argument(
        "--size",
        "-s",
        type=int,
        default=None,
        help="Number of contacts, clamped to 1-30 (default: 10)",
    )
    request.add_argument(
        "--list-id",
        default=None,
        help="Resume polling an existing prospect list instead of creating one",
    )
    request.add_argument("--lat", type=float, default=None, help="Caller latitude hint")
    request.add_argument("--lng", type=float, default=None, help="Caller longitude hint")

    output = parser.add_argument_group("output options")
    output.add_argument(
        "--json",
        action="store_true",
        help="Print the JSON response body instead of a table",
    )
    output.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose output (INFO logging)",
    )
    output.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug output (DEBUG logging)",
    )

    return parser


def build_request(args: argparse.Namespace) -> SearchRequest:
    """Build a SearchRequest from parsed arguments.

    Raises:
        ValidationError: If neither a prompt nor a list id was given.
    """
    payload = {"prompt": args.prompt, "listId": args.list_id}
    if args.size is not None:
        payload["size"] = args.size
    if args.lat is not None and args.lng is not None:
        payload["userLocation"] = {"lat": args.lat, "lng": args.lng}
    return SearchRequest.model_validate(payload)


def format_table(table: TableSpec) -> str:
    """Render a TableSpec as aligned plain text."""
    widths = [len(column) for column in table.columns]
    for row in table.rows:
        widths = [max(width, len(cell)) for width, cell in zip(widths, row)]

    def line(cells: List[str]) -> str:
        return "  ".join(cell.ljust(width) for cell, width in zip(cells, widths)).rstrip()

    lines = [table.title, table.description, "", line(table.columns)]
    lines.append("  ".join("-" * width for width in widths))
    lines.extend(line(row) for row in table.rows)
    lines.append("")
    lines.append(f"{len(table.rows)} row(s)")
    return "\n".join(lines)


def print_outcome(outcome: PipelineOutcome, as_json: bool = False) -> None:
    """Print a pipeline outcome to stdout."""
    if as_json:
        print(json.dumps(outcome.to_body(), indent=2))
        return

    if outcome.error is not None:
        print(f"Error ({outcome.status_code}): {outcome.error}")
        return

    print(format_table(outcome.table_spec))
    if outcome.provider is not None:
        print(f"Provider: {outcome.provider.value}")
    if outcome.status_code == 202 and outcome.job_meta is not None:
        print(f"\nList {outcome.job_meta.list_id} is still building; retry with --list-id.")


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI.

    Returns:
        Exit code (0 for 200/202 outcomes, 1 otherwise).
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    level = "DEBUG" if args.debug else "INFO" if args.verbose else "WARNING"
    setup_logging(level=level, structured=False)
    logger = get_logger(__name__)

    try:
        request = build_request(args)
    except ValidationError:
        print("Error: --prompt is required unless --list-id is given.")
        return 1

    pipeline = LeadTablePipeline()
    try:
        outcome = pipeline.run(request)
    except KeyboardInterrupt:
        print("\n\nCancelled by user.")
        return 1
    except Exception as e:
        logger.exception("Pipeline execution failed")
        print(f"\nError: Pipeline execution failed: {e}")
        return 1
    finally:
        pipeline.close()

    print_outcome(outcome, as_json=args.json)
    return 0 if outcome.status_code in SUCCESS_STATUSES else 1


if __name__ == "__main__":
    sys.exit(main())
