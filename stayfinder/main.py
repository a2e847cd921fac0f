"""
Main entry point and CLI for Stayfinder.

Finds short-term-rental listings around a street address and prints or saves
their detail records.
"""

# Load environment variables from .env before the configuration is read
from dotenv import load_dotenv
load_dotenv()

import asyncio
import argparse
import json
import logging
import sys
from dataclasses import replace
from datetime import datetime
from typing import Optional

import aiohttp

from stayfinder.config.settings import StayfinderSettings, get_settings
from stayfinder.errors import AppError, InvalidInputError
from stayfinder.pipeline import PipelineResult, build_pipeline, find_listing_details


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def format_results(result: PipelineResult) -> str:
    """
    Format pipeline results for console output.

    Args:
        result: Resolved viewport and fetched records

    Returns:
        Formatted string representation of the results
    """
    meta = result.viewport.viewport_meta
    north, east, south, west = result.viewport.bbox

    output = []
    output.append(f"\n{'='*60}")
    output.append(f"Found {len(result.records)} listing(s) via {meta.strategy.value}")
    output.append(
        f"Viewport: {meta.width_meters:.0f}m x {meta.height_meters:.0f}m "
        f"(+{meta.safety_meters:.0f}m safety)"
    )
    output.append(f"BBox: N {north:.6f}, E {east:.6f}, S {south:.6f}, W {west:.6f}")
    output.append(f"{'='*60}\n")

    for record in result.records:
        output.append(f"Listing {record.listing_id}")
        if record.lat is not None and record.lng is not None:
            output.append(f"   Location: {record.lat:.6f}, {record.lng:.6f}")
        output.append(f"   Text blocks: {len(record.html_texts)}")
        output.append(f"   Items: {len(record.structured_items)}")
        output.append("")

    return "\n".join(output)


def load_settings(
    max_concurrency: Optional[int] = None,
    max_retries: Optional[int] = None
) -> StayfinderSettings:
    """
    Build settings from the environment and apply CLI overrides.

    Raises:
        InvalidInputError: If a configured value is out of range
    """
    try:
        settings = get_settings()
        if max_concurrency is not None:
            settings.batch_fetch = replace(settings.batch_fetch, max_concurrency=max_concurrency)
        if max_retries is not None:
            settings.batch_fetch = replace(settings.batch_fetch, max_retries=max_retries)
    except ValueError as e:
        raise InvalidInputError(str(e)) from e
    return settings


async def run_stayfinder(
    address: str,
    timeout_ms: Optional[int] = None,
    max_concurrency: Optional[int] = None,
    max_retries: Optional[int] = None,
    output_path: Optional[str] = None,
    verbose: bool = False
) -> int:
    """
    Execute the address-to-details workflow.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.debug("Verbose logging enabled")

    start_time = datetime.now()

    try:
        settings = load_settings(max_concurrency, max_retries)
        async with aiohttp.ClientSession() as session:
            resolver, fetcher = build_pipeline(settings, session)
            result = await find_listing_details(address, resolver, fetcher, timeout_ms)
    except AppError as e:
        logger.error(f"Search failed: {e.kind}: {e.message}")
        print(f"\nError ({e.kind}): {e.message}", file=sys.stderr)
        return 1

    elapsed_time = (datetime.now() - start_time).total_seconds()
    logger.info(f"Search completed in {elapsed_time:.2f} seconds")

    if output_path:
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(result.to_dict(), f, indent=2)
        print(f"Wrote {len(result.records)} record(s) to {output_path}")
    else:
        print(format_results(result))

    return 0


def create_argument_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser for CLI.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog="stayfinder",
        description="Find short-term-rental listings near a street address",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m stayfinder.main "350 5th Ave, New York, NY"
  python -m stayfinder.main "1 Main St, Austin, TX" --max-concurrency 2 --output out.json
        """
    )

    parser.add_argument(
        "address",
        help="Street address to search around"
    )

    parser.add_argument(
        "--timeout-ms",
        type=int,
        default=None,
        help="Per-request timeout in milliseconds"
    )

    parser.add_argument(
        "--max-concurrency",
        type=int,
        default=None,
        help="Maximum number of detail fetches in flight"
    )

    parser.add_argument(
        "--max-retries",
        type=int,
        default=None,
        help="Maximum attempts per listing detail fetch"
    )

    parser.add_argument(
        "--output",
        "-o",
        type=str,
        default=None,
        help="Write results as JSON to this file instead of printing"
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging output"
    )

    return parser


def main() -> int:
    """
    Main entry point for the CLI application.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    parser = create_argument_parser()
    args = parser.parse_args()

    try:
        return asyncio.run(
            run_stayfinder(
                address=args.address,
                timeout_ms=args.timeout_ms,
                max_concurrency=args.max_concurrency,
                max_retries=args.max_retries,
                output_path=args.output,
                verbose=args.verbose
            )
        )
    except KeyboardInterrupt:
        logger.info("Search interrupted by user")
        print("\nSearch interrupted by user", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
