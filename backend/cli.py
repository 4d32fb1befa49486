"""Command-line company analysis.

Usage:
    rivalscope Apple                      # single-call analysis
    rivalscope Microsoft --multi          # basic info first, then assemble
    rivalscope Apple --provider openrouter
    rivalscope --dump-schema              # write the function schema, no API calls
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime
from pathlib import Path

import httpx

from backend.backends.base import LLMResponseError
from backend.backends.providers import PROVIDERS, get_backend
from backend.backends.schema import analysis_function
from backend.orchestrator.pipeline import (
    AnalysisOptions,
    AnalysisPipeline,
    ProcessingLevel,
    Strategy,
)

logger = logging.getLogger("rivalscope")


def dump_schema(output_dir: Path) -> Path:
    """Write the analysis function schema to a timestamped JSON file."""
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / f"schema_{datetime.now().strftime('%Y%m%d_%H%M%S')}.json"
    path.write_text(json.dumps(analysis_function(), indent=2))
    return path


async def analyze(company_name: str, options: AnalysisOptions, provider: str | None) -> object:
    pipeline = AnalysisPipeline(get_backend(provider))
    return await pipeline.process(company_name, options)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rivalscope",
        description="Generate a structured competitive analysis of a company.",
    )
    parser.add_argument("company", nargs="?", default="Apple", help="Company to analyze")
    parser.add_argument("--multi", action="store_true", help="Use the multi-step strategy")
    parser.add_argument("--debug", action="store_true", help="Verbose pipeline logging")
    parser.add_argument("--provider", choices=sorted(PROVIDERS), help="LLM provider")
    parser.add_argument(
        "--source-type",
        choices=[level.value for level in ProcessingLevel],
        default=ProcessingLevel.TRANSFORMED.value,
        help="Processing level of the output",
    )
    parser.add_argument("--dump-schema", action="store_true", help="Write the function schema and exit")
    parser.add_argument("--output-dir", type=Path, default=Path("examples"), help="Where --dump-schema writes")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.dump_schema:
        path = dump_schema(args.output_dir)
        print(f"Schema written to: {path}")
        return 0

    options = AnalysisOptions(
        source_type=ProcessingLevel(args.source_type),
        strategy=Strategy.MULTI if args.multi else Strategy.SINGLE,
        debug=args.debug,
    )
    try:
        result = asyncio.run(analyze(args.company, options, args.provider))
    except (httpx.HTTPError, LLMResponseError, ValueError) as exc:
        logger.error("Failed to complete analysis of %s: %s", args.company, exc)
        return 1

    print(json.dumps(result, indent=2))
    cost = result.get("_meta", {}).get("cost") if isinstance(result, dict) else None
    if isinstance(cost, dict):
        print(f"Total tokens used: {cost.get('totalTokens', 0)}")
        print(f"Estimated cost: ${cost.get('costUSD', 0):.6f}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
