#!/usr/bin/env python3
"""
Rendition Packager CLI - package one local video into an HLS ladder
"""
import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.table import Table

from api.config import FailurePolicy, settings
from api.utils.error_handlers import PipelineError
from api.utils.logger import setup_logging
from worker.jobs import OrchestrationResult
from worker.processors.streaming import RenditionOrchestrator

console = Console()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rendition-packager",
        description="Encode a video into several renditions and write a master playlist",
    )
    parser.add_argument('input', type=Path, help='Input video file')
    parser.add_argument(
        '--asset-id',
        help='Output directory name (default: input file name without extension)'
    )
    parser.add_argument(
        '--output-root',
        type=Path,
        default=settings.OUTPUT_ROOT,
        help=f'Root directory for packages (default: {settings.OUTPUT_ROOT})'
    )
    parser.add_argument(
        '--policy',
        choices=[p.value for p in FailurePolicy],
        default=settings.FAILURE_POLICY.value,
        help='How to treat partially failed ladders'
    )
    parser.add_argument('--log-level', default='WARNING', help='Log level (default: WARNING)')
    return parser


def render_result(result: OrchestrationResult) -> Table:
    table = Table(title=f"Asset {result.asset_id}")
    table.add_column("Rendition")
    table.add_column("Status")
    table.add_column("Detail")
    for outcome in result.outcomes:
        if outcome.ok:
            table.add_row(outcome.spec.label, "[green]ok[/green]", outcome.playlist_path.name)
        else:
            table.add_row(outcome.spec.label, "[red]failed[/red]", outcome.reason or "")
    return table


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI. Returns the process exit code."""
    args = build_parser().parse_args(argv)
    setup_logging(level=args.log_level, console=True)

    if not args.input.is_file():
        console.print(f"[red]Input file not found: {args.input}[/red]")
        return 2

    runtime = settings.model_copy(update={
        "OUTPUT_ROOT": args.output_root,
        "FAILURE_POLICY": FailurePolicy(args.policy),
    })
    orchestrator = RenditionOrchestrator.from_settings(runtime)
    asset_id = args.asset_id or args.input.stem

    try:
        result = asyncio.run(orchestrator.process_asset(args.input, asset_id))
    except PipelineError as e:
        console.print(f"[red]{e.code}: {e.message}[/red]")
        return 1

    console.print(render_result(result))
    if not result.succeeded:
        console.print(f"[red]{result.error.message}[/red]")
        return 1

    console.print(f"Master playlist: [bold]{result.manifest_path}[/bold]")
    console.print(f"Stream URL: {result.stream_url}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
