"""Command-line interface for sheetmapper."""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from .config import settings
from .grid.models import SheetMapperError
from .grid.reader import SpreadsheetReader
from .headers.detector import HeaderDetector
from .llm.call_log import MatcherCallLogger
from .mapping.models import MappingContext
from .mapping.pipeline import MappingPipeline

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="sheetmapper - map irregular spreadsheets onto document templates"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    headers_parser = subparsers.add_parser(
        "headers", help="Print the inferred header structure of a spreadsheet"
    )
    headers_parser.add_argument("data", type=Path, help="Spreadsheet file (.xlsx)")
    headers_parser.add_argument("--sheet", help="Worksheet name (default: first sheet)")

    sheets_parser = subparsers.add_parser(
        "sheets", help="List the worksheet names of a spreadsheet"
    )
    sheets_parser.add_argument("data", type=Path, help="Spreadsheet file (.xlsx)")

    map_parser = subparsers.add_parser(
        "map", help="Map spreadsheet columns onto a template table"
    )
    map_parser.add_argument("data", type=Path, help="Spreadsheet file (.xlsx)")
    map_parser.add_argument("template", type=Path, help="Template document (.hwpx or .xlsx)")
    map_parser.add_argument("--sheet", help="Worksheet name (default: first sheet)")
    map_parser.add_argument(
        "--table", type=int, default=0, help="Template table index (default: 0)"
    )
    map_parser.add_argument(
        "--context", type=Path, help="JSON file with domain mapping context"
    )
    map_parser.add_argument(
        "--no-external", action="store_true", help="Use only the rule-based matcher"
    )

    return parser


def configure_logging(verbose: bool):
    level = logging.DEBUG if verbose else getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def run_sheets(data_path: Path) -> dict:
    """List worksheet names so a --sheet value can be picked."""
    return {"sheets": SpreadsheetReader().sheet_names(data_path.read_bytes())}


def run_headers(data_path: Path, sheet: Optional[str]) -> dict:
    """Analyze a spreadsheet header and return it as JSON-ready data."""
    grid = SpreadsheetReader().read(data_path.read_bytes(), sheet)
    return HeaderDetector().analyze(grid).model_dump(mode="json")


async def run_map(
    data_path: Path,
    template_path: Path,
    sheet: Optional[str] = None,
    table: int = 0,
    context_path: Optional[Path] = None,
    use_external: bool = True,
) -> dict:
    """Run the mapping pipeline over two files and return the result as JSON-ready data."""
    context = None
    if context_path is not None:
        context = MappingContext.model_validate_json(context_path.read_text(encoding="utf-8"))

    run_settings = settings
    if not use_external:
        run_settings = settings.model_copy(update={"enable_external_matchers": False})

    call_logger = None
    if run_settings.enable_call_logging:
        call_logger = MatcherCallLogger(log_path=run_settings.call_log_path, enabled=True)

    pipeline = MappingPipeline(
        service=run_settings.external_service(),
        call_logger=call_logger,
    )
    result = await pipeline.run_files(
        data_path.read_bytes(),
        template_path.read_bytes(),
        template_path.name,
        sheet_name=sheet,
        table_index=table,
        context=context,
    )
    if call_logger is not None:
        logger.info(f"External calls: {call_logger.get_session_summary()}")
    return result.model_dump(mode="json")


def main(argv: Optional[list[str]] = None):
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    configure_logging(args.verbose)

    try:
        if args.command == "headers":
            output = run_headers(args.data, args.sheet)
        elif args.command == "sheets":
            output = run_sheets(args.data)
        else:
            output = asyncio.run(
                run_map(
                    args.data,
                    args.template,
                    sheet=args.sheet,
                    table=args.table,
                    context_path=args.context,
                    use_external=not args.no_external,
                )
            )
    except (SheetMapperError, OSError, ValidationError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    print(json.dumps(output, ensure_ascii=False, indent=2))


if __name__ == "__main__":
    main()
