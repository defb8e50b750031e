from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from item_pricer.config.loader import ConfigError, load_config
from item_pricer.errors import PricerError, ValidationError
from item_pricer.excel.detector import detect
from item_pricer.excel.reader import is_image_file, read_workbook
from item_pricer.logging.init import log_summary, set_debug, setup_logging
from item_pricer.models.config_models import PricerConfig
from item_pricer.models.raw_table import cell_text, non_blank_rows
from item_pricer.services.pipeline import PipelineState, SpreadsheetPipeline
from item_pricer.services.pricing_client import HttpPricingService, PricingService
from item_pricer.services.summary import render_summary_line

"""CLI entrypoint.

Flow:
- Load .env and config (config/pricer.yml unless --config is given)
- Decode the input, submit it to the pricing service
- Sheet / field-mapping questions are answered from --sheet / --map; when they
  are missing the CLI lists the choices and exits with EXIT_INPUT_REQUIRED
- Write `<basename>_priced.xlsx` (and the CSV with --csv), print SUMMARY

Exit codes: 0 success, 1 fatal error, 2 user input required.
"""

EXIT_SUCCESS = 0
EXIT_FATAL = 1
EXIT_INPUT_REQUIRED = 2

DEFAULT_CONFIG_PATH = Path("config/pricer.yml")

logger = logging.getLogger("item_pricer.cli")


def _load_env_file(path: Path, override: bool = False) -> None:
    """Load .env with python-dotenv. Existing environment variables win by default."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _field_mapping_arg(value: str) -> tuple[str, str]:
    name, sep, header = value.partition("=")
    if not sep or not name.strip() or not header.strip():
        raise argparse.ArgumentTypeError(f"expected FIELD=HEADER, got {value!r}")
    return name.strip(), header.strip()


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="item_pricer",
        description="Price insured-item spreadsheets and export them with replacement prices",
    )
    p.add_argument("file", type=Path, help="Spreadsheet (.xlsx/.xlsm/.xls/.csv) or image to price")
    p.add_argument("--sheet", help="Sheet to process in multi-sheet workbooks")
    p.add_argument("--tolerance", type=int, help="Price tolerance percentage")
    p.add_argument(
        "--map",
        dest="mapping",
        action="append",
        type=_field_mapping_arg,
        default=[],
        metavar="FIELD=HEADER",
        help="Map a canonical field to a sheet header (repeatable)",
    )
    p.add_argument("--out", type=Path, help="Output directory (default: export.output_directory)")
    p.add_argument("--csv", action="store_true", help="Also write the flat CSV export")
    p.add_argument("--inspect", action="store_true", help="Print sheets, detected header row and first rows then exit")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Config YAML path")
    return p.parse_args(argv)


def _inspect(path: Path, cfg: PricerConfig) -> int:
    if is_image_file(path):
        print(f"FILE: {path.name} (image, no sheets)")
        return EXIT_SUCCESS
    try:
        tables = read_workbook(path)
    except PricerError as e:
        logger.error(f"inspect: {e}")
        return EXIT_FATAL
    print(f"FILE: {path.name}")
    for name, table in tables.items():
        schema = detect(table, cfg.max_scan_rows)
        rows = non_blank_rows(table, schema)
        print(f"  SHEET: {name} rows={len(table)} header_row={schema.data_start_index} data_rows={len(rows)}")
        print(f"    headers={list(schema.headers)}")
        for row in rows[:3]:
            print(f"    row {row.index}: {[cell_text(c) for c in row.cells]}")
    return EXIT_SUCCESS


async def _run(args: argparse.Namespace, cfg: PricerConfig, service: PricingService) -> int:
    pipeline = SpreadsheetPipeline(service, cfg)
    try:
        state = await pipeline.process_file(args.file, args.tolerance)

        if state is PipelineState.SHEET_SELECTION_PENDING:
            if not args.sheet:
                logger.info("sheet selection required; rerun with --sheet NAME")
                print("SHEETS: " + ", ".join(pipeline.sheet_names))
                return EXIT_INPUT_REQUIRED
            state = await pipeline.select_sheet(args.sheet)

        if state is PipelineState.FIELD_MAPPING_PENDING:
            if not args.mapping:
                suggestion = pipeline.suggested_mapping()
                logger.info("field mapping required; rerun with --map FIELD=HEADER")
                print("MISSING: " + ", ".join(pipeline.missing_fields))
                print("HEADERS: " + ", ".join(pipeline.available_headers))
                for name, header in suggestion.items():
                    print(f"  suggestion: --map '{name}={header}'")
                return EXIT_INPUT_REQUIRED
            selections = pipeline.suggested_mapping()
            selections.update(dict(args.mapping))
            try:
                state = await pipeline.submit_mapping(selections)
            except ValidationError as e:
                logger.error(str(e))
                return EXIT_INPUT_REQUIRED

        if state is not PipelineState.RESULTS_READY:
            # service asked for a sheet selection after the sheet was chosen
            logger.error(f"processing stopped in state={state.value}")
            return EXIT_INPUT_REQUIRED

        workbook = pipeline.export_workbook(args.out)
        logger.info(f"exported {workbook}")
        if args.csv:
            csv_path = pipeline.export_csv(args.out)
            logger.info(f"exported {csv_path}")

        summary_line = render_summary_line(pipeline.statistics())
        # log_summary adds the "SUMMARY " prefix
        log_summary(summary_line[len("SUMMARY "):])
        return EXIT_SUCCESS
    except PricerError as e:
        logger.error(str(e))
        return EXIT_FATAL
    finally:
        counts = pipeline.error_log.counts()
        log_path = pipeline.flush_error_log()
        if log_path is not None:
            detail = " ".join(f"{k}={v}" for k, v in sorted(counts.items()))
            logger.info(f"error log written to {log_path} ({detail})")


async def _run_with_http(args: argparse.Namespace, cfg: PricerConfig) -> int:
    async with HttpPricingService(cfg.service) as service:
        return await _run(args, cfg, service)


def main(argv: list[str] | None = None, service: PricingService | None = None) -> int:
    """Run the CLI.

    Args:
        argv: Arguments without the program name; sys.argv[1:] when None.
        service: Pricing service to use instead of the HTTP client (tests).
    """
    setup_logging()

    # [] must not fall back to sys.argv (pytest arguments would leak in)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"))

    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if args.debug:
        set_debug(True)
        logger.debug("debug mode enabled")

    if not args.file.exists():
        logger.error(f"file not found: {args.file}")
        return EXIT_FATAL

    if args.inspect:
        return _inspect(args.file, cfg)

    if service is not None:
        return asyncio.run(_run(args, cfg, service))
    return asyncio.run(_run_with_http(args, cfg))


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
