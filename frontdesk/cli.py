"""
CLI entry point for Frontdesk.

Usage:
    frontdesk audit packages.xlsx
    frontdesk audit packages.csv -o audited.csv --format csv
    frontdesk serve --port 8000
"""

import argparse
import logging
import sys
from pathlib import Path

from frontdesk.core.config import settings
from frontdesk.core.normalizer import audit_file
from frontdesk.core.parsers import SheetError
from frontdesk.core.xlsx_export import create_processed_workbook, rows_to_csv


def run_audit(args) -> int:
    input_path = Path(args.input)
    if not input_path.exists():
        print(f"Error: Input file not found: {input_path}", file=sys.stderr)
        return 1

    try:
        result = audit_file(input_path.read_bytes(), input_path.name)
    except SheetError as e:
        print(f"Error: {e}. Please check the file format.", file=sys.stderr)
        return 1

    fmt = args.format
    output_path = Path(args.output) if args.output else input_path.with_name(
        f"{input_path.stem}_processed.{fmt}"
    )
    buffer = create_processed_workbook(result.rows) if fmt == "xlsx" else rows_to_csv(result.rows)
    output_path.write_bytes(buffer.getvalue())

    if not args.quiet:
        print(f"Sheet:         {result.sheet_name}")
        print(f"Rows in:       {result.input_rows}")
        print(f"Rows dropped:  {result.dropped_rows}")
        print(f"Bins assigned: {result.bins_assigned}")
        print(f"Wrote {result.row_count} rows to {output_path}")
    return 0


def run_serve(args) -> int:
    import uvicorn
    uvicorn.run("frontdesk.api.main:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="frontdesk",
        description="Frontdesk - mailroom package audit and guest card tracking",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    audit = subparsers.add_parser("audit", help="Normalize a mailroom export file")
    audit.add_argument("input", metavar="FILE", help="Export file (XLSX, XLS or CSV)")
    audit.add_argument("-o", "--output", metavar="FILE", help="Output path (default: <input>_processed.<format>)")
    audit.add_argument("--format", choices=["xlsx", "csv"], default="xlsx", help="Output format")
    audit.add_argument("--quiet", "-q", action="store_true", help="Suppress the summary")
    audit.set_defaults(func=run_audit)

    serve = subparsers.add_parser("serve", help="Run the API server")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--reload", action="store_true", help="Reload on code changes")
    serve.set_defaults(func=run_serve)

    args = parser.parse_args(argv)
    logging.basicConfig(level=settings.LOG_LEVEL)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
