#!/usr/bin/env python3
"""
Command-Line Interface for the Transfer Invoice Service
"""

import argparse
import json
import logging
import shutil
import sys
from pathlib import Path
from typing import List

from .config import ServiceConfig
from .exceptions import InvoiceGenerationError
from .models import InvoiceRecord, parse_batch, parse_record
from .service import InvoiceService


def setup_logging(verbose: bool = False):
    """Sets up basic logging for the CLI tool."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s',
    )


def _load_json(path: Path):
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def _load_batch(service: InvoiceService, input_path: Path) -> List[InvoiceRecord]:
    if input_path.suffix.lower() in (".xlsx", ".xlsm"):
        records, _ = service.read_transfer_sheet(input_path)
        return records
    payload = _load_json(input_path)
    if isinstance(payload, list):
        payload = {"invoices": payload}
    return parse_batch(payload).invoices


def _move(source: Path, destination: Path) -> Path:
    if destination.is_dir():
        destination = destination / source.name
    destination.parent.mkdir(parents=True, exist_ok=True)
    shutil.move(str(source), str(destination))
    return destination


def cmd_generate(service: InvoiceService, args) -> int:
    record = parse_record(_load_json(Path(args.record)))
    pdf_path = service.generate_invoice(record)
    output = Path(args.output) if args.output else Path.cwd() / record.pdf_name
    if output.is_dir():
        output = output / record.pdf_name
    final_path = _move(pdf_path, output)
    logging.info(f"Invoice written to {final_path.resolve()}")
    return 0


def cmd_batch(service: InvoiceService, args) -> int:
    records = _load_batch(service, Path(args.input))
    archive_path = service.generate_archive(records)
    output = Path(args.output) if args.output else Path.cwd()
    if output.is_dir():
        output = output / service.archive_download_name(archive_path)
    final_path = _move(archive_path, output)
    logging.info(f"Archive written to {final_path.resolve()}")
    return 0


def cmd_parse(service: InvoiceService, args) -> int:
    records, warnings = service.read_transfer_sheet(Path(args.workbook))
    json.dump(
        {
            "invoices": [record.model_dump(mode="json", by_alias=True) for record in records],
            "warnings": warnings,
        },
        sys.stdout,
        ensure_ascii=False,
        indent=2,
    )
    sys.stdout.write("\n")
    return 0


def cmd_check_template(service: InvoiceService, args) -> int:
    return 0 if service.check_template() else 1


def cmd_serve(service: InvoiceService, args) -> int:
    import uvicorn
    from .api import create_app

    uvicorn.run(create_app(service=service), host=args.host, port=args.port)
    return 0


COMMANDS = {
    "generate": cmd_generate,
    "batch": cmd_batch,
    "parse": cmd_parse,
    "check-template": cmd_check_template,
    "serve": cmd_serve,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Generate invoice PDFs from transfer records.")
    parser.add_argument("--assets-dir", help="Directory holding Invoice.xlsx (default: ./assets).")
    parser.add_argument("--tmp-dir", help="Directory for temporary files (default: ./tmp).")
    parser.add_argument("--soffice", help="Path to the LibreOffice soffice executable.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate = subparsers.add_parser("generate", help="Generate one invoice PDF from a JSON record.")
    generate.add_argument("record", help="Path to a JSON file holding one invoice record.")
    generate.add_argument("-o", "--output", help="Output PDF path or directory.")

    batch = subparsers.add_parser("batch", help="Generate a zip of invoices from JSON or a transfer workbook.")
    batch.add_argument("input", help="JSON file ({invoices: [...]} or a list) or .xlsx transfer workbook.")
    batch.add_argument("-o", "--output", help="Output zip path or directory.")

    parse = subparsers.add_parser("parse", help="Print the records read from a transfer workbook as JSON.")
    parse.add_argument("workbook", help="Path to the .xlsx transfer workbook.")

    subparsers.add_parser("check-template", help="Validate the invoice template.")

    serve = subparsers.add_parser("serve", help="Run the HTTP API.")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=8000)
    return parser


def main(argv=None) -> int:
    """Main function to run the invoice service from the command line."""
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    config = ServiceConfig.from_env()
    if args.assets_dir:
        config.assets_dir = Path(args.assets_dir)
    if args.tmp_dir:
        config.tmp_dir = Path(args.tmp_dir)
    if args.soffice:
        config.soffice_path = args.soffice

    try:
        service = InvoiceService(config)
        return COMMANDS[args.command](service, args)
    except InvoiceGenerationError as e:
        logging.error(f"An error occurred during generation: {e}")
        return 1
    except (FileNotFoundError, json.JSONDecodeError) as e:
        logging.error(f"Could not read input: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
