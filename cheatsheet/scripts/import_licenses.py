#!/usr/bin/env python3
"""CLI entrypoint for SolidCAM license import."""
from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

from cheatsheet.license_import import (
    importer,
    layout,
    load_store,
    pdf,
    renderer,
    salesforce,
    sources,
)
from cheatsheet.license_import.models import ParsedLicense
from cheatsheet.license_import.selections import get_license_selections

DEFAULT_STORE = Path("license_store.json")

logger = logging.getLogger("cheatsheet.license_import.cli")


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="[%(levelname)s] %(message)s",
    )


def resolve_store_path(path: str | None) -> Path:
    if path:
        return Path(path).expanduser()
    env_value = os.environ.get("LICENSE_STORE_PATH")
    if env_value:
        return Path(env_value).expanduser()
    return DEFAULT_STORE


def parse_backend_list(value: str | None) -> list[str] | None:
    if not value:
        return None
    parts = [entry.strip() for entry in value.split(",") if entry.strip()]
    return parts or None


def read_input(path: str | None) -> str:
    if path and path != "-":
        source = Path(path)
        if not source.exists():
            raise SystemExit(f"File not found: {source}")
        return sources.load_source_text(source)
    return sys.stdin.read()


def parse_source(path: Path, args: argparse.Namespace) -> ParsedLicense:
    if path.suffix.lower() in sources.PDF_EXTENSIONS:
        return pdf.parse_pdf(
            path,
            min_chars=layout.resolve_min_pdf_chars(args.min_pdf_chars),
            prefer_backends=parse_backend_list(args.pdf_backends),
        )
    try:
        text = sources.load_source_text(path)
    except (OSError, ValueError) as exc:
        return ParsedLicense(file_name=path.name, license=None, parse_error=str(exc))
    result = salesforce.parse_salesforce_text(text, source_file_name=path.name)
    return ParsedLicense(file_name=path.name, license=result.license, parse_error=result.parse_error)


def command_salesforce(args: argparse.Namespace) -> int:
    try:
        text = read_input(args.path)
    except (OSError, ValueError) as exc:
        print(f"Parse failed: {exc}", file=sys.stderr)
        return 1
    if not text.strip():
        print("No input text provided", file=sys.stderr)
        return 1
    result = salesforce.parse_salesforce_text(text)
    if result.license is None:
        print(f"Parse failed: {result.parse_error}", file=sys.stderr)
        return 1
    print(renderer.render_license_report(result.license, get_license_selections(result.license)))
    return 0


def command_pdf(args: argparse.Namespace) -> int:
    exit_code = 0
    for index, raw_path in enumerate(args.paths):
        parsed = parse_source(Path(raw_path), args)
        if index:
            print()
        print(f"== {parsed.file_name}")
        if parsed.license is None:
            print(f"Parse failed: {parsed.parse_error}", file=sys.stderr)
            exit_code = 1
            continue
        print(renderer.render_license_report(parsed.license, get_license_selections(parsed.license)))
    return exit_code


def command_import(args: argparse.Namespace) -> int:
    store_path = resolve_store_path(args.store)
    store = load_store(store_path)
    parsed = [parse_source(Path(raw_path), args) for raw_path in args.paths]
    overrides = {}
    for entry in parsed:
        if args.company:
            overrides[entry.file_name] = args.company
        elif importer.needs_company_name_override(entry):
            logger.warning(
                "%s: no usable customer name (%s); pass --company to set one",
                entry.file_name,
                entry.license.customer if entry.license else "",
            )
    results = importer.import_parsed(store, parsed, overrides)
    store.save(store_path)
    summary = importer.calculate_import_summary(results)
    print(renderer.render_import_summary(results, summary))
    logger.info(
        "Store %s updated. Imported: %d, Failed: %d",
        store_path,
        summary["success_count"],
        summary["failure_count"],
    )
    return 1 if summary["failure_count"] else 0


def add_pdf_options(parser_obj: argparse.ArgumentParser) -> None:
    parser_obj.add_argument(
        "--pdf-backends",
        help="Comma-separated PDF extraction backend order (overrides LICENSE_PDF_BACKENDS)",
    )
    parser_obj.add_argument(
        "--min-pdf-chars",
        type=int,
        help="Minimum characters required from a PDF (overrides LICENSE_MIN_PDF_CHARS)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser_obj = argparse.ArgumentParser(description="Import SolidCAM licenses")
    parser_obj.add_argument("--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser_obj.add_subparsers(dest="command")

    sf_parser = subparsers.add_parser(
        "salesforce", help="Parse text copied from a Salesforce dongle page"
    )
    sf_parser.add_argument("path", nargs="?", help="Text, HTML or DOCX file (default: stdin)")
    sf_parser.set_defaults(func=command_salesforce)

    pdf_parser = subparsers.add_parser("pdf", help="Parse license certificate PDFs")
    pdf_parser.add_argument("paths", nargs="+", help="PDF files")
    add_pdf_options(pdf_parser)
    pdf_parser.set_defaults(func=command_pdf)

    import_parser = subparsers.add_parser("import", help="Import licenses into the company store")
    import_parser.add_argument("paths", nargs="+", help="PDF or Salesforce text files")
    import_parser.add_argument(
        "--store", help="Company store JSON file (overrides LICENSE_STORE_PATH)"
    )
    import_parser.add_argument("--company", help="Company name to use for every file")
    add_pdf_options(import_parser)
    import_parser.set_defaults(func=command_import)

    return parser_obj


def main(argv: list[str] | None = None) -> int:
    parser_obj = build_parser()
    args = parser_obj.parse_args(argv)
    if not getattr(args, "command", None):
        parser_obj.print_help()
        return 0
    configure_logging(args.verbose)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
