"""Command-line interface for PDF receipt text extraction.

Provides subcommands to extract a single PDF to JSON, process a folder
of PDFs into a CSV, and check whether a PDF carries embedded text.
"""

import argparse
import csv
import json
import sys
import time
from pathlib import Path

import anyio

from pdf_receipt_text.pdf.extractor import ExtractionResult, extract_text, has_text
from pdf_receipt_text.utils.config import ExtractionConfig, load_config
from pdf_receipt_text.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)

_SUPPORTED_EXTENSIONS = ("*.pdf",)
_CSV_COLUMNS = [
    "filename",
    "status",
    "page_count",
    "line_count",
    "processing_time_s",
    "error",
    "text",
]


def _find_documents(input_dir: Path) -> list[Path]:
    """Find all PDF files in a directory.

    Args:
        input_dir: Directory to scan for documents.

    Returns:
        Sorted list of document file paths.
    """
    files: list[Path] = []
    for ext in _SUPPORTED_EXTENSIONS:
        files.extend(input_dir.glob(ext))
        files.extend(input_dir.glob(ext.upper()))
    return sorted(set(files))


def _extract(path: Path, config: ExtractionConfig) -> ExtractionResult:
    return anyio.run(extract_text, path, config)


def _result_row(path: Path, result: ExtractionResult) -> dict[str, object]:
    return {
        "filename": path.name,
        "status": "success" if result.success else "failed",
        "page_count": result.page_count,
        "line_count": len(result.lines),
        "error": result.message or (result.error.value if result.error else None),
        "text": result.text,
    }


def process_folder(
    input_dir: Path,
    output_csv: Path,
    verbose: bool = False,
) -> dict[str, int]:
    """Extract text from every PDF in a folder and export results to CSV.

    Args:
        input_dir: Directory containing PDF files.
        output_csv: Path for the output CSV file.
        verbose: Whether to print per-file progress.

    Returns:
        Summary dict with total, successful, and failed counts.
    """
    config = load_config()

    files = _find_documents(input_dir)
    if not files:
        logger.warning("No documents found in %s", input_dir)
        return {"total": 0, "successful": 0, "failed": 0}

    logger.info("Found %d documents to process", len(files))

    results: list[dict[str, object]] = []
    successful = 0
    failed = 0

    for i, file_path in enumerate(files, 1):
        if verbose:
            print(f"Processing [{i}/{len(files)}]: {file_path.name}")

        start_time = time.time()
        result = _extract(file_path, config.extraction)
        row = _result_row(file_path, result)
        row["processing_time_s"] = round(time.time() - start_time, 2)
        results.append(row)

        if result.success:
            successful += 1
        else:
            logger.warning("No text from %s: %s", file_path.name, row["error"])
            failed += 1

    _write_csv(results, output_csv)
    logger.info("Results written to %s", output_csv)

    summary = {"total": len(files), "successful": successful, "failed": failed}
    _print_summary(summary, output_csv)
    return summary


def _write_csv(results: list[dict[str, object]], output_csv: Path) -> None:
    """Write extraction rows to a CSV file.

    Args:
        results: One row per processed document.
        output_csv: Destination path.
    """
    if not results:
        return

    output_csv.parent.mkdir(parents=True, exist_ok=True)
    with open(output_csv, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=_CSV_COLUMNS, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(results)


def _print_summary(summary: dict[str, int], output_csv: Path) -> None:
    """Print a human-readable batch summary.

    Args:
        summary: Counts of total, successful, and failed documents.
        output_csv: Path to the output CSV.
    """
    print(f"\n{'=' * 50}")
    print("Batch Extraction Complete")
    print(f"{'=' * 50}")
    print(f"Total:      {summary['total']}")
    print(f"Successful: {summary['successful']}")
    print(f"Failed:     {summary['failed']}")
    print(f"Output:     {output_csv}")


def extract_single(file_path: Path) -> dict[str, object]:
    """Extract text from a single PDF.

    Args:
        file_path: Path to the PDF file.

    Returns:
        Dictionary with the filename and the extraction result fields.
    """
    config = load_config()
    result = _extract(file_path, config.extraction)
    return {"filename": file_path.name, **result.to_dict()}


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and dispatch to the appropriate command.

    Args:
        argv: Command-line arguments (defaults to sys.argv).
    """
    parser = argparse.ArgumentParser(
        description="Receipt PDF Text Extractor",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    batch_parser = subparsers.add_parser("batch", help="Process a folder of PDFs")
    batch_parser.add_argument("input_dir", type=Path, help="Input directory with PDFs")
    batch_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=Path("results.csv"),
        help="Output CSV file (default: results.csv)",
    )
    batch_parser.add_argument(
        "-v", "--verbose", action="store_true", help="Verbose output"
    )

    single_parser = subparsers.add_parser("extract", help="Process a single PDF")
    single_parser.add_argument("file", type=Path, help="PDF file to process")
    single_parser.add_argument("-o", "--output", type=Path, help="Output JSON file")

    check_parser = subparsers.add_parser(
        "check", help="Exit 0 if a PDF has embedded text, 2 otherwise"
    )
    check_parser.add_argument("file", type=Path, help="PDF file to check")

    args = parser.parse_args(argv)

    setup_logging()

    if args.command == "batch":
        if not args.input_dir.is_dir():
            print(f"Error: {args.input_dir} is not a directory", file=sys.stderr)
            sys.exit(1)
        process_folder(args.input_dir, args.output, args.verbose)
    elif args.command == "extract":
        if not args.file.exists():
            print(f"Error: {args.file} does not exist", file=sys.stderr)
            sys.exit(1)
        result = extract_single(args.file)
        output_str = json.dumps(result, indent=2, ensure_ascii=False)
        if args.output:
            args.output.parent.mkdir(parents=True, exist_ok=True)
            args.output.write_text(output_str, encoding="utf-8")
            print(f"Output written to {args.output}")
        else:
            print(output_str)
    elif args.command == "check":
        if not args.file.exists():
            print(f"Error: {args.file} does not exist", file=sys.stderr)
            sys.exit(1)
        found = anyio.run(has_text, args.file, load_config().extraction)
        print("text" if found else "no text")
        sys.exit(0 if found else 2)
    else:
        parser.print_help()
        sys.exit(0)


if __name__ == "__main__":
    main()
