"""CLI interface for control-file import"""
import json
import time
import traceback
from pathlib import Path
from typing import Dict, List

import click
import pandas as pd

from .detector import signal_report
from .errors import ControlImportError
from .importer import ControlFileImporter, ImportReport
from .llm_client import LLMClient
from .logger import setup_logger
from .store import InMemoryStore


def outcomes_frame(reports: Dict[str, ImportReport]) -> pd.DataFrame:
    """One row per validated record across all processed files"""
    rows: List[Dict] = []
    for file_name, report in reports.items():
        for outcome in report.outcomes:
            row = {"file": file_name, "property": report.property_name}
            row.update(outcome.record.to_dict())
            row.update({
                "is_valid": outcome.is_valid,
                "is_duplicate": outcome.is_duplicate,
                "conflicting_id": outcome.conflicting_record.id if outcome.conflicting_record else None,
                "errors": "; ".join(outcome.errors),
            })
            rows.append(row)
    return pd.DataFrame(rows)


def process_pdf_file(importer: ControlFileImporter,
                     pdf_path: Path,
                     output_dir: Path = None,
                     verbose: bool = False) -> ImportReport:
    """Process a single PDF file"""
    click.echo(f"Processing: {pdf_path.name}")

    start_ts = time.perf_counter()
    document = importer.text_extractor.extract_file(str(pdf_path))
    if verbose:
        for signal, fired in signal_report(document.text):
            click.echo(f"  signal {signal!r}: {'yes' if fired else 'no'}")
    report = importer.import_text(document)
    elapsed_s = time.perf_counter() - start_ts

    if output_dir:
        output_path = output_dir / f"{pdf_path.stem}_report.json"
        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(report.to_dict(), f, indent=2, ensure_ascii=False)
        click.echo(f"  Report saved to: {output_path}")

    if not report.is_control_file:
        click.echo("  Not a control file, skipped")
    elif not report.success:
        click.echo(f"  Extraction failed: {report.error}", err=True)
    else:
        summary = report.summary
        click.echo(
            f"  Property: {report.property_name} | valid {summary.valid}, "
            f"duplicates {summary.duplicates}, invalid {summary.invalid}, created {len(report.created)}"
        )
    click.echo(f"  Time: {elapsed_s:.2f}s")
    return report


@click.command()
@click.argument('pdf_folder', type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option('--catalog', '-c', required=True,
              type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help='JSON file with the property catalog and existing reservations')
@click.option('--output-dir', '-o',
              type=click.Path(file_okay=False, path_type=Path),
              help='Directory to save import reports')
@click.option('--save', is_flag=True,
              help='Write created reservations back into the catalog file')
@click.option('--verbose', '-v', is_flag=True,
              help='Verbose output')
def main(pdf_folder: Path, catalog: Path, output_dir: Path, save: bool, verbose: bool):
    """
    Import reservations from control-file PDFs in a folder.

    PDF_FOLDER: Folder containing control-file PDFs

    Examples:

    \b
    control-import /path/to/pdfs --catalog catalog.json --output-dir reports
    """
    setup_logger(log_level="DEBUG" if verbose else "INFO")

    try:
        store = InMemoryStore.from_file(str(catalog))
        importer = ControlFileImporter(adapter=LLMClient(), store=store)
    except ControlImportError as e:
        click.echo(f"Error initializing importer: {e}", err=True)
        return

    if output_dir:
        output_dir.mkdir(parents=True, exist_ok=True)

    pdf_files = sorted(pdf_folder.glob('*.pdf'))
    if not pdf_files:
        click.echo(f"No PDF files found in {pdf_folder}", err=True)
        return

    click.echo(f"Found {len(pdf_files)} PDF file(s)")

    reports: Dict[str, ImportReport] = {}
    for pdf_file in pdf_files:
        try:
            reports[pdf_file.name] = process_pdf_file(importer, pdf_file, output_dir, verbose)
        except ControlImportError as e:
            click.echo(f"  Error processing {pdf_file.name}: {e}", err=True)
            if verbose:
                traceback.print_exc()

    created = sum(len(r.created) for r in reports.values())
    click.echo(f"\nProcessed {len(reports)} PDF(s), created {created} reservation(s)")

    if output_dir and reports:
        frame = outcomes_frame(reports)
        combined_path = output_dir / "outcomes.csv"
        frame.to_csv(combined_path, index=False)
        click.echo(f"Combined outcomes saved to: {combined_path}")

    if save and created:
        store.save(str(catalog))
        click.echo(f"Catalog updated: {catalog}")


if __name__ == '__main__':
    main()
