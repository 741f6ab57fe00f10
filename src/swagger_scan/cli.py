"""CLI entry point for swagger-scan."""

import json
import logging
from pathlib import Path

import click
import yaml

from swagger_scan.errors import ScanError
from swagger_scan.loader import load_program
from swagger_scan.parser.base import SwaggerDocument
from swagger_scan.scanner.app import ScanOptions, scan_application


def setup_logging(verbose: bool) -> logging.Logger:
    """Configure the package logger; DEBUG with --verbose, WARNING otherwise."""
    logger = logging.getLogger("swagger_scan")
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
        logger.addHandler(handler)
    return logger


def _load_base(path: Path | None) -> SwaggerDocument | None:
    """Read a base document to merge into (YAML or JSON)."""
    if path is None:
        return None
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    return SwaggerDocument.model_validate(data)


def _render(document: SwaggerDocument, fmt: str) -> str:
    data = document.to_dict()
    if fmt == "json":
        return json.dumps(data, indent=2) + "\n"
    return yaml.safe_dump(data, sort_keys=False, allow_unicode=True)


@click.group()
def main():
    """swagger-scan: build a Swagger 2.0 document from annotated source comments."""
    pass


@main.command()
@click.argument("source_dir", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("-o", "--output", default=None, type=click.Path(path_type=Path), help="Output file (stdout when omitted).")
@click.option("--input", "base_path", default=None, type=click.Path(exists=True, path_type=Path), help="Existing document to merge into.")
@click.option("--include", multiple=True, envvar="SWAGGER_SCAN_INCLUDE", help="Module glob to classify (repeatable).")
@click.option("--exclude", multiple=True, envvar="SWAGGER_SCAN_EXCLUDE", help="Module glob to skip (repeatable).")
@click.option("--format", "fmt", default="yaml", type=click.Choice(["yaml", "json"]), help="Output format.")
@click.option("-v", "--verbose", is_flag=True, help="Log every scan step.")
def scan(source_dir: Path, output: Path | None, base_path: Path | None, include, exclude, fmt: str, verbose: bool):
    """Scan SOURCE_DIR and write the generated document."""
    logger = setup_logging(verbose)
    logger.debug(f"Loading program from {source_dir}")

    program = load_program(source_dir)
    options = ScanOptions(includes=list(include), excludes=list(exclude))
    try:
        document = scan_application(program, _load_base(base_path), options)
    except ScanError as e:
        raise click.ClickException(str(e)) from e

    text = _render(document, fmt)
    if output is None:
        click.echo(text, nl=False)
        return

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text, encoding="utf-8")
    click.echo(f"Document saved to {output} ({len(document.paths)} paths, {len(document.definitions)} definitions)")
