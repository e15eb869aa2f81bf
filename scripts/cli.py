from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import List, Optional

import typer
from rich import print

# If not installed in editable mode, add repo root to PYTHONPATH
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from docmerge.config import get_settings, load_settings
from docmerge.document.docx_io import (
    export_optimized_docx,
    is_optimized_markdown,
    latest_file,
    load_document,
    read_paragraphs,
)
from docmerge.errors import ConfigurationError, DocmergeError
from docmerge.reconcile.blocks import build_blocks
from docmerge.reconcile.headings import classify_sequence
from docmerge.reconcile.schema import ReconcileReport
from docmerge.reconcile.serializer import build_structure_record, dump_model

app = typer.Typer(add_completion=False, help="Rewrite DOCX body text section by section")


def _fail(msg: str, code: int = 1) -> None:
    typer.secho(msg, fg="red")
    raise typer.Exit(code)


def _protected_overrides(protect: Optional[List[str]]) -> dict:
    return {"protected_headings": protect} if protect else {}


@app.command()
def export(
    source: Path = typer.Option(
        None, "--source", help="Source DOCX; defaults to newest file in DOCMERGE_UPLOADS"
    ),
    markdown: Path = typer.Option(
        None,
        "--markdown",
        help="Optimized markdown; defaults to newest optimized-resume-*.md in DOCMERGE_OUTPUT",
    ),
    outdir: Path = typer.Option(
        None, "--outdir", help="Output dir; defaults to DOCMERGE_OUTPUT or repo default"
    ),
    strict: Optional[bool] = typer.Option(
        None,
        "--strict/--heuristic",
        help="Heading detection mode; defaults to STRICT_MODE",
    ),
    protect: Optional[List[str]] = typer.Option(
        None, "--protect", help="Heading to leave untouched (repeatable)"
    ),
):
    """
    Rewrite the body paragraphs of a DOCX with the sections of a markdown file.
    Precedence: CLI args > env (DOCMERGE_*, STRICT_MODE, PROTECTED_HEADINGS) > repo defaults.
    """
    try:
        cfg = get_settings()
        opts = _protected_overrides(protect)
        if strict is not None:
            opts["strict_mode"] = strict
        if opts:
            cfg = load_settings(**{**cfg.model_dump(), **opts})
    except ConfigurationError as exc:
        _fail(f"Invalid configuration: {exc}", code=2)

    effective_out = outdir or cfg.output_dir
    effective_src = source or latest_file(cfg.uploads_dir)
    if effective_src is None:
        _fail(f"No source DOCX found in {cfg.uploads_dir}")
    effective_md = markdown or latest_file(cfg.output_dir, is_optimized_markdown)
    if effective_md is None:
        _fail(f"No optimized-resume-*.md found in {cfg.output_dir}")

    try:
        artifacts = export_optimized_docx(
            effective_src,
            effective_md,
            effective_out,
            mode=cfg.heading_mode,
            protected_keys=cfg.protected_keys,
        )
    except DocmergeError as exc:
        _fail(f"Reconciliation failed: {exc}", code=2)

    report = artifacts.result.report
    print(f"Source docx: {artifacts.source_docx}")
    print(f"Optimized markdown: {artifacts.markdown}")
    print(f"Structure JSON: {artifacts.structure_json}")
    print(f"Strict report JSON: {artifacts.report_json}")
    if report.heading_mode_used == "strict-fallback-heuristic":
        print("[yellow]fallback[/yellow] fewer than 2 styled headings, used all-caps heuristic")
    print(f"[green]✓[/green] {artifacts.output_docx}")
    print(f"Paragraphs replaced (content only): {report.replaced}")
    if report.missing_sections:
        print("Sections without heading match in markdown (left structurally intact):")
        print(" | ".join(report.missing_sections))


@app.command()
def inspect(
    docx_path: Path = typer.Argument(..., help="DOCX to classify"),
    strict: Optional[bool] = typer.Option(
        None,
        "--strict/--heuristic",
        help="Heading detection mode; defaults to STRICT_MODE",
    ),
    out: Path = typer.Option(None, "--out", help="Write the structure JSON here"),
):
    """Classify headings and show the section blocks without changing anything."""
    if strict is None:
        try:
            mode = get_settings().heading_mode
        except ConfigurationError as exc:
            _fail(f"Invalid configuration: {exc}", code=2)
    else:
        mode = "strict" if strict else "heuristic"

    try:
        paragraphs = read_paragraphs(load_document(docx_path))
    except DocmergeError as exc:
        _fail(str(exc), code=2)

    classification = classify_sequence(paragraphs, mode)
    blocks = build_blocks(paragraphs, classification)
    record = build_structure_record(paragraphs, classification, blocks)

    print(f"Heading mode: [bold]{record.heading_mode_used}[/bold]")
    for b in record.blocks:
        print(f"  {b.heading_text or '(root)'} → {b.content_slots} slot(s)")
    if out:
        dump_model(record, out)
        print(f"[green]✓[/green] wrote {out}")


@app.command("validate")
def validate_file(json_path: Path):
    """Validate a single *-strict-report-*.json against the schema."""
    data = json.loads(json_path.read_text(encoding="utf-8"))
    ReconcileReport(**data)
    print("[green]OK[/green]")


if __name__ == "__main__":
    app()
