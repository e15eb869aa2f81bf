"""
docx_io.py

DOCX side of the reconciliation:
- reads body paragraphs into StructuralParagraph records
- writes the edit set back (first text node gets the text, the rest are cleared)
- export pipeline: source DOCX + optimized markdown -> structure JSON,
  strict report JSON and the rewritten DOCX
"""

from __future__ import annotations

import zipfile
from dataclasses import dataclass
from datetime import datetime, timezone
from io import BytesIO
from pathlib import Path
from typing import Callable, Iterable, List, Mapping, Optional, Union

from docx import Document
from docx.document import Document as DocxDocument
from docx.opc.exceptions import PackageNotFoundError
from docx.oxml.ns import qn
from docx.text.paragraph import Paragraph as DocxParagraph

from docmerge.errors import MalformedInputError
from docmerge.reconcile.engine import ReconcileResult, SectionReconciler
from docmerge.reconcile.headings import HeadingKey, HeadingMode, StructuralParagraph
from docmerge.reconcile.serializer import dump_model

STRUCTURE_PREFIX = "resume-structure-"
REPORT_PREFIX = "resume-strict-report-"
OPTIMIZED_PREFIX = "optimized-resume-"


# ===================== BASIC DOCX HELPERS =====================


def load_document(src: Union[str, Path, bytes]) -> DocxDocument:
    """Open a .docx from a path or raw bytes."""
    try:
        if isinstance(src, bytes):
            return Document(BytesIO(src))
        return Document(str(src))
    except (PackageNotFoundError, zipfile.BadZipFile, KeyError, ValueError) as exc:
        raise MalformedInputError(f"Not a readable DOCX package: {src!r:.80}") from exc


def _text_nodes(para: DocxParagraph) -> list:
    return para._p.xpath(".//w:t")


def paragraph_text(para: DocxParagraph) -> str:
    # all w:t descendants, hyperlinks and smart tags included
    return "".join(t.text or "" for t in _text_nodes(para)).strip()


def paragraph_style_id(para: DocxParagraph) -> str:
    vals = para._p.xpath("./w:pPr/w:pStyle/@w:val")
    return str(vals[0]) if vals else ""


def paragraph_has_list(para: DocxParagraph) -> bool:
    return bool(para._p.xpath("./w:pPr/w:numPr"))


def read_paragraphs(document: DocxDocument) -> List[StructuralParagraph]:
    """Body-level paragraphs in document order (table cells are not visited)."""
    return [
        StructuralParagraph(
            index=i,
            text=paragraph_text(p),
            style_id=paragraph_style_id(p),
            has_list_marker=paragraph_has_list(p),
        )
        for i, p in enumerate(document.paragraphs)
    ]


def write_paragraph_text(para: DocxParagraph, text: str) -> bool:
    """
    Put `text` into the first text node and blank out the others, so the
    paragraph keeps its style, numbering and first-run formatting.
    Returns False if the paragraph has no text node to write into.
    """
    nodes = _text_nodes(para)
    if not nodes:
        return False
    first, rest = nodes[0], nodes[1:]
    first.text = text
    first.set(qn("xml:space"), "preserve")
    for t in rest:
        t.text = ""
    return True


def apply_edits(document: DocxDocument, edits: Mapping[int, str]) -> int:
    paragraphs = document.paragraphs
    written = 0
    for index, text in edits.items():
        if index < 0 or index >= len(paragraphs):
            raise MalformedInputError(
                f"Edit targets paragraph {index}, document has {len(paragraphs)}"
            )
        if write_paragraph_text(paragraphs[index], text):
            written += 1
    return written


def latest_file(directory: Path, matcher: Callable[[str], bool] = lambda _: True) -> Optional[Path]:
    if not directory.is_dir():
        return None
    files = [p for p in directory.iterdir() if p.is_file() and matcher(p.name)]
    if not files:
        return None
    return max(files, key=lambda p: p.stat().st_mtime)


def is_optimized_markdown(name: str) -> bool:
    return name.startswith(OPTIMIZED_PREFIX) and name.endswith(".md")


def run_timestamp(now: Optional[datetime] = None) -> str:
    # 2026-10-16T12:30:00.123Z -> 2026-10-16T12-30-00-123Z
    now = now or datetime.now(timezone.utc)
    iso = now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"
    return iso.replace(":", "-").replace(".", "-")


# ===================== EXPORT PIPELINE =====================


@dataclass(frozen=True)
class ExportArtifacts:
    source_docx: Path
    markdown: Path
    structure_json: Path
    report_json: Path
    output_docx: Path
    result: ReconcileResult


def export_optimized_docx(
    source_docx: Path,
    markdown_path: Path,
    output_dir: Path,
    *,
    mode: HeadingMode = "strict",
    protected_keys: Iterable[HeadingKey] = (),
    timestamp: Optional[str] = None,
) -> ExportArtifacts:
    """
    Rewrite the body of `source_docx` with the sections of `markdown_path`.

    The structure JSON is written before the document is touched, then the
    edit set is applied and the report and DOCX are saved next to it.
    """
    reconciler = SectionReconciler(mode=mode, protected_keys=protected_keys)

    document = load_document(source_docx)
    paragraphs = read_paragraphs(document)
    markdown = markdown_path.read_bytes()

    result = reconciler.run(paragraphs, markdown)

    ts = timestamp or run_timestamp()
    output_dir.mkdir(parents=True, exist_ok=True)
    structure_json = dump_model(result.structure, output_dir / f"{STRUCTURE_PREFIX}{ts}.json")

    apply_edits(document, result.edits)
    output_docx = output_dir / f"{OPTIMIZED_PREFIX}{ts}.docx"
    document.save(str(output_docx))

    report_json = dump_model(result.report, output_dir / f"{REPORT_PREFIX}{ts}.json")

    return ExportArtifacts(
        source_docx=source_docx,
        markdown=markdown_path,
        structure_json=structure_json,
        report_json=report_json,
        output_docx=output_docx,
        result=result,
    )
