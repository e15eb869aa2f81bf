import json
import os

import pytest
from docx import Document
from docx.oxml import OxmlElement
from docx.oxml.ns import qn

from docmerge.document.docx_io import (
    apply_edits,
    export_optimized_docx,
    is_optimized_markdown,
    latest_file,
    load_document,
    read_paragraphs,
    run_timestamp,
    write_paragraph_text,
)
from docmerge.errors import MalformedInputError
from docmerge.reconcile.headings import HeadingKey

# --- Fixture builders --------------------------------------------------------


def _mark_as_list(paragraph):
    num_pr = OxmlElement("w:numPr")
    ilvl = OxmlElement("w:ilvl")
    ilvl.set(qn("w:val"), "0")
    num_id = OxmlElement("w:numId")
    num_id.set(qn("w:val"), "1")
    num_pr.append(ilvl)
    num_pr.append(num_id)
    paragraph._p.get_or_add_pPr().append(num_pr)


def _resume_docx(path):
    doc = Document()
    doc.add_heading("Jane Doe", level=0)  # Title
    doc.add_paragraph("jane@example.com")
    doc.add_heading("Summary", level=1)
    p = doc.add_paragraph()
    p.add_run("Old summary ").bold = True
    p.add_run("split across runs")
    doc.add_paragraph("")
    doc.add_heading("Experience", level=1)
    for text in ("Old bullet one", "Old bullet two"):
        _mark_as_list(doc.add_paragraph(text))
    doc.add_heading("Education", level=1)
    doc.add_paragraph("BSc Computer Science")
    doc.save(str(path))
    return path


MARKDOWN = """# Jane Doe
## Summary
Backend engineer focused on **data** pipelines.
## Experience
- Built ETL jobs
- Cut costs by 30%
- Mentored two juniors
## Education
MSc Data Science
"""


def _texts(path):
    return [p.text for p in Document(str(path)).paragraphs]


# --- Tests -------------------------------------------------------------------


def test_read_paragraphs_extracts_style_and_list(tmp_path):
    paras = read_paragraphs(load_document(_resume_docx(tmp_path / "cv.docx")))
    by_text = {p.text: p for p in paras}

    assert [p.index for p in paras] == list(range(len(paras)))
    assert by_text["Jane Doe"].style_id == "Title"
    assert by_text["Summary"].style_id == "Heading1"
    assert by_text["Old summary split across runs"].style_id == ""
    assert by_text["Old bullet one"].has_list_marker
    assert not by_text["Summary"].has_list_marker
    assert "" in by_text  # spacer paragraph kept with empty text


def test_load_document_from_bytes(tmp_path):
    path = _resume_docx(tmp_path / "cv.docx")
    from_bytes = read_paragraphs(load_document(path.read_bytes()))
    assert from_bytes == read_paragraphs(load_document(path))


def test_load_document_rejects_non_docx(tmp_path):
    bogus = tmp_path / "not.docx"
    bogus.write_text("plain text", encoding="utf-8")
    with pytest.raises(MalformedInputError):
        load_document(bogus)


def test_write_paragraph_text_first_run_only():
    doc = Document()
    p = doc.add_paragraph()
    p.add_run("one ").bold = True
    p.add_run("two ")
    p.add_run("three")

    assert write_paragraph_text(p, "  new text")
    assert [r.text for r in p.runs] == ["  new text", "", ""]
    assert p.runs[0].bold is True
    assert p.runs[0]._r.xpath("./w:t")[0].get(qn("xml:space")) == "preserve"


def test_write_paragraph_text_without_text_node():
    doc = Document()
    p = doc.add_paragraph()
    assert not write_paragraph_text(p, "x")
    assert p.text == ""


def test_apply_edits_rejects_out_of_range():
    doc = Document()
    doc.add_paragraph("only")
    with pytest.raises(MalformedInputError):
        apply_edits(doc, {5: "x"})


def test_export_pipeline_end_to_end(tmp_path):
    src = _resume_docx(tmp_path / "cv.docx")
    md = tmp_path / "optimized-resume-1.md"
    md.write_text(MARKDOWN, encoding="utf-8")
    out = tmp_path / "out"

    art = export_optimized_docx(
        src,
        md,
        out,
        protected_keys=[HeadingKey.from_text("Education")],
        timestamp="2026-01-01T00-00-00-000Z",
    )

    assert art.output_docx.name == "optimized-resume-2026-01-01T00-00-00-000Z.docx"
    assert art.structure_json.name == "resume-structure-2026-01-01T00-00-00-000Z.json"
    assert art.report_json.name == "resume-strict-report-2026-01-01T00-00-00-000Z.json"

    texts = _texts(art.output_docx)
    assert texts == [
        "Jane Doe",
        "jane@example.com",
        "Summary",
        "Backend engineer focused on data pipelines.",
        "",
        "Experience",
        "Built ETL jobs",
        "Cut costs by 30%",
        "Education",
        "BSc Computer Science",  # protected
    ]

    # the source file is left alone
    assert _texts(src)[3] == "Old summary split across runs"

    report = json.loads(art.report_json.read_text(encoding="utf-8"))
    assert report["heading_mode_used"] == "strict-style"
    assert report["replaced"] == 3
    assert report["protected_headings"] == ["education"]
    assert report["missing_sections"] == []
    experience = next(s for s in report["sections"] if s["key"] == "experience")
    assert experience["overflow_dropped"] == 1

    structure = json.loads(art.structure_json.read_text(encoding="utf-8"))
    assert structure["headings_in_order"] == ["Jane Doe", "Summary", "Experience", "Education"]


def test_edited_paragraph_keeps_first_run_formatting(tmp_path):
    src = _resume_docx(tmp_path / "cv.docx")
    md = tmp_path / "optimized-resume-1.md"
    md.write_text(MARKDOWN, encoding="utf-8")

    art = export_optimized_docx(src, md, tmp_path, timestamp="t")
    summary = Document(str(art.output_docx)).paragraphs[3]
    assert [r.text for r in summary.runs] == ["Backend engineer focused on data pipelines.", ""]
    assert summary.runs[0].bold is True


def test_latest_file_picks_newest_match(tmp_path):
    older = tmp_path / "optimized-resume-a.md"
    newer = tmp_path / "optimized-resume-b.md"
    other = tmp_path / "notes.md"
    for i, p in enumerate((older, newer, other)):
        p.write_text("x", encoding="utf-8")
        os.utime(p, (1_000_000 + i, 1_000_000 + i))

    assert latest_file(tmp_path, is_optimized_markdown) == newer
    assert latest_file(tmp_path) == other
    assert latest_file(tmp_path / "missing") is None
    assert latest_file(tmp_path, lambda name: name.endswith(".docx")) is None


def test_run_timestamp_has_no_colons_or_dots():
    ts = run_timestamp()
    assert ":" not in ts and "." not in ts
    assert ts.endswith("Z")
