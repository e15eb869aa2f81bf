from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable, Sequence

from pydantic import BaseModel

from docmerge.reconcile.blocks import SectionBlock
from docmerge.reconcile.headings import (
    HeadingClassification,
    HeadingKey,
    StructuralParagraph,
)
from docmerge.reconcile.reconciler import ReconciliationReport
from docmerge.reconcile.schema import (
    BlockSummary,
    ParagraphRecord,
    ReconcileReport,
    SectionOutcomeRecord,
    StructureRecord,
)


def build_structure_record(
    paragraphs: Sequence[StructuralParagraph],
    classification: HeadingClassification,
    blocks: Sequence[SectionBlock],
) -> StructureRecord:
    """Read-only snapshot of the classified sequence, taken before any edit is applied."""
    return StructureRecord(
        heading_mode_used=classification.mode_used,
        headings_in_order=classification.headings_in_order(paragraphs),
        structure=[
            ParagraphRecord(
                index=p.index,
                text=p.text,
                style_id=p.style_id,
                has_list=p.has_list_marker,
                is_heading=classification.is_heading(p.index),
            )
            for p in paragraphs
        ],
        blocks=[
            BlockSummary(
                key=b.key.value,
                heading_text=b.heading_text,
                content_slots=len(b.content_slots),
            )
            for b in blocks
        ],
    )


def build_report_record(
    report: ReconciliationReport,
    *,
    strict_mode: bool,
    classification: HeadingClassification,
    protected_keys: Iterable[HeadingKey],
) -> ReconcileReport:
    return ReconcileReport(
        strict_mode=strict_mode,
        heading_mode_used=classification.mode_used,
        protected_headings=sorted(k.value for k in protected_keys),
        replaced=report.replaced,
        missing_sections=list(report.missing_sections),
        sections=[
            SectionOutcomeRecord(
                heading=o.heading,
                key=o.key.value,
                protected=o.protected,
                slots=o.slots,
                source_lines=o.source_lines,
                replaced=o.replaced,
                overflow_dropped=o.overflow_dropped,
            )
            for o in report.outcomes
        ],
    )


def dump_model(model: BaseModel, out_path: Path) -> Path:
    # deterministic JSON
    json_text = json.dumps(
        model.model_dump(exclude_none=True),
        indent=2,
        sort_keys=True,
        ensure_ascii=False,
    )
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(json_text, encoding="utf-8")
    return out_path
