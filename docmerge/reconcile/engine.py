from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Sequence, Union

from docmerge.errors import MalformedInputError
from docmerge.reconcile.blocks import SectionBlock, build_blocks
from docmerge.reconcile.headings import (
    HeadingClassification,
    HeadingKey,
    HeadingMode,
    StructuralParagraph,
    check_mode,
    classify_sequence,
)
from docmerge.reconcile.markdown import MarkdownSectionMap, parse_md_sections
from docmerge.reconcile.reconciler import Edits, check_protected_keys, reconcile
from docmerge.reconcile.schema import ReconcileReport, StructureRecord
from docmerge.reconcile.serializer import build_report_record, build_structure_record


@dataclass(frozen=True)
class ReconcileResult:
    classification: HeadingClassification
    blocks: List[SectionBlock]
    sections: MarkdownSectionMap
    edits: Edits
    structure: StructureRecord
    report: ReconcileReport


def _check_paragraphs(paragraphs: Iterable[StructuralParagraph]) -> List[StructuralParagraph]:
    paras = list(paragraphs)
    for pos, p in enumerate(paras):
        if not isinstance(p, StructuralParagraph):
            raise MalformedInputError(
                f"Paragraph {pos} is {type(p).__name__}, expected StructuralParagraph"
            )
        if p.index != pos:
            raise MalformedInputError(
                f"Paragraph indices must be contiguous from 0: position {pos} has index {p.index}"
            )
    return paras


class SectionReconciler:
    """
    High-level reconciliation run.
    Usage:
        rec = SectionReconciler(mode="strict", protected_keys=[HeadingKey.from_text("Education")])
        result = rec.run(paragraphs, markdown_text)
        result.edits  # {paragraph_index: new_text}
    """

    def __init__(
        self,
        mode: HeadingMode = "strict",
        protected_keys: Iterable[HeadingKey] = (),
    ):
        # configuration errors surface here, before any classification work
        self.mode = check_mode(mode)
        self.protected_keys = check_protected_keys(protected_keys)

    @property
    def strict_mode(self) -> bool:
        return self.mode == "strict"

    def run(
        self,
        paragraphs: Sequence[StructuralParagraph],
        markdown: Union[str, bytes],
    ) -> ReconcileResult:
        paras = _check_paragraphs(paragraphs)
        sections = parse_md_sections(markdown)

        # 1) Classify (with strict-mode fallback)
        classification = classify_sequence(paras, self.mode)

        # 2) Blocks & audit snapshot
        blocks = build_blocks(paras, classification)
        structure = build_structure_record(paras, classification, blocks)

        # 3) Assign lines to slots
        edits, report = reconcile(blocks, sections, self.protected_keys)

        return ReconcileResult(
            classification=classification,
            blocks=blocks,
            sections=sections,
            edits=edits,
            structure=structure,
            report=build_report_record(
                report,
                strict_mode=self.strict_mode,
                classification=classification,
                protected_keys=self.protected_keys,
            ),
        )
