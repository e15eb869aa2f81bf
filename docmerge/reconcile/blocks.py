from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from docmerge.reconcile.headings import (
    HeadingClassification,
    HeadingKey,
    StructuralParagraph,
)


@dataclass
class SectionBlock:
    key: HeadingKey
    heading_text: str = ""
    heading_index: Optional[int] = None  # None for the root block
    content_slots: List[int] = field(default_factory=list)

    @property
    def is_root(self) -> bool:
        return self.heading_index is None


def build_blocks(
    paragraphs: Sequence[StructuralParagraph],
    classification: HeadingClassification,
) -> List[SectionBlock]:
    """
    Partition the paragraph sequence into heading-anchored blocks.

    The root block (content before the first heading) is always emitted
    first, even when empty. Blank paragraphs are never content slots, so
    spacer/layout paragraphs stay untouched whatever the section outcome.
    """
    blocks: List[SectionBlock] = []
    current = SectionBlock(key=HeadingKey.ROOT)

    for p in paragraphs:
        if classification.is_heading(p.index):
            blocks.append(current)
            current = SectionBlock(
                key=HeadingKey.from_text(p.text),
                heading_text=p.text,
                heading_index=p.index,
            )
            continue
        if p.text:
            current.content_slots.append(p.index)

    blocks.append(current)
    return blocks
