"""
reconciler.py

Assigns markdown section lines to DOCX content slots, block by block:
- protected blocks are never edited
- lines are zipped positionally onto the block's content slots
- surplus slots keep their old text, surplus lines are counted and dropped
- blocks whose heading has no markdown section are reported as missing
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Sequence, Tuple

from docmerge.errors import ConfigurationError
from docmerge.reconcile.blocks import SectionBlock
from docmerge.reconcile.headings import HeadingKey
from docmerge.reconcile.markdown import MarkdownSectionMap

Edits = Dict[int, str]


@dataclass(frozen=True)
class ReconciliationOutcome:
    heading: str
    key: HeadingKey
    protected: bool
    slots: int
    source_lines: int
    replaced: int
    overflow_dropped: int


@dataclass
class ReconciliationReport:
    replaced: int = 0
    missing_sections: List[str] = field(default_factory=list)
    outcomes: List[ReconciliationOutcome] = field(default_factory=list)


def check_protected_keys(keys: Iterable[HeadingKey]) -> FrozenSet[HeadingKey]:
    out = set()
    for k in keys or ():
        if not isinstance(k, HeadingKey):
            raise ConfigurationError(
                f"Protected headings must be HeadingKey values, got {k!r}"
            )
        if k.is_root or HeadingKey.from_text(k.value) != k:
            raise ConfigurationError(
                f"Protected heading {k.value!r} is not a normalized heading key; "
                "build it with HeadingKey.from_text"
            )
        out.add(k)
    return frozenset(out)


def reconcile(
    blocks: Sequence[SectionBlock],
    sections: MarkdownSectionMap,
    protected_keys: Iterable[HeadingKey] = (),
) -> Tuple[Edits, ReconciliationReport]:
    """
    Return the edit set (paragraph index -> new text) and the per-block report.

    Lines are consumed through one cursor per key: if two blocks share a key,
    the later block continues with the lines the earlier one did not take.
    Lines handed on that way belong to the later block's outcome, so only the
    last block of a key reports overflow and the summed overflow is exactly
    what was discarded.
    """
    protected = check_protected_keys(protected_keys)
    edits: Edits = {}
    report = ReconciliationReport()
    cursor: Dict[HeadingKey, int] = {}
    last_block_of_key = {block.key: i for i, block in enumerate(blocks)}

    for i, block in enumerate(blocks):
        slots = block.content_slots
        has_section = block.key in sections
        if not has_section and not block.key.is_root:
            missing = block.heading_text or block.key.value
            if missing not in report.missing_sections:
                report.missing_sections.append(missing)

        start = cursor.get(block.key, 0)
        remaining = sections.get(block.key, [])[start:]
        hands_on = last_block_of_key[block.key] != i

        if block.key in protected:
            # a protected block takes nothing, its lines stay for a later block
            taken = 0 if hands_on else len(remaining)
            report.outcomes.append(
                ReconciliationOutcome(
                    heading=block.heading_text,
                    key=block.key,
                    protected=True,
                    slots=len(slots),
                    source_lines=taken,
                    replaced=0,
                    overflow_dropped=taken,
                )
            )
            continue

        limit = min(len(slots), len(remaining))
        for slot, line in zip(slots[:limit], remaining[:limit]):
            edits[slot] = line
        cursor[block.key] = start + limit
        report.replaced += limit

        source_lines = limit if hands_on else len(remaining)
        report.outcomes.append(
            ReconciliationOutcome(
                heading=block.heading_text,
                key=block.key,
                protected=False,
                slots=len(slots),
                source_lines=source_lines,
                replaced=limit,
                overflow_dropped=source_lines - limit,
            )
        )

    return edits, report
