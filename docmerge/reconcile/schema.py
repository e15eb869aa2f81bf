from __future__ import annotations

from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

# -----------------------------
# Type aliases
# -----------------------------
HeadingModeUsed = Literal["strict-style", "heuristic", "strict-fallback-heuristic"]


# -----------------------------
# Structure artifact
# -----------------------------
class ParagraphRecord(BaseModel):
    model_config = ConfigDict(extra="forbid")

    index: int = Field(..., ge=0)
    text: str
    style_id: str = ""
    has_list: bool = False
    is_heading: bool = False

    @model_validator(mode="after")
    def _list_is_never_heading(self) -> "ParagraphRecord":
        if self.has_list and self.is_heading:
            raise ValueError("list paragraphs cannot be headings")
        return self


class BlockSummary(BaseModel):
    model_config = ConfigDict(extra="forbid")

    key: str = Field(..., min_length=1)
    heading_text: str = ""
    content_slots: int = Field(..., ge=0)


class StructureRecord(BaseModel):
    model_config = ConfigDict(extra="forbid")

    schema_version: str = Field("1.0.0", description="SemVer of the structure schema")
    heading_mode_used: HeadingModeUsed
    headings_in_order: List[str] = Field(default_factory=list)
    structure: List[ParagraphRecord] = Field(default_factory=list)
    blocks: List[BlockSummary] = Field(default_factory=list)

    @model_validator(mode="after")
    def _validate_structure(self) -> "StructureRecord":
        for pos, p in enumerate(self.structure):
            if p.index != pos:
                raise ValueError("paragraph indices must be contiguous from 0")

        headings = [p.text for p in self.structure if p.is_heading]
        if headings != self.headings_in_order:
            raise ValueError("headings_in_order does not match structure")

        # root block + one block per heading
        if self.blocks and len(self.blocks) != len(headings) + 1:
            raise ValueError("expected one block per heading plus the root block")
        return self


# -----------------------------
# Reconciliation report artifact
# -----------------------------
class SectionOutcomeRecord(BaseModel):
    model_config = ConfigDict(extra="forbid")

    heading: str = ""
    key: str = Field(..., min_length=1)
    protected: bool
    slots: int = Field(..., ge=0)
    source_lines: int = Field(..., ge=0)
    replaced: int = Field(..., ge=0)
    overflow_dropped: int = Field(..., ge=0)

    @model_validator(mode="after")
    def _check_accounting(self) -> "SectionOutcomeRecord":
        if self.protected:
            if self.replaced != 0:
                raise ValueError("protected sections cannot have replacements")
            if self.overflow_dropped != self.source_lines:
                raise ValueError("protected sections drop every source line")
            return self
        if self.replaced != min(self.slots, self.source_lines):
            raise ValueError("replaced must equal min(slots, source_lines)")
        if self.overflow_dropped != max(0, self.source_lines - self.slots):
            raise ValueError("overflow_dropped must equal source_lines - slots")
        return self


class ReconcileReport(BaseModel):
    model_config = ConfigDict(extra="forbid")

    schema_version: str = Field("1.0.0", description="SemVer of the report schema")
    strict_mode: bool
    heading_mode_used: HeadingModeUsed
    protected_headings: List[str] = Field(default_factory=list)
    replaced: int = Field(..., ge=0)
    missing_sections: List[str] = Field(default_factory=list)
    sections: List[SectionOutcomeRecord] = Field(default_factory=list)

    @model_validator(mode="after")
    def _validate_totals(self) -> "ReconcileReport":
        if self.replaced != sum(s.replaced for s in self.sections):
            raise ValueError("replaced must equal the sum over sections")
        if len(set(self.missing_sections)) != len(self.missing_sections):
            raise ValueError("missing_sections must be de-duplicated")
        if not self.strict_mode and self.heading_mode_used != "heuristic":
            raise ValueError("non-strict runs always use the heuristic mode")
        return self


# -----------------------------
# JSON Schema export
# -----------------------------
def export_json_schema() -> dict:
    """Export the JSON Schema for the report contract (Pydantic v2)."""
    return ReconcileReport.model_json_schema()
