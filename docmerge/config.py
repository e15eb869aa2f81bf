from __future__ import annotations

from pathlib import Path
from typing import Annotated, List

from pydantic import AliasChoices, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from docmerge.errors import ConfigurationError
from docmerge.reconcile.headings import HeadingKey, HeadingMode


class Settings(BaseSettings):
    """
    Central configuration for paths & reconciliation options.
    """

    model_config = SettingsConfigDict(
        env_prefix="",  # we provide explicit env names per field below
        extra="ignore",
    )

    project_root: Path = Field(
        default_factory=lambda: Path(__file__).resolve().parents[1]
    )

    uploads_dir: Path = Field(
        default=Path("data") / "uploads",
        validation_alias=AliasChoices("DOCMERGE_UPLOADS", "uploads_dir"),
    )
    output_dir: Path = Field(
        default=Path("output"),
        validation_alias=AliasChoices("DOCMERGE_OUTPUT", "output_dir"),
    )

    strict_mode: bool = Field(
        default=True, validation_alias=AliasChoices("STRICT_MODE", "strict_mode")
    )
    # "Summary|Education" in the environment; stored normalized
    protected_headings: Annotated[List[str], NoDecode] = Field(
        default_factory=list,
        validation_alias=AliasChoices("PROTECTED_HEADINGS", "protected_headings"),
    )

    @field_validator("uploads_dir", "output_dir", mode="before")
    @classmethod
    def _coerce_path(cls, v):
        # Accept strings from env and coerce; allow Path passthrough.
        if isinstance(v, str):
            return Path(v.strip()).expanduser()
        if isinstance(v, Path):
            return v.expanduser()
        return v

    @field_validator("protected_headings", mode="before")
    @classmethod
    def _split_headings(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            v = v.split("|")
        return [s.strip() for s in v if s and s.strip()]

    @field_validator("protected_headings", mode="after")
    @classmethod
    def _normalize_headings(cls, v: List[str]) -> List[str]:
        keys = []
        for raw in v:
            key = HeadingKey.from_text(raw)
            if key.is_root:
                raise ValueError(f"protected heading {raw!r} has no letters or digits")
            if key.value not in keys:
                keys.append(key.value)
        return keys

    @property
    def heading_mode(self) -> HeadingMode:
        return "strict" if self.strict_mode else "heuristic"

    @property
    def protected_keys(self) -> List[HeadingKey]:
        return [HeadingKey.from_text(v) for v in self.protected_headings]

    def model_post_init(self, __context) -> None:
        # Resolve relative paths against project_root
        if not self.uploads_dir.is_absolute():
            self.uploads_dir = (self.project_root / self.uploads_dir).resolve()
        if not self.output_dir.is_absolute():
            self.output_dir = (self.project_root / self.output_dir).resolve()

        # Ensure output dir exists
        self.output_dir.mkdir(parents=True, exist_ok=True)


def load_settings(**overrides) -> Settings:
    try:
        return Settings(**overrides)
    except ValidationError as exc:
        raise ConfigurationError(str(exc)) from exc


# Lazy singleton
_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    global _settings
    _settings = None
