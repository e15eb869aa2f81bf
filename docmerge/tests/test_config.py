import pytest

from docmerge.config import Settings, get_settings, load_settings, reset_settings
from docmerge.errors import ConfigurationError
from docmerge.reconcile.headings import HeadingKey


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("DOCMERGE_UPLOADS", "DOCMERGE_OUTPUT", "STRICT_MODE", "PROTECTED_HEADINGS"):
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield
    reset_settings()


def test_env_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("DOCMERGE_OUTPUT", str(tmp_path / "out"))
    monkeypatch.setenv("DOCMERGE_UPLOADS", str(tmp_path / "up"))
    monkeypatch.setenv("STRICT_MODE", "false")
    monkeypatch.setenv("PROTECTED_HEADINGS", "Summary | EDUCATION:||summary")

    cfg = Settings()
    assert cfg.output_dir == tmp_path / "out"
    assert cfg.output_dir.is_dir()
    assert cfg.uploads_dir == tmp_path / "up"
    assert cfg.heading_mode == "heuristic"
    assert cfg.protected_headings == ["summary", "education"]
    assert cfg.protected_keys == [
        HeadingKey.from_text("summary"),
        HeadingKey.from_text("education"),
    ]


def test_defaults_resolve_against_project_root(tmp_path):
    cfg = Settings(project_root=tmp_path)
    assert cfg.strict_mode is True
    assert cfg.heading_mode == "strict"
    assert cfg.protected_headings == []
    assert cfg.output_dir == (tmp_path / "output").resolve()
    assert cfg.uploads_dir == (tmp_path / "data" / "uploads").resolve()


def test_kwargs_accept_lists(tmp_path):
    cfg = load_settings(project_root=tmp_path, protected_headings=["Work History"])
    assert cfg.protected_headings == ["work history"]


def test_heading_without_letters_is_configuration_error(tmp_path):
    with pytest.raises(ConfigurationError):
        load_settings(project_root=tmp_path, protected_headings=["***"])


def test_bad_strict_flag_is_configuration_error(monkeypatch, tmp_path):
    monkeypatch.setenv("STRICT_MODE", "sometimes")
    with pytest.raises(ConfigurationError):
        load_settings(project_root=tmp_path)


def test_get_settings_is_cached(monkeypatch, tmp_path):
    monkeypatch.setenv("DOCMERGE_OUTPUT", str(tmp_path))
    assert get_settings() is get_settings()
