"""Tests for configuration and output formatting."""

import io
import json

from conftest import make_repo
from trotd.application.render import format_count, format_motd_line, render_json, render_motd
from trotd.domain.repository import LanguageFilter
from trotd.infrastructure.settings import Settings, normalize_provider_ids


def test_from_env_reads_variables(monkeypatch, tmp_path):
    monkeypatch.setenv("TROTD_PROVIDERS", "gh,ge")
    monkeypatch.setenv("TROTD_MAX_PER_PROVIDER", "5")
    monkeypatch.setenv("TROTD_GITLAB_MAX", "2")
    monkeypatch.setenv("TROTD_LANGUAGES", "Rust, Go")
    monkeypatch.setenv("TROTD_ASCII_ONLY", "true")
    monkeypatch.setenv("TROTD_GITHUB_TIMEOUT_SECS", "12")
    monkeypatch.setenv("TROTD_CACHE_DIR", str(tmp_path))
    monkeypatch.delenv("TROTD_GITHUB_TOKEN", raising=False)
    monkeypatch.setenv("GITHUB_TOKEN", "fallback-token")

    settings = Settings.from_env(env_file=str(tmp_path / "missing.env"))

    assert settings.providers == ["github", "gitea"]
    assert settings.max_entries("github") == 5
    assert settings.max_entries("gitlab") == 2
    assert settings.language_filter == LanguageFilter(("rust", "go"))
    assert settings.ascii_only
    assert settings.provider_timeout("github") == 12
    assert settings.provider_timeout("gitea") == 6
    assert settings.github_token == "fallback-token"
    assert settings.cache_dir == tmp_path


def test_invalid_integer_falls_back_to_default(monkeypatch, tmp_path):
    monkeypatch.setenv("TROTD_MAX_PER_PROVIDER", "lots")

    assert Settings.from_env(env_file=str(tmp_path / "missing.env")).max_per_provider == 3


def test_provider_aliases_are_normalized():
    assert normalize_provider_ids(["gh", "GL", "github", "ge"]) == ["github", "gitlab", "gitea"]


def test_language_filter_semantics():
    assert LanguageFilter().matches(None)
    assert LanguageFilter.from_list(["Rust"]).matches("rust")
    assert not LanguageFilter.from_list(["Rust"]).matches(None)


def test_motd_line_contents():
    repo = make_repo("owner/repo", stars_total=1500, stars_today=20, language="Rust").with_starred(True)

    line = format_motd_line(repo)

    assert line.startswith("[GH] owner/repo")
    assert "1.5k" in line
    assert "+20 today" in line
    assert "[starred]" in line


def test_render_motd_handles_empty_list():
    out = io.StringIO()
    render_motd([], out)

    assert "No trending repositories" in out.getvalue()


def test_render_json_is_parseable():
    out = io.StringIO()
    render_json([make_repo("owner/repo")], out)

    data = json.loads(out.getvalue())
    assert data[0]["name"] == "owner/repo"
    assert data[0]["is_starred"] is False


def test_format_count():
    assert format_count(999) == "999"
    assert format_count(12345) == "12.3k"
