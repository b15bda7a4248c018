"""Tests for service configuration loading."""

from __future__ import annotations

import textwrap

import pytest

from inkwell.services.config import ServiceSettings


def test_from_environment_supports_export_and_quotes(tmp_path, monkeypatch):
    """Ensure `.env` parsing honours export prefixes and quoted values with spaces."""

    project_dir = tmp_path / "Projects" / "My Novel"
    project_dir.mkdir(parents=True)

    env_content = (
        textwrap.dedent(
            """
        # comment line
          export INKWELL_PROJECT_BASE_DIR="{}"
        INKWELL_APPLY_SETTLE_DELAY_MS='120'
        """
        )
        .strip()
        .format(project_dir)
    )

    (tmp_path / ".env").write_text(env_content, encoding="utf-8")

    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("INKWELL_PROJECT_BASE_DIR", raising=False)
    monkeypatch.delenv("INKWELL_APPLY_SETTLE_DELAY_MS", raising=False)

    settings = ServiceSettings.from_environment()

    assert settings.project_base_dir == project_dir
    assert settings.apply_settle_delay == pytest.approx(0.12)


def test_environment_overrides_env_file(tmp_path, monkeypatch):
    (tmp_path / ".env").write_text("INKWELL_REVIEW_LEDGER_CAPACITY=4\n", encoding="utf-8")

    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("INKWELL_REVIEW_LEDGER_CAPACITY", "9")
    monkeypatch.delenv("INKWELL_PROJECT_BASE_DIR", raising=False)

    settings = ServiceSettings.from_environment()

    assert settings.review_ledger_capacity == 9
    assert settings.project_base_dir.resolve() == tmp_path.resolve()


def test_from_environment_validates_project_dir(tmp_path, monkeypatch):
    """An invalid project directory raises a validation error."""

    missing_dir = tmp_path / "missing space"
    env_content = f'INKWELL_PROJECT_BASE_DIR="{missing_dir}"\n'
    (tmp_path / ".env").write_text(env_content, encoding="utf-8")

    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("INKWELL_PROJECT_BASE_DIR", raising=False)

    with pytest.raises(ValueError):
        ServiceSettings.from_environment()


def test_project_dir_must_be_a_directory(tmp_path):
    target = tmp_path / "file.txt"
    target.write_text("", encoding="utf-8")

    with pytest.raises(ValueError):
        ServiceSettings(project_base_dir=target)


def test_body_limit_has_a_floor(tmp_path):
    with pytest.raises(ValueError):
        ServiceSettings(project_base_dir=tmp_path, max_request_body_bytes=1024)
