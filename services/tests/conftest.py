"""Pytest configuration for the services test suite."""

from __future__ import annotations

import sys
from collections.abc import Iterator
from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient


def _ensure_src_on_path() -> None:
    """Add the services src directory to ``sys.path`` for imports."""

    src_dir = Path(__file__).resolve().parent.parent / "src"
    src_path = str(src_dir)
    if src_dir.is_dir() and src_path not in sys.path:
        sys.path.insert(0, src_path)


_ensure_src_on_path()

from inkwell.services.config import ServiceSettings  # noqa: E402
from inkwell.services.settings import Settings  # noqa: E402


@pytest.fixture()
def service_settings(tmp_path: Path) -> ServiceSettings:
    """Service settings rooted at a temporary project directory with no settle delay."""

    return ServiceSettings(project_base_dir=tmp_path, apply_settle_delay_ms=0)


@pytest.fixture()
def backend_settings() -> Settings:
    """Backend settings pinned to offline mode regardless of the environment."""

    return Settings(_env_file=None, provider="offline")


@pytest.fixture()
def service_app(service_settings: ServiceSettings, backend_settings: Settings) -> Iterator[FastAPI]:
    """Provide the FastAPI application with a temporary project root."""

    from inkwell.services.app import create_app

    app = create_app(service_settings, backend_settings=backend_settings)
    yield app
    app.dependency_overrides.clear()


@pytest.fixture()
def test_client(service_app: FastAPI) -> Iterator[TestClient]:
    """Yield a test client bound to the shared FastAPI application."""

    with TestClient(service_app) as client:
        yield client
