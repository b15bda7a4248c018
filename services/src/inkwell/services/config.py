"""Service configuration utilities."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, ClassVar, cast

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ServiceSettings(BaseModel):
    """Runtime configuration for the FastAPI review service."""

    ENV_PREFIX: ClassVar[str] = "INKWELL_"
    ENV_FILE: ClassVar[str | None] = ".env"
    ENV_FILE_ENCODING: ClassVar[str] = "utf-8"

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="ignore")

    project_base_dir: Path = Field(
        default_factory=Path.cwd,
        description="Root directory that document paths are resolved against.",
    )
    apply_settle_delay_ms: int = Field(
        default=50,
        ge=0,
        le=5_000,
        description="Pause in milliseconds between consecutive edits of a batch apply.",
    )
    review_ledger_capacity: int = Field(
        default=128,
        ge=1,
        description="Number of recent reviews kept for suggestion lookup.",
    )
    max_request_body_bytes: int = Field(
        default=512 * 1024,
        ge=16 * 1024,
        description="Maximum allowed size in bytes for incoming request bodies.",
    )

    @field_validator("project_base_dir")
    @classmethod
    def _ensure_project_dir_exists(cls, value: Path) -> Path:
        """Validate that the configured project directory exists."""

        if not value.exists():
            raise ValueError(f"Project base directory does not exist: {value}")
        if not value.is_dir():
            raise ValueError(f"Project base directory is not a directory: {value}")
        return value

    @property
    def apply_settle_delay(self) -> float:
        return self.apply_settle_delay_ms / 1000.0

    @staticmethod
    def _parse_env_file(path: Path, encoding: str) -> dict[str, str]:
        """Parse an environment file supporting `export` and quoted values."""

        parsed: dict[str, str] = {}

        for raw_line in path.read_text(encoding=encoding).splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#"):
                continue
            if line.startswith("export "):
                line = line[len("export ") :].strip()

            if "=" not in line:
                continue

            key, raw_value = line.split("=", 1)
            key = key.strip()
            value = raw_value.strip()

            if len(value) >= 2 and value[0] == value[-1] and value[0] in {'"', "'"}:
                value = value[1:-1]

            parsed[key] = value

        return parsed

    @classmethod
    def from_environment(cls) -> "ServiceSettings":
        """Load settings from environment variables or a `.env` file."""

        file_values: dict[str, str] = {}
        if cls.ENV_FILE:
            env_file_path = Path(cls.ENV_FILE)
            if not env_file_path.is_absolute():
                env_file_path = Path.cwd() / env_file_path
            if env_file_path.exists():
                file_values = cls._parse_env_file(env_file_path, cls.ENV_FILE_ENCODING)

        overrides: dict[str, str] = {}
        for field_name in cls.model_fields:
            env_key = f"{cls.ENV_PREFIX}{field_name.upper()}"
            if env_key in os.environ:
                overrides[field_name] = os.environ[env_key]
            elif env_key in file_values:
                overrides[field_name] = file_values[env_key]

        return cls(**cast(dict[str, Any], overrides))


__all__: list[str] = ["ServiceSettings"]
