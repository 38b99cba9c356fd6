"""Interpreter configuration loaded from YAML.

Search order (first found wins):
- explicit path passed to resolve_config()
- .glyph/config.yaml in the start directory or any parent
- glyph.yaml in the start directory or any parent
- built-in defaults
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from glyph.core.errors import GlyphError

CONFIG_FILENAMES = (Path(".glyph") / "config.yaml", Path("glyph.yaml"))


class ConfigError(GlyphError):
    """Configuration file is missing, malformed, or invalid."""

    pass


class GlyphConfig(BaseModel):
    """Settings for parsing, validating and running programs."""

    model_config = ConfigDict(extra="forbid")

    validate_before_run: bool = True  # Refuse to execute programs with validation errors
    warnings_as_errors: bool = False
    print_format: str = "📤 PRINT: {value}"
    output_format: str = "📤 OUTPUT: {value}"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "WARNING"

    @field_validator("print_format", "output_format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        """Format strings must take exactly the `{value}` placeholder."""
        try:
            v.format(value="")
        except (KeyError, IndexError, ValueError) as e:
            raise ValueError(f"Invalid format string {v!r}: only {{value}} is allowed ({e})")
        if "{value}" not in v:
            raise ValueError(f"Format string {v!r} must contain {{value}}")
        return v


def load_config(path: str | Path) -> GlyphConfig:
    """Load configuration from a YAML file.

    Raises:
        ConfigError: If the file can't be read or doesn't match the schema.
    """
    config_path = Path(path)
    try:
        with open(config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read config file '{config_path}': {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in '{config_path}': {e}") from e

    if data is None:
        return GlyphConfig()
    if not isinstance(data, dict):
        raise ConfigError(
            f"Invalid config in '{config_path}': expected a mapping, got {type(data).__name__}"
        )

    try:
        return GlyphConfig(**data)
    except ValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(x) for x in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigError(f"Invalid config in '{config_path}': {details}") from e


def find_config(start: str | Path | None = None) -> Path | None:
    """Find the nearest config file from start (default: cwd) upwards."""
    directory = Path(start or Path.cwd()).resolve()
    for candidate_dir in (directory, *directory.parents):
        for name in CONFIG_FILENAMES:
            candidate = candidate_dir / name
            if candidate.is_file():
                return candidate
    return None


def resolve_config(path: str | Path | None = None, start: str | Path | None = None) -> GlyphConfig:
    """Load the explicit config, the nearest discovered one, or defaults."""
    if path is not None:
        return load_config(path)
    found = find_config(start)
    return load_config(found) if found else GlyphConfig()
