"""Unified configuration loaded from .folio.toml, env vars, and CLI flags.

Loading order: defaults → TOML file → env vars → CLI flags.
"""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from folio.models import HeaderFormat, ValidationOptions

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".folio.toml"
CONFIG_SEARCH_PATHS = [
    Path("."),
]
GLOBAL_CONFIG = Path.home() / ".config" / "folio" / "config.toml"

_TRUE_VALUES = ("true", "1", "yes", "on")


class ContentSectionConfig(BaseModel):
    """[content] section."""

    directory: str = "content"
    static_dir: str = "static"
    extensions: list[str] = Field(default_factory=lambda: [".md", ".markdown"])

    @field_validator("extensions")
    @classmethod
    def _dotted(cls, value: list[str]) -> list[str]:
        return [ext if ext.startswith(".") else f".{ext}" for ext in value]


class BuildSectionConfig(BaseModel):
    """[build] section."""

    include_drafts: bool = False
    include_future: bool = False


class ValidateSectionConfig(BaseModel):
    """[validate] section."""

    check_images: bool = False
    warn_duplicate_labels: bool = True
    strict: bool = False


class OutputSectionConfig(BaseModel):
    """[output] section."""

    directory: str = "public"
    format: str = "markdown"


class NewSectionConfig(BaseModel):
    """[new] section: defaults for scaffolded documents."""

    section: str = "posts"
    header_format: HeaderFormat = HeaderFormat.YAML
    draft: bool = True


class FolioConfig(BaseModel):
    """Top-level configuration model."""

    content: ContentSectionConfig = Field(default_factory=ContentSectionConfig)
    build: BuildSectionConfig = Field(default_factory=BuildSectionConfig)
    validate_: ValidateSectionConfig = Field(
        default_factory=ValidateSectionConfig, alias="validate"
    )
    output: OutputSectionConfig = Field(default_factory=OutputSectionConfig)
    new: NewSectionConfig = Field(default_factory=NewSectionConfig)

    model_config = {"populate_by_name": True}

    @property
    def content_dir(self) -> Path:
        return Path(self.content.directory)

    @property
    def static_dir(self) -> Path:
        return Path(self.content.static_dir)

    @property
    def output_dir(self) -> Path:
        return Path(self.output.directory)

    def to_validation_options(self) -> ValidationOptions:
        """Convert the [validate] section into ValidationOptions."""
        return ValidationOptions(
            check_images=self.validate_.check_images,
            warn_duplicate_labels=self.validate_.warn_duplicate_labels,
            static_dir=self.static_dir,
        )


def load_config(path: str | Path | None = None) -> FolioConfig:
    """Load configuration from a TOML file.

    Search order:
    1. Explicit path (if provided)
    2. .folio.toml in CWD
    3. ~/.config/folio/config.toml

    Then overlay environment variables.

    Args:
        path: Explicit path to a TOML file.

    Returns:
        Merged FolioConfig.
    """
    data: dict[str, object] = {}

    if path is not None:
        toml_path = Path(path)
        if toml_path.exists():
            data = _load_toml(toml_path)
        else:
            logger.warning("Config file not found: %s", toml_path)
    else:
        for search_dir in CONFIG_SEARCH_PATHS:
            candidate = search_dir / CONFIG_FILENAME
            if candidate.exists():
                data = _load_toml(candidate)
                logger.info("Loaded config from %s", candidate)
                break
        if not data and GLOBAL_CONFIG.exists():
            data = _load_toml(GLOBAL_CONFIG)
            logger.info("Loaded config from %s", GLOBAL_CONFIG)

    try:
        config = FolioConfig.model_validate(data) if data else FolioConfig()
    except ValueError as exc:
        logger.warning("Invalid configuration, using defaults: %s", exc)
        config = FolioConfig()

    return _apply_env_vars(config)


def merge_cli_overrides(config: FolioConfig, **cli_kwargs: object) -> FolioConfig:
    """Overlay explicitly-set CLI flags onto the config.

    Only overrides values where the CLI flag was explicitly provided
    (i.e., not None).

    Args:
        config: Base config.
        **cli_kwargs: CLI flag values, e.g. ``content_dir``, ``strict``.

    Returns:
        Updated config with CLI overrides applied.
    """
    data = config.model_dump(by_alias=True)

    mapping: dict[str, tuple[str, str]] = {
        "content_dir": ("content", "directory"),
        "static_dir": ("content", "static_dir"),
        "include_drafts": ("build", "include_drafts"),
        "include_future": ("build", "include_future"),
        "check_images": ("validate", "check_images"),
        "strict": ("validate", "strict"),
        "output_dir": ("output", "directory"),
        "output_format": ("output", "format"),
        "section": ("new", "section"),
        "header_format": ("new", "header_format"),
    }

    for key, value in cli_kwargs.items():
        if value is None:
            continue
        if key in mapping:
            section, field = mapping[key]
            data[section][field] = str(value) if isinstance(value, Path) else value

    return FolioConfig.model_validate(data)


def _load_toml(path: Path) -> dict[str, object]:
    """Load a TOML file and return the data dict."""
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (tomllib.TOMLDecodeError, OSError) as exc:
        logger.warning("Failed to parse %s: %s", path, exc)
        return {}


def _apply_env_vars(config: FolioConfig) -> FolioConfig:
    """Apply environment variable overrides to config."""
    data = config.model_dump(by_alias=True)

    env_mapping: dict[str, tuple[str, str]] = {
        "FOLIO_CONTENT_DIR": ("content", "directory"),
        "FOLIO_STATIC_DIR": ("content", "static_dir"),
        "FOLIO_OUTPUT_DIR": ("output", "directory"),
    }
    for env_var, (section, field) in env_mapping.items():
        value = os.environ.get(env_var)
        if value is not None:
            data[section][field] = value

    bool_mapping: dict[str, tuple[str, str]] = {
        "FOLIO_INCLUDE_DRAFTS": ("build", "include_drafts"),
        "FOLIO_INCLUDE_FUTURE": ("build", "include_future"),
        "FOLIO_STRICT": ("validate", "strict"),
    }
    for env_var, (section, field) in bool_mapping.items():
        raw = os.environ.get(env_var)
        if raw is not None:
            data[section][field] = raw.strip().lower() in _TRUE_VALUES

    return FolioConfig.model_validate(data)
