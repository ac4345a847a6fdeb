"""
Initializes the Dynaconf settings object for the metadata_fetcher component.
This module is the single source of truth for all configuration.
"""

import re
from pathlib import Path
from dynaconf import Dynaconf, Validator
from dynaconf.validator import ValidationError

from .application.exceptions import ConfigurationError

PROJECT_ROOT = Path(__file__).parent.parent

validators = [
    Validator("logging.level", default="WARNING"),
    Validator("fetcher.timeout", default=30, gt=0),
    Validator("fetcher.block_size", default=65536, gt=0),
    Validator("fetcher.concurrent_fetches", default=0, gte=0),
    Validator("fetcher.archive_workers", default=8, gt=0),
    Validator("fetcher.metadata_pattern", default=r".*/METADATA$", is_type_of=str),
    Validator("output.on_error", default="marker", is_in=["marker", "omit"]),
    Validator("output.progress", default=False, is_type_of=bool),
]


def build_settings(root_path: Path = PROJECT_ROOT) -> Dynaconf:
    """Loads settings.toml, the optional .secrets.toml and environment overrides."""
    return Dynaconf(
        root_path=root_path,
        settings_files=["config/settings.toml"],
        secrets=["config/.secrets.toml"],
        envvar_prefix="METADATA_FETCHER",
        validators=validators,
    )


settings = build_settings()


def validate_settings(config: Dynaconf = settings) -> Dynaconf:
    """Applies defaults and checks values, raising ConfigurationError."""
    try:
        config.validators.validate()
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e

    pattern = config.fetcher.metadata_pattern
    try:
        re.compile(pattern)
    except re.error as e:
        raise ConfigurationError(
            f"Invalid configuration: fetcher.metadata_pattern {pattern!r}: {e}"
        ) from e
    return config
