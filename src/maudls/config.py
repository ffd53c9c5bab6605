"""Maud workspace ``config.toml``: document file names plus a ``[maudls]`` section."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping
import tomllib

CONFIG_FILE_NAME = "config.toml"
SERVER_SECTION = "maudls"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MaudConfig:
    """File names of the three Maud documents, relative to the workspace root."""

    kinetic_model_file: str = "kinetic_model.toml"
    priors_file: str = "priors.toml"
    experiments_file: str = "experiments.toml"


@dataclass(frozen=True)
class ServerSettings:
    report_parse_errors: bool = True
    log_level: str = "INFO"


def load_config(
    root: Path | None = None, config_path: Path | None = None
) -> dict[str, Any]:
    """Raw table of the workspace config; empty when missing or malformed.

    The documents named by a broken config fall back to their default names
    and fail loudly on their own.
    """
    if config_path is None:
        config_path = (root if root is not None else Path.cwd()) / CONFIG_FILE_NAME
    try:
        return tomllib.loads(config_path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as exc:
        logger.debug("using default Maud config instead of %s: %s", config_path, exc)
        return {}


def _as_bool(value: object) -> bool:
    match value:
        case bool():
            return value
        case int():
            return value != 0
        case str():
            return value.strip().lower() in {"1", "true", "yes", "on"}
    return False


def _document_name(value: object, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def maud_config(data: Mapping[str, Any]) -> MaudConfig:
    defaults = MaudConfig()
    return MaudConfig(
        kinetic_model_file=_document_name(
            data.get("kinetic_model_file"), defaults.kinetic_model_file
        ),
        priors_file=_document_name(data.get("priors_file"), defaults.priors_file),
        experiments_file=_document_name(
            data.get("experiments_file"), defaults.experiments_file
        ),
    )


def server_settings(data: Mapping[str, Any]) -> ServerSettings:
    section = data.get(SERVER_SECTION)
    if not isinstance(section, dict):
        return ServerSettings()
    report = section.get("report_parse_errors")
    level = section.get("log_level")
    return ServerSettings(
        report_parse_errors=True if report is None else _as_bool(report),
        log_level=level.strip().upper() if isinstance(level, str) and level.strip() else "INFO",
    )
