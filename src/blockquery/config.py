"""Project configuration: where rules live and which source files to scan."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import yaml

from blockquery.source.blocks import DEFAULT_INCLUDE

logger = logging.getLogger(__name__)

CONFIG_DIR = ".blockquery"
CONFIG_FILE = "config.yml"
DEFAULT_RULES_PATH = Path(CONFIG_DIR) / "rules.yml"
DEFAULT_EXCLUDE: tuple[str, ...] = (".terraform/**", f"{CONFIG_DIR}/**")


@dataclass(frozen=True)
class LintConfig:
    """Settings read from ``.blockquery/config.yml``."""

    rules_path: Path = DEFAULT_RULES_PATH  # relative to the project root
    include: tuple[str, ...] = DEFAULT_INCLUDE
    exclude: tuple[str, ...] = DEFAULT_EXCLUDE


def _str_list(value: object, key: str, default: tuple[str, ...]) -> tuple[str, ...]:
    if isinstance(value, str):
        return (value,)
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return tuple(value)
    if value is not None:
        logger.warning("config.yml: '%s' must be a string or list of strings, using default", key)
    return default


def load_config(project_root: Path) -> LintConfig:
    """Load ``.blockquery/config.yml``.

    Falls back to defaults for missing keys, a missing file, or a file that
    cannot be read.
    """
    config_path = project_root / CONFIG_DIR / CONFIG_FILE
    if not config_path.is_file():
        return LintConfig()

    try:
        with config_path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except (OSError, yaml.YAMLError):
        logger.warning("Failed to read %s, using defaults", config_path)
        return LintConfig()

    if not isinstance(data, dict):
        return LintConfig()

    rules_raw = data.get("rules")
    rules_path = DEFAULT_RULES_PATH
    if isinstance(rules_raw, str) and rules_raw.strip():
        rules_path = Path(rules_raw)
    elif rules_raw is not None:
        logger.warning("config.yml: 'rules' must be a path string, using default")

    return LintConfig(
        rules_path=rules_path,
        include=_str_list(data.get("include"), "include", DEFAULT_INCLUDE),
        exclude=_str_list(data.get("exclude"), "exclude", DEFAULT_EXCLUDE),
    )
