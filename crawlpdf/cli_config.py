"""Environment configuration shared by the CLI and the MCP server."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Callable, Optional, Tuple

LOGGER = logging.getLogger(__name__)

# Keys seeded by .env.example
ENV_KEYS: Tuple[str, ...] = (
    "CRAWLPDF_OUTPUT_DIR",
    "CRAWLPDF_MAX_PAGES",
    "CRAWLPDF_ON_CAP",
    "CRAWLPDF_TIMEOUT",
)

EXAMPLE_ENV_FILE = Path(__file__).parent.parent / ".env.example"


def env_int(name: str, default: int) -> int:
    """Integer environment value; malformed values fall back to ``default``."""
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        LOGGER.warning("Ignoring non-integer %s=%r", name, raw)
        return default


def env_float(name: str, default: float) -> float:
    """Float environment value; malformed values fall back to ``default``."""
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        LOGGER.warning("Ignoring non-numeric %s=%r", name, raw)
        return default


def load_config(
    *,
    config_dir: Path,
    config_env_file: Path,
    cwd: Path,
    load_env: Callable[[Path], bool],
    copy_file: Callable[[Path, Path], str],
    example_file: Optional[Path] = None,
) -> Optional[Path]:
    """Load crawlpdf settings from the first .env file found.

    A ``.env`` in ``cwd`` wins over ``config_env_file``. When neither
    exists, ``example_file`` (the packaged .env.example by default) is
    copied to ``config_env_file`` and loaded. Returns the file that was
    loaded, if any.
    """
    for candidate in (cwd / ".env", config_env_file):
        if candidate.is_file():
            load_env(candidate)
            LOGGER.debug("Loaded settings from %s", candidate)
            return candidate

    template = example_file or EXAMPLE_ENV_FILE
    if not template.is_file():
        return None

    try:
        config_dir.mkdir(parents=True, exist_ok=True)
        copy_file(template, config_env_file)
    except OSError as exc:
        LOGGER.debug("Could not create %s: %s", config_env_file, exc)
        return None

    LOGGER.info(
        "Created config file at %s from .env.example. Edit %s there to change "
        "the output directory, page limit, cap policy and timeout.",
        config_env_file,
        ", ".join(ENV_KEYS),
    )
    load_env(config_env_file)
    return config_env_file
