"""Environment and .env file helpers."""

import logging
from collections.abc import Mapping
from pathlib import Path

from dotenv import dotenv_values

from proxydeck.lib.errors import ConfigError

logger = logging.getLogger(__name__)


def load_env_file(path: Path | str | None) -> dict[str, str]:
    """Read KEY=VALUE pairs from a .env file.

    Missing files are not an error: the override file is optional. Keys
    declared without a value (``KEY`` alone) are dropped.

    Args:
        path: Path to the .env file, or None to skip

    Returns:
        Mapping of variable names to values

    Raises:
        ConfigError: If the file exists but cannot be read
    """
    if path is None:
        return {}

    env_path = Path(path)
    if not env_path.is_file():
        logger.debug("No override file at %s", env_path)
        return {}

    try:
        values = dotenv_values(env_path)
    except OSError as exc:
        raise ConfigError(
            field="env_file", message=f"Failed to read {env_path}: {exc}"
        ) from exc

    logger.debug("Loaded %d values from %s", len(values), env_path)
    return {key: value for key, value in values.items() if value is not None}


def get_env_var(name: str, *sources: Mapping[str, str]) -> str | None:
    """Return the first non-empty value for a variable across sources.

    Args:
        name: Variable name
        *sources: Mappings in priority order, highest first

    Returns:
        The value, or None when every source lacks it or has it empty
    """
    for source in sources:
        value = source.get(name)
        if value is not None and value.strip():
            return value.strip()
    return None
