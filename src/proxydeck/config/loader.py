"""Environment resolver for ProxyDeck.

Builds the single validated DeploymentConfig that every component receives.
Nothing below this module reads the process environment.
"""

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from proxydeck.config.defaults import ENV_VAR_FIELDS, REQUIRED_SECRETS
from proxydeck.config.env_loader import get_env_var, load_env_file
from proxydeck.config.validator import flatten_pydantic_errors
from proxydeck.lib.errors import ConfigError, MissingSecretError
from proxydeck.models.deployment import DeploymentConfig

logger = logging.getLogger(__name__)


def _parse_env_value(field_name: str, value: str) -> Any:
    """Parse a raw variable value into the type the config field expects.

    Raises:
        ConfigError: If the value cannot be parsed
    """
    if field_name == "stack_capabilities":
        return tuple(item.strip() for item in value.split(",") if item.strip())
    if field_name == "stack_timeout":
        try:
            return int(value)
        except ValueError as exc:
            raise ConfigError(
                field=field_name, message=f"Expected seconds as an integer: {value!r}"
            ) from exc
    return value


def resolve_raw_values(
    overrides: Mapping[str, Any] | None,
    file_values: Mapping[str, str],
    environ: Mapping[str, str],
) -> dict[str, Any]:
    """Merge configuration sources into raw field values.

    Priority (highest to lowest):
    1. Explicit overrides (CLI arguments), keyed by field name
    2. The .env override file
    3. The process environment
    4. Built-in defaults (applied by the model, so absent here)

    Args:
        overrides: Field values from the command line; None values are ignored
        file_values: Variables read from the .env file
        environ: Process environment

    Returns:
        Field name to value mapping
    """
    resolved: dict[str, Any] = {}

    for env_name, field_name in ENV_VAR_FIELDS.items():
        value = get_env_var(env_name, file_values, environ)
        if value is not None:
            resolved[field_name] = _parse_env_value(field_name, value)

    for field_name, value in (overrides or {}).items():
        if value is not None and value != "":
            resolved[field_name] = value

    return resolved


def load_deployment_config(
    overrides: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
    env_file: Path | str | None = None,
    require_secrets: bool = True,
) -> DeploymentConfig:
    """Resolve and validate the deployment configuration.

    Secrets are checked before anything else is validated so a missing key is
    reported by name, and always before any provisioning side effect.

    Args:
        overrides: Field values from the command line
        environ: Environment mapping (the CLI passes ``os.environ``)
        env_file: Optional .env override file
        require_secrets: When False, missing secrets resolve to empty values
            (used by ``help`` to list configuration without failing)

    Returns:
        Validated, frozen DeploymentConfig

    Raises:
        MissingSecretError: If a required secret is empty after merging
        ConfigError: If any value fails validation
    """
    file_values = load_env_file(env_file)
    raw = resolve_raw_values(overrides, file_values, environ or {})

    for env_name in REQUIRED_SECRETS:
        field_name = ENV_VAR_FIELDS[env_name]
        if not raw.get(field_name):
            if require_secrets:
                raise MissingSecretError(env_name)
            raw[field_name] = ""

    try:
        config = DeploymentConfig(**raw)
    except PydanticValidationError as exc:
        raise ConfigError(
            field="deployment", message="; ".join(flatten_pydantic_errors(exc))
        ) from exc

    logger.debug(
        "Resolved configuration: region=%s stack=%s repository=%s prefix=%s",
        config.region,
        config.stack_name,
        config.repository_name,
        config.name_prefix,
    )
    return config
