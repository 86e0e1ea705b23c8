"""Validation utilities for ProxyDeck configuration."""

from pydantic import ValidationError as PydanticValidationError

# Fields whose rejected input must never be echoed back
SECRET_FIELDS = frozenset(
    {
        "anthropic_api_key",
        "master_key",
        "aws_access_key_id",
        "aws_secret_access_key",
        "aws_session_token",
    }
)


def flatten_pydantic_errors(exc: PydanticValidationError) -> list[str]:
    """Flatten a pydantic ValidationError into human-readable messages.

    Rejected input values are included for value errors, except for secret
    fields.

    Args:
        exc: Pydantic ValidationError exception

    Returns:
        List of messages, one per field error
    """
    errors: list[str] = []

    for error in exc.errors():
        loc = error.get("loc", ())
        field_path = ".".join(str(item) for item in loc) if loc else "unknown"
        msg = error.get("msg", "Unknown error")

        if error.get("type") == "value_error" and field_path not in SECRET_FIELDS:
            errors.append(
                f"Field '{field_path}': {msg} (received: {error.get('input')!r})"
            )
        else:
            errors.append(f"Field '{field_path}': {msg}")

    return errors if errors else ["Validation failed with unknown error"]
