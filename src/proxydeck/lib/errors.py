"""Custom exception hierarchy for ProxyDeck configuration and deployments."""


class ProxyDeckError(Exception):
    """Base exception for all ProxyDeck errors.

    All ProxyDeck-specific exceptions inherit from this class, enabling
    centralized exception handling in the CLI.
    """

    pass


class ConfigError(ProxyDeckError):
    """Exception raised for configuration errors.

    Raised when a configuration value is malformed or a file the deployment
    depends on (template, build context) cannot be found.

    Attributes:
        field: The configuration field that caused the error
        message: Human-readable error message describing the issue
    """

    def __init__(self, field: str, message: str) -> None:
        """Initialize ConfigError with field and message.

        Args:
            field: Configuration field name where error occurred
            message: Descriptive error message
        """
        self.field = field
        self.message = message
        super().__init__(f"Configuration error in '{field}': {message}")


class PreconditionError(ProxyDeckError):
    """Exception raised when a required input is absent.

    Precondition failures are always raised before any side effect happens,
    so nothing needs to be cleaned up when one is caught.

    Attributes:
        message: Human-readable error message with remediation
    """

    def __init__(self, message: str) -> None:
        """Create a precondition error."""
        self.message = message
        super().__init__(message)


class MissingSecretError(PreconditionError):
    """A required secret resolved to an empty value.

    Attributes:
        key: Name of the missing secret (e.g. ANTHROPIC_API_KEY)
    """

    def __init__(self, key: str) -> None:
        """Initialize MissingSecretError for a secret name.

        Args:
            key: Environment variable name of the missing secret
        """
        self.key = key
        super().__init__(
            f"{key} is not set. Set via environment variable or create .env "
            f"file with {key}=your_key"
        )


class MissingCredentialsError(PreconditionError):
    """Local AWS credentials are required but not present.

    Attributes:
        missing: Names of the credential variables that are absent
    """

    def __init__(self, missing: list[str]) -> None:
        """Initialize MissingCredentialsError.

        Args:
            missing: Credential variable names that were not found
        """
        self.missing = missing
        super().__init__(
            "AWS credentials not found in environment "
            f"(missing: {', '.join(missing)}).\n"
            "Please set AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY\n"
            "Or run: aws sso login"
        )


class DeploymentError(ProxyDeckError):
    """Exception raised when a call to an external system fails.

    The message carries the external system's own error text so operators
    see exactly what the registry, CloudFormation or Docker reported.

    Attributes:
        operation: Pipeline step that failed (e.g. "build", "push", "deploy")
        message: Human-readable error message
    """

    def __init__(self, operation: str, message: str) -> None:
        """Initialize DeploymentError.

        Args:
            operation: Name of the failing operation
            message: Descriptive error message
        """
        self.operation = operation
        self.message = message
        super().__init__(f"Deployment operation '{operation}' failed: {message}")


class DockerNotAvailableError(DeploymentError):
    """Error raised when the Docker daemon cannot be reached."""

    def __init__(self, operation: str) -> None:
        """Create a Docker availability error for an operation."""
        super().__init__(
            operation=operation,
            message=(
                "Docker is not available. Ensure the Docker daemon is running "
                "and accessible (docker info)."
            ),
        )


class PrefixListNotFoundError(DeploymentError):
    """The region does not expose the CloudFront origin-facing prefix list.

    Attributes:
        region: Region that was queried
        prefix_list_name: Managed prefix list name that was looked up
    """

    def __init__(self, region: str, prefix_list_name: str) -> None:
        """Initialize PrefixListNotFoundError."""
        self.region = region
        self.prefix_list_name = prefix_list_name
        super().__init__(
            operation="resolve_prefix_list",
            message=(
                f"Managed prefix list '{prefix_list_name}' is not available in "
                f"region {region}. Choose a region that exposes it."
            ),
        )


class StackOutputError(DeploymentError):
    """An expected stack output is missing.

    Attributes:
        stack_name: Stack that was queried
        output_key: Output key that was expected
    """

    def __init__(self, stack_name: str, output_key: str) -> None:
        """Initialize StackOutputError."""
        self.stack_name = stack_name
        self.output_key = output_key
        super().__init__(
            operation="outputs",
            message=(
                f"Stack '{stack_name}' has no output '{output_key}'. "
                "The template's output contract does not match this tool."
            ),
        )


class StackTimeoutError(DeploymentError):
    """A stack did not reach a terminal state within the allowed time.

    Attributes:
        stack_name: Stack being waited on
        timeout: Seconds waited before giving up
    """

    def __init__(self, stack_name: str, operation: str, timeout: int) -> None:
        """Initialize StackTimeoutError."""
        self.stack_name = stack_name
        self.timeout = timeout
        super().__init__(
            operation=operation,
            message=(
                f"Timed out after {timeout}s waiting for stack '{stack_name}'. "
                "Check the CloudFormation console for its current status."
            ),
        )
