"""Pydantic models for gateway deployments.

This module defines the validated configuration object every component
receives, and the values that flow between the steps of the cloud pipeline
(image URI, stack parameters, stack outputs, client exports).
"""

import re
from datetime import datetime
from enum import Enum

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    field_validator,
)

from proxydeck.config import defaults

# Regex patterns for validation
REPOSITORY_PATTERN = re.compile(r"^[a-z0-9]+(?:[._/-][a-z0-9]+)*$")
STACK_NAME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9-]{0,127}$")
REGION_PATTERN = re.compile(r"^[a-z]{2}(-[a-z]+)+-\d$")
ACCOUNT_ID_PATTERN = re.compile(r"^\d{12}$")
IMAGE_TAG_FORMAT = "%Y%m%d-%H%M%S"

MASKED = "***masked***"
NOT_SET = "<not set>"


class DeploymentConfig(BaseModel):
    """Validated deployment configuration.

    Built once at startup by the environment resolver and passed to every
    component. Frozen, so no step can alter what a later step sees.

    Attributes:
        region: AWS region for all provider calls
        account_id: AWS account ID (resolved through STS when not set)
        repository_name: ECR repository name
        stack_name: CloudFormation stack name
        name_prefix: Resource name prefix, also used as the project tag
        anthropic_api_key: Provider API key passed to the proxy
        master_key: Gateway master key clients authenticate with
        aws_access_key_id: Local AWS access key (required by the local runner)
        aws_secret_access_key: Local AWS secret key (required by the local runner)
        aws_session_token: Optional session token for temporary credentials
        build_context: Docker build context directory for the proxy image
        template_file: CloudFormation template path
        compose_file: Docker Compose file for local runs
        platform: Target platform for the image build
        model_alias: Model alias exported to clients
        local_endpoint: URL the local proxy listens on
        stack_capabilities: Capabilities acknowledged when converging the stack
        stack_timeout: Seconds to wait for a stack to reach a terminal state
        untagged_image_expiry_days: Lifecycle expiry for untagged images
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    region: str = Field(default=defaults.AWS_REGION, description="AWS region")
    account_id: str | None = Field(default=None, description="AWS account ID")
    repository_name: str = Field(
        default=defaults.ECR_REPO_NAME, description="ECR repository name"
    )
    stack_name: str = Field(
        default=defaults.STACK_NAME, description="CloudFormation stack name"
    )
    name_prefix: str = Field(
        default=defaults.NAME_PREFIX, description="Resource name prefix"
    )
    anthropic_api_key: SecretStr = Field(..., description="Provider API key")
    master_key: SecretStr = Field(..., description="Gateway master key")
    aws_access_key_id: SecretStr | None = Field(default=None)
    aws_secret_access_key: SecretStr | None = Field(default=None)
    aws_session_token: SecretStr | None = Field(default=None)
    build_context: str = Field(default=defaults.BUILD_CONTEXT)
    template_file: str = Field(default=defaults.TEMPLATE_FILE)
    compose_file: str = Field(default=defaults.COMPOSE_FILE)
    platform: str = Field(default=defaults.PLATFORM)
    model_alias: str = Field(default=defaults.MODEL_ALIAS)
    local_endpoint: str = Field(default=defaults.LOCAL_ENDPOINT)
    stack_capabilities: tuple[str, ...] = Field(
        default=defaults.STACK_CAPABILITIES,
        description="Capabilities acknowledged for the stack",
    )
    stack_timeout: int = Field(
        default=defaults.STACK_TIMEOUT, ge=30, description="Stack wait in seconds"
    )
    untagged_image_expiry_days: int = Field(
        default=defaults.UNTAGGED_IMAGE_EXPIRY_DAYS, ge=1
    )

    @field_validator("repository_name")
    @classmethod
    def validate_repository_name(cls, v: str) -> str:
        """Validate ECR repository name pattern."""
        if not REPOSITORY_PATTERN.match(v):
            raise ValueError(
                f"Invalid repository name: {v}. "
                "Must contain only lowercase letters, numbers, '.', '_', '/', '-'"
            )
        return v

    @field_validator("stack_name")
    @classmethod
    def validate_stack_name(cls, v: str) -> str:
        """Validate CloudFormation stack name pattern."""
        if not STACK_NAME_PATTERN.match(v):
            raise ValueError(
                f"Invalid stack name: {v}. Must start with a letter and contain "
                "only letters, numbers and '-' (max 128 characters)"
            )
        return v

    @field_validator("region")
    @classmethod
    def validate_region(cls, v: str) -> str:
        """Validate AWS region format (e.g. eu-north-1)."""
        if not REGION_PATTERN.match(v):
            raise ValueError(f"Invalid AWS region: {v}")
        return v

    @field_validator("account_id")
    @classmethod
    def validate_account_id(cls, v: str | None) -> str | None:
        """Validate AWS account ID is 12 digits."""
        if v is not None and not ACCOUNT_ID_PATTERN.match(v):
            raise ValueError(f"Invalid AWS account ID: {v}. Must be 12 digits")
        return v

    @property
    def has_local_credentials(self) -> bool:
        """Whether both local AWS credential values are present."""
        return bool(
            self.aws_access_key_id
            and self.aws_access_key_id.get_secret_value()
            and self.aws_secret_access_key
            and self.aws_secret_access_key.get_secret_value()
        )

    def describe(self) -> dict[str, str]:
        """Return printable configuration values with secrets masked."""

        def mask(secret: SecretStr) -> str:
            return MASKED if secret.get_secret_value() else NOT_SET

        return {
            "AWS_REGION": self.region,
            "ECR_REPO_NAME": self.repository_name,
            "STACK_NAME": self.stack_name,
            "NAME_PREFIX": self.name_prefix,
            "ANTHROPIC_API_KEY": mask(self.anthropic_api_key),
            "LITELLM_MASTER_KEY": mask(self.master_key),
        }


class ImageTag(str):
    """Timestamp tag that forces a new container revision on every deploy."""

    @classmethod
    def from_time(cls, moment: datetime) -> "ImageTag":
        """Create a tag from a point in time (YYYYMMDD-HHMMSS)."""
        return cls(moment.strftime(IMAGE_TAG_FORMAT))


class ImageURI(BaseModel):
    """Fully-qualified reference to one pushed image.

    Attributes:
        registry: Registry host (<account>.dkr.ecr.<region>.amazonaws.com)
        repository: Repository name within the registry
        tag: Image tag
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    registry: str = Field(..., description="Registry host")
    repository: str = Field(..., description="Repository name")
    tag: str = Field(..., description="Image tag")

    @property
    def repository_uri(self) -> str:
        """Registry host plus repository, without tag."""
        return f"{self.registry}/{self.repository}"

    def __str__(self) -> str:
        return f"{self.repository_uri}:{self.tag}"


class RegistryCredentials(BaseModel):
    """Short-lived registry login obtained from ECR."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    username: str
    password: SecretStr
    endpoint: str


class Repository(BaseModel):
    """ECR repository as reported by the registry.

    Attributes:
        name: Repository name
        uri: Repository URI (registry host + name)
        created: Whether this invocation created the repository
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    uri: str
    created: bool = False


class StackParameters(BaseModel):
    """Values handed to the CloudFormation template.

    This is the whole interface between the pipeline and the template's
    resource graph.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    image_uri: ImageURI
    name_prefix: str
    anthropic_api_key: SecretStr
    master_key: SecretStr
    edge_prefix_list_id: str

    def to_cloudformation(self) -> list[dict[str, str]]:
        """Render as CloudFormation ``Parameters`` entries."""
        values = {
            "ImageUri": str(self.image_uri),
            "NamePrefix": self.name_prefix,
            "AnthropicApiKey": self.anthropic_api_key.get_secret_value(),
            "LiteLLMMasterKey": self.master_key.get_secret_value(),
            "CloudFrontPrefixListId": self.edge_prefix_list_id,
        }
        return [
            {"ParameterKey": key, "ParameterValue": value}
            for key, value in values.items()
        ]


class StackStatus(str, Enum):
    """CloudFormation stack statuses the driver reasons about."""

    CREATE_COMPLETE = "CREATE_COMPLETE"
    UPDATE_COMPLETE = "UPDATE_COMPLETE"
    REVIEW_IN_PROGRESS = "REVIEW_IN_PROGRESS"
    ROLLBACK_COMPLETE = "ROLLBACK_COMPLETE"
    DELETE_COMPLETE = "DELETE_COMPLETE"


class StackDeployment(BaseModel):
    """Result of converging a stack.

    Attributes:
        stack_name: Stack name
        stack_id: Stack ARN
        status: Final stack status
        changed: False when the stack already matched the parameters
    """

    model_config = ConfigDict(extra="forbid")

    stack_name: str
    stack_id: str | None = None
    status: str
    changed: bool


class StackOutputs(BaseModel):
    """Outputs of a converged stack, keyed by output key."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    stack_name: str
    values: dict[str, str] = Field(default_factory=dict)

    def get(self, key: str) -> str | None:
        """Return an output value or None."""
        return self.values.get(key)


class ClientExports(BaseModel):
    """Client configuration for pointing Claude Code at the gateway."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    base_url: str
    auth_token: SecretStr
    model: str

    def lines(self) -> list[str]:
        """Render ready-to-paste shell export lines."""
        return [
            f"export ANTHROPIC_BASE_URL={self.base_url}",
            f"export ANTHROPIC_AUTH_TOKEN={self.auth_token.get_secret_value()}",
            f"export ANTHROPIC_MODEL={self.model}",
        ]


class DeployResult(BaseModel):
    """Everything the cloud pipeline produced."""

    model_config = ConfigDict(extra="forbid")

    image_uri: ImageURI
    edge_prefix_list_id: str
    stack: StackDeployment
    outputs: StackOutputs
    exports: ClientExports
