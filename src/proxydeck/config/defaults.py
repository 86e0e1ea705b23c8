"""Default configuration values for ProxyDeck."""

# Overridable deployment settings
AWS_REGION = "eu-north-1"
ECR_REPO_NAME = "litellm-repo"
STACK_NAME = "litellm-stack"
NAME_PREFIX = "litellm"

# Project layout
BUILD_CONTEXT = "litellm-image"
TEMPLATE_FILE = "template.yaml"
COMPOSE_FILE = "docker-compose.yml"
ENV_FILE = ".env"

# Image build
PLATFORM = "linux/amd64"
UNTAGGED_IMAGE_EXPIRY_DAYS = 7

# Stack convergence
STACK_CAPABILITIES: tuple[str, ...] = ("CAPABILITY_IAM",)
STACK_TIMEOUT = 3600  # seconds
STACK_POLL_DELAY = 15  # seconds between CloudFormation waiter polls
STACK_OUTPUT_URL_KEY = "CloudFrontURL"

# Network
CLOUDFRONT_PREFIX_LIST_NAME = "com.amazonaws.global.cloudfront.origin-facing"

# Client configuration
MODEL_ALIAS = "sonnet-4"
LOCAL_ENDPOINT = "http://localhost:4000"

# Local runner
COMPOSE_COMMAND: tuple[str, ...] = ("docker", "compose")

# Environment variable -> DeploymentConfig field
ENV_VAR_FIELDS: dict[str, str] = {
    "AWS_REGION": "region",
    "AWS_ACCOUNT_ID": "account_id",
    "ECR_REPO_NAME": "repository_name",
    "STACK_NAME": "stack_name",
    "NAME_PREFIX": "name_prefix",
    "ANTHROPIC_API_KEY": "anthropic_api_key",
    "LITELLM_MASTER_KEY": "master_key",
    "AWS_ACCESS_KEY_ID": "aws_access_key_id",
    "AWS_SECRET_ACCESS_KEY": "aws_secret_access_key",
    "AWS_SESSION_TOKEN": "aws_session_token",
    "PROXYDECK_BUILD_CONTEXT": "build_context",
    "PROXYDECK_TEMPLATE_FILE": "template_file",
    "PROXYDECK_COMPOSE_FILE": "compose_file",
    "PROXYDECK_PLATFORM": "platform",
    "PROXYDECK_MODEL_ALIAS": "model_alias",
    "PROXYDECK_LOCAL_ENDPOINT": "local_endpoint",
    "PROXYDECK_STACK_CAPABILITIES": "stack_capabilities",
    "PROXYDECK_STACK_TIMEOUT": "stack_timeout",
}

# Secrets checked in this order; the first empty one is reported
REQUIRED_SECRETS: tuple[str, ...] = ("ANTHROPIC_API_KEY", "LITELLM_MASTER_KEY")
