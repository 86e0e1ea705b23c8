"""Cloud deployment pipeline.

Each step takes the previous step's result as input, so the order
repository -> image -> prefix list -> parameters -> stack -> outputs is
enforced by data dependency. Nothing is rolled back on failure: every step is
idempotent and a failed deploy is recovered by running it again.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path

from proxydeck.deploy.aws import AWSClients, registry_host, resolve_account_id
from proxydeck.deploy.builder import BuildResult, ContainerBuilder, get_oci_labels
from proxydeck.deploy.deployers import create_deployer
from proxydeck.deploy.deployers.base import BaseDeployer
from proxydeck.deploy.network import resolve_edge_prefix_list_id
from proxydeck.deploy.outputs import exports_from_outputs, get_stack_outputs
from proxydeck.deploy.registry import RegistryManager, build_image_uri, generate_tag
from proxydeck.lib.errors import ConfigError, DeploymentError
from proxydeck.models.deployment import (
    DeploymentConfig,
    DeployResult,
    ImageTag,
    ImageURI,
    RegistryCredentials,
    Repository,
    StackDeployment,
    StackOutputs,
    StackParameters,
)

logger = logging.getLogger(__name__)


class CloudDeployPipeline:
    """Build, push and roll out the gateway on AWS.

    Example:
        >>> pipeline = CloudDeployPipeline(config, AWSClients.from_config(config))
        >>> result = pipeline.run()
        >>> print(result.exports.base_url)
    """

    def __init__(
        self,
        config: DeploymentConfig,
        clients: AWSClients,
        builder_factory: Callable[[], ContainerBuilder] = ContainerBuilder,
        deployer: BaseDeployer | None = None,
        clock: Callable[[], datetime] | None = None,
        progress: Callable[[str], None] | None = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            config: Resolved deployment configuration
            clients: AWS clients for the configured region
            builder_factory: Creates the Docker SDK wrapper
            deployer: Stack deployer (default: CloudFormation)
            clock: Source of the current time for the image tag
            progress: Callback receiving one line per step (default: log)
        """
        self.config = config
        self.clients = clients
        self.registry = RegistryManager(clients.ecr)
        self.deployer = deployer or create_deployer(config, clients.cloudformation)
        self._builder_factory = builder_factory
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._progress = progress or logger.info

    def run(self) -> DeployResult:
        """Run every step in order and return what was deployed.

        Raises:
            ConfigError: If the template or build context is missing, or the
                repository is outside the configured account
            DeploymentError: If any external call fails; later steps do not run
        """
        template_body = self.load_template()
        self.check_build_context()

        tag = generate_tag(self._clock())
        self._progress(f"Deploying to AWS ({self.config.region})...")
        self._progress(f"Image tag: {tag}")

        repository = self.ensure_repository()
        credentials = self.authenticate(repository)
        image_uri = self.publish_image(repository, credentials, tag)
        prefix_list_id = self.resolve_prefix_list()
        parameters = self.assemble_parameters(image_uri, prefix_list_id)
        stack = self.converge(template_body, parameters)
        outputs = self.extract_outputs(stack)

        return DeployResult(
            image_uri=image_uri,
            edge_prefix_list_id=prefix_list_id,
            stack=stack,
            outputs=outputs,
            exports=exports_from_outputs(outputs, self.config),
        )

    def load_template(self) -> str:
        """Read the infrastructure template."""
        path = Path(self.config.template_file)
        if not path.is_file():
            raise ConfigError(
                field="template_file",
                message=f"Template not found: {self.config.template_file}",
            )
        return path.read_text(encoding="utf-8")

    def check_build_context(self) -> None:
        """Fail early when the image build context is missing."""
        if not Path(self.config.build_context).is_dir():
            raise ConfigError(
                field="build_context",
                message=f"Build context not found: {self.config.build_context}",
            )

    def ensure_repository(self) -> Repository:
        """Step 1: make sure the image repository exists."""
        self._progress("Ensuring ECR repository exists...")
        repository = self.registry.ensure_repository(
            self.config.repository_name,
            expiry_days=self.config.untagged_image_expiry_days,
        )
        if repository.created:
            self._progress(f"Created repository {repository.uri}")
        return repository

    def authenticate(self, repository: Repository) -> RegistryCredentials:
        """Step 2: obtain registry credentials for the repository's registry."""
        self._progress("Logging in to ECR...")
        credentials = self.registry.get_credentials()
        logger.debug("Registry login for %s via %s", repository.uri, credentials.endpoint)
        return credentials

    def publish_image(
        self,
        repository: Repository,
        credentials: RegistryCredentials,
        tag: ImageTag,
    ) -> ImageURI:
        """Step 3: build, tag and push the image; returns its registry URI."""
        image_uri = build_image_uri(repository.uri, str(tag))
        self.check_registry(image_uri)

        builder = self._builder_factory()
        builder.login(credentials)

        self._progress("Building Docker image...")
        build: BuildResult = builder.build(
            build_context=self.config.build_context,
            image_name=repository.name,
            tag=str(tag),
            labels=get_oci_labels(self.config.name_prefix, str(tag)),
            platform=self.config.platform,
        )
        for line in build.log_lines:
            logger.debug(line)

        builder.tag(build, image_uri)
        self._progress("Pushing to ECR...")
        for line in builder.push(image_uri):
            logger.debug(line)
        return image_uri

    def check_registry(self, image_uri: ImageURI) -> None:
        """Refuse to push when the repository is not in the expected account.

        Raises:
            ConfigError: If the registry host disagrees with the account and
                region (for example a stale ``AWS_ACCOUNT_ID``)
        """
        account_id = resolve_account_id(self.clients.sts, self.config)
        expected = registry_host(account_id, self.config.region)
        if image_uri.registry != expected:
            raise ConfigError(
                field="account_id",
                message=(
                    f"Repository {image_uri.repository_uri} is not in registry "
                    f"{expected}; check AWS_ACCOUNT_ID and AWS_REGION"
                ),
            )

    def resolve_prefix_list(self) -> str:
        """Step 4: look up the CloudFront origin-facing prefix list."""
        self._progress(
            f"Getting CloudFront prefix list ID for region {self.config.region}..."
        )
        prefix_list_id = resolve_edge_prefix_list_id(
            self.clients.ec2, self.config.region
        )
        self._progress(f"CloudFront prefix list ID: {prefix_list_id}")
        return prefix_list_id

    def assemble_parameters(
        self, image_uri: ImageURI, prefix_list_id: str
    ) -> StackParameters:
        """Step 5: collect the template parameters."""
        return StackParameters(
            image_uri=image_uri,
            name_prefix=self.config.name_prefix,
            anthropic_api_key=self.config.anthropic_api_key,
            master_key=self.config.master_key,
            edge_prefix_list_id=prefix_list_id,
        )

    def converge(
        self, template_body: str, parameters: StackParameters
    ) -> StackDeployment:
        """Step 6: converge the stack to the parameters."""
        self._progress("Deploying CloudFormation stack...")
        stack = self.deployer.deploy(
            stack_name=self.config.stack_name,
            template_body=template_body,
            parameters=parameters,
            capabilities=self.config.stack_capabilities,
            tags={"project": self.config.name_prefix},
        )
        if not stack.changed:
            self._progress("No changes to deploy. Stack is up to date")
        return stack

    def extract_outputs(self, stack: StackDeployment) -> StackOutputs:
        """Step 7: read the endpoint from the converged stack."""
        if not stack.status:
            raise DeploymentError(
                operation="outputs",
                message=f"Stack '{stack.stack_name}' did not report a status",
            )
        return get_stack_outputs(self.deployer, stack.stack_name)
