"""Build the application image and publish it to ECR."""
import base64
import logging
import subprocess
from typing import List, Optional

from rollout.errors import ImagePublishError

logger = logging.getLogger(__name__)


def registry_host(repository_url: str) -> str:
    """`123.dkr.ecr.us-east-1.amazonaws.com/myapp1` -> registry host part."""
    return repository_url.split('/')[0]


class ImagePublisher:
    """Log in to ECR, then docker build, tag and push."""

    def __init__(self, ecr_client, image_name: str, context_dir: str = ".",
                 platform: Optional[str] = None):
        self.ecr_client = ecr_client
        self.image_name = image_name
        self.context_dir = context_dir
        self.platform = platform

    def _docker(self, args: List[str], input: Optional[bytes] = None) -> None:
        command = ["docker"] + args
        try:
            subprocess.run(command, input=input, check=True, cwd=self.context_dir)
        except FileNotFoundError as e:
            raise ImagePublishError("docker not found on PATH") from e
        except subprocess.CalledProcessError as e:
            raise ImagePublishError(f"docker {args[0]} exited with {e.returncode}") from e

    def login(self, repository_url: str) -> None:
        """docker login to the registry using an ECR authorization token."""
        logger.info("🔐 Logging into ECR...")
        try:
            token_data = self.ecr_client.get_authorization_token()['authorizationData'][0]
        except Exception as e:
            raise ImagePublishError(f"Could not get ECR authorization token: {e}") from e

        token = base64.b64decode(token_data['authorizationToken']).decode('utf-8')
        username, password = token.split(':', 1)

        self._docker(
            ["login", "--username", username, "--password-stdin", registry_host(repository_url)],
            input=password.encode(),
        )

    def build_and_push(self, repository_url: str, tag: str = "latest") -> str:
        """Build the local image, tag it for the repository and push it.

        Returns:
            The pushed image URI
        """
        local_tag = f"{self.image_name}:{tag}"
        image_uri = f"{repository_url}:{tag}"

        logger.info("🐳 Building Docker image...")
        build_args = ["build", "-t", local_tag]
        if self.platform:
            build_args += ["--platform", self.platform]
        self._docker(build_args + ["."])

        logger.info("🏷️  Tagging image for ECR...")
        self._docker(["tag", local_tag, image_uri])

        logger.info("⬆️  Pushing image to ECR...")
        self._docker(["push", image_uri])

        logger.info(f"Pushed image to ECR: {image_uri}")
        return image_uri
