"""Thin wrapper around the terraform CLI used by the redeploy workflow."""
import logging
import subprocess
from typing import List

from rollout.errors import InfrastructureApplyError

logger = logging.getLogger(__name__)


class TerraformRunner:
    """Run plan/apply/output in the terraform working directory."""

    def __init__(self, working_dir: str = ".", aws_region: str = "us-east-1",
                 binary: str = "terraform"):
        self.working_dir = working_dir
        self.aws_region = aws_region
        self.binary = binary

    def _run(self, args: List[str], capture: bool = False) -> subprocess.CompletedProcess:
        command = [self.binary] + args
        logger.debug(f"Running: {' '.join(command)}")
        try:
            return subprocess.run(
                command,
                cwd=self.working_dir,
                check=True,
                capture_output=capture,
                text=True,
            )
        except FileNotFoundError as e:
            raise InfrastructureApplyError(f"{self.binary} not found on PATH") from e
        except subprocess.CalledProcessError as e:
            detail = (e.stderr or "").strip()
            raise InfrastructureApplyError(
                f"{' '.join(command)} exited with {e.returncode}"
                + (f": {detail}" if detail else "")
            ) from e

    @property
    def region_var(self) -> str:
        return f"-var=aws_region={self.aws_region}"

    def plan(self) -> None:
        logger.info("🔧 Planning terraform changes...")
        self._run(["plan", self.region_var])

    def apply(self) -> None:
        logger.info("🔧 Applying terraform configuration...")
        self._run(["apply", self.region_var, "-auto-approve"])

    def output(self, name: str) -> str:
        """Read a single raw output value from the terraform state."""
        result = self._run(["output", "-raw", name], capture=True)
        value = result.stdout.strip()
        if not value:
            raise InfrastructureApplyError(f"terraform output {name} is empty")
        return value
