"""
ECS service stability wait.

Polls the orchestrator at a fixed interval until the running task count
matches the desired task count, mirroring `aws ecs wait services-stable`.
"""

import logging
import math
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

from botocore.exceptions import BotoCoreError, ClientError

from rollout.errors import RolloutError, ServiceNotFoundError

logger = logging.getLogger(__name__)

# Statuses the services-stable waiter treats as terminal failures
TERMINAL_SERVICE_STATUSES = ('INACTIVE', 'DRAINING')

# describe_services error codes meaning the cluster or service is gone
NOT_FOUND_ERROR_CODES = ('ClusterNotFoundException', 'ServiceNotFoundException')


@dataclass
class StabilityResult:
    """Outcome of a stability wait."""
    stable: bool
    attempts: int
    running_count: int
    desired_count: int
    elapsed_seconds: float
    reason: str = ""


class ServiceStabilityWaiter:
    """Wait for an ECS service to reach running == desired."""

    def __init__(self, ecs_client, cluster: str, service: str,
                 poll_interval: float = 15, timeout: float = 600):
        self.ecs_client = ecs_client
        self.cluster = cluster
        self.service = service
        self.poll_interval = poll_interval
        self.timeout = timeout

    @property
    def max_attempts(self) -> int:
        """Number of polls that fit in the timeout window."""
        return max(1, math.ceil(self.timeout / self.poll_interval))

    def describe(self) -> Dict[str, Any]:
        """Return the service description, raising if it is gone."""
        try:
            response = self.ecs_client.describe_services(
                cluster=self.cluster,
                services=[self.service]
            )
        except ClientError as e:
            code = e.response.get('Error', {}).get('Code')
            if code in NOT_FOUND_ERROR_CODES:
                raise ServiceNotFoundError(
                    f"Service {self.service} not found in cluster {self.cluster}: {code}"
                ) from e
            raise RolloutError(f"Could not describe service {self.service}: {e}") from e
        except BotoCoreError as e:
            raise RolloutError(f"Could not describe service {self.service}: {e}") from e

        if response.get('failures') or not response.get('services'):
            reasons = [f.get('reason', 'UNKNOWN') for f in response.get('failures', [])]
            raise ServiceNotFoundError(
                f"Service {self.service} not found in cluster {self.cluster}: "
                f"{', '.join(reasons) or 'MISSING'}"
            )

        service = response['services'][0]
        if service.get('status') in TERMINAL_SERVICE_STATUSES:
            raise ServiceNotFoundError(
                f"Service {self.service} is {service['status']}"
            )
        return service

    @staticmethod
    def is_stable(service: Dict[str, Any]) -> bool:
        """Running matches desired and no older deployment is still draining."""
        running = service.get('runningCount', 0)
        desired = service.get('desiredCount', 0)
        deployments = service.get('deployments', [])
        return running == desired and len(deployments) <= 1

    def wait(self) -> StabilityResult:
        """Poll until stable or until the attempt budget runs out."""
        start_time = time.time()
        running = desired = 0

        logger.info(f"⏳ Waiting for service {self.service} in {self.cluster} to become stable "
                    f"(every {self.poll_interval}s, up to {self.max_attempts} checks)")

        for attempt in range(1, self.max_attempts + 1):
            service = self.describe()
            running = service.get('runningCount', 0)
            desired = service.get('desiredCount', 0)
            deployments = len(service.get('deployments', []))

            if self.is_stable(service):
                elapsed = time.time() - start_time
                logger.info(f"✅ Service stable: {running}/{desired} tasks running")
                return StabilityResult(
                    stable=True,
                    attempts=attempt,
                    running_count=running,
                    desired_count=desired,
                    elapsed_seconds=elapsed,
                )

            logger.info(f"⏳ {running}/{desired} tasks running, {deployments} deployment(s) "
                        f"- check {attempt}/{self.max_attempts}")

            if attempt < self.max_attempts:
                time.sleep(self.poll_interval)

        elapsed = time.time() - start_time
        logger.error(f"❌ Service {self.service} did not stabilise within {self.timeout}s")
        return StabilityResult(
            stable=False,
            attempts=self.max_attempts,
            running_count=running,
            desired_count=desired,
            elapsed_seconds=elapsed,
            reason="timeout",
        )


def create_stability_waiter(settings, ecs_client=None, cluster: Optional[str] = None,
                            service: Optional[str] = None, poll_interval: Optional[float] = None,
                            timeout: Optional[float] = None) -> ServiceStabilityWaiter:
    """Build a waiter from settings; any explicit argument wins over the setting."""
    if ecs_client is None:
        from deployment.aws.utils.aws_clients import get_ecs_client
        ecs_client = get_ecs_client()

    return ServiceStabilityWaiter(
        ecs_client,
        cluster=cluster or settings.ecs_cluster_name,
        service=service or settings.ecs_service_name,
        poll_interval=poll_interval or settings.stability_poll_interval_seconds,
        timeout=timeout or settings.stability_timeout_seconds,
    )
