"""
Deployment rollout confirmation.

Waits for the ECS service to stabilise, then probes the health endpoint
through the public load balancer. A stability timeout fails the rollout;
an unhealthy probe is only a warning because target registration can lag
task readiness.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from deployment.aws.monitoring.stability import (
    ServiceStabilityWaiter,
    StabilityResult,
    create_stability_waiter,
)
from deployment.aws.monitoring.health_probe import HealthProbe, HealthProbeResult

logger = logging.getLogger(__name__)

STATUS_HINT = "rollout status"


class RolloutOutcome(str, Enum):
    SUCCESS = "success"
    WARNING = "warning"
    FAILED = "failed"


@dataclass
class RolloutReport:
    """Result of confirming a rollout."""
    outcome: RolloutOutcome
    url: str
    stability: StabilityResult
    health: Optional[HealthProbeResult] = None

    @property
    def exit_code(self) -> int:
        return 1 if self.outcome == RolloutOutcome.FAILED else 0

    @property
    def message(self) -> str:
        if self.outcome == RolloutOutcome.SUCCESS:
            return "✅ Health check passed!"
        if self.outcome == RolloutOutcome.WARNING:
            return f"⚠️  Health check may still be initializing. Check logs with: {STATUS_HINT}"
        return (f"❌ Service did not become stable "
                f"({self.stability.running_count}/{self.stability.desired_count} tasks running "
                f"after {self.stability.attempts} checks)")


class RolloutConfirmer:
    """Stability wait followed by a single health probe."""

    def __init__(self, waiter: ServiceStabilityWaiter, probe: HealthProbe):
        self.waiter = waiter
        self.probe = probe

    def confirm(self, base_url: str) -> RolloutReport:
        """Confirm the current rollout behind `base_url`."""
        stability = self.waiter.wait()
        return self.report_for(stability, base_url)

    def report_for(self, stability: StabilityResult, base_url: str) -> RolloutReport:
        """Probe health only when the stability wait succeeded."""
        if not stability.stable:
            report = RolloutReport(
                outcome=RolloutOutcome.FAILED,
                url=base_url,
                stability=stability,
            )
            logger.error(report.message)
            return report

        health = self.probe.check(base_url)
        outcome = RolloutOutcome.SUCCESS if health.healthy else RolloutOutcome.WARNING
        report = RolloutReport(
            outcome=outcome,
            url=base_url,
            stability=stability,
            health=health,
        )

        if outcome == RolloutOutcome.SUCCESS:
            logger.info(report.message)
        else:
            logger.warning(report.message)
        return report


def create_rollout_confirmer(settings, ecs_client=None, cluster: Optional[str] = None,
                             service: Optional[str] = None, poll_interval: Optional[float] = None,
                             timeout: Optional[float] = None) -> RolloutConfirmer:
    """Wire a confirmer from settings."""
    waiter = create_stability_waiter(settings, ecs_client=ecs_client,
                                     cluster=cluster, service=service,
                                     poll_interval=poll_interval, timeout=timeout)
    probe = HealthProbe(timeout=settings.health_timeout_seconds,
                        health_path=settings.health_path)
    return RolloutConfirmer(waiter, probe)
