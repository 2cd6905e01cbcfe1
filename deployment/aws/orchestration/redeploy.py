"""
Fix-and-redeploy workflow for the ECS Fargate service.

Applies terraform, rebuilds and republishes the image, forces a new
rollout, waits for stability and probes the health endpoint.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from rollout.errors import StabilityTimeoutError
from rollout.utils.decorators import log_operation
from deployment.aws.infrastructure.terraform import TerraformRunner
from deployment.aws.infrastructure.image_publisher import ImagePublisher
from deployment.aws.monitoring.health_probe import HealthProbe, build_health_url
from deployment.aws.monitoring.stability import create_stability_waiter
from deployment.aws.orchestration.rollout_confirmer import RolloutConfirmer, RolloutReport

logger = logging.getLogger(__name__)


@dataclass
class RedeployResult:
    account_id: str
    region: str
    image_uri: str
    cluster: str
    service: str
    load_balancer_url: str
    health_url: str
    report: RolloutReport


class RedeployWorkflow:
    """Terraform apply -> image publish -> force new deployment -> confirm."""

    def __init__(self, settings, terraform: TerraformRunner, publisher: ImagePublisher,
                 ecs_client, sts_client, probe: Optional[HealthProbe] = None):
        self.settings = settings
        self.terraform = terraform
        self.publisher = publisher
        self.ecs_client = ecs_client
        self.sts_client = sts_client
        self.probe = probe or HealthProbe(timeout=settings.health_timeout_seconds,
                                          health_path=settings.health_path)

    @log_operation("Apply terraform configuration", logger_name=__name__)
    def apply_infrastructure(self) -> None:
        self.terraform.plan()
        self.terraform.apply()

    @log_operation("Build and publish image", logger_name=__name__)
    def publish_image(self) -> str:
        repository_url = self.terraform.output("ecr_repository_url")
        logger.info(f"📦 ECR Repository: {repository_url}")
        self.publisher.login(repository_url)
        return self.publisher.build_and_push(repository_url, tag=self.settings.image_tag)

    def force_new_deployment(self, cluster: str, service: str) -> None:
        logger.info(f"🔄 Updating ECS service {service} with new image...")
        self.ecs_client.update_service(
            cluster=cluster,
            service=service,
            forceNewDeployment=True,
        )

    def run(self) -> RedeployResult:
        """Run the whole workflow.

        Raises:
            InfrastructureApplyError: terraform failed
            ImagePublishError: registry login or docker failed
            StabilityTimeoutError: the new rollout never stabilised
        """
        account_id = self.sts_client.get_caller_identity()['Account']
        region = self.settings.aws_region
        logger.info(f"📍 Using AWS Account: {account_id}")
        logger.info(f"📍 Using AWS Region: {region}")

        self.apply_infrastructure()
        image_uri = self.publish_image()

        cluster = self.terraform.output("ecs_cluster_name")
        service = self.terraform.output("ecs_service_name")
        self.force_new_deployment(cluster, service)

        logger.info("⏳ Waiting for deployment to complete...")
        waiter = create_stability_waiter(self.settings, ecs_client=self.ecs_client,
                                         cluster=cluster, service=service)
        confirmer = RolloutConfirmer(waiter, self.probe)

        stability = waiter.wait()
        if not stability.stable:
            raise StabilityTimeoutError(
                f"Service {service} did not become stable: "
                f"{stability.running_count}/{stability.desired_count} tasks running",
                result=stability,
            )

        load_balancer_url = (self.settings.load_balancer_url
                             or self.terraform.output("load_balancer_url"))
        report = confirmer.report_for(stability, load_balancer_url)

        return RedeployResult(
            account_id=account_id,
            region=region,
            image_uri=image_uri,
            cluster=cluster,
            service=service,
            load_balancer_url=load_balancer_url,
            health_url=build_health_url(load_balancer_url, self.settings.health_path),
            report=report,
        )
