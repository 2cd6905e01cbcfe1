# cli.py
import click
import logging
from rollout.config.settings import get_settings
from botocore.exceptions import BotoCoreError, ClientError
from rollout.errors import RolloutError

# Failures that end a command with a message and exit code 1
COMMAND_ERRORS = (RolloutError, ClientError, BotoCoreError)

# Configure logging
logger = logging.getLogger(__name__)


def _resolve_base_url(settings, base_url=None) -> str:
    """Explicit option, then settings, then the terraform output."""
    if base_url:
        return base_url
    if settings.load_balancer_url:
        return settings.load_balancer_url

    from deployment.aws.infrastructure.terraform import TerraformRunner
    return TerraformRunner(settings.terraform_dir, settings.aws_region).output("load_balancer_url")


def _print_report(report):
    print(f"🌐 Your application is available at: {report.url}")
    if report.health:
        print(f"🩺 Health check endpoint: {report.health.url}")
    print(report.message)


@click.group()
@click.option("--verbose", is_flag=True, help="Verbose logging")
def cli(verbose):
    """Rollout tooling for the myapp1 ECS service"""
    settings = get_settings()
    logging.basicConfig(
        level=logging.DEBUG if verbose else settings.logging_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


@cli.command()
def show_config():
    """Show current configuration"""
    settings = get_settings()

    print("Current Configuration:")
    for key, value in settings.describe().items():
        print(f"  {key}: {value}")


@cli.command()
def status():
    """Show service status, tasks, logs, events and target health"""
    from deployment.aws.monitoring.status_monitor import StatusMonitor

    settings = get_settings()
    print("🔍 Checking ECS Service Status...")
    print("==================================")
    try:
        report = StatusMonitor(settings).collect()
    except COMMAND_ERRORS as e:
        print(f"❌ {e}")
        raise SystemExit(1)
    print(StatusMonitor.render(report))


@cli.command()
@click.option("--base-url", default=None, help="Public load balancer URL (defaults to settings/terraform output)")
@click.option("--cluster", default=None, help="ECS cluster name")
@click.option("--service", default=None, help="ECS service name")
@click.option("--timeout", type=click.FloatRange(min=0, min_open=True), default=None,
              help="Seconds to wait for running == desired (defaults to settings)")
@click.option("--interval", type=click.FloatRange(min=0, min_open=True), default=None,
              help="Seconds between service status checks (defaults to settings)")
def confirm(base_url, cluster, service, timeout, interval):
    """Wait for the service to be stable, then probe /health"""
    from deployment.aws.orchestration.rollout_confirmer import create_rollout_confirmer

    settings = get_settings()
    try:
        url = _resolve_base_url(settings, base_url)
        confirmer = create_rollout_confirmer(settings, cluster=cluster, service=service,
                                             poll_interval=interval, timeout=timeout)
        report = confirmer.confirm(url)
    except COMMAND_ERRORS as e:
        print(f"❌ {e}")
        raise SystemExit(1)

    _print_report(report)
    raise SystemExit(report.exit_code)


@cli.command()
def redeploy():
    """Apply terraform, rebuild and push the image, force a new rollout"""
    from deployment.aws.infrastructure.terraform import TerraformRunner
    from deployment.aws.infrastructure.image_publisher import ImagePublisher
    from deployment.aws.orchestration.redeploy import RedeployWorkflow
    from deployment.aws.utils.aws_clients import get_ecs_client, get_ecr_client, get_sts_client

    settings = get_settings()
    print(f"🔧 Fixing and redeploying {settings.app_name} to AWS ECS Fargate...")

    try:
        workflow = RedeployWorkflow(
            settings,
            terraform=TerraformRunner(settings.terraform_dir, settings.aws_region),
            publisher=ImagePublisher(get_ecr_client(), settings.image_name,
                                     context_dir=settings.docker_context,
                                     platform=settings.docker_platform),
            ecs_client=get_ecs_client(),
            sts_client=get_sts_client(),
        )
        result = workflow.run()
    except COMMAND_ERRORS as e:
        print(f"❌ Redeploy failed: {e}")
        raise SystemExit(1)

    print("✅ Fixed deployment completed!")
    print(f"📦 Image: {result.image_uri}")
    _print_report(result.report)
    print("")
    print("📊 To check the status:")
    print("   rollout status")
    print("")
    print("📝 To view logs:")
    print(f"   aws logs tail {settings.log_group_name} --follow --region {result.region}")


@cli.command()
@click.option("--image-uri", required=True, help="Pushed image, e.g. <registry>/myapp1:<sha>")
@click.option("--base-url", default=None, help="Public load balancer URL to probe afterwards")
@click.option("--no-confirm", is_flag=True, help="Skip the stability wait and health probe")
def deploy_image(image_uri, base_url, no_confirm):
    """Register a task definition revision for IMAGE_URI and update the service"""
    from deployment.aws.orchestration.task_definition import TaskDefinitionUpdater
    from deployment.aws.orchestration.rollout_confirmer import create_rollout_confirmer
    from deployment.aws.utils.aws_clients import get_ecs_client

    settings = get_settings()
    try:
        ecs_client = get_ecs_client()
        updater = TaskDefinitionUpdater(ecs_client, family=settings.ecr_repo_name,
                                        cluster=settings.ecs_cluster_name,
                                        service=settings.ecs_service_name)
        new_arn = updater.deploy_image(image_uri)
    except COMMAND_ERRORS + (ValueError,) as e:
        print(f"❌ Deploy failed: {e}")
        raise SystemExit(1)
    print(f"✅ Service updated to {new_arn}")

    if no_confirm:
        return

    try:
        url = _resolve_base_url(settings, base_url)
        report = create_rollout_confirmer(settings, ecs_client=ecs_client).confirm(url)
    except COMMAND_ERRORS as e:
        print(f"❌ {e}")
        raise SystemExit(1)

    _print_report(report)
    raise SystemExit(report.exit_code)


@cli.command()
@click.option("--host", default="0.0.0.0")
@click.option("--port", default=8080, type=int)
def serve(host, port):
    """Run the health service locally"""
    import uvicorn
    from rollout.main import create_app

    uvicorn.run(create_app(), host=host, port=port)


if __name__ == "__main__":
    cli()
