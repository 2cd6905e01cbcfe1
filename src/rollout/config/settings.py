# src/rollout/config/settings.py
import logging
from typing import Optional, Dict, Any
from pydantic import Field, validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """
    Single source of truth for all rollout settings.

    Configuration precedence:
    1. Environment variables (highest priority)
    2. .env file (if exists)
    3. Default values in this class (lowest priority)

    Usage:
        from rollout.config.settings import get_settings
        settings = get_settings()
        cluster = settings.ecs_cluster_name
    """

    # Application Settings
    app_name: str = Field(
        default="myapp1",
        description="Application name"
    )

    # AWS Core Settings
    aws_region: str = Field(
        default="us-east-1",
        alias="AWS_DEFAULT_REGION"
    )

    aws_access_key_id: Optional[str] = Field(
        default=None,
        alias="AWS_ACCESS_KEY_ID"
    )

    aws_secret_access_key: Optional[str] = Field(
        default=None,
        alias="AWS_SECRET_ACCESS_KEY"
    )

    aws_endpoint_url: Optional[str] = Field(
        default=None,
        alias="AWS_ENDPOINT_URL"
    )

    # ECS Configuration
    ecs_cluster_name: str = Field(
        default="myapp1-cluster",
        description="ECS cluster running the service"
    )

    ecs_service_name: str = Field(
        default="myapp1-service",
        description="ECS service to confirm"
    )

    log_group_name: str = Field(
        default="/ecs/myapp1",
        description="CloudWatch log group of the service containers"
    )

    target_group_name: str = Field(
        default="myapp1-tg",
        description="Load balancer target group in front of the service"
    )

    # ECR / Docker Configuration
    ecr_repo_name: str = Field(
        default="myapp1",
        description="ECR repository name, also the task definition family"
    )

    image_name: str = Field(
        default="myapp1",
        description="Local docker image name"
    )

    image_tag: str = Field(
        default="latest",
        description="Tag pushed by the redeploy workflow"
    )

    docker_context: str = Field(
        default=".",
        description="Docker build context directory"
    )

    docker_platform: Optional[str] = Field(
        default=None,
        description="Optional --platform for docker build (e.g. linux/amd64)"
    )

    # Terraform Configuration
    terraform_dir: str = Field(
        default=".",
        description="Directory holding the terraform configuration and state"
    )

    # Health Check Configuration
    load_balancer_url: Optional[str] = Field(
        default=None,
        description="Public base URL; read from terraform output when unset"
    )

    health_path: str = Field(
        default="/health",
        description="Health endpoint path on the load balancer"
    )

    health_timeout_seconds: float = Field(
        default=10,
        description="Timeout for the single health probe request"
    )

    # Stability Wait Configuration (matches the ECS services-stable waiter)
    stability_poll_interval_seconds: float = Field(
        default=15,
        description="Fixed delay between service status polls"
    )

    stability_timeout_seconds: float = Field(
        default=600,
        description="Give up waiting for running == desired after this long"
    )

    # Status Report Configuration
    log_since_minutes: int = Field(
        default=30,
        description="How far back the status report reads container logs"
    )

    service_events_limit: int = Field(
        default=10,
        description="Number of recent service events shown"
    )

    stopped_tasks_limit: int = Field(
        default=3,
        description="Stopped tasks inspected when nothing is running"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )

    @validator('log_level', pre=True)
    def normalize_log_level(cls, v):
        """Accept lower-case level names and reject unknown ones."""
        v = str(v).upper()
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v not in valid_levels:
            raise ValueError(f"Invalid log_level: {v}. Must be one of {valid_levels}")
        return v

    @validator('health_path', pre=True)
    def ensure_leading_slash(cls, v):
        v = str(v)
        return v if v.startswith('/') else f"/{v}"

    @validator('stability_poll_interval_seconds', 'stability_timeout_seconds', 'health_timeout_seconds')
    def must_be_positive(cls, v):
        if v <= 0:
            raise ValueError("must be greater than zero")
        return v

    @property
    def logging_level(self) -> int:
        """Numeric logging level for logging.basicConfig."""
        return getattr(logging, self.log_level)

    def describe(self) -> Dict[str, Any]:
        """Non-secret settings shown by `rollout show-config`."""
        return {
            'App Name': self.app_name,
            'AWS Region': self.aws_region,
            'AWS Endpoint': self.aws_endpoint_url,
            'ECS Cluster': self.ecs_cluster_name,
            'ECS Service': self.ecs_service_name,
            'Log Group': self.log_group_name,
            'Target Group': self.target_group_name,
            'ECR Repository': self.ecr_repo_name,
            'Image': f"{self.image_name}:{self.image_tag}",
            'Terraform Dir': self.terraform_dir,
            'Load Balancer URL': self.load_balancer_url,
            'Health Path': self.health_path,
            'Stability Poll Interval': f"{self.stability_poll_interval_seconds}s",
            'Stability Timeout': f"{self.stability_timeout_seconds}s",
            'Log Level': self.log_level,
        }

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=(".env", ".env.aws"),  # Read both .env and .env.aws (aws takes precedence)
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    This ensures we only create one Settings instance per process.
    """
    return Settings()
