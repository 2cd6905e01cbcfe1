"""Register a new task definition revision for a pushed image and roll the service onto it."""
import copy
import logging
from typing import Any, Dict

from rollout.utils.decorators import log_operation

logger = logging.getLogger(__name__)

# Read-only fields describe_task_definition returns that register_task_definition rejects
TASK_DEFINITION_METADATA_FIELDS = (
    'taskDefinitionArn',
    'revision',
    'status',
    'requiresAttributes',
    'compatibilities',
    'registeredAt',
    'registeredBy',
)


def clean_task_definition(task_definition: Dict[str, Any], image_uri: str) -> Dict[str, Any]:
    """Copy of `task_definition` ready for re-registration with a new image."""
    cleaned = copy.deepcopy(task_definition)
    for field in TASK_DEFINITION_METADATA_FIELDS:
        cleaned.pop(field, None)

    containers = cleaned.get('containerDefinitions') or []
    if not containers:
        raise ValueError("Task definition has no container definitions")
    containers[0]['image'] = image_uri
    return cleaned


class TaskDefinitionUpdater:
    """Pipeline deploy step: new revision with the pushed image, then update-service."""

    def __init__(self, ecs_client, family: str, cluster: str, service: str):
        self.ecs_client = ecs_client
        self.family = family
        self.cluster = cluster
        self.service = service

    @log_operation("Register task definition and update ECS service", logger_name=__name__)
    def deploy_image(self, image_uri: str) -> str:
        """Returns the ARN of the newly registered task definition revision."""
        current = self.ecs_client.describe_task_definition(
            taskDefinition=self.family
        )['taskDefinition']
        logger.info(f"Current task definition: {current.get('taskDefinitionArn')}")

        new_definition = clean_task_definition(current, image_uri)
        registered = self.ecs_client.register_task_definition(**new_definition)['taskDefinition']
        new_arn = registered['taskDefinitionArn']
        logger.info(f"Registered task definition: {new_arn} ({image_uri})")

        self.ecs_client.update_service(
            cluster=self.cluster,
            service=self.service,
            taskDefinition=new_arn,
        )
        logger.info(f"🔄 Updated service {self.service} to {new_arn}")
        return new_arn
