"""Exceptions raised by the rollout workflows."""


class RolloutError(Exception):
    """Base class for errors that abort a deployment action."""


class InfrastructureApplyError(RolloutError):
    """terraform plan/apply/output failed."""


class ImagePublishError(RolloutError):
    """Registry login or docker build/tag/push failed."""


class ServiceNotFoundError(RolloutError):
    """The ECS cluster or service is missing, inactive or draining."""


class StabilityTimeoutError(RolloutError):
    """The service did not reach running == desired before the timeout."""

    def __init__(self, message: str, result=None):
        super().__init__(message)
        self.result = result
