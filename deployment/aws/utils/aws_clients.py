"""AWS utility functions and client management."""
import os
import boto3
import logging
from typing import Any
from rollout.config.settings import get_settings

logger = logging.getLogger(__name__)

class AWSClientManager:
    """Singleton manager for AWS service clients."""
    _instance = None
    _clients = {}

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(AWSClientManager, cls).__new__(cls)
            cls._instance._initialize()
        return cls._instance

    def _initialize(self):
        """Initialize the client manager with settings."""
        self.settings = get_settings()

        # Cache commonly used values
        self.region = self.settings.aws_region
        self.endpoint_url = self.settings.aws_endpoint_url

        logger.info(f"Initializing AWSClientManager")
        logger.info(f"  Region: {self.region}")
        logger.info(f"  Endpoint: {self.endpoint_url}")

    def get_client(self, service_name: str) -> Any:
        """Get or create an AWS service client."""
        if service_name in self._clients:
            return self._clients[service_name]

        client_kwargs = {
            'region_name': self.region
        }

        # Check for AWS profile in environment (for SSO)
        aws_profile = os.environ.get('AWS_PROFILE')
        if aws_profile:
            try:
                session = boto3.Session(profile_name=aws_profile)
                client = session.client(service_name, region_name=self.region,
                                        endpoint_url=self.endpoint_url)
                self._clients[service_name] = client
                logger.debug(f"Created {service_name} client using profile: {aws_profile}")
                return client
            except Exception as e:
                logger.warning(f"Failed to create client with profile {aws_profile}: {e}")
                # Fall back to explicit credentials / default chain

        if self.settings.aws_access_key_id:
            client_kwargs['aws_access_key_id'] = self.settings.aws_access_key_id
        if self.settings.aws_secret_access_key:
            client_kwargs['aws_secret_access_key'] = self.settings.aws_secret_access_key

        if self.endpoint_url:
            client_kwargs['endpoint_url'] = self.endpoint_url

        try:
            client = boto3.client(service_name, **client_kwargs)
            self._clients[service_name] = client
            logger.debug(f"Created {service_name} client")
            return client
        except Exception as e:
            logger.error(f"Error creating {service_name} client: {str(e)}")
            raise

    @classmethod
    def reset(cls):
        """Drop the singleton so the next call re-reads settings."""
        cls._clients.clear()
        cls._instance = None

# Convenience functions for common operations

def get_ecs_client():
    """Get the ECS client."""
    return AWSClientManager().get_client('ecs')

def get_ecr_client():
    """Get the ECR client."""
    return AWSClientManager().get_client('ecr')

def get_logs_client():
    """Get the CloudWatch Logs client."""
    return AWSClientManager().get_client('logs')

def get_elbv2_client():
    """Get the Elastic Load Balancing v2 client."""
    return AWSClientManager().get_client('elbv2')

def get_sts_client():
    """Get the STS client."""
    return AWSClientManager().get_client('sts')
