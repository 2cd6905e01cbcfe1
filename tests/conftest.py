import pytest
from moto import mock_aws

from tests.consts import TEST_REGION
from rollout.config.settings import get_settings
from deployment.aws.utils.aws_clients import AWSClientManager

from tests.fixtures.ecs_fixtures import (  # noqa: F401
    settings,
    ecs_client,
    ecs_stubber,
    logs_client,
    elbv2_client,
    event_time,
)


@pytest.fixture(autouse=True)
def aws_credentials(monkeypatch):
    """Fake credentials so no test can reach a real account."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", TEST_REGION)
    monkeypatch.delenv("AWS_PROFILE", raising=False)
    monkeypatch.delenv("AWS_ENDPOINT_URL", raising=False)
    get_settings.cache_clear()
    AWSClientManager.reset()
    yield
    get_settings.cache_clear()
    AWSClientManager.reset()


@pytest.fixture
def mocked_aws():
    with mock_aws():
        yield
