from unittest.mock import MagicMock, patch

import requests

from deployment.aws.monitoring.health_probe import HealthProbe
from deployment.aws.monitoring.stability import ServiceStabilityWaiter
from deployment.aws.orchestration.rollout_confirmer import (
    RolloutConfirmer,
    RolloutOutcome,
    create_rollout_confirmer,
)
from tests.consts import TEST_CLUSTER, TEST_SERVICE, TEST_LB_URL
from tests.fixtures.ecs_fixtures import service_description, DESCRIBE_SERVICES_PARAMS


def make_confirmer(ecs_client, status_code=200, timeout=60):
    session = MagicMock(spec=requests.Session)
    session.get.return_value = MagicMock(status_code=status_code)
    waiter = ServiceStabilityWaiter(ecs_client, TEST_CLUSTER, TEST_SERVICE,
                                    poll_interval=15, timeout=timeout)
    return RolloutConfirmer(waiter, HealthProbe(timeout=5, session=session)), session


@patch("deployment.aws.monitoring.stability.time.sleep")
def test_stable_and_healthy_is_success_without_looping(mock_sleep, ecs_client, ecs_stubber):
    ecs_stubber.add_response("describe_services", service_description(2, 2), DESCRIBE_SERVICES_PARAMS)
    confirmer, session = make_confirmer(ecs_client)

    report = confirmer.confirm(TEST_LB_URL)

    assert report.outcome == RolloutOutcome.SUCCESS
    assert report.exit_code == 0
    assert report.stability.attempts == 1
    mock_sleep.assert_not_called()
    session.get.assert_called_once()


@patch("deployment.aws.monitoring.stability.time.sleep")
def test_running_count_catches_up_then_healthy(mock_sleep, ecs_client, ecs_stubber):
    for running in (0, 0, 1):
        ecs_stubber.add_response("describe_services", service_description(running, 1),
                                 DESCRIBE_SERVICES_PARAMS)
    confirmer, _ = make_confirmer(ecs_client, status_code=200)

    report = confirmer.confirm(TEST_LB_URL)

    assert report.outcome == RolloutOutcome.SUCCESS
    assert report.url == TEST_LB_URL
    assert report.health.url == f"{TEST_LB_URL}/health"
    assert mock_sleep.call_count == 2
    assert "Health check passed" in report.message


@patch("deployment.aws.monitoring.stability.time.sleep")
def test_503_after_stability_is_warning_with_zero_exit(mock_sleep, ecs_client, ecs_stubber):
    ecs_stubber.add_response("describe_services", service_description(1, 1), DESCRIBE_SERVICES_PARAMS)
    confirmer, _ = make_confirmer(ecs_client, status_code=503)

    report = confirmer.confirm(TEST_LB_URL)

    assert report.outcome == RolloutOutcome.WARNING
    assert report.exit_code == 0
    assert report.health.status_code == 503
    assert "may still be initializing" in report.message
    assert "rollout status" in report.message


@patch("deployment.aws.monitoring.stability.time.sleep")
def test_never_stable_fails_and_skips_probe(mock_sleep, ecs_client, ecs_stubber):
    for _ in range(2):
        ecs_stubber.add_response("describe_services", service_description(0, 1),
                                 DESCRIBE_SERVICES_PARAMS)
    confirmer, session = make_confirmer(ecs_client, timeout=30)

    report = confirmer.confirm(TEST_LB_URL)

    assert report.outcome == RolloutOutcome.FAILED
    assert report.exit_code == 1
    assert report.health is None
    session.get.assert_not_called()
    assert "0/1 tasks running" in report.message


def test_create_rollout_confirmer_wires_settings(settings, ecs_client):
    confirmer = create_rollout_confirmer(settings, ecs_client=ecs_client)

    assert confirmer.waiter.service == settings.ecs_service_name
    assert confirmer.probe.health_path == settings.health_path
    assert confirmer.probe.timeout == settings.health_timeout_seconds
