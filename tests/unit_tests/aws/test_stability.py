from unittest.mock import patch

import pytest

from deployment.aws.monitoring.stability import ServiceStabilityWaiter, create_stability_waiter
from rollout.errors import RolloutError, ServiceNotFoundError
from tests.consts import TEST_CLUSTER, TEST_SERVICE
from tests.fixtures.ecs_fixtures import service_description, DESCRIBE_SERVICES_PARAMS


def make_waiter(ecs_client, interval=15, timeout=60):
    return ServiceStabilityWaiter(ecs_client, TEST_CLUSTER, TEST_SERVICE,
                                  poll_interval=interval, timeout=timeout)


@patch("deployment.aws.monitoring.stability.time.sleep")
def test_already_stable_returns_without_sleeping(mock_sleep, ecs_client, ecs_stubber):
    ecs_stubber.add_response("describe_services", service_description(1, 1), DESCRIBE_SERVICES_PARAMS)

    result = make_waiter(ecs_client).wait()

    assert result.stable is True
    assert result.attempts == 1
    assert (result.running_count, result.desired_count) == (1, 1)
    mock_sleep.assert_not_called()


@patch("deployment.aws.monitoring.stability.time.sleep")
def test_becomes_stable_after_two_intervals(mock_sleep, ecs_client, ecs_stubber):
    for running in (0, 0, 1):
        ecs_stubber.add_response("describe_services", service_description(running, 1),
                                 DESCRIBE_SERVICES_PARAMS)

    result = make_waiter(ecs_client).wait()

    assert result.stable is True
    assert result.attempts == 3
    assert mock_sleep.call_count == 2
    mock_sleep.assert_called_with(15)


@patch("deployment.aws.monitoring.stability.time.sleep")
def test_times_out_after_bounded_attempts(mock_sleep, ecs_client, ecs_stubber):
    # 60s timeout / 15s interval -> 4 polls
    for _ in range(4):
        ecs_stubber.add_response("describe_services", service_description(0, 1),
                                 DESCRIBE_SERVICES_PARAMS)

    result = make_waiter(ecs_client).wait()

    assert result.stable is False
    assert result.reason == "timeout"
    assert result.attempts == 4
    assert result.running_count == 0
    # no sleep after the final poll
    assert mock_sleep.call_count == 3


@patch("deployment.aws.monitoring.stability.time.sleep")
def test_old_deployment_still_running_is_not_stable(mock_sleep, ecs_client, ecs_stubber):
    ecs_stubber.add_response("describe_services", service_description(1, 1, deployments=2),
                             DESCRIBE_SERVICES_PARAMS)
    ecs_stubber.add_response("describe_services", service_description(1, 1, deployments=1),
                             DESCRIBE_SERVICES_PARAMS)

    result = make_waiter(ecs_client).wait()

    assert result.stable is True
    assert result.attempts == 2


def test_missing_service_raises(ecs_client, ecs_stubber):
    ecs_stubber.add_response(
        "describe_services",
        {"services": [], "failures": [{"arn": TEST_SERVICE, "reason": "MISSING"}]},
        DESCRIBE_SERVICES_PARAMS,
    )

    with pytest.raises(ServiceNotFoundError, match="MISSING"):
        make_waiter(ecs_client).wait()


def test_inactive_service_raises(ecs_client, ecs_stubber):
    ecs_stubber.add_response("describe_services", service_description(0, 0, status="INACTIVE"),
                             DESCRIBE_SERVICES_PARAMS)

    with pytest.raises(ServiceNotFoundError, match="INACTIVE"):
        make_waiter(ecs_client).wait()


def test_timeout_shorter_than_interval_still_polls_once(ecs_client):
    assert make_waiter(ecs_client, interval=30, timeout=10).max_attempts == 1
    assert make_waiter(ecs_client, interval=15, timeout=600).max_attempts == 40


def test_create_stability_waiter_uses_settings(settings, ecs_client):
    waiter = create_stability_waiter(settings, ecs_client=ecs_client, service="other-service")

    assert waiter.cluster == settings.ecs_cluster_name
    assert waiter.service == "other-service"
    assert waiter.poll_interval == settings.stability_poll_interval_seconds
    assert waiter.timeout == settings.stability_timeout_seconds


def test_cluster_not_found_error_becomes_service_not_found(ecs_client, ecs_stubber):
    ecs_stubber.add_client_error("describe_services", service_error_code="ClusterNotFoundException",
                                 service_message="Cluster not found.")

    with pytest.raises(ServiceNotFoundError, match="ClusterNotFoundException"):
        make_waiter(ecs_client).wait()


def test_other_aws_errors_become_rollout_errors(ecs_client, ecs_stubber):
    ecs_stubber.add_client_error("describe_services", service_error_code="AccessDeniedException",
                                 service_message="not authorized")

    with pytest.raises(RolloutError, match="not authorized"):
        make_waiter(ecs_client).wait()


def test_explicit_interval_and_timeout_override_settings(settings, ecs_client):
    waiter = create_stability_waiter(settings, ecs_client=ecs_client, poll_interval=5, timeout=20)

    assert waiter.poll_interval == 5
    assert waiter.timeout == 20
    assert waiter.max_attempts == 4
