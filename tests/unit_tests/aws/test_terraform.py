import subprocess
from unittest.mock import patch, MagicMock

import pytest

from deployment.aws.infrastructure.terraform import TerraformRunner
from rollout.errors import InfrastructureApplyError


@patch("deployment.aws.infrastructure.terraform.subprocess.run")
def test_plan_and_apply_pass_region(mock_run):
    runner = TerraformRunner("infra", aws_region="eu-west-1")

    runner.plan()
    runner.apply()

    plan_cmd = mock_run.call_args_list[0].args[0]
    apply_cmd = mock_run.call_args_list[1].args[0]
    assert plan_cmd == ["terraform", "plan", "-var=aws_region=eu-west-1"]
    assert apply_cmd == ["terraform", "apply", "-var=aws_region=eu-west-1", "-auto-approve"]
    assert mock_run.call_args_list[0].kwargs["cwd"] == "infra"
    assert mock_run.call_args_list[0].kwargs["check"] is True


@patch("deployment.aws.infrastructure.terraform.subprocess.run")
def test_output_returns_stripped_raw_value(mock_run):
    mock_run.return_value = MagicMock(stdout="http://myapp1-alb.elb.amazonaws.com\n")

    value = TerraformRunner().output("load_balancer_url")

    assert value == "http://myapp1-alb.elb.amazonaws.com"
    assert mock_run.call_args.args[0] == ["terraform", "output", "-raw", "load_balancer_url"]


@patch("deployment.aws.infrastructure.terraform.subprocess.run")
def test_empty_output_is_an_error(mock_run):
    mock_run.return_value = MagicMock(stdout="")

    with pytest.raises(InfrastructureApplyError, match="empty"):
        TerraformRunner().output("ecs_cluster_name")


@patch("deployment.aws.infrastructure.terraform.subprocess.run")
def test_failed_apply_raises_infrastructure_error(mock_run):
    mock_run.side_effect = subprocess.CalledProcessError(1, ["terraform", "apply"], stderr="Error: boom")

    with pytest.raises(InfrastructureApplyError, match="boom"):
        TerraformRunner().apply()


@patch("deployment.aws.infrastructure.terraform.subprocess.run", side_effect=FileNotFoundError())
def test_missing_binary_raises_infrastructure_error(mock_run):
    with pytest.raises(InfrastructureApplyError, match="not found"):
        TerraformRunner().plan()
