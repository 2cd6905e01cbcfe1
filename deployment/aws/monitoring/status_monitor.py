"""
Deployment status report for the ECS service.

Collects service overview, task details, recent container logs, recent
service events and load balancer target health into one report.
"""

import logging
import time
from datetime import datetime
from typing import Dict, List, Any
from botocore.exceptions import ClientError

from deployment.aws.monitoring.stability import ServiceStabilityWaiter

logger = logging.getLogger(__name__)


class StatusMonitor:
    """Gather and render the status of the deployed service."""

    def __init__(self, settings, ecs_client=None, logs_client=None, elbv2_client=None):
        self.settings = settings
        self.ecs_client = ecs_client
        self.logs_client = logs_client
        self.elbv2_client = elbv2_client

    def _init_clients(self):
        """Initialize AWS clients lazily."""
        from deployment.aws.utils.aws_clients import (
            get_ecs_client, get_logs_client, get_elbv2_client
        )
        if not self.ecs_client:
            self.ecs_client = get_ecs_client()
        if not self.logs_client:
            self.logs_client = get_logs_client()
        if not self.elbv2_client:
            self.elbv2_client = get_elbv2_client()

    def collect(self) -> Dict[str, Any]:
        """
        Build the full status report.

        Returns:
            Dict with service, tasks, logs, events and target_health sections

        Raises:
            ServiceNotFoundError: if the service does not exist
        """
        self._init_clients()

        waiter = ServiceStabilityWaiter(
            self.ecs_client,
            cluster=self.settings.ecs_cluster_name,
            service=self.settings.ecs_service_name,
        )
        service = waiter.describe()

        return {
            'timestamp': datetime.utcnow().isoformat(),
            'service': self._service_overview(service),
            'tasks': self._task_details(),
            'logs': self._recent_logs(),
            'events': self._service_events(service),
            'target_health': self._target_health(),
        }

    def _service_overview(self, service: Dict[str, Any]) -> Dict[str, Any]:
        deployments = service.get('deployments', [])
        return {
            'status': service.get('status'),
            'running': service.get('runningCount', 0),
            'desired': service.get('desiredCount', 0),
            'pending': service.get('pendingCount', 0),
            'task_definition': service.get('taskDefinition'),
            'deployment_status': deployments[0].get('status') if deployments else None,
            'deployments': len(deployments),
        }

    def _task_details(self) -> Dict[str, Any]:
        """Running tasks, or the most recent stopped ones when nothing runs."""
        cluster = self.settings.ecs_cluster_name
        task_arns = self.ecs_client.list_tasks(
            cluster=cluster,
            serviceName=self.settings.ecs_service_name
        ).get('taskArns', [])

        if task_arns:
            return {'running': True, 'tasks': self._describe_tasks(task_arns)}

        stopped_arns = self.ecs_client.list_tasks(
            cluster=cluster,
            serviceName=self.settings.ecs_service_name,
            desiredStatus='STOPPED'
        ).get('taskArns', [])[:self.settings.stopped_tasks_limit]

        return {
            'running': False,
            'tasks': self._describe_tasks(stopped_arns) if stopped_arns else []
        }

    def _describe_tasks(self, task_arns: List[str]) -> List[Dict[str, Any]]:
        response = self.ecs_client.describe_tasks(
            cluster=self.settings.ecs_cluster_name,
            tasks=task_arns
        )
        tasks = []
        for task in response.get('tasks', []):
            tasks.append({
                'arn': task.get('taskArn'),
                'last_status': task.get('lastStatus'),
                'health_status': task.get('healthStatus'),
                'stopped_reason': task.get('stoppedReason'),
                'stopped_at': task.get('stoppedAt'),
                'containers': [
                    {
                        'name': c.get('name'),
                        'last_status': c.get('lastStatus'),
                        'reason': c.get('reason'),
                        'exit_code': c.get('exitCode'),
                    }
                    for c in task.get('containers', [])
                ],
            })
        return tasks

    def _recent_logs(self) -> Dict[str, Any]:
        log_group = self.settings.log_group_name
        start_ms = int((time.time() - self.settings.log_since_minutes * 60) * 1000)

        try:
            paginator = self.logs_client.get_paginator('filter_log_events')
            lines = []
            for page in paginator.paginate(logGroupName=log_group, startTime=start_ms):
                for event in page.get('events', []):
                    stamp = datetime.utcfromtimestamp(event['timestamp'] / 1000).isoformat()
                    lines.append(f"{stamp} {event.get('message', '').rstrip()}")
            return {'log_group': log_group, 'lines': lines}
        except ClientError as e:
            logger.warning(f"Could not read logs from {log_group}: {e}")
            return {'log_group': log_group, 'lines': [],
                    'message': "No logs found or log group doesn't exist"}

    def _service_events(self, service: Dict[str, Any]) -> List[Dict[str, Any]]:
        events = service.get('events', [])[:self.settings.service_events_limit]
        return [
            {'created_at': e.get('createdAt'), 'message': e.get('message')}
            for e in events
        ]

    def _target_health(self) -> Dict[str, Any]:
        name = self.settings.target_group_name
        try:
            groups = self.elbv2_client.describe_target_groups(Names=[name])['TargetGroups']
        except ClientError as e:
            logger.warning(f"Target group {name} not accessible: {e}")
            return {'target_group': None, 'targets': [], 'message': "Target group not accessible"}

        if not groups:
            return {'target_group': None, 'targets': [], 'message': "Target group not accessible"}

        tg_arn = groups[0]['TargetGroupArn']
        try:
            descriptions = self.elbv2_client.describe_target_health(
                TargetGroupArn=tg_arn
            )['TargetHealthDescriptions']
        except ClientError as e:
            logger.warning(f"Could not retrieve target health: {e}")
            return {'target_group': tg_arn, 'targets': [],
                    'message': "Could not retrieve target health"}

        return {
            'target_group': tg_arn,
            'targets': [
                {
                    'target': d.get('Target', {}).get('Id'),
                    'state': d.get('TargetHealth', {}).get('State'),
                    'reason': d.get('TargetHealth', {}).get('Reason'),
                    'description': d.get('TargetHealth', {}).get('Description'),
                }
                for d in descriptions
            ],
        }

    @staticmethod
    def render(report: Dict[str, Any]) -> str:
        """Human readable rendering of a report from `collect()`."""
        out = []
        svc = report['service']
        out.append("📊 Service Overview:")
        out.append(f"  Status: {svc['status']}")
        out.append(f"  Running/Desired: {svc['running']}/{svc['desired']} (pending {svc['pending']})")
        out.append(f"  Task Definition: {svc['task_definition']}")
        out.append(f"  Deployment: {svc['deployment_status']} ({svc['deployments']} active)")

        out.append("")
        out.append("📋 Task Details:")
        tasks = report['tasks']
        if not tasks['running']:
            out.append("  No tasks currently running")
            if tasks['tasks']:
                out.append("  🔍 Recent stopped tasks:")
        for task in tasks['tasks']:
            out.append(f"  - {task['arn']} [{task['last_status']}] health={task['health_status']}")
            if task['stopped_reason']:
                out.append(f"    Stopped: {task['stopped_reason']} at {task['stopped_at']}")
            for c in task['containers']:
                out.append(f"    {c['name']}: {c['last_status']} exit={c['exit_code']} {c['reason'] or ''}".rstrip())

        out.append("")
        logs = report['logs']
        out.append(f"📝 Recent CloudWatch Logs ({logs['log_group']}):")
        if logs.get('message'):
            out.append(f"  {logs['message']}")
        for line in logs['lines']:
            out.append(f"  {line}")

        out.append("")
        out.append(f"🔧 Service Events (last {len(report['events'])}):")
        for event in report['events']:
            out.append(f"  {event['created_at']}  {event['message']}")

        out.append("")
        out.append("💡 Health Check Info:")
        health = report['target_health']
        if health.get('target_group'):
            out.append(f"  Target Group: {health['target_group']}")
        if health.get('message'):
            out.append(f"  {health['message']}")
        for t in health['targets']:
            line = f"  {t['target']}: {t['state']}"
            if t['reason']:
                line += f" ({t['reason']}: {t['description']})"
            out.append(line)

        return "\n".join(out)
