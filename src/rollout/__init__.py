"""
Rollout tooling for the myapp1 container service.

Confirms ECS rollouts, reports service status and drives the
fix-and-redeploy workflow behind the load balancer.
"""
