"""
Deployment module for the myapp1 ECS service.

This module contains all deployment-related components:
- AWS client management
- Terraform and container image publishing
- Rollout confirmation, status reporting and redeploy orchestration
"""
