"""
Configuration management for the rollout tooling.

Contains the Pydantic settings shared by the CLI, the health service and
the deployment workflows.
"""
