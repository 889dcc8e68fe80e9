"""Deployment health module."""

from eventbase.services.health.checker import (
    ComponentHealth,
    DeploymentHealth,
    HealthChecker,
    HealthStatus,
    aggregate_status,
    get_health_checker,
    reset_health_checker,
)

__all__ = [
    "HealthChecker",
    "HealthStatus",
    "ComponentHealth",
    "DeploymentHealth",
    "aggregate_status",
    "get_health_checker",
    "reset_health_checker",
]
