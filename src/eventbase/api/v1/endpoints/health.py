"""Health API endpoints."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException

from eventbase.services.health import (
    ComponentHealth,
    DeploymentHealth,
    HealthChecker,
    HealthStatus,
    get_health_checker,
)

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("/deployment", response_model=DeploymentHealth)
async def get_deployment_health(
    checker: Annotated[HealthChecker, Depends(get_health_checker)],
) -> DeploymentHealth:
    """RPC liveness and contract code presence on the active network."""
    return await checker.check_all()


@router.get("/ready")
async def readiness_check(
    checker: Annotated[HealthChecker, Depends(get_health_checker)],
) -> dict[str, Any]:
    health = await checker.check_all()
    if health.status == HealthStatus.UNHEALTHY:
        raise HTTPException(503, "Service not ready")
    return {"status": "ready", "overall_health": health.status.value}


@router.get("/components/{component_name}", response_model=ComponentHealth)
async def get_component_health(
    component_name: str,
    checker: Annotated[HealthChecker, Depends(get_health_checker)],
) -> ComponentHealth:
    result = await checker.check_component(component_name)
    if result is None:
        raise HTTPException(404, f"Component {component_name} not found")
    return result
