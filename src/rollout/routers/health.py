from fastapi import APIRouter

router = APIRouter()


@router.get("/health")
async def health_check():
    """
    Liveness endpoint probed through the load balancer.

    The target group health check and the rollout confirmer both treat
    a 200 from this route as healthy.
    """
    return {"status": "Healthy"}
