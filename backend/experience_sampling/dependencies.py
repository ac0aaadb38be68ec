"""
Experience Sampling - Request Dependencies
Access to the running coordinator and internal-key checks
"""
from fastapi import Depends, Header, HTTPException, Request, status

from .services.sampling import Coordinator


def get_coordinator(request: Request) -> Coordinator:
    """Dependency for FastAPI - the process-wide coordinator."""
    coordinator = getattr(request.app.state, "coordinator", None)
    if coordinator is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Sampling service not started",
        )
    return coordinator


async def require_installed(coordinator: Coordinator = Depends(get_coordinator)) -> Coordinator:
    """
    Dependency to reject host events once the service uninstalled itself.
    """
    if coordinator.ctx.uninstalled:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Service has been uninstalled (consent rejected)",
        )
    return coordinator


async def verify_internal_key(
    x_internal_key: str = Header(...),
    coordinator: Coordinator = Depends(get_coordinator),
) -> bool:
    """Verify internal API key for scheduler endpoints."""
    if x_internal_key != coordinator.ctx.settings.internal_api_key:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid internal API key")
    return True
