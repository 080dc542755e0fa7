from fastapi import APIRouter, Request

from models import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health(request: Request):
    """Liveness probe; reports which menu store is wired in."""
    return HealthResponse(status="ok", store=request.app.state.menu_service.repository.name)
