from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from app.api.deps import get_current_user
from app.core.config import get_settings
from app.models.user import User
from app.schemas.common import HealthCheckResponse, UserOut


router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthCheckResponse)
def health(current_user: User = Depends(get_current_user)) -> HealthCheckResponse:
    return HealthCheckResponse(
        status="ok",
        service=get_settings().app_name,
        timestamp=datetime.now(timezone.utc).isoformat(),
        user=UserOut.model_validate(current_user),
    )
