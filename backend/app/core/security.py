from collections.abc import Iterable

from fastapi import HTTPException, status

from app.models.enums import RoleName
from app.models.user import User


FORECAST_ROLES = (RoleName.owner, RoleName.admin, RoleName.manager)
RISK_ROLES = (RoleName.owner, RoleName.admin)
FINANCE_ROLES = (RoleName.owner, RoleName.admin, RoleName.accountant)


def require_roles(user: User, allowed_roles: Iterable[RoleName]) -> None:
    allowed = {role.value for role in set(allowed_roles)}
    if user.role == RoleName.owner:
        return
    if user.role.value in allowed:
        return
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail=f"Role '{user.role.value}' cannot access this resource.",
    )
