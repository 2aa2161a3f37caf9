from pydantic import BaseModel, ConfigDict

from app.models.enums import RoleName


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True, use_enum_values=True)


class UserOut(ORMModel):
    id: int
    business_id: int
    email: str
    full_name: str
    role: RoleName


class HealthCheckResponse(BaseModel):
    status: str
    service: str
    timestamp: str
    user: UserOut
