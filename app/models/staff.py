from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Literal, Optional

from app.core.rbac import Role


class StaffCreate(BaseModel):
    id: str = Field(..., min_length=1)
    full_name: str = Field(..., min_length=1)
    phone_number: Optional[str] = None
    role: Role = Role.NEW


class StaffUpdate(BaseModel):
    full_name: Optional[str] = Field(default=None, min_length=2)
    phone_number: Optional[str] = None


class OwnStaffProfileUpdate(BaseModel):
    full_name: str
    phone_number: Optional[str] = None

    @field_validator("full_name")
    @classmethod
    def _name_length(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Full name must be at least 2 characters")
        return v


class RoleUpdate(BaseModel):
    role: Role


class BanRequest(BaseModel):
    action: Literal["ban", "unban"]
    duration: Optional[str] = "100y"


class AccessKeyCheck(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    access_key: str = Field(..., alias="accessKey", min_length=1)


class AdminSignup(AccessKeyCheck):
    full_name: str = Field(..., min_length=2)
    phone_number: Optional[str] = None


class PermissionCheck(BaseModel):
    permission: str = Field(..., min_length=1)
