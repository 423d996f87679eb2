from pydantic import BaseModel, ConfigDict, Field
from typing import Literal, Optional


class ReferralCodeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    referral_code: str = Field(..., alias="referralCode", min_length=1)


class ReferralLevelCreate(BaseModel):
    level: Literal[1, 2]
    commission_percentage: float = Field(..., ge=0, le=100)
    is_active: bool = True


class ReferralLevelUpdate(BaseModel):
    commission_percentage: Optional[float] = Field(default=None, ge=0, le=100)
    is_active: Optional[bool] = None


# Returned when a user has no stats row yet
DEFAULT_REFERRAL_STATS = {
    "l1_users_total": 0,
    "l1_users_active": 0,
    "l2_users_total": 0,
    "l2_users_active": 0,
    "direct_income_total": 0,
    "indirect_income_total": 0,
}
