from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, Optional

from app.core.rbac import Role


class AuthenticatedUser(BaseModel):
    """Identity taken from a verified Firebase ID token."""
    uid: str
    email: Optional[str] = None
    phone_number: Optional[str] = None
    name: Optional[str] = None
    picture: Optional[str] = None
    is_super_admin: bool = False
    role: Optional[Role] = None           # Staff role, filled in by the auth guard
    token: Optional[str] = Field(default=None, exclude=True, repr=False)

    @classmethod
    def from_claims(cls, claims: Dict[str, Any], token: Optional[str] = None) -> "AuthenticatedUser":
        app_metadata = claims.get("app_metadata") or {}
        return cls(
            uid=claims["uid"],
            email=claims.get("email"),
            phone_number=claims.get("phone_number"),
            name=claims.get("name"),
            picture=claims.get("picture"),
            # Custom claim; also accepted nested the way older tokens carry it
            is_super_admin=claims.get("isSuperAdmin") is True or app_metadata.get("isSuperAdmin") is True,
            token=token,
        )


class EnsureProfileRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    full_name: Optional[str] = None
    phone_number: Optional[str] = None
    referral_code: Optional[str] = Field(default=None, alias="referralCode")
    scheme_id: Optional[str] = Field(default=None, alias="schemeId")


class UserProfileSelfUpdate(BaseModel):
    """Fields an end user may change on their own profile."""
    full_name: Optional[str] = Field(default=None, min_length=2)
    country: Optional[str] = None
    state: Optional[str] = None
    district: Optional[str] = None
    street_address: Optional[str] = None
    postal_code: Optional[str] = None
    bank_account_holder_name: Optional[str] = None
    bank_account_number: Optional[str] = None
    bank_ifsc_code: Optional[str] = None
    bank_name: Optional[str] = None
    bank_branch: Optional[str] = None
    bank_account_type: Optional[str] = Field(default=None, pattern="^(savings|current)$")
    profile_image_url: Optional[str] = None
    notification_preferences: Optional[Dict[str, Any]] = None
    initial_scheme_id: Optional[str] = None


class UserProfileAdminUpdate(UserProfileSelfUpdate):
    """Admin edits additionally cover KYC and activation."""
    phone_number: Optional[str] = None
    kyc_verified: Optional[bool] = None
    is_active: Optional[bool] = None
