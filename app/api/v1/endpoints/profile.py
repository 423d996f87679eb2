from fastapi import APIRouter, Depends

from app.api.v1.deps import authenticated, get_user_profile_service, ok
from app.core.errors import NotFoundError, ValidationError
from app.models.user import AuthenticatedUser, UserProfileSelfUpdate
from app.services.user_profiles import UserProfileService

router = APIRouter()


@router.get("")
async def get_profile(user: AuthenticatedUser = Depends(authenticated()),
                      profiles: UserProfileService = Depends(get_user_profile_service)):
    profile = profiles.get(user.uid)
    if not profile:
        raise NotFoundError("Profile not found")
    return ok(profile)


@router.put("")
async def update_profile(data: UserProfileSelfUpdate,
                         user: AuthenticatedUser = Depends(authenticated()),
                         profiles: UserProfileService = Depends(get_user_profile_service)):
    updates = data.model_dump(exclude_none=True)
    if not updates:
        raise ValidationError("No valid fields to update")

    profile = profiles.update(user.uid, updates)
    if profile is None:
        raise NotFoundError("Profile not found")
    return ok({"profile": profile, "updatedFields": sorted(updates)}, "Profile updated successfully")


@router.get("/check-completion")
async def check_completion(user: AuthenticatedUser = Depends(authenticated()),
                           profiles: UserProfileService = Depends(get_user_profile_service)):
    """Which onboarding steps the caller still has to finish."""
    return ok(profiles.check_completion(user.uid))
