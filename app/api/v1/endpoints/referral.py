import logging
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.api.v1.deps import authenticated, get_referral_service, ok
from app.models.referral import ReferralCodeRequest
from app.models.user import AuthenticatedUser
from app.services.referrals import ReferralService

logger = logging.getLogger("akshayapatra.referrals")

router = APIRouter()


@router.post("/validate")
async def validate_referral(data: ReferralCodeRequest,
                            referrals: ReferralService = Depends(get_referral_service)):
    """Public: checks a referral code before signup."""
    referrer = referrals.validate_code(data.referral_code)
    if referrer is None:
        return JSONResponse(status_code=400,
                            content={"success": False, "valid": False, "error": "Invalid referral code"})
    return {"success": True, "valid": True, "referrer": referrer}


@router.get("/stats")
async def referral_stats(user: AuthenticatedUser = Depends(authenticated()),
                         referrals: ReferralService = Depends(get_referral_service)):
    return ok(referrals.get_stats(user.uid))


@router.post("/attach")
async def attach_referral(data: ReferralCodeRequest,
                          user: AuthenticatedUser = Depends(authenticated()),
                          referrals: ReferralService = Depends(get_referral_service)):
    """Links the caller to the owner of a referral code."""
    result = referrals.attach_by_code(user.uid, data.referral_code, token=user.token)
    logger.info(f"Referral code attached for {user.uid}")
    return ok(result, "Referral attached")
