import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query

from app.api.v1.deps import (
    get_audit_service, get_card_service, get_overview_service, get_referral_service,
    get_user_profile_service, ok, with_permission, with_super_admin,
)
from app.core.errors import NotFoundError, ValidationError
from app.core.rbac import Permission
from app.models.card import CardCreate, CardUpdate
from app.models.referral import ReferralLevelCreate, ReferralLevelUpdate
from app.models.user import AuthenticatedUser, UserProfileAdminUpdate
from app.services.audit import AuditService
from app.services.cards import CardService
from app.services.overview import OverviewService
from app.services.referrals import ReferralService
from app.services.user_profiles import UserProfileService

# Setup Logging
logger = logging.getLogger("akshayapatra.admin")
router = APIRouter()


# --- 1. DASHBOARD ---
@router.get("/overview")
async def get_overview(user: AuthenticatedUser = Depends(with_permission(Permission.DASHBOARD_VIEW)),
                       overview: OverviewService = Depends(get_overview_service)):
    return ok(overview.get_overview(token=user.token))


@router.get("/audit-logs")
async def get_audit_logs(limit: int = Query(50, ge=1, le=500),
                         user: AuthenticatedUser = Depends(with_super_admin()),
                         audit: AuditService = Depends(get_audit_service)):
    """Fetches system activity logs (Super Admin Only)."""
    return ok(audit.list_recent(limit))


# --- 2. CARDS ---
@router.get("/cards")
async def list_cards(user_id: Optional[str] = Query(None, alias="userId"),
                     status: Optional[str] = Query(None),
                     scheme_id: Optional[str] = Query(None, alias="schemeId"),
                     user: AuthenticatedUser = Depends(with_permission(Permission.CARDS_VIEW)),
                     cards: CardService = Depends(get_card_service)):
    return ok(cards.list_with_user_profiles(user_id=user_id, status=status, scheme_id=scheme_id))


@router.get("/cards/stats")
async def card_stats(user: AuthenticatedUser = Depends(with_permission(Permission.CARDS_VIEW)),
                     cards: CardService = Depends(get_card_service)):
    return ok(cards.stats())


@router.get("/cards/{card_id}")
async def get_card(card_id: str,
                   user: AuthenticatedUser = Depends(with_permission(Permission.CARDS_VIEW)),
                   cards: CardService = Depends(get_card_service)):
    card = cards.get_with_user_profile(card_id)
    if not card:
        raise NotFoundError("Card not found")
    return ok(card)


@router.post("/cards", status_code=201)
async def create_card(data: CardCreate,
                      user: AuthenticatedUser = Depends(with_permission(Permission.CARDS_EDIT)),
                      cards: CardService = Depends(get_card_service)):
    card = cards.create(data.model_dump(exclude_none=True))
    logger.info(f"Card {card['id']} issued by {user.uid}")
    return ok(card, "Card created successfully")


@router.patch("/cards/{card_id}")
async def update_card(card_id: str, data: CardUpdate,
                      user: AuthenticatedUser = Depends(with_permission(Permission.CARDS_EDIT)),
                      cards: CardService = Depends(get_card_service)):
    updates = data.model_dump(exclude_none=True)
    if not updates:
        raise ValidationError("No valid fields to update")
    card = cards.update(card_id, updates)
    if card is None:
        raise NotFoundError("Card not found")
    return ok(card, "Card updated successfully")


@router.delete("/cards/{card_id}")
async def delete_card(card_id: str,
                      user: AuthenticatedUser = Depends(with_permission(Permission.CARDS_EDIT)),
                      cards: CardService = Depends(get_card_service)):
    if not cards.delete(card_id):
        raise NotFoundError("Card not found")
    return ok(None, "Card deactivated successfully")


# --- 3. USER PROFILES ---
@router.get("/user-profiles")
async def list_user_profiles(kyc_verified: Optional[bool] = Query(None, alias="kycVerified"),
                             is_active: Optional[bool] = Query(None, alias="isActive"),
                             search: Optional[str] = Query(None),
                             user: AuthenticatedUser = Depends(with_permission(Permission.USERS_VIEW)),
                             profiles: UserProfileService = Depends(get_user_profile_service)):
    return ok(profiles.list_with_cards(kyc_verified=kyc_verified, is_active=is_active, search=search))


@router.get("/user-profiles/{user_id}")
async def get_user_profile(user_id: str,
                           user: AuthenticatedUser = Depends(with_permission(Permission.USERS_VIEW)),
                           profiles: UserProfileService = Depends(get_user_profile_service)):
    profile = profiles.get_with_cards(user_id)
    if not profile:
        raise NotFoundError("User profile not found")
    return ok(profile)


@router.patch("/user-profiles/{user_id}")
async def update_user_profile(user_id: str, data: UserProfileAdminUpdate,
                              user: AuthenticatedUser = Depends(with_permission(Permission.USERS_EDIT)),
                              profiles: UserProfileService = Depends(get_user_profile_service)):
    updates = data.model_dump(exclude_none=True)
    if not updates:
        raise ValidationError("No valid fields to update")
    if updates.get("kyc_verified") is True:
        updates["kyc_verified_by"] = user.uid
    profile = profiles.update(user_id, updates)
    if profile is None:
        raise NotFoundError("User profile not found")
    return ok(profile, "User profile updated successfully")


@router.delete("/user-profiles/{user_id}")
async def delete_user_profile(user_id: str,
                              user: AuthenticatedUser = Depends(with_permission(Permission.USERS_DELETE)),
                              profiles: UserProfileService = Depends(get_user_profile_service)):
    if not profiles.delete(user_id):
        raise NotFoundError("User profile not found")
    return ok(None, "User profile deactivated successfully")


# --- 4. REFERRAL LEVELS ---
@router.get("/referral-levels")
async def list_referral_levels(user: AuthenticatedUser = Depends(with_permission(Permission.REFERRALS_VIEW)),
                               referrals: ReferralService = Depends(get_referral_service)):
    return ok(referrals.list_levels())


@router.post("/referral-levels", status_code=201)
async def create_referral_level(data: ReferralLevelCreate,
                                user: AuthenticatedUser = Depends(
                                    with_permission(Permission.REFERRALS_LEVELS_MANAGE)),
                                referrals: ReferralService = Depends(get_referral_service)):
    level = referrals.create_level(data.level, data.commission_percentage, data.is_active)
    return ok(level, "Referral level created successfully")


@router.patch("/referral-levels/{level_id}")
async def update_referral_level(level_id: str, data: ReferralLevelUpdate,
                                user: AuthenticatedUser = Depends(
                                    with_permission(Permission.REFERRALS_LEVELS_MANAGE)),
                                referrals: ReferralService = Depends(get_referral_service)):
    updates = data.model_dump(exclude_none=True)
    if not updates:
        raise ValidationError("No valid fields to update")
    level = referrals.update_level(level_id, updates)
    if level is None:
        raise NotFoundError("Referral level not found")
    return ok(level, "Referral level updated successfully")


@router.delete("/referral-levels/{level_id}")
async def delete_referral_level(level_id: str,
                                user: AuthenticatedUser = Depends(
                                    with_permission(Permission.REFERRALS_LEVELS_MANAGE)),
                                referrals: ReferralService = Depends(get_referral_service)):
    if not referrals.delete_level(level_id):
        raise NotFoundError("Referral level not found")
    return ok(None, "Referral level deleted successfully")
