import logging
from typing import Optional
from fastapi import APIRouter, Depends, File, Query, UploadFile

from app.api.v1.deps import (
    get_eligible_card_service, get_prize_service, get_scheme_service, get_winner_service, ok,
    with_permission,
)
from app.core.errors import NotFoundError, ValidationError
from app.core.rbac import Permission
from app.models.scheme import (
    DrawWinnersAdd, PrizeCreate, PrizeUpdate, SchemeCreate, SchemeUpdate, WinnerUpdate, WinnersCreate,
)
from app.models.user import AuthenticatedUser
from app.services.cards import EligibleCardService
from app.services.prizes import PrizeService
from app.services.schemes import SchemeService
from app.services.winners import WinnerService

logger = logging.getLogger("akshayapatra.admin")
router = APIRouter()

MONTH_PATTERN = r"^\d{4}-\d{2}$"


# --- 1. SCHEMES ---
@router.get("/schemes")
async def list_schemes(user: AuthenticatedUser = Depends(with_permission(Permission.SCHEMES_VIEW)),
                       schemes: SchemeService = Depends(get_scheme_service)):
    return ok(schemes.list())


@router.post("/schemes", status_code=201)
async def create_scheme(data: SchemeCreate,
                        user: AuthenticatedUser = Depends(with_permission(Permission.SCHEMES_EDIT)),
                        schemes: SchemeService = Depends(get_scheme_service)):
    if data.end_date < data.start_date:
        raise ValidationError("end_date must not be before start_date")
    scheme = schemes.create({**data.model_dump(exclude_none=True), "created_by": user.uid})
    return ok(scheme, "Scheme created successfully")


@router.get("/schemes/{scheme_id}")
async def get_scheme(scheme_id: str,
                     user: AuthenticatedUser = Depends(with_permission(Permission.SCHEMES_VIEW)),
                     schemes: SchemeService = Depends(get_scheme_service)):
    scheme = schemes.get(scheme_id)
    if not scheme:
        raise NotFoundError("Scheme not found")
    return ok(scheme)


@router.patch("/schemes/{scheme_id}")
async def update_scheme(scheme_id: str, data: SchemeUpdate,
                        user: AuthenticatedUser = Depends(with_permission(Permission.SCHEMES_EDIT)),
                        schemes: SchemeService = Depends(get_scheme_service)):
    updates = data.model_dump(exclude_none=True)
    if not updates:
        raise ValidationError("No valid fields to update")
    scheme = schemes.update(scheme_id, updates)
    if scheme is None:
        raise NotFoundError("Scheme not found")
    return ok(scheme, "Scheme updated successfully")


@router.post("/schemes/{scheme_id}/image")
async def upload_scheme_image(scheme_id: str, file: UploadFile = File(...),
                              user: AuthenticatedUser = Depends(with_permission(Permission.SCHEMES_EDIT)),
                              schemes: SchemeService = Depends(get_scheme_service)):
    scheme = schemes.upload_image(scheme_id, file.file, file.filename, file.content_type)
    if scheme is None:
        raise NotFoundError("Scheme not found")
    return ok(scheme, "Image uploaded successfully")


# --- 2. MONTHLY DRAWS ---
@router.get("/schemes/{scheme_id}/eligible")
async def list_eligible(scheme_id: str, month: Optional[str] = Query(None, pattern=MONTH_PATTERN),
                        user: AuthenticatedUser = Depends(with_permission(Permission.SCHEMES_VIEW)),
                        schemes: SchemeService = Depends(get_scheme_service)):
    if not month:
        raise ValidationError("month is required (YYYY-MM)")
    return ok(schemes.list_eligible(scheme_id, month))


@router.get("/schemes/{scheme_id}/winners")
async def list_draw_winners(scheme_id: str, month: Optional[str] = Query(None, pattern=MONTH_PATTERN),
                            user: AuthenticatedUser = Depends(with_permission(Permission.SCHEMES_VIEW)),
                            schemes: SchemeService = Depends(get_scheme_service)):
    if not month:
        raise ValidationError("month is required (YYYY-MM)")
    return ok(schemes.list_winners(scheme_id, month))


@router.post("/schemes/{scheme_id}/winners")
async def add_draw_winners(scheme_id: str, data: DrawWinnersAdd,
                           user: AuthenticatedUser = Depends(with_permission(Permission.SCHEMES_EDIT)),
                           schemes: SchemeService = Depends(get_scheme_service)):
    count = schemes.add_winners(scheme_id, data.month, [w.model_dump() for w in data.winners])
    return ok({"added": count})


@router.get("/schemes/{scheme_id}/periods")
async def get_periods(scheme_id: str,
                      user: AuthenticatedUser = Depends(with_permission(Permission.SCHEMES_VIEW)),
                      schemes: SchemeService = Depends(get_scheme_service)):
    return ok(schemes.get_periods(scheme_id, token=user.token))


@router.post("/schemes/{scheme_id}/periods")
async def ensure_periods(scheme_id: str,
                         user: AuthenticatedUser = Depends(with_permission(Permission.SCHEMES_EDIT)),
                         schemes: SchemeService = Depends(get_scheme_service)):
    """Creates any missing billing periods, then returns them all."""
    return ok(schemes.ensure_periods(scheme_id, token=user.token))


# --- 3. PRIZES ---
@router.get("/schemes/{scheme_id}/prizes")
async def list_prizes(scheme_id: str,
                      user: AuthenticatedUser = Depends(with_permission(Permission.SCHEMES_VIEW)),
                      prizes: PrizeService = Depends(get_prize_service)):
    return ok(prizes.list_by_scheme(scheme_id))


@router.post("/schemes/{scheme_id}/prizes", status_code=201)
async def create_prize(scheme_id: str, data: PrizeCreate,
                       user: AuthenticatedUser = Depends(with_permission(Permission.SCHEMES_EDIT)),
                       schemes: SchemeService = Depends(get_scheme_service),
                       prizes: PrizeService = Depends(get_prize_service)):
    if not schemes.get(scheme_id):
        raise NotFoundError("Scheme not found")
    return ok(prizes.create(scheme_id, data.model_dump(exclude_none=True)), "Prize created successfully")


@router.get("/prizes/{prize_id}")
async def get_prize(prize_id: str,
                    user: AuthenticatedUser = Depends(with_permission(Permission.SCHEMES_VIEW)),
                    prizes: PrizeService = Depends(get_prize_service)):
    prize = prizes.get(prize_id)
    if not prize:
        raise NotFoundError("Prize not found")
    return ok(prize)


@router.patch("/prizes/{prize_id}")
async def update_prize(prize_id: str, data: PrizeUpdate,
                       user: AuthenticatedUser = Depends(with_permission(Permission.SCHEMES_EDIT)),
                       prizes: PrizeService = Depends(get_prize_service)):
    updates = data.model_dump(exclude_none=True)
    if not updates:
        raise ValidationError("No valid fields to update")
    prize = prizes.update(prize_id, updates)
    if prize is None:
        raise NotFoundError("Prize not found")
    return ok(prize, "Prize updated successfully")


@router.delete("/prizes/{prize_id}")
async def delete_prize(prize_id: str,
                       user: AuthenticatedUser = Depends(with_permission(Permission.SCHEMES_DELETE)),
                       prizes: PrizeService = Depends(get_prize_service)):
    if not prizes.delete(prize_id):
        raise NotFoundError("Prize not found")
    return ok(None, "Prize deactivated successfully")


@router.post("/prizes/{prize_id}/image")
async def upload_prize_image(prize_id: str, file: UploadFile = File(...),
                             user: AuthenticatedUser = Depends(with_permission(Permission.SCHEMES_EDIT)),
                             prizes: PrizeService = Depends(get_prize_service)):
    prize = prizes.upload_image(prize_id, file.file, file.filename, file.content_type)
    if prize is None:
        raise NotFoundError("Prize not found")
    return ok(prize, "Image uploaded successfully")


# --- 4. WINNERS ---
@router.get("/winners")
async def list_winners(scheme_id: Optional[str] = Query(None, alias="schemeId"),
                       status: Optional[str] = Query(None),
                       card_id: Optional[str] = Query(None, alias="cardId"),
                       user: AuthenticatedUser = Depends(with_permission(Permission.SCHEMES_VIEW)),
                       winners: WinnerService = Depends(get_winner_service)):
    return ok(winners.list(scheme_id=scheme_id, status=status, card_id=card_id))


@router.post("/winners", status_code=201)
async def create_winners(data: WinnersCreate,
                         user: AuthenticatedUser = Depends(with_permission(Permission.SCHEMES_EDIT)),
                         winners: WinnerService = Depends(get_winner_service)):
    created = winners.create_multiple(data.scheme_id, data.card_ids, created_by=user.uid)
    return ok(created, f"{len(created)} winners created successfully")


@router.get("/winners/eligible-cards")
async def eligible_cards(scheme_id: Optional[str] = Query(None, alias="schemeId"),
                         user: AuthenticatedUser = Depends(with_permission(Permission.SCHEMES_VIEW)),
                         eligible: EligibleCardService = Depends(get_eligible_card_service)):
    if not scheme_id:
        raise ValidationError("schemeId is required")
    return ok(eligible.get_by_scheme(scheme_id))


@router.patch("/winners/{winner_id}")
async def update_winner(winner_id: str, data: WinnerUpdate,
                        user: AuthenticatedUser = Depends(with_permission(Permission.WINNERS_EDIT)),
                        winners: WinnerService = Depends(get_winner_service)):
    updates = data.model_dump(exclude_none=True)
    if not updates:
        raise ValidationError("No valid fields to update")
    winner = winners.update(winner_id, updates)
    if winner is None:
        raise NotFoundError("Winner not found")
    return ok(winner, "Winner updated successfully")


@router.delete("/winners/{winner_id}")
async def delete_winner(winner_id: str,
                        user: AuthenticatedUser = Depends(with_permission(Permission.WINNERS_DELETE)),
                        winners: WinnerService = Depends(get_winner_service)):
    if not winners.delete(winner_id):
        raise NotFoundError("Winner not found")
    return ok(None, "Winner removed successfully")
