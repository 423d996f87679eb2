from fastapi import APIRouter, Depends

from app.api.v1.deps import AuthConfig, get_card_service, ok, require_auth
from app.models.user import AuthenticatedUser
from app.services.cards import CardService

router = APIRouter()


@router.get("")
async def list_my_cards(user: AuthenticatedUser = Depends(require_auth(AuthConfig(require_profile=True))),
                        cards: CardService = Depends(get_card_service)):
    """The caller's own active cards."""
    return ok(cards.list_for_user(user.uid))
