from fastapi import APIRouter, Depends

from app.api.v1.deps import authenticated, get_scheme_service, ok
from app.core.errors import NotFoundError
from app.models.user import AuthenticatedUser
from app.services.schemes import SchemeService

router = APIRouter()


@router.get("")
async def list_schemes(user: AuthenticatedUser = Depends(authenticated()),
                       schemes: SchemeService = Depends(get_scheme_service)):
    return ok(schemes.list())


@router.get("/{scheme_id}")
async def get_scheme(scheme_id: str,
                     user: AuthenticatedUser = Depends(authenticated()),
                     schemes: SchemeService = Depends(get_scheme_service)):
    scheme = schemes.get(scheme_id)
    if not scheme:
        raise NotFoundError("Scheme not found")
    return ok(scheme)
