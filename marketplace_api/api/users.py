from fastapi import APIRouter, Depends

from marketplace_api.auth import get_current_user_id
from marketplace_api.schemas.favorites import UserProfile
from marketplace_api.services.dependencies import get_favorite_set_service
from marketplace_api.services.favorite_set_service import FavoriteSetService

router = APIRouter()


@router.get("/me", response_model=UserProfile)
async def read_current_user(
    user_id: str = Depends(get_current_user_id),
    service: FavoriteSetService = Depends(get_favorite_set_service),
) -> UserProfile:
    """Return the caller's profile, including the favorite set clients seed from."""
    return await service.get_profile(user_id=user_id)
