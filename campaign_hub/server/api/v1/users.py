"""
User Profile Endpoints.
"""

from fastapi import APIRouter

from campaign_hub.core.models.io.auth import PublicProfileRead, UserProfileUpdate, UserRead
from campaign_hub.server.services.deps import CurrentUser, SessionDep
from campaign_hub.server.services.users import UserService

router = APIRouter(tags=["users"])


@router.put(
    "/profile",
    response_model=UserRead,
    summary="Update Profile",
    description="Update the caller's username, avatar and bio.",
    responses={
        200: {"description": "Profile updated"},
        409: {"description": "Username already taken"},
    },
)
async def update_profile(body: UserProfileUpdate, user: CurrentUser, session: SessionDep) -> UserRead:
    updated = await UserService(session).update_profile(user, body)
    return UserRead.model_validate(updated)


@router.get(
    "/{user_id}/profile",
    response_model=PublicProfileRead,
    summary="Public Profile",
    description="Public profile of any user. No authentication required.",
    responses={404: {"description": "User not found"}},
)
async def get_profile(user_id: int, session: SessionDep) -> PublicProfileRead:
    return PublicProfileRead.model_validate(await UserService(session).get_public_profile(user_id))
