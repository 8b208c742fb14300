"""User profile service."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from campaign_hub.core.database.base import utc_now
from campaign_hub.core.database.entities import User
from campaign_hub.core.database.repositories import UserRepository
from campaign_hub.core.errors import ConflictError, NotFoundError
from campaign_hub.core.models.io.auth import UserProfileUpdate


class UserService:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.users = UserRepository(session)

    async def update_profile(self, user: User, data: UserProfileUpdate) -> User:
        """
        Update the caller's username, avatar and bio.

        Raises:
            ConflictError: The username belongs to another user
        """
        changes = data.model_dump(exclude_unset=True)
        username = changes.get("username")
        if username is not None and username != user.username:
            existing = await self.users.get_by_username(username)
            if existing is not None and existing.id != user.id:
                raise ConflictError("Username is already taken")
            user.username = username
        for key in ("avatar", "bio"):
            if key in changes:
                setattr(user, key, changes[key])
        user.updated_at = utc_now()
        await self.users.update(user)
        await self.session.commit()
        return user

    async def get_public_profile(self, user_id: int) -> User:
        user = await self.users.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user
