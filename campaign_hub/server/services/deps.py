"""
Request Dependencies.

Database session, authenticated user and team access for API endpoints.
"""

from typing import Annotated, Callable, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from campaign_hub.core.database import get_session
from campaign_hub.core.database.entities import User
from campaign_hub.core.database.repositories import UserRepository
from campaign_hub.core.models.domain import Permission
from campaign_hub.server.core.security import decode_access_token

from .teams import TeamContext, TeamService

bearer_scheme = HTTPBearer(auto_error=False)

SessionDep = Annotated[AsyncSession, Depends(get_session)]


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    session: SessionDep,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> User:
    """Resolve the user behind the ``Authorization: Bearer`` header."""
    if credentials is None or not credentials.credentials:
        raise _unauthorized("Not authenticated")
    user_id = decode_access_token(credentials.credentials)
    if user_id is None:
        raise _unauthorized("Invalid or expired token")
    user = await UserRepository(session).get_by_id(user_id)
    if user is None:
        raise _unauthorized("User not found")
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


async def get_team_context(team_id: int, user: CurrentUser, session: SessionDep) -> TeamContext:
    """Resolve the caller's membership of the team in the path; non-members get 403."""
    return await TeamService(session).get_context(team_id, user.id)


TeamContextDep = Annotated[TeamContext, Depends(get_team_context)]


def require_team_permission(permission: Permission) -> Callable:
    """Build a dependency that only lets members holding ``permission`` through."""

    async def dependency(context: TeamContextDep) -> TeamContext:
        context.require(permission)
        return context

    return dependency
