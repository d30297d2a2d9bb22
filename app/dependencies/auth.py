from collections.abc import Callable
from enum import Enum
from typing import Annotated

from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.config import Settings, get_settings

DEFAULT_ACTOR = "Administrador"


class Role(str, Enum):
    """Supported roles."""

    ADMIN = "admin"
    STAFF = "staff"
    REQUESTER = "requester"


class User:
    """Simple representation of an authenticated user."""

    def __init__(
        self,
        username: str,
        roles: tuple[Role, ...],
        *,
        display_name: str | None = None,
        email: str | None = None,
    ):
        self.username = username
        self.roles = roles
        self.display_name = display_name
        self.email = email

    def has_role(self, role: Role) -> bool:
        return role in self.roles

    @property
    def actor_name(self) -> str:
        """Name recorded in the ticket history for this user's actions."""

        return self.display_name or self.email or DEFAULT_ACTOR


bearer_scheme = HTTPBearer(auto_error=False)


def resolve_user_from_token(token: str, settings: Settings) -> User | None:
    """Map a bearer token to a user using the configured token tables."""

    if token in settings.admin_tokens:
        return User(
            username="admin",
            roles=(Role.ADMIN, Role.STAFF, Role.REQUESTER),
            display_name=settings.admin_tokens[token],
        )
    if token in settings.staff_tokens:
        return User(
            username="staff",
            roles=(Role.STAFF, Role.REQUESTER),
            display_name=settings.staff_tokens[token],
        )
    return None


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Security(bearer_scheme)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> User:
    """Resolve the caller; requests without a token act as anonymous requesters."""

    if credentials is None:
        return User(username="anonymous", roles=(Role.REQUESTER,))

    user = resolve_user_from_token(credentials.credentials, settings)
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid authentication credentials")
    return user


def role_required(role: Role) -> Callable[[User], User]:
    """Dependency factory ensuring the current user has the requested role."""

    async def dependency(user: Annotated[User, Depends(get_current_user)]) -> User:
        if not user.has_role(role):
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return user

    return dependency
