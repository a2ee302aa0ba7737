import logging

from sqlmodel.ext.asyncio.session import AsyncSession

from app.cache.layer import CacheLayer
from app.cache.sessions import SessionRegistry
from app.core.security import create_access_token, verify_password
from app.models import TokenResponse, User, UserCreate, UserLogin, UserRead
from app.services.user_service import UserService

logger = logging.getLogger(__name__)


class AuthService:
    """Registration, login and logout; each issued token is registered as a session."""

    def __init__(self, db: AsyncSession, cache: CacheLayer, sessions: SessionRegistry):
        self.sessions = sessions
        self.users = UserService(db, cache, sessions)

    async def _issue(self, user: User) -> TokenResponse:
        issued = create_access_token(user.id, user.email, user.role.value)
        await self.sessions.store_session(user.id, issued.token_id, issued.token)
        return TokenResponse(token=issued.token, user=UserRead.model_validate(user))

    async def register(self, user_data: UserCreate) -> TokenResponse:
        user = await self.users.create_user(user_data)
        logger.info("Registered user %s", user.id)
        return await self._issue(user)

    async def login(self, credentials: UserLogin) -> TokenResponse | None:
        user = await self.users.get_by_email(credentials.email)
        if user is None or not verify_password(credentials.password, user.password_hash):
            return None
        return await self._issue(user)

    async def logout(self, user_id: str, token_id: str):
        await self.sessions.revoke_session(user_id, token_id)
