import logging
from typing import Optional

from familybank.repositories.user_repository import UserRepository
from familybank.schemas.user import Token, UserPublic
from familybank.utils.security import create_access_token, hash_password, verify_password


logger = logging.getLogger(__name__)


def public_user(user: dict) -> UserPublic:
    return UserPublic(
        id=str(user["_id"]),
        name=user.get("name"),
        email=user.get("email"),
        role=user.get("role") or "member",
        family_id=user.get("family_id"),
    )


def issue_token(user: dict) -> Token:
    token = create_access_token(str(user["_id"]), family_id=user.get("family_id"))
    return Token(access_token=token, user=public_user(user))


class UserService:

    def __init__(self, user_repository: UserRepository) -> None:
        self.user_repository = user_repository

    async def register_user(self, name: str, email: str, password: str) -> Token:
        email = email.strip().lower()
        if await self.user_repository.get_user_by_email(email):
            raise ValueError("User already exists")
        user_id = await self.user_repository.create_user(name.strip(), email, hash_password(password))
        logger.info("Registered user %s", user_id)
        return issue_token({"_id": user_id, "name": name.strip(), "email": email, "role": "member", "family_id": None})

    async def authenticate_user(self, login: str, password: str) -> Optional[Token]:
        """Token for a matching email or name and password; None otherwise."""
        login = login.strip()
        user = await self.user_repository.get_user_by_login(login)
        if not user and "@" in login:
            user = await self.user_repository.get_user_by_login(login.lower())
        if not user or not verify_password(password, user.get("hashed_password", "")):
            logger.info("Failed login for %s", login)
            return None
        return issue_token(user)
