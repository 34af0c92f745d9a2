import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from familybank.database.connection import mongo_db_dependency
from familybank.repositories.user_repository import UserRepository
from familybank.schemas.user import TokenPayload
from familybank.utils.security import decode_access_token


oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


def get_user_repository(db = Depends(mongo_db_dependency)) -> UserRepository:
    return UserRepository(db)


async def get_current_user(token: str = Depends(oauth2_scheme), users: UserRepository = Depends(get_user_repository)) -> dict:
    credentials_error = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = TokenPayload(**decode_access_token(token))
    except (jwt.PyJWTError, ValueError):
        raise credentials_error
    user = await users.get_user_by_id(payload.sub)
    if not user:
        raise credentials_error
    return user


def require_family(current_user: dict = Depends(get_current_user)) -> dict:
    if not current_user.get("family_id"):
        raise HTTPException(status_code=400, detail="User is not in a family")
    return current_user
