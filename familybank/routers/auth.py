from fastapi import APIRouter, Depends, HTTPException, status

from familybank.repositories.user_repository import UserRepository
from familybank.schemas.user import LoginRequest, Token, UserCreate, UserPublic
from familybank.services.user_service import UserService, public_user
from familybank.utils.dependencies import get_current_user, get_user_repository


router = APIRouter(prefix="/api/auth", tags=["auth"])


def get_user_service(users: UserRepository = Depends(get_user_repository)) -> UserService:
    return UserService(users)


@router.post("/register", response_model=Token, status_code=status.HTTP_201_CREATED)
async def register(body: UserCreate, service: UserService = Depends(get_user_service)):
    try:
        return await service.register_user(body.name, body.email, body.password)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/login", response_model=Token)
async def login(body: LoginRequest, service: UserService = Depends(get_user_service)):
    token = await service.authenticate_user(body.login, body.password)
    if token is None:
        raise HTTPException(status_code=400, detail="Invalid credentials")
    return token


@router.get("/me", response_model=UserPublic)
async def me(current_user: dict = Depends(get_current_user)):
    return public_user(current_user)
