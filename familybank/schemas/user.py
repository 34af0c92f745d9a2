from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class UserCreate(BaseModel):

    name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(min_length=6)


class LoginRequest(BaseModel):

    # email or display name
    login: str
    password: str


class UserPublic(BaseModel):

    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    role: str = "member"
    family_id: Optional[str] = None


class Token(BaseModel):

    access_token: str
    token_type: str = "bearer"
    user: UserPublic


class TokenPayload(BaseModel):

    sub: str
    exp: int
    family_id: Optional[str] = None
