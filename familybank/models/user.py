from typing import Literal, Optional, TypedDict


Role = Literal["member", "moderator"]


class UserDocument(TypedDict, total=False):

    _id: str
    name: str
    email: str
    hashed_password: str
    role: Role
    family_id: Optional[str]
    # individual member balance
    balance: float
    push_token: Optional[str]
