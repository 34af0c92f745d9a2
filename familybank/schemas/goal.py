from typing import Optional

from pydantic import BaseModel


class GoalCreate(BaseModel):

    title: Optional[str] = None
    target_amount: Optional[float] = None
    current_amount: float = 0


class GoalAddFunds(BaseModel):

    amount: float
