from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field


class TransactionCreate(BaseModel):

    type: Literal["expense", "debt", "borrow_request", "event"]
    description: str = Field(min_length=1)
    amount: float
    category: Optional[str] = None
    date: Optional[datetime] = None
    payer: Optional[str] = None
    borrower: Optional[str] = None
