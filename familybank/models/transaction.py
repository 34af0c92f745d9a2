from datetime import datetime
from typing import Literal, Optional, TypedDict


TransactionType = Literal["expense", "debt", "borrow_request", "event"]
TransactionStatus = Literal["pending", "approved", "rejected", "paid", "verified"]


class TransactionDocument(TypedDict, total=False):
    _id: str
    type: TransactionType
    description: str
    amount: float
    category: Optional[str]
    date: datetime
    payer: Optional[str]
    borrower: Optional[str]
    family_id: str
    status: TransactionStatus
