from typing import TypedDict


class GoalDocument(TypedDict, total=False):
    _id: str
    title: str
    target_amount: float
    current_amount: float
    family_id: str
