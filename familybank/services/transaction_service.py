import logging
from typing import Any, Dict, List

from familybank.repositories.transaction_repository import TransactionRepository
from familybank.repositories.user_repository import UserRepository
from familybank.schemas.transaction import TransactionCreate
from familybank.utils.realtime_bus import RealtimeBus, family_room


logger = logging.getLogger(__name__)


class TransactionService:

    def __init__(self, transaction_repo: TransactionRepository, user_repo: UserRepository, bus: RealtimeBus) -> None:
        self._transaction_repo = transaction_repo
        self._user_repo = user_repo
        self._bus = bus

    async def list_transactions(self, family_id: str) -> List[Dict[str, Any]]:
        items = await self._transaction_repo.list_for_family(family_id)
        for it in items:
            await self._populate(it)
        return items

    async def create_transaction(self, family_id: str, data: TransactionCreate) -> Dict[str, Any]:
        if data.amount <= 0:
            raise ValueError("Amount must be positive")
        tx = await self._transaction_repo.create(family_id, data.model_dump(exclude_none=True))

        if tx["type"] == "expense" and tx.get("payer"):
            try:
                await self._user_repo.adjust_balance(tx["payer"], -tx["amount"])
            except Exception:
                logger.exception("Could not update balance of payer %s", tx["payer"])

        await self._populate(tx)
        await self._bus.publish(family_room(family_id), "new-transaction", tx)
        return tx

    async def _populate(self, tx: Dict[str, Any]) -> None:
        # payer/borrower go out as embedded user objects when the user still exists
        for field in ("payer", "borrower"):
            ref = tx.get(field)
            if isinstance(ref, str):
                summary = await self._user_repo.get_summary(ref)
                if summary:
                    tx[field] = summary
