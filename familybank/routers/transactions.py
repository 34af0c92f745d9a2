from fastapi import APIRouter, Depends, HTTPException, status

from familybank.database.connection import mongo_db_dependency
from familybank.repositories.transaction_repository import TransactionRepository
from familybank.repositories.user_repository import UserRepository
from familybank.schemas.transaction import TransactionCreate
from familybank.services.transaction_service import TransactionService
from familybank.utils.dependencies import require_family
from familybank.utils.realtime_bus import RealtimeBus, get_bus


router = APIRouter(prefix="/api/transactions", tags=["transactions"])


def get_transaction_service(db = Depends(mongo_db_dependency), bus: RealtimeBus = Depends(get_bus)) -> TransactionService:
    return TransactionService(TransactionRepository(db), UserRepository(db), bus)


@router.get("")
async def list_transactions(current_user: dict = Depends(require_family), service: TransactionService = Depends(get_transaction_service)):
    return await service.list_transactions(current_user["family_id"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_transaction(body: TransactionCreate, current_user: dict = Depends(require_family), service: TransactionService = Depends(get_transaction_service)):
    try:
        return await service.create_transaction(current_user["family_id"], body)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
