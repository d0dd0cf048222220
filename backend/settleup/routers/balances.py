"""Balances: debts, member balances, net balances and suggested settlements for a group."""
import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from settleup.database import get_db
from settleup.models import User
from settleup.repository import LedgerRepository
from settleup.schemas import DebtDetail, MemberBalances, NetBalances, OptimalSettlements
from settleup.auth import check_group_member, get_current_user
from settleup.services.errors import InternalComputationError, InvalidInput
from settleup.services.ledger_service import LedgerService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/groups", tags=["balances"])


def _ledger_query(fn, group_id: int):
    try:
        return fn()
    except InvalidInput as e:
        logger.warning("Bad ledger data in group %s: %s", group_id, e)
        raise HTTPException(status_code=400, detail=str(e))
    except InternalComputationError:
        logger.exception("Ledger computation failed for group %s", group_id)
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/{group_id}/debts", response_model=DebtDetail)
def get_debts(
    group_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    repo = LedgerRepository(db)
    check_group_member(repo, group_id, current_user)
    service = LedgerService(repo)
    return _ledger_query(lambda: service.debt_detail(group_id, current_user.id), group_id)


@router.get("/{group_id}/member-balances", response_model=MemberBalances)
def get_member_balances(
    group_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    repo = LedgerRepository(db)
    check_group_member(repo, group_id, current_user)
    service = LedgerService(repo)
    return _ledger_query(lambda: service.member_balances(group_id), group_id)


@router.get("/{group_id}/net-balances", response_model=NetBalances)
def get_net_balances(
    group_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    repo = LedgerRepository(db)
    check_group_member(repo, group_id, current_user)
    service = LedgerService(repo)
    return _ledger_query(lambda: service.net_balances(group_id, current_user.id), group_id)


@router.get("/{group_id}/optimal-settlements", response_model=OptimalSettlements)
def get_optimal_settlements(
    group_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    repo = LedgerRepository(db)
    check_group_member(repo, group_id, current_user)
    service = LedgerService(repo)
    return _ledger_query(lambda: service.optimal_settlements(group_id), group_id)
