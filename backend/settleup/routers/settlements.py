"""Settlements: record a payment between members, list past payments."""
import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from settleup.database import get_db
from settleup.models import User
from settleup.repository import LedgerRepository
from settleup.schemas import SettleRequest, SettleResponse, SettlementResponse
from settleup.auth import check_group_member, get_current_user
from settleup.services.errors import ExceedsOutstandingDebt, InternalComputationError, InvalidInput
from settleup.services.ledger_service import LedgerService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/groups", tags=["settlements"])


@router.post("/{group_id}/settle", response_model=SettleResponse)
def settle(
    group_id: int,
    data: SettleRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    repo = LedgerRepository(db)
    check_group_member(repo, group_id, current_user)
    service = LedgerService(repo)
    try:
        result = service.settle(group_id, current_user.id, data.to_user_id, data.amount)
    except ExceedsOutstandingDebt as e:
        db.rollback()
        logger.info(
            "Rejected settlement in group %s from %s to %s: %s exceeds %s",
            group_id, current_user.id, data.to_user_id, e.amount, e.outstanding,
        )
        raise HTTPException(status_code=400, detail="Settlement amount exceeds outstanding debt")
    except InvalidInput as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))
    except InternalComputationError:
        db.rollback()
        logger.exception("Settlement check failed for group %s", group_id)
        raise HTTPException(status_code=500, detail="Internal server error")

    logger.info(
        "Recorded settlement %s in group %s: %s paid %s %s",
        result.settlement.id, group_id, current_user.id, data.to_user_id, result.settlement.amount,
    )
    return result


@router.get("/{group_id}/settlements", response_model=list[SettlementResponse])
def list_settlements(
    group_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    repo = LedgerRepository(db)
    check_group_member(repo, group_id, current_user)
    return LedgerService(repo).settlement_history(group_id)
