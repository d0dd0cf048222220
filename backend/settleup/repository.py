"""Read/write access to a group's ledger records.

Rows are copied into the engine's plain snapshot types so a computation never
touches the session after loading.
"""
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import or_, and_
from sqlalchemy.orm import Session, selectinload

from settleup.models import (
    SETTLEMENT_COMPLETED,
    Expense,
    Group,
    Settlement,
    User,
    group_members,
)
from settleup.services.ledger import ExpenseRecord, Member, SettlementRecord, SplitRecord, to_money


class LedgerRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_group(self, group_id: int) -> Optional[Group]:
        return self.db.query(Group).filter(Group.id == group_id).first()

    def is_member(self, group_id: int, user_id: int) -> bool:
        row = (
            self.db.query(group_members.c.user_id)
            .filter(group_members.c.group_id == group_id, group_members.c.user_id == user_id)
            .first()
        )
        return row is not None

    def list_members(self, group_id: int) -> list[Member]:
        users = (
            self.db.query(User)
            .join(group_members, group_members.c.user_id == User.id)
            .filter(group_members.c.group_id == group_id)
            .order_by(User.id)
            .all()
        )
        return [Member(user_id=u.id, display_name=u.display_name) for u in users]

    def list_expenses_with_splits(self, group_id: int) -> list[ExpenseRecord]:
        expenses = (
            self.db.query(Expense)
            .options(selectinload(Expense.splits))
            .filter(Expense.group_id == group_id)
            .order_by(Expense.id)
            .all()
        )
        return [
            ExpenseRecord(
                id=e.id,
                payer_id=e.payer_id,
                splits=tuple(SplitRecord(user_id=s.user_id, amount=to_money(s.amount)) for s in e.splits),
            )
            for e in expenses
        ]

    def _completed_settlements(self, group_id: int):
        return (
            self.db.query(Settlement)
            .filter(Settlement.group_id == group_id, Settlement.status == SETTLEMENT_COMPLETED)
            .order_by(Settlement.settled_at, Settlement.id)
        )

    def list_completed_settlements(self, group_id: int) -> list[SettlementRecord]:
        return [_settlement_record(s) for s in self._completed_settlements(group_id).all()]

    def list_completed_settlements_between(self, group_id: int, user_a: int, user_b: int) -> list[SettlementRecord]:
        q = self._completed_settlements(group_id).filter(
            or_(
                and_(Settlement.from_user_id == user_a, Settlement.to_user_id == user_b),
                and_(Settlement.from_user_id == user_b, Settlement.to_user_id == user_a),
            )
        )
        return [_settlement_record(s) for s in q.all()]

    def list_settlement_history(self, group_id: int) -> list[Settlement]:
        return (
            self.db.query(Settlement)
            .options(selectinload(Settlement.from_user), selectinload(Settlement.to_user))
            .filter(Settlement.group_id == group_id, Settlement.status == SETTLEMENT_COMPLETED)
            .order_by(Settlement.settled_at.desc(), Settlement.id.desc())
            .all()
        )

    def lock_pair(self, group_id: int, user_a: int, user_b: int) -> None:
        """Lock both membership rows until commit so settles on a pair run one at a time."""
        (
            self.db.query(group_members.c.user_id)
            .filter(
                group_members.c.group_id == group_id,
                group_members.c.user_id.in_([user_a, user_b]),
            )
            .with_for_update()
            .all()
        )

    def record_settlement(self, group_id: int, from_user_id: int, to_user_id: int, amount: Decimal) -> Settlement:
        settlement = Settlement(
            group_id=group_id,
            from_user_id=from_user_id,
            to_user_id=to_user_id,
            amount=amount,
            status=SETTLEMENT_COMPLETED,
            settled_at=datetime.now(timezone.utc),
        )
        self.db.add(settlement)
        self.db.commit()
        self.db.refresh(settlement)
        return settlement


def _settlement_record(s: Settlement) -> SettlementRecord:
    return SettlementRecord(from_user_id=s.from_user_id, to_user_id=s.to_user_id, amount=to_money(s.amount))
