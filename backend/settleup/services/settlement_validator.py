"""Decide whether a real payment between two members is allowed."""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional

from settleup.services.errors import ExceedsOutstandingDebt, InvalidInput
from settleup.services.ledger import (
    ExpenseRecord,
    SettlementRecord,
    build_debt_matrix,
    to_money,
)

EXCEEDS_OUTSTANDING_DEBT = "Settlement amount exceeds outstanding debt"
NOTHING_OWED = "You do not owe this member anything"


@dataclass(frozen=True)
class SettlementCheck:
    outstanding: Decimal
    accepted: bool
    reason: Optional[str] = None

    def raise_for_rejection(self, amount) -> None:
        if self.accepted:
            return
        if self.reason == EXCEEDS_OUTSTANDING_DEBT:
            raise ExceedsOutstandingDebt(amount, self.outstanding)
        raise InvalidInput(self.reason or "Invalid settlement")


def bilateral_outstanding(
    acting_user_id: int,
    target_user_id: int,
    expenses: Iterable[ExpenseRecord],
    settlements: Iterable[SettlementRecord],
) -> Decimal:
    """What ``acting_user_id`` still owes ``target_user_id`` on balance.

    Only the pair's own records count: expenses one of them paid for the
    other, and settlements between exactly these two. Chains through other
    members are ignored. Negative when the target owes the acting user.
    """
    pair = [acting_user_id, target_user_id]
    pair_settlements = [
        s for s in settlements
        if {s.from_user_id, s.to_user_id} == set(pair)
    ]
    matrix = build_debt_matrix(pair, expenses, pair_settlements)
    return matrix.get(acting_user_id, target_user_id) - matrix.get(target_user_id, acting_user_id)


def check_settlement(
    acting_user_id: int,
    target_user_id: int,
    amount,
    expenses: Iterable[ExpenseRecord],
    settlements: Iterable[SettlementRecord],
) -> SettlementCheck:
    """Accept or reject ``acting_user_id`` paying ``amount`` to ``target_user_id``.

    Only the debtor side of the pair may pay, and at most what it owes.
    """
    amount = to_money(amount)
    if acting_user_id == target_user_id:
        return SettlementCheck(outstanding=Decimal("0"), accepted=False, reason="Cannot settle with yourself")

    outstanding = bilateral_outstanding(acting_user_id, target_user_id, expenses, settlements)
    if amount <= 0:
        return SettlementCheck(outstanding=outstanding, accepted=False, reason="Amount must be positive")
    if outstanding <= 0:
        # a payment against the debt direction has no cell to reduce
        return SettlementCheck(outstanding=outstanding, accepted=False, reason=NOTHING_OWED)
    if amount > outstanding:
        return SettlementCheck(outstanding=outstanding, accepted=False, reason=EXCEEDS_OUTSTANDING_DEBT)
    return SettlementCheck(outstanding=outstanding, accepted=True)
