"""Minimize number of transfers so everyone is settled (who owes whom)."""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from settleup.services.ledger import ZERO, to_money

# Anything at or below one minor unit counts as settled.
EPSILON = Decimal("0.01")


@dataclass(frozen=True)
class SuggestedTransfer:
    from_user_id: int
    to_user_id: int
    amount: Decimal


@dataclass(frozen=True)
class SettlementPlan:
    transactions: list[SuggestedTransfer] = field(default_factory=list)
    member_count: int = 0

    @property
    def total_transactions(self) -> int:
        return len(self.transactions)

    @property
    def total_amount(self) -> Decimal:
        return sum((t.amount for t in self.transactions), ZERO)

    @property
    def max_possible_transactions(self) -> int:
        return max(self.member_count - 1, 0)


def compute_settlements(balances: dict[int, Decimal], member_count: Optional[int] = None) -> SettlementPlan:
    """
    balances: user_id -> net balance (positive = is owed money, negative = owes money).
    Returns a greedy largest-first list of transfers to settle up, at most
    ``member_count - 1`` long.

    Balances within EPSILON of zero are treated as settled. Matching is done
    on exact decimals, so every emitted amount is positive and each round
    clears at least one party.
    """
    debtors = []  # [user_id, amount_owed]
    creditors = []
    for uid, bal in balances.items():
        bal = to_money(bal)
        if bal < -EPSILON:
            debtors.append([uid, -bal])
        elif bal > EPSILON:
            creditors.append([uid, bal])
    # stable sort: ties keep member order
    debtors.sort(key=lambda x: -x[1])
    creditors.sort(key=lambda x: -x[1])

    out: list[SuggestedTransfer] = []
    i, j = 0, 0
    while i < len(debtors) and j < len(creditors):
        du, d_amount = debtors[i]
        cu, c_amount = creditors[j]
        transfer = min(d_amount, c_amount)
        out.append(SuggestedTransfer(from_user_id=du, to_user_id=cu, amount=transfer))
        debtors[i][1] = d_amount - transfer
        creditors[j][1] = c_amount - transfer
        # exact arithmetic: at least one side reaches zero every round
        if debtors[i][1] == 0:
            i += 1
        if creditors[j][1] == 0:
            j += 1

    if member_count is None:
        member_count = len(balances)
    return SettlementPlan(transactions=out, member_count=member_count)
