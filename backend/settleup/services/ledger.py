"""Pairwise debt matrix and per-member balances for one group.

Every balance the API reports is derived from a single debt matrix built by
``build_debt_matrix``: splits add debt from the split user to the payer, and
completed settlements pay it down, clamped at zero.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, Sequence

from settleup.services.errors import InternalComputationError, InvalidInput

ZERO = Decimal("0")
CONSERVATION_TOLERANCE = Decimal("0.000001")


def to_money(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() keeps 0.1 as 0.1 instead of its binary expansion
    return Decimal(str(value))


@dataclass(frozen=True)
class Member:
    user_id: int
    display_name: str = "Unknown"


@dataclass(frozen=True)
class SplitRecord:
    user_id: int
    amount: Decimal


@dataclass(frozen=True)
class ExpenseRecord:
    id: int
    payer_id: int
    splits: tuple[SplitRecord, ...] = ()


@dataclass(frozen=True)
class SettlementRecord:
    from_user_id: int
    to_user_id: int
    amount: Decimal


@dataclass(frozen=True)
class MemberBalance:
    user_id: int
    owes: Decimal
    owed: Decimal

    @property
    def net_balance(self) -> Decimal:
        return self.owed - self.owes


@dataclass
class DebtMatrix:
    """Gross amounts owed between every ordered pair of distinct members."""

    member_ids: list[int]
    cells: dict[tuple[int, int], Decimal] = field(default_factory=dict)

    def __contains__(self, pair) -> bool:
        return pair in self.cells

    def get(self, debtor: int, creditor: int) -> Decimal:
        return self.cells.get((debtor, creditor), ZERO)

    def owes(self, user_id: int) -> Decimal:
        """Total the user owes everyone else."""
        return sum((self.get(user_id, other) for other in self.member_ids if other != user_id), ZERO)

    def owed(self, user_id: int) -> Decimal:
        """Total everyone else owes the user."""
        return sum((self.get(other, user_id) for other in self.member_ids if other != user_id), ZERO)

    def net_between(self, user_id: int, other_id: int) -> Decimal:
        """Positive when ``other_id`` owes ``user_id`` on balance."""
        return self.get(other_id, user_id) - self.get(user_id, other_id)


def build_debt_matrix(
    member_ids: Sequence[int],
    expenses: Iterable[ExpenseRecord],
    settlements: Iterable[SettlementRecord],
) -> DebtMatrix:
    """Build the debt matrix from a group's expenses and completed settlements.

    Settlements are applied in the order given, each one clamped so a cell
    never drops below zero. Records naming a user outside ``member_ids`` have
    no cell to land in and are skipped.
    """
    ids = list(dict.fromkeys(member_ids))
    matrix = DebtMatrix(member_ids=ids)
    for debtor in ids:
        for creditor in ids:
            if debtor != creditor:
                matrix.cells[(debtor, creditor)] = ZERO

    for expense in expenses:
        for split in expense.splits:
            amount = to_money(split.amount)
            if amount < 0:
                raise InvalidInput(f"Expense {expense.id} has a negative split for user {split.user_id}")
            if split.user_id == expense.payer_id:
                continue
            pair = (split.user_id, expense.payer_id)
            if pair in matrix:
                matrix.cells[pair] += amount

    for settlement in settlements:
        pair = (settlement.from_user_id, settlement.to_user_id)
        if pair in matrix:
            matrix.cells[pair] = max(ZERO, matrix.cells[pair] - to_money(settlement.amount))

    return matrix


def reduce_balances(matrix: DebtMatrix) -> list[MemberBalance]:
    """Per-member totals in member order. Checks the matrix invariants."""
    for (debtor, creditor), amount in matrix.cells.items():
        if amount < 0:
            raise InternalComputationError(f"Negative debt {amount} from {debtor} to {creditor}")

    balances = [
        MemberBalance(user_id=uid, owes=matrix.owes(uid), owed=matrix.owed(uid))
        for uid in matrix.member_ids
    ]
    total = sum((b.net_balance for b in balances), ZERO)
    if abs(total) > CONSERVATION_TOLERANCE:
        raise InternalComputationError(f"Net balances sum to {total}, expected 0")
    return balances


def net_balances(matrix: DebtMatrix) -> dict[int, Decimal]:
    return {b.user_id: b.net_balance for b in reduce_balances(matrix)}


def net_balances_from_records(
    member_ids: Sequence[int],
    expenses: Iterable[ExpenseRecord],
    settlements: Iterable[SettlementRecord],
) -> dict[int, Decimal]:
    """Net balances straight from records; same result as going via the matrix."""
    return net_balances(build_debt_matrix(member_ids, expenses, settlements))
