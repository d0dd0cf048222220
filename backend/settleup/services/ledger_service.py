"""Group ledger queries and the settle-up command.

Each call loads one snapshot of the group's records, builds the debt matrix
once and projects the requested view from it. Callers must have checked that
the group exists and that the viewing user belongs to it.
"""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from settleup.models import Settlement
from settleup.repository import LedgerRepository
from settleup.schemas import (
    DebtDetail,
    DebtEntry,
    MemberBalanceItem,
    MemberBalances,
    NetBalanceItem,
    NetBalances,
    OptimalSettlements,
    SettlementItem,
    SettlementResponse,
    SettleResponse,
)
from settleup.services.errors import InvalidInput
from settleup.services.ledger import ZERO, DebtMatrix, build_debt_matrix, reduce_balances, to_money
from settleup.services.ledger import net_balances as balances_by_member
from settleup.services.settlement_calculator import EPSILON, compute_settlements
from settleup.services.settlement_validator import check_settlement

CENTS = Decimal("0.01")


def qround(d: Decimal) -> Decimal:
    return d.quantize(CENTS, rounding=ROUND_HALF_UP)


def settlement_response(s: Settlement) -> SettlementResponse:
    return SettlementResponse(
        id=s.id,
        group_id=s.group_id,
        from_user_id=s.from_user_id,
        from_user_name=s.from_user.display_name if s.from_user else "Unknown",
        to_user_id=s.to_user_id,
        to_user_name=s.to_user.display_name if s.to_user else "Unknown",
        amount=float(s.amount),
        status=s.status,
        settled_at=s.settled_at,
        created_at=s.created_at,
    )


class LedgerService:
    def __init__(self, repository: LedgerRepository):
        self.repo = repository

    def _load(self, group_id: int) -> tuple[dict[int, str], DebtMatrix]:
        members = self.repo.list_members(group_id)
        names = {m.user_id: m.display_name for m in members}
        matrix = build_debt_matrix(
            list(names),
            self.repo.list_expenses_with_splits(group_id),
            self.repo.list_completed_settlements(group_id),
        )
        return names, matrix

    def debt_detail(self, group_id: int, viewer_id: int) -> DebtDetail:
        """What the viewer owes each member and what each member owes the viewer."""
        names, matrix = self._load(group_id)
        debts: list[DebtEntry] = []
        credits: list[DebtEntry] = []
        total_debt = total_credit = ZERO
        if viewer_id in names:
            for other, name in names.items():
                if other == viewer_id:
                    continue
                owed_to_other = matrix.get(viewer_id, other)
                if owed_to_other > 0:
                    debts.append(DebtEntry(user_id=other, user_name=name, amount=float(owed_to_other), type="debt"))
                    total_debt += owed_to_other
                owed_by_other = matrix.get(other, viewer_id)
                if owed_by_other > 0:
                    credits.append(DebtEntry(user_id=other, user_name=name, amount=float(owed_by_other), type="credit"))
                    total_credit += owed_by_other
        return DebtDetail(
            debts=debts,
            credits=credits,
            total_debt=float(total_debt),
            total_credit=float(total_credit),
            net_balance=float(total_credit - total_debt),
            current_user_id=viewer_id,
        )

    def member_balances(self, group_id: int) -> MemberBalances:
        names, matrix = self._load(group_id)
        return MemberBalances(
            member_balances=[
                MemberBalanceItem(
                    user_id=b.user_id,
                    user_name=names[b.user_id],
                    net_balance=float(b.net_balance),
                    owes=float(b.owes),
                    owed=float(b.owed),
                )
                for b in reduce_balances(matrix)
            ]
        )

    def net_balances(self, group_id: int, viewer_id: int) -> NetBalances:
        """The viewer's netted position against every other member, largest first."""
        names, matrix = self._load(group_id)
        items: list[NetBalanceItem] = []
        if viewer_id in names:
            for other, name in names.items():
                if other == viewer_id:
                    continue
                net = matrix.net_between(viewer_id, other)
                if abs(net) > EPSILON:
                    items.append(
                        NetBalanceItem(
                            user_id=other,
                            user_name=name,
                            net_amount=float(net),
                            type="owed" if net > 0 else "owes",
                        )
                    )
        items.sort(key=lambda i: -abs(i.net_amount))
        return NetBalances(net_balances=items, current_user_id=viewer_id)

    def optimal_settlements(self, group_id: int) -> OptimalSettlements:
        names, matrix = self._load(group_id)
        plan = compute_settlements(balances_by_member(matrix), member_count=len(names))
        return OptimalSettlements(
            transactions=[
                SettlementItem(
                    from_user_id=t.from_user_id,
                    from_user_name=names[t.from_user_id],
                    to_user_id=t.to_user_id,
                    to_user_name=names[t.to_user_id],
                    amount=float(t.amount),
                )
                for t in plan.transactions
            ],
            total_transactions=plan.total_transactions,
            total_amount=float(plan.total_amount),
            member_count=plan.member_count,
            max_possible_transactions=plan.max_possible_transactions,
        )

    def settle(self, group_id: int, from_user_id: int, to_user_id: int, amount) -> SettleResponse:
        """Record a completed payment from ``from_user_id`` to ``to_user_id``.

        Raises InvalidInput or ExceedsOutstandingDebt when the payment is not
        allowed; nothing is written in that case.
        """
        amount = to_money(amount)
        if amount != qround(amount):
            raise InvalidInput("Amount cannot have more than two decimal places")
        if not self.repo.is_member(group_id, to_user_id):
            raise InvalidInput("Recipient must be a group member")

        self.repo.lock_pair(group_id, from_user_id, to_user_id)
        check = check_settlement(
            from_user_id,
            to_user_id,
            amount,
            self.repo.list_expenses_with_splits(group_id),
            self.repo.list_completed_settlements_between(group_id, from_user_id, to_user_id),
        )
        check.raise_for_rejection(amount)

        settlement = self.repo.record_settlement(group_id, from_user_id, to_user_id, amount)
        return SettleResponse(settlement=settlement_response(settlement))

    def settlement_history(self, group_id: int) -> list[SettlementResponse]:
        return [settlement_response(s) for s in self.repo.list_settlement_history(group_id)]
