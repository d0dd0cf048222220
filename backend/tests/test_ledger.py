import random
from decimal import Decimal

import pytest

from settleup.services.errors import InternalComputationError, InvalidInput
from settleup.services.ledger import (
    DebtMatrix,
    ExpenseRecord,
    SettlementRecord,
    SplitRecord,
    build_debt_matrix,
    net_balances,
    net_balances_from_records,
    reduce_balances,
)

A, B, C = 1, 2, 3
D = Decimal


def dinner():
    return ExpenseRecord(id=1, payer_id=A, splits=(
        SplitRecord(A, D("30")), SplitRecord(B, D("30")), SplitRecord(C, D("30")),
    ))


def random_records(seed: int, members: list[int]):
    rng = random.Random(seed)
    expenses = []
    for eid in range(rng.randint(0, 8)):
        payer = rng.choice(members)
        splits = tuple(
            SplitRecord(uid, D(rng.randint(0, 5000)) / 100)
            for uid in rng.sample(members, rng.randint(1, len(members)))
        )
        expenses.append(ExpenseRecord(id=eid, payer_id=payer, splits=splits))
    settlements = []
    for _ in range(rng.randint(0, 5)):
        frm, to = rng.sample(members, 2)
        settlements.append(SettlementRecord(frm, to, D(rng.randint(1, 4000)) / 100))
    return expenses, settlements


def test_matrix_has_zero_cell_for_every_ordered_pair():
    matrix = build_debt_matrix([A, B, C], [], [])
    assert len(matrix.cells) == 6
    assert all(v == 0 for v in matrix.cells.values())
    assert (A, A) not in matrix


def test_split_users_owe_the_payer():
    matrix = build_debt_matrix([A, B, C], [dinner()], [])
    assert matrix.get(B, A) == D("30")
    assert matrix.get(C, A) == D("30")
    assert matrix.get(A, B) == 0
    assert net_balances(matrix) == {A: D("60"), B: D("-30"), C: D("-30")}


def test_self_split_is_ignored():
    expense = ExpenseRecord(id=1, payer_id=A, splits=(SplitRecord(A, D("50")),))
    matrix = build_debt_matrix([A, B], [expense], [])
    assert all(v == 0 for v in matrix.cells.values())


def test_settlement_pays_down_debt():
    matrix = build_debt_matrix([A, B, C], [dinner()], [SettlementRecord(B, A, D("30"))])
    assert matrix.get(B, A) == 0
    assert net_balances(matrix) == {A: D("30"), B: D("0"), C: D("-30")}


def test_oversized_settlement_clamps_at_zero():
    matrix = build_debt_matrix([A, B, C], [dinner()], [SettlementRecord(B, A, D("100"))])
    assert matrix.get(B, A) == 0
    assert matrix.get(A, B) == 0


def test_settlement_without_prior_debt_is_noop():
    matrix = build_debt_matrix([A, B, C], [dinner()], [SettlementRecord(A, C, D("10"))])
    assert matrix.get(A, C) == 0
    assert matrix.get(C, A) == D("30")


def test_clamping_is_applied_per_settlement():
    # 30 owed: paying 50 clamps to 0, so a later 10 cannot go negative either
    settlements = [SettlementRecord(B, A, D("50")), SettlementRecord(B, A, D("10"))]
    matrix = build_debt_matrix([A, B, C], [dinner()], settlements)
    assert matrix.get(B, A) == 0


def test_expenses_accumulate_before_settlements():
    second = ExpenseRecord(id=2, payer_id=A, splits=(SplitRecord(B, D("20")),))
    settlements = [SettlementRecord(B, A, D("45"))]
    matrix = build_debt_matrix([A, B, C], [dinner(), second], settlements)
    assert matrix.get(B, A) == D("5")


def test_records_for_non_members_are_skipped():
    expense = ExpenseRecord(id=1, payer_id=99, splits=(SplitRecord(B, D("10")),))
    settlement = SettlementRecord(B, 99, D("5"))
    matrix = build_debt_matrix([A, B], [expense], [settlement])
    assert all(v == 0 for v in matrix.cells.values())


def test_negative_split_is_rejected():
    expense = ExpenseRecord(id=7, payer_id=A, splits=(SplitRecord(B, D("-1")),))
    with pytest.raises(InvalidInput):
        build_debt_matrix([A, B], [expense], [])


def test_float_amounts_are_read_as_decimals():
    expense = ExpenseRecord(id=1, payer_id=A, splits=(SplitRecord(B, 0.1), SplitRecord(C, 0.2)))
    matrix = build_debt_matrix([A, B, C], [expense], [])
    assert matrix.owed(A) == D("0.3")


def test_reduce_balances_owes_and_owed():
    balances = {b.user_id: b for b in reduce_balances(build_debt_matrix([A, B, C], [dinner()], []))}
    assert balances[A].owed == D("60")
    assert balances[A].owes == 0
    assert balances[B].owes == D("30")
    assert balances[B].net_balance == D("-30")


def test_reduce_balances_rejects_negative_cell():
    matrix = DebtMatrix(member_ids=[A, B], cells={(A, B): D("-1"), (B, A): D("0")})
    with pytest.raises(InternalComputationError):
        reduce_balances(matrix)


def test_empty_group_has_zero_balances():
    assert net_balances_from_records([A, B, C], [], []) == {A: 0, B: 0, C: 0}


@pytest.mark.parametrize("seed", range(20))
def test_conservation_and_non_negative_cells(seed):
    members = [A, B, C, 4]
    expenses, settlements = random_records(seed, members)
    matrix = build_debt_matrix(members, expenses, settlements)
    assert all(v >= 0 for v in matrix.cells.values())
    assert abs(sum(net_balances(matrix).values())) <= D("0.000001")


@pytest.mark.parametrize("seed", range(10))
def test_record_based_balances_agree_with_matrix(seed):
    members = [A, B, C, 4]
    expenses, settlements = random_records(seed, members)
    from_matrix = net_balances(build_debt_matrix(members, expenses, settlements))
    assert net_balances_from_records(members, expenses, settlements) == from_matrix
