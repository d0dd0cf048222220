"""Pydantic schemas for request/response."""
from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel


# ----- Debt detail -----
class DebtEntry(BaseModel):
    user_id: int
    user_name: str
    amount: float
    type: Literal["debt", "credit"]


class DebtDetail(BaseModel):
    debts: list[DebtEntry] = []
    credits: list[DebtEntry] = []
    total_debt: float = 0.0
    total_credit: float = 0.0
    net_balance: float = 0.0
    current_user_id: int


# ----- Balances -----
class MemberBalanceItem(BaseModel):
    user_id: int
    user_name: str
    net_balance: float
    owes: float
    owed: float


class MemberBalances(BaseModel):
    member_balances: list[MemberBalanceItem] = []


class NetBalanceItem(BaseModel):
    user_id: int
    user_name: str
    net_amount: float
    type: Literal["owed", "owes"]  # owed = they owe me, owes = I owe them


class NetBalances(BaseModel):
    net_balances: list[NetBalanceItem] = []
    current_user_id: int


# ----- Optimal settlements -----
class SettlementItem(BaseModel):
    from_user_id: int
    from_user_name: str
    to_user_id: int
    to_user_name: str
    amount: float


class OptimalSettlements(BaseModel):
    transactions: list[SettlementItem] = []
    total_transactions: int = 0
    total_amount: float = 0.0
    member_count: int = 0
    max_possible_transactions: int = 0


# ----- Settle up -----
class SettleRequest(BaseModel):
    to_user_id: int
    amount: Decimal


class SettlementResponse(BaseModel):
    id: int
    group_id: int
    from_user_id: int
    from_user_name: str
    to_user_id: int
    to_user_name: str
    amount: float
    status: str
    settled_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class SettleResponse(BaseModel):
    message: str = "Settlement completed successfully"
    settlement: SettlementResponse
