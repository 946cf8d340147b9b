import datetime as dt
from enum import Enum

from pydantic import BaseModel, ConfigDict


class TransactionKind(str, Enum):
    INCOME = "Ingreso"
    EXPENSE = "Gasto"
    UNKNOWN = "Desconocido"


class Transaction(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    date: dt.date
    kind: TransactionKind
    category: str
    amount: float
    paid: bool
    note: str | None = None


class NewTransaction(BaseModel):
    date: dt.date
    kind: TransactionKind
    category: str
    amount: float
    paid: bool = False
    note: str | None = None


class FinancialMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    balance: float = 0.0
    total_income: float = 0.0
    total_expense: float = 0.0
    pending: float = 0.0
    transaction_count: int = 0


class CategoryDistribution(BaseModel):
    model_config = ConfigDict(frozen=True)

    category: str
    total: float
    percentage: float
    color: str


class ConnectionStatus(BaseModel):
    model_config = ConfigDict(frozen=True)

    connected: bool = False
    last_update: dt.datetime | None = None
    error: str | None = None
