"""Lançamentos financeiros manuais (entradas e saídas) do painel admin."""
from datetime import date, datetime
from decimal import Decimal

from sqlmodel import Field, SQLModel

TRANSACTION_TYPES = ("entrada", "saida")


class FinancialTransaction(SQLModel, table=True):
    __tablename__ = "financial_transactions"

    id: int | None = Field(default=None, primary_key=True)
    transaction_type: str = Field(index=True, max_length=16)  # entrada | saida
    amount: Decimal = Field(max_digits=12, decimal_places=2)  # reais, sempre positivo
    description: str | None = None
    reference: str | None = Field(default=None, max_length=255)
    occurred_at: date
    created_at: datetime | None = Field(default_factory=datetime.utcnow)
    updated_at: datetime | None = Field(default_factory=datetime.utcnow)
