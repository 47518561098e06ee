"""Lançamentos financeiros manuais: entradas, saídas e saldo."""
from datetime import date, datetime
from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, func, select

from qrlove.core.database import get_db
from qrlove.models import FinancialTransaction
from qrlove.schemas import TransactionIn, TransactionOut

router = APIRouter()


def _get_or_404(db: Session, transaction_id: int) -> FinancialTransaction:
    tx = db.get(FinancialTransaction, transaction_id)
    if not tx:
        raise HTTPException(status_code=404, detail="Lançamento não encontrado.")
    return tx


def _filtered(stmt, transaction_type: str | None, date_from: date | None, date_to: date | None):
    if transaction_type:
        stmt = stmt.where(FinancialTransaction.transaction_type == transaction_type)
    if date_from:
        stmt = stmt.where(FinancialTransaction.occurred_at >= date_from)
    if date_to:
        stmt = stmt.where(FinancialTransaction.occurred_at <= date_to)
    return stmt


@router.get("", response_model=list[TransactionOut])
def transactions_list(
    transaction_type: str | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    db: Session = Depends(get_db),
):
    stmt = select(FinancialTransaction).order_by(
        FinancialTransaction.occurred_at.desc(), FinancialTransaction.id.desc()
    )
    rows = db.exec(_filtered(stmt, transaction_type, date_from, date_to)).all()
    return [TransactionOut.model_validate(t, from_attributes=True) for t in rows]


@router.get("/summary")
def transactions_summary(
    date_from: date | None = None,
    date_to: date | None = None,
    db: Session = Depends(get_db),
):
    totals = {"entrada": Decimal("0.00"), "saida": Decimal("0.00")}
    stmt = select(FinancialTransaction.transaction_type, func.sum(FinancialTransaction.amount)).group_by(
        FinancialTransaction.transaction_type
    )
    for tx_type, total in db.exec(_filtered(stmt, None, date_from, date_to)).all():
        if tx_type in totals and total is not None:
            totals[tx_type] = Decimal(str(total)).quantize(Decimal("0.01"))
    return {
        "entradas": str(totals["entrada"]),
        "saidas": str(totals["saida"]),
        "saldo": str(totals["entrada"] - totals["saida"]),
    }


@router.post("", response_model=TransactionOut, status_code=201)
def transaction_create(body: TransactionIn, db: Session = Depends(get_db)):
    tx = FinancialTransaction(**body.model_dump())
    db.add(tx)
    db.commit()
    db.refresh(tx)
    return TransactionOut.model_validate(tx, from_attributes=True)


@router.put("/{transaction_id:int}", response_model=TransactionOut)
def transaction_update(transaction_id: int, body: TransactionIn, db: Session = Depends(get_db)):
    tx = _get_or_404(db, transaction_id)
    for key, value in body.model_dump().items():
        setattr(tx, key, value)
    tx.updated_at = datetime.utcnow()
    db.add(tx)
    db.commit()
    db.refresh(tx)
    return TransactionOut.model_validate(tx, from_attributes=True)


@router.delete("/{transaction_id:int}")
def transaction_delete(transaction_id: int, db: Session = Depends(get_db)):
    tx = _get_or_404(db, transaction_id)
    db.delete(tx)
    db.commit()
    return {"ok": True}
