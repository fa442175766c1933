# FILE: clinic/services/stock.py
from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from fastapi import HTTPException
from sqlalchemy.orm import Session

from clinic.models.pharmacy import Medicine, StockTransaction, StockTxnType


def lock_medicine(db: Session, *, clinic_id: int, medicine_id: int) -> Medicine:
    med = (db.query(Medicine).filter(
        Medicine.id == medicine_id,
        Medicine.clinic_id == clinic_id).with_for_update().first())
    if not med:
        raise HTTPException(status_code=404, detail="Medicine not found")
    return med


def create_stock_transaction(
    db: Session,
    *,
    medicine: Medicine,
    txn_type: str,
    qty_delta: int,
    reason: str = "",
    reference_id: Optional[int] = None,
    notes: Optional[str] = None,
    user=None,
) -> StockTransaction:
    """
    Central creator for StockTransaction; balance_after is read from the
    medicine after the caller has moved current_stock.
    """
    st = StockTransaction(
        clinic_id=medicine.clinic_id,
        medicine_id=medicine.id,
        type=txn_type,
        quantity=qty_delta,
        balance_after=medicine.current_stock,
        reason=reason or None,
        reference_id=reference_id,
        notes=notes,
        performed_by=getattr(user, "id", None),
    )
    db.add(st)
    return st


def adjust_stock(
    db: Session,
    *,
    medicine: Medicine,
    txn_type: str,
    quantity: int,
    reason: str = "",
    notes: Optional[str] = None,
    user=None,
) -> StockTransaction:
    """
    IN adds, OUT subtracts, ADJUSTMENT sets an absolute level.

    The medicine should already be locked; nothing is committed here.
    """
    if quantity < 0:
        raise HTTPException(status_code=400, detail="Quantity cannot be negative")

    before = int(medicine.current_stock or 0)
    if txn_type == StockTxnType.IN.value:
        after = before + quantity
    elif txn_type == StockTxnType.OUT.value:
        if quantity > before:
            raise HTTPException(status_code=400, detail="Insufficient stock")
        after = before - quantity
    elif txn_type == StockTxnType.ADJUSTMENT.value:
        after = quantity
    else:
        raise HTTPException(status_code=400, detail="Invalid transaction type")

    medicine.current_stock = after
    return create_stock_transaction(db,
                                    medicine=medicine,
                                    txn_type=txn_type,
                                    qty_delta=after - before,
                                    reason=reason,
                                    notes=notes,
                                    user=user)


def stock_status(medicine: Medicine) -> str:
    stock = int(medicine.current_stock or 0)
    if stock <= 0:
        return "OUT_OF_STOCK"
    if stock <= int(medicine.reorder_level or 0):
        return "LOW_STOCK"
    return "IN_STOCK"


def stock_label(medicine: Medicine) -> str:
    stock = int(medicine.current_stock or 0)
    status = stock_status(medicine)
    if status == "OUT_OF_STOCK":
        return "Out of stock"
    if status == "LOW_STOCK":
        return f"Low: {stock}"
    return f"{stock} in stock"


def find_shortages(lines: Sequence[tuple]) -> List[Dict[str, object]]:
    """lines are (medicine, quantity needed); returns one issue per short line."""
    issues: List[Dict[str, object]] = []
    for med, needed in lines:
        available = int(med.current_stock or 0)
        if needed > available:
            issues.append({
                "medicine_id": med.id,
                "medicine_name": med.name,
                "required": needed,
                "available": available,
            })
    return issues
