# clinic/api/routes_pharmacy.py
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import ValidationError
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from clinic.api.deps import clinic_user, get_db
from clinic.api.exception_handlers import validation_details
from clinic.models.pharmacy import Category, Medicine, StockTxnType, medicine_categories
from clinic.models.prescription import PrescriptionMedicine
from clinic.models.user import User
from clinic.schemas.pharmacy import (
    CategoryCreate,
    CategoryOut,
    CategoryUpdate,
    MedicineBulkIn,
    MedicineCreate,
    MedicineOut,
    MedicineUpdate,
    StockAdjustIn,
    StockTransactionOut,
)
from clinic.services.stock import (
    adjust_stock,
    create_stock_transaction,
    lock_medicine,
    stock_label,
    stock_status,
)

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------
#  Categories
# ---------------------------------------------------------------------


def _get_category(db: Session, clinic_id: int, category_id: int) -> Category:
    c = db.query(Category).filter(Category.id == category_id,
                                  Category.clinic_id == clinic_id).first()
    if not c:
        raise HTTPException(status_code=404, detail="Category not found")
    return c


def _category_name_taken(db: Session, clinic_id: int, name: str,
                         exclude_id: Optional[int] = None) -> bool:
    q = db.query(Category.id).filter(Category.clinic_id == clinic_id,
                                     func.lower(Category.name) == name.lower())
    if exclude_id:
        q = q.filter(Category.id != exclude_id)
    return q.first() is not None


@router.get("/categories")
def list_categories(
        db: Session = Depends(get_db),
        user: User = Depends(clinic_user),
) -> Dict[str, Any]:
    counts = dict(
        db.query(medicine_categories.c.category_id,
                 func.count(medicine_categories.c.medicine_id)).group_by(
                     medicine_categories.c.category_id).all())
    rows = (db.query(Category).filter(Category.clinic_id == user.clinic_id).order_by(
        Category.name.asc()).all())
    out = []
    for c in rows:
        item = CategoryOut.model_validate(c).model_dump()
        item["medicine_count"] = int(counts.get(c.id, 0))
        out.append(item)
    return {"categories": out}


@router.post("/categories", response_model=CategoryOut, status_code=201)
def create_category(
        payload: CategoryCreate,
        db: Session = Depends(get_db),
        user: User = Depends(clinic_user),
):
    name = payload.name.strip()
    if _category_name_taken(db, user.clinic_id, name):
        raise HTTPException(status_code=400, detail="Category already exists")
    c = Category(clinic_id=user.clinic_id,
                 name=name,
                 description=payload.description,
                 type=payload.type or "Disease",
                 color=payload.color)
    db.add(c)
    db.commit()
    db.refresh(c)
    return c


@router.put("/categories/{category_id}", response_model=CategoryOut)
def update_category(
        category_id: int,
        payload: CategoryUpdate,
        db: Session = Depends(get_db),
        user: User = Depends(clinic_user),
):
    c = _get_category(db, user.clinic_id, category_id)
    data = payload.model_dump(exclude_unset=True)
    if data.get("name"):
        data["name"] = data["name"].strip()
        if _category_name_taken(db, user.clinic_id, data["name"], exclude_id=c.id):
            raise HTTPException(status_code=400, detail="Category already exists")
    for k, v in data.items():
        if v is not None:
            setattr(c, k, v)
    db.commit()
    db.refresh(c)
    return c


@router.delete("/categories/{category_id}")
def delete_category(
        category_id: int,
        db: Session = Depends(get_db),
        user: User = Depends(clinic_user),
):
    c = _get_category(db, user.clinic_id, category_id)
    db.delete(c)
    db.commit()
    return {"message": "Category deleted"}


# ---------------------------------------------------------------------
#  Medicines
# ---------------------------------------------------------------------


def _get_medicine(db: Session, clinic_id: int, medicine_id: int) -> Medicine:
    m = (db.query(Medicine).options(selectinload(Medicine.categories)).filter(
        Medicine.id == medicine_id, Medicine.clinic_id == clinic_id).first())
    if not m:
        raise HTTPException(status_code=404, detail="Medicine not found")
    return m


def _categories_for(db: Session, clinic_id: int, ids: List[int]) -> List[Category]:
    if not ids:
        return []
    rows = db.query(Category).filter(Category.clinic_id == clinic_id,
                                     Category.id.in_(ids)).all()
    if len(rows) != len(set(ids)):
        raise HTTPException(status_code=400, detail="Invalid category")
    return rows


def _medicine_payload(m: Medicine) -> Dict[str, Any]:
    out = MedicineOut.model_validate(m).model_dump(mode="json")
    out["stock_status"] = stock_status(m)
    return out


@router.get("/medicines")
def list_medicines(
        search: Optional[str] = Query(None),
        type: Optional[str] = Query(None),
        category_id: Optional[int] = Query(None),
        stock_status_: Optional[str] = Query(None, alias="stock_status"),
        db: Session = Depends(get_db),
        user: User = Depends(clinic_user),
) -> Dict[str, Any]:
    q = (db.query(Medicine).options(selectinload(Medicine.categories)).filter(
        Medicine.clinic_id == user.clinic_id))
    if search and search.strip():
        like = f"%{search.strip()}%"
        q = q.filter(
            or_(Medicine.name.ilike(like), Medicine.generic_name.ilike(like),
                Medicine.manufacturer.ilike(like), Medicine.barcode == search.strip()))
    if type and type.upper() != "ALL":
        q = q.filter(Medicine.type == type)
    if category_id:
        q = q.filter(Medicine.categories.any(Category.id == category_id))

    flag = (stock_status_ or "").lower()
    if flag == "low":
        q = q.filter(Medicine.current_stock > 0,
                     Medicine.current_stock <= Medicine.reorder_level)
    elif flag == "out":
        q = q.filter(Medicine.current_stock <= 0)

    rows = q.order_by(Medicine.name.asc()).all()
    return {"medicines": [_medicine_payload(m) for m in rows]}


@router.get("/medicines/search")
def search_medicines(
        q: str = Query(""),
        db: Session = Depends(get_db),
        user: User = Depends(clinic_user),
) -> Dict[str, Any]:
    term = (q or "").strip()
    if not term:
        return {"medicines": []}
    like = f"%{term}%"
    rows = (db.query(Medicine).filter(
        Medicine.clinic_id == user.clinic_id,
        or_(Medicine.name.ilike(like), Medicine.generic_name.ilike(like),
            Medicine.barcode == term)).order_by(Medicine.name.asc()).limit(20).all())
    return {
        "medicines": [{
            "id": m.id,
            "name": m.name,
            "generic_name": m.generic_name,
            "strength": m.strength,
            "unit": m.unit,
            "current_stock": m.current_stock,
            "selling_price": str(m.selling_price) if m.selling_price is not None else None,
            "stock_status": stock_status(m),
        } for m in rows]
    }


@router.post("/medicines", status_code=201)
def create_medicine(
        payload: MedicineCreate,
        db: Session = Depends(get_db),
        user: User = Depends(clinic_user),
) -> Dict[str, Any]:
    data = payload.model_dump(exclude={"category_ids"})
    if data.get("reorder_level") is None:
        data["reorder_level"] = 10

    try:
        m = Medicine(clinic_id=user.clinic_id, **data)
        m.categories = _categories_for(db, user.clinic_id,
                                       payload.category_ids or [])
        db.add(m)
        db.flush()
        if m.current_stock:
            create_stock_transaction(db,
                                     medicine=m,
                                     txn_type=StockTxnType.IN.value,
                                     qty_delta=m.current_stock,
                                     reason="Initial Stock",
                                     user=user)
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=400, detail="Barcode already in use")
    except Exception:
        db.rollback()
        raise

    return _medicine_payload(_get_medicine(db, user.clinic_id, m.id))


def _row_error(exc: ValidationError) -> str:
    first = validation_details(exc)[0]
    return f"{first['field']}: {first['msg']}" if first["field"] else first["msg"]


@router.post("/medicines/bulk", status_code=201)
def bulk_create_medicines(
        payload: MedicineBulkIn,
        db: Session = Depends(get_db),
        user: User = Depends(clinic_user),
) -> Dict[str, Any]:
    """
    Import many medicines at once. Rows are checked up front (schema,
    categories, barcode collisions against the database and within the
    batch); bad rows are reported in `failed` and the rest are saved in one
    commit, each with an initial stock IN transaction.
    """
    if not payload.medicines:
        raise HTTPException(status_code=400, detail="No medicines provided")

    barcodes = [str(r.get("barcode") or "").strip() for r in payload.medicines]
    taken = {
        b for (b,) in db.query(Medicine.barcode).filter(
            Medicine.barcode.in_([b for b in barcodes if b])).all()
    }

    success: List[Dict[str, Any]] = []
    failed: List[Dict[str, Any]] = []
    seen_barcodes = set()
    try:
        for idx, row in enumerate(payload.medicines, start=1):
            name = row.get("name") or f"Row {idx}"
            try:
                item = MedicineCreate.model_validate(row)
            except ValidationError as e:
                failed.append({"name": name, "error": _row_error(e)})
                continue

            if item.barcode and (item.barcode in taken or item.barcode in seen_barcodes):
                failed.append({"name": item.name, "error": "Barcode already in use"})
                continue
            try:
                categories = _categories_for(db, user.clinic_id, item.category_ids or [])
            except HTTPException as e:
                failed.append({"name": item.name, "error": e.detail})
                continue

            data = item.model_dump(exclude={"category_ids"})
            if data.get("reorder_level") is None:
                data["reorder_level"] = 10
            m = Medicine(clinic_id=user.clinic_id, **data)
            m.categories = categories
            db.add(m)
            db.flush()
            if m.current_stock:
                create_stock_transaction(db,
                                         medicine=m,
                                         txn_type=StockTxnType.IN.value,
                                         qty_delta=m.current_stock,
                                         reason="Bulk Upload - Initial Stock",
                                         user=user)
            if item.barcode:
                seen_barcodes.add(item.barcode)
            success.append({"name": m.name, "id": m.id})
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("bulk medicine import: %s created, %s failed", len(success), len(failed))
    return {
        "message": f"Successfully created {len(success)} medicines",
        "success": success,
        "failed": failed,
        "total": len(payload.medicines),
    }


@router.get("/medicines/by-category/{category_id}")
def medicines_by_category(
        category_id: int,
        db: Session = Depends(get_db),
        user: User = Depends(clinic_user),
) -> Dict[str, Any]:
    category = _get_category(db, user.clinic_id, category_id)
    rows = (db.query(Medicine).options(selectinload(Medicine.categories)).filter(
        Medicine.clinic_id == user.clinic_id,
        Medicine.categories.any(Category.id == category.id)).order_by(
            Medicine.name.asc()).all())
    out = []
    for m in rows:
        item = _medicine_payload(m)
        item["stock_label"] = stock_label(m)
        item["available"] = int(m.current_stock or 0) > 0
        out.append(item)
    return {"category": CategoryOut.model_validate(category), "medicines": out}


@router.get("/medicines/{medicine_id}")
def get_medicine(
        medicine_id: int,
        db: Session = Depends(get_db),
        user: User = Depends(clinic_user),
) -> Dict[str, Any]:
    m = _get_medicine(db, user.clinic_id, medicine_id)
    out = _medicine_payload(m)
    out["transactions"] = [
        StockTransactionOut.model_validate(t).model_dump(mode="json")
        for t in reversed(m.transactions[-50:])
    ]
    return out


@router.put("/medicines/{medicine_id}")
def update_medicine(
        medicine_id: int,
        payload: MedicineUpdate,
        db: Session = Depends(get_db),
        user: User = Depends(clinic_user),
) -> Dict[str, Any]:
    m = _get_medicine(db, user.clinic_id, medicine_id)
    data = payload.model_dump(exclude_unset=True, exclude={"category_ids"})
    for k, v in data.items():
        setattr(m, k, v)
    if payload.category_ids is not None:
        m.categories = _categories_for(db, user.clinic_id, payload.category_ids)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=400, detail="Barcode already in use")
    return _medicine_payload(_get_medicine(db, user.clinic_id, medicine_id))


@router.delete("/medicines/{medicine_id}")
def delete_medicine(
        medicine_id: int,
        db: Session = Depends(get_db),
        user: User = Depends(clinic_user),
):
    m = _get_medicine(db, user.clinic_id, medicine_id)
    used = db.query(PrescriptionMedicine.id).filter(
        PrescriptionMedicine.medicine_id == m.id).first()
    if used:
        raise HTTPException(status_code=400,
                            detail="Medicine is used in prescriptions")
    db.delete(m)
    db.commit()
    return {"message": "Medicine deleted"}


@router.post("/medicines/{medicine_id}/stock")
def adjust_medicine_stock(
        medicine_id: int,
        payload: StockAdjustIn,
        db: Session = Depends(get_db),
        user: User = Depends(clinic_user),
) -> Dict[str, Any]:
    try:
        m = lock_medicine(db, clinic_id=user.clinic_id, medicine_id=medicine_id)
        txn = adjust_stock(db,
                           medicine=m,
                           txn_type=payload.type,
                           quantity=payload.quantity,
                           reason=payload.reason or "",
                           notes=payload.notes,
                           user=user)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(txn)
    logger.info("stock %s medicine=%s qty=%s balance=%s", payload.type, m.id,
                txn.quantity, txn.balance_after)
    return {
        "medicine": _medicine_payload(_get_medicine(db, user.clinic_id, medicine_id)),
        "transaction": StockTransactionOut.model_validate(txn),
    }
