import enum
from datetime import datetime

from sqlalchemy import (
    Column,
    Integer,
    String,
    Numeric,
    Date,
    DateTime,
    ForeignKey,
    Text,
    Table,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from clinic.db.base import Base


class StockTxnType(str, enum.Enum):
    IN = "IN"
    OUT = "OUT"
    ADJUSTMENT = "ADJUSTMENT"


medicine_categories = Table(
    "medicine_categories",
    Base.metadata,
    Column("medicine_id",
           Integer,
           ForeignKey("medicines.id", ondelete="CASCADE"),
           primary_key=True),
    Column("category_id",
           Integer,
           ForeignKey("categories.id", ondelete="CASCADE"),
           primary_key=True),
)


class Category(Base):
    __tablename__ = "categories"
    __table_args__ = (UniqueConstraint("clinic_id",
                                       "name",
                                       name="uq_category_name"), )

    id = Column(Integer, primary_key=True, index=True)
    clinic_id = Column(Integer,
                       ForeignKey("clinics.id"),
                       nullable=False,
                       index=True)
    name = Column(String(120), nullable=False)
    description = Column(Text, nullable=True)
    type = Column(String(40), default="Disease", nullable=False)
    color = Column(String(20), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    medicines = relationship("Medicine",
                             secondary=medicine_categories,
                             back_populates="categories")


class Medicine(Base):
    __tablename__ = "medicines"

    id = Column(Integer, primary_key=True, index=True)
    clinic_id = Column(Integer,
                       ForeignKey("clinics.id"),
                       nullable=False,
                       index=True)

    name = Column(String(191), nullable=False, index=True)
    generic_name = Column(String(191), nullable=True)
    manufacturer = Column(String(191), nullable=True)
    # TABLET | SYRUP | CHURNA | OIL | ...
    type = Column(String(40), nullable=True)
    strength = Column(String(60), nullable=True)
    unit = Column(String(30), nullable=True)

    current_stock = Column(Integer, default=0, nullable=False)
    reorder_level = Column(Integer, default=10, nullable=False)

    purchase_price = Column(Numeric(12, 2), nullable=True)
    selling_price = Column(Numeric(12, 2), nullable=True)
    mrp = Column(Numeric(12, 2), nullable=True)

    batch_number = Column(String(60), nullable=True)
    expiry_date = Column(Date, nullable=True)
    barcode = Column(String(100), nullable=True, unique=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime,
                        default=datetime.utcnow,
                        onupdate=datetime.utcnow,
                        nullable=False)

    categories = relationship("Category",
                              secondary=medicine_categories,
                              back_populates="medicines")
    transactions = relationship("StockTransaction",
                                back_populates="medicine",
                                cascade="all, delete-orphan",
                                order_by="StockTransaction.id")


class StockTransaction(Base):
    __tablename__ = "stock_transactions"

    id = Column(Integer, primary_key=True, index=True)
    clinic_id = Column(Integer, ForeignKey("clinics.id"), nullable=False)
    medicine_id = Column(Integer,
                         ForeignKey("medicines.id", ondelete="CASCADE"),
                         nullable=False,
                         index=True)

    # IN | OUT | ADJUSTMENT
    type = Column(String(16), nullable=False)
    # signed: OUT rows are negative
    quantity = Column(Integer, nullable=False)
    balance_after = Column(Integer, nullable=False)
    reason = Column(String(255), nullable=True)
    reference_id = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)

    performed_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    medicine = relationship("Medicine", back_populates="transactions")
