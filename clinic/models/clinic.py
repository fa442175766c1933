from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime, Text

from clinic.db.base import Base


class Clinic(Base):
    """A practice; every row in the system is scoped to one clinic."""
    __tablename__ = "clinics"
    __table_args__ = {
        "mysql_engine": "InnoDB",
        "mysql_charset": "utf8mb4",
        "mysql_collate": "utf8mb4_unicode_ci",
    }

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(191), nullable=False)
    address = Column(Text, nullable=True)
    phone = Column(String(30), nullable=True)
    email = Column(String(191), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
