# clinic/db/base.py
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """All clinic tables (users, patients, bills, ledger, etc.) inherit from this."""
    pass
