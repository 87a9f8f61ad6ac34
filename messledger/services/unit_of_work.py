from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from messledger.core.errors import PersistenceError
from messledger.database import SessionLocal


@contextmanager
def unit_of_work(db: Optional[Session] = None) -> Iterator[Session]:
    """
    If db is provided, this will NOT commit/close. Caller owns the transaction.
    If db is None, a session is opened here, committed on success and closed.
    """
    owns_db = db is None
    if owns_db:
        db = SessionLocal()

    try:
        yield db
        if owns_db:
            db.commit()
    except OperationalError as exc:
        if owns_db:
            db.rollback()
        raise PersistenceError("Ledger store unavailable") from exc
    except Exception:
        if owns_db:
            db.rollback()
        raise
    finally:
        if owns_db:
            db.close()
