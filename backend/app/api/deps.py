from collections.abc import Generator
from datetime import date

from fastapi import Depends, Header, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.db.session import SessionLocal
from app.models.business import Business
from app.models.user import User
from app.services.ledger_reader import LedgerReader


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user(
    db: Session = Depends(get_db),
    x_user_id: int | None = Header(default=None),
) -> User:
    if x_user_id is None:
        # Safe default for local development.
        user = db.scalar(select(User).where(User.email == get_settings().demo_owner_email))
        if user is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Authentication required.",
            )
        return user

    user = db.get(User, x_user_id)
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user.",
        )
    return user


def get_current_business(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Business:
    business = db.get(Business, current_user.business_id)
    if business is None or not business.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Business is inactive.")
    return business


def get_ledger_reader(
    db: Session = Depends(get_db),
    business: Business = Depends(get_current_business),
) -> LedgerReader:
    return LedgerReader(db, business.id, business.currency)


def get_as_of(as_of: date | None = Query(default=None)) -> date:
    return as_of or date.today()
