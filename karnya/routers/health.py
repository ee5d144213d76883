# karnya/routers/health.py
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from karnya.core.db import get_db

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
def health(db: Session = Depends(get_db)):
    # a failing ping surfaces through the SQLAlchemyError handler as 500
    db.execute(text("SELECT 1"))
    return {"status": "ok"}
