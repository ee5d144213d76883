# karnya/core/db.py
import math
from datetime import datetime, timezone

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from karnya.core.config import settings

# metres, the radius MongoDB uses for 2dsphere distances
EARTH_RADIUS_M = 6378100.0

# largest value an INTEGER primary key or OFFSET can bind to
MAX_ROW_ID = 2**63 - 1

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp; every DateTime column stores naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def haversine_m(lon1, lat1, lon2, lat2):
    if None in (lon1, lat1, lon2, lat2):
        return None
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlmb = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(a)))


def install_sqlite_functions(engine: Engine) -> None:
    """Register geo_distance() on every new SQLite connection of ``engine``."""

    @event.listens_for(engine, "connect")
    def _register(dbapi_connection, connection_record):
        dbapi_connection.create_function("geo_distance", 4, haversine_m, deterministic=True)


def make_engine(url: str) -> Engine:
    connect_args = {}
    if url.startswith("sqlite"):
        # FastAPI runs sync endpoints in a threadpool
        connect_args["check_same_thread"] = False
    engine = create_engine(url, connect_args=connect_args, pool_pre_ping=True)
    if engine.dialect.name == "sqlite":
        install_sqlite_functions(engine)
    return engine


engine = make_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
