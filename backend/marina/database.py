from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from typing import Generator
from marina.config import settings

_engine_kwargs: dict = {"pool_pre_ping": True}
if "sqlite" in settings.DATABASE_URL:
    _engine_kwargs["connect_args"] = {"check_same_thread": False}
else:
    _engine_kwargs["pool_size"] = settings.DB_POOL_SIZE
    _engine_kwargs["max_overflow"] = settings.DB_MAX_OVERFLOW
engine = create_engine(settings.DATABASE_URL, **_engine_kwargs)

if "sqlite" in settings.DATABASE_URL:
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragmas(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db() -> None:
    """Create all tables. Called on first run or after migrations."""
    from marina.models import Base  # noqa: F401 ensure all models are registered
    Base.metadata.create_all(bind=engine)
    _run_migrations()


# Postgres-only: at most one active booking per berth per night.
BOOKING_OVERLAP_CONSTRAINT = "ex_berth_bookings_active_overlap"


def _run_migrations() -> None:
    """Idempotent schema additions that create_all() cannot express.

    The booking overlap exclusion constraint needs btree_gist and a daterange
    expression, so it is only installed on PostgreSQL. SQLite deployments rely
    on the in-transaction overlap query in marina.modules.bookings.
    """
    from sqlalchemy import text

    if engine.dialect.name != "postgresql":
        return

    with engine.connect() as conn:
        conn.execute(text("CREATE EXTENSION IF NOT EXISTS btree_gist"))
        exists = conn.execute(
            text("SELECT 1 FROM pg_constraint WHERE conname = :name"),
            {"name": BOOKING_OVERLAP_CONSTRAINT},
        ).first()
        if not exists:
            conn.execute(text(
                f"ALTER TABLE berth_bookings ADD CONSTRAINT {BOOKING_OVERLAP_CONSTRAINT} "
                "EXCLUDE USING gist ("
                "berth_id WITH =, "
                "daterange(check_in_date, check_out_date, '[)') WITH &&"
                ") WHERE (status IN ('pending', 'confirmed', 'checked_in'))"
            ))
        conn.commit()
