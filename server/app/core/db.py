from collections.abc import Generator
from typing import Any

from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from app.core.config import settings

ROW_SECURITY_USER_KEY = "row_security_user_id"
ROW_SECURITY_BYPASS_KEY = "row_security_bypass"
ROW_SECURITY_CONTEXT_SQL = text(
    "SELECT set_config('app.current_user_id', :user_id, true), "
    "set_config('app.row_security_bypass', :bypass, true)"
)


def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


engine = create_engine(settings.DATABASE_URL, future=True, **_engine_kwargs(settings.DATABASE_URL))
SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
    expire_on_commit=False,
    future=True,
)
Base = declarative_base()


def row_security_params(session: Session) -> dict[str, str] | None:
    user_id = session.info.get(ROW_SECURITY_USER_KEY)
    bypass = bool(session.info.get(ROW_SECURITY_BYPASS_KEY))
    if user_id is None and not bypass:
        return None
    return {"user_id": "" if user_id is None else str(user_id), "bypass": "on" if bypass else "off"}


@event.listens_for(Session, "after_begin")
def apply_row_security_context(session: Session, transaction: Any, connection: Any) -> None:
    """Publish the session's user to Postgres row-level-security policies.

    ``set_config(..., true)`` is transaction-local, so it is re-issued at the
    start of every transaction the session opens.
    """

    if connection.dialect.name != "postgresql":
        return
    params = row_security_params(session)
    if params is not None:
        connection.execute(ROW_SECURITY_CONTEXT_SQL, params)


def bind_row_security(session: Session, *, user_id: int | None = None, bypass: bool = False) -> None:
    """Act as ``user_id`` (or bypass the policies, for system jobs) for the rest of the session."""

    session.info[ROW_SECURITY_USER_KEY] = user_id
    session.info[ROW_SECURITY_BYPASS_KEY] = bypass
    if session.in_transaction():
        apply_row_security_context(session, None, session.connection())


def get_db() -> Generator[Session, None, None]:
    """Yield one session per request; the session never outlives the request."""

    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
