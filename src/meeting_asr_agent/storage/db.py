"""
Инициализация базы данных и сессий SQLAlchemy.

Назначение:
- создание engine по DSN из настроек
- контекстный менеджер для сессий (commit / rollback)
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from .models import Base


# =============================================================================
# ENGINE / SESSION FACTORY
# =============================================================================
def create_db_engine(dsn: str) -> Engine:
    url = make_url(dsn)
    if url.get_backend_name() == "sqlite" and url.database not in (None, "", ":memory:"):
        Path(url.database).expanduser().resolve().parent.mkdir(parents=True, exist_ok=True)
    return create_engine(dsn, pool_pre_ping=True)


def make_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """Создать таблицы, если их ещё нет."""
    Base.metadata.create_all(engine)


# =============================================================================
# CONTEXT MANAGER
# =============================================================================
@contextmanager
def db_session(factory: sessionmaker[Session]) -> Iterator[Session]:
    """
    Контекстный менеджер для работы с БД.

    Использование:
        with db_session(factory) as session:
            session.add(...)
    """
    session: Session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
