from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker, declarative_base

from distribuidora.config import Settings


def build_engine(url: str, **kwargs):
    """
    Crea el engine. Para SQLite activa las llaves foráneas en cada conexión,
    si no el RESTRICT/CASCADE del esquema no se respeta.
    """
    if url.startswith("sqlite"):
        # connect_args={"check_same_thread": False} es necesario solo para SQLite
        kwargs.setdefault("connect_args", {"check_same_thread": False})

    engine = create_engine(url, **kwargs)

    if engine.dialect.name == "sqlite":
        @event.listens_for(engine, "connect")
        def _enable_sqlite_fks(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def build_session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


engine = build_engine(Settings.from_env().database_url)

SessionLocal = build_session_factory(engine)

# ESTA es la Base que todos los modelos deben usar
Base = declarative_base()


# Dependencia para obtener la DB en los endpoints
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session):
    """
    Unidad de trabajo: todo lo escrito dentro del bloque se confirma junto
    o se revierte junto.
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
