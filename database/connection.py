# database/connection.py
"""
Conexão com o banco de dados (SQLAlchemy 2.0).

O banco guarda o armazenamento chave-valor do AUTO RECURSO.
"""

from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base, Session
from sqlalchemy.pool import StaticPool

from config import DATABASE_URL


def criar_engine(url: str) -> Engine:
    """
    Cria o engine adequado para a URL.

    - sqlite em memória: StaticPool (uma única conexão compartilhada)
    - sqlite em arquivo: check_same_thread desligado
    - PostgreSQL: pool configurado para produção
    """
    if url.startswith("sqlite"):
        if ":memory:" in url or url.rstrip("/") == "sqlite:":
            return create_engine(
                url,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
                echo=False,
            )
        return create_engine(
            url,
            connect_args={"check_same_thread": False},  # Necessário para SQLite
            echo=False,
        )

    return create_engine(
        url,
        echo=False,
        pool_size=5,
        max_overflow=10,
        pool_timeout=30,
        pool_recycle=1800,  # Recicla conexões a cada 30 min
        pool_pre_ping=True,  # Verifica conexão antes de usar
    )


engine = criar_engine(DATABASE_URL)

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base para os models
Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """
    Dependency que fornece uma sessão do banco de dados.
    Uso: db: Session = Depends(get_db)
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
