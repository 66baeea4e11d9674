# database/init_db.py
"""
Inicialização do banco de dados
"""

import time

from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from database.connection import engine, Base
from utils.logging_config import get_logger

# Importa modelos para criar tabelas
from sistemas.recurso_multa.models import ArmazenamentoLocal  # noqa: F401

logger = get_logger(__name__)


def wait_for_db(max_retries=10, delay=3):
    """Aguarda o banco de dados ficar disponível"""
    for attempt in range(max_retries):
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            logger.info("Conexão com banco de dados estabelecida")
            return True
        except OperationalError:
            if attempt < max_retries - 1:
                logger.warning("Aguardando banco de dados", tentativa=attempt + 1, max_tentativas=max_retries)
                time.sleep(delay)
            else:
                logger.error("Não foi possível conectar ao banco", tentativas=max_retries)
                raise
    return False


def create_tables():
    """Cria todas as tabelas no banco de dados"""
    Base.metadata.create_all(bind=engine)
    logger.info("Tabelas criadas")


def init_database():
    """Inicializa o banco de dados"""
    wait_for_db()
    create_tables()


if __name__ == "__main__":
    init_database()
