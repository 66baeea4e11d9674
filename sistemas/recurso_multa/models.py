# sistemas/recurso_multa/models.py
"""
Modelo SQLAlchemy do armazenamento chave-valor.

Uma linha por chave. Tabelas lógicas (eventos, clientes, recursos...) são
listas JSON gravadas inteiras no campo `valor`.
"""

from sqlalchemy import Column, String, Text, DateTime

from database.connection import Base
from utils.timezone import now_utc


class ArmazenamentoLocal(Base):
    """Par chave/valor persistido"""
    __tablename__ = "armazenamento_local"

    chave = Column(String(255), primary_key=True)
    valor = Column(Text, nullable=False)
    atualizado_em = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    def __repr__(self):
        return f"<ArmazenamentoLocal {self.chave}>"
