# sistemas/recurso_multa/store.py
"""
Repositório chave-valor do AUTO RECURSO.

Todo acesso ao armazenamento passa por RecordStore. Cada tabela lógica é
uma chave cujo valor é JSON; toda mutação relê a tabela inteira, altera e
grava de volta (sem transações além do commit por chamada).

A leitura é defensiva: JSON corrompido vira o valor padrão, com aviso no log.

USO:
    store = RecordStore(db)
    eventos = store.read_json("analytics_events", [])

    sessao = store.scoped(sessao_id)
    sessao.set_raw("appStep", "START")
"""

import json
from typing import Any, List, Optional

from sqlalchemy.orm import Session

from sistemas.recurso_multa.models import ArmazenamentoLocal
from utils.logging_config import get_logger
from utils.timezone import now_utc

logger = get_logger(__name__)


class RecordStore:
    """Acesso às chaves globais do armazenamento"""

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Valores brutos
    # ------------------------------------------------------------------

    def get_raw(self, key: str) -> Optional[str]:
        registro = self.db.get(ArmazenamentoLocal, key)
        return registro.valor if registro else None

    def set_raw(self, key: str, value: str) -> None:
        registro = self.db.get(ArmazenamentoLocal, key)
        if registro is None:
            self.db.add(ArmazenamentoLocal(chave=key, valor=value))
        else:
            registro.valor = value
            registro.atualizado_em = now_utc()
        self.db.commit()

    def remove(self, key: str) -> None:
        registro = self.db.get(ArmazenamentoLocal, key)
        if registro is not None:
            self.db.delete(registro)
            self.db.commit()

    def keys_with_prefix(self, prefix: str) -> List[str]:
        linhas = (
            self.db.query(ArmazenamentoLocal.chave)
            .filter(ArmazenamentoLocal.chave.startswith(prefix, autoescape=True))
            .all()
        )
        return [linha[0] for linha in linhas]

    # ------------------------------------------------------------------
    # JSON
    # ------------------------------------------------------------------

    def read_json(self, key: str, default: Any = None) -> Any:
        """
        Lê e decodifica o JSON da chave.

        Chave ausente ou conteúdo inválido retornam `default`.
        """
        bruto = self.get_raw(key)
        if bruto is None:
            return default
        try:
            return json.loads(bruto)
        except (TypeError, ValueError) as e:
            logger.warning("JSON inválido no armazenamento", chave=key, erro=str(e))
            return default

    def write_json(self, key: str, value: Any) -> None:
        self.set_raw(key, json.dumps(value, ensure_ascii=False))

    # ------------------------------------------------------------------
    # Escopo de sessão
    # ------------------------------------------------------------------

    def scoped(self, sessao_id: str) -> "ScopedStore":
        return ScopedStore(self, sessao_id)


class ScopedStore:
    """
    Visão do armazenamento restrita a uma sessão do fluxo.

    As chaves são gravadas como "<sessao_id>:<chave>".
    """

    SEPARADOR = ":"

    def __init__(self, store: RecordStore, sessao_id: str):
        self.store = store
        self.sessao_id = sessao_id
        self.prefixo = f"{sessao_id}{self.SEPARADOR}"

    def _chave(self, key: str) -> str:
        return f"{self.prefixo}{key}"

    def get_raw(self, key: str) -> Optional[str]:
        return self.store.get_raw(self._chave(key))

    def set_raw(self, key: str, value: str) -> None:
        self.store.set_raw(self._chave(key), value)

    def remove(self, key: str) -> None:
        self.store.remove(self._chave(key))

    def read_json(self, key: str, default: Any = None) -> Any:
        return self.store.read_json(self._chave(key), default)

    def write_json(self, key: str, value: Any) -> None:
        self.store.write_json(self._chave(key), value)

    def exists(self) -> bool:
        """True se a sessão já gravou alguma chave"""
        return bool(self.store.keys_with_prefix(self.prefixo))
