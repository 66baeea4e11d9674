# services/abacatepay_service.py
"""
Cliente da API do Abacate Pay (cobrança PIX).

- criar_cobranca: cria uma cobrança única (ONE_TIME) via PIX e devolve a URL de checkout
- consultar_status: consulta o status de uma cobrança pela listagem do provedor

A consulta usa GET /billing/list e filtra pelo id localmente. Cobranças que
não aparecem na listagem retornam "NOT_FOUND".
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from config import ABACATE_PAY_API_KEY, ABACATE_PAY_BASE_URL, UNIT_PRICE_CENTS
from services.gemini_service import get_http_client
from utils.logging_config import get_logger
from utils.validators import only_digits

logger = get_logger(__name__)

PRODUTO_EXTERNAL_ID = "recurso-multa-ai"
PRODUTO_NOME = "Recurso de Multa Inteligente"
PRODUTO_DESCRICAO = "Análise e geração de recurso de multa via IA"

STATUS_NAO_ENCONTRADO = "NOT_FOUND"
STATUS_CONFIRMADOS = ("PAID", "CONFIRMED")


class PagamentoError(Exception):
    """Falha ao criar ou consultar cobrança no Abacate Pay"""


@dataclass
class CobrancaCriada:
    id: str
    url: str


class AbacatePayService:
    """
    Uso:
        from services.abacatepay_service import abacatepay_service

        cobranca = await abacatepay_service.criar_cobranca(
            name="Fulano", email="f@x.com", tax_id="111.444.777-35",
            phone="(67) 99999-9999", return_url=..., completion_url=...,
        )
        status = await abacatepay_service.consultar_status(cobranca.id)
    """

    def __init__(self, api_key: str = None, base_url: str = None):
        self.api_key = api_key if api_key is not None else ABACATE_PAY_API_KEY
        self.base_url = (base_url or ABACATE_PAY_BASE_URL).rstrip("/")

    def is_configured(self) -> bool:
        return bool(self.api_key)

    @property
    def dev_mode(self) -> bool:
        """Chaves de teste do Abacate Pay começam com abc_dev_"""
        return self.api_key.startswith("abc_dev_")

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

    def _build_billing_payload(
        self,
        name: str,
        email: str,
        tax_id: str,
        phone: str,
        return_url: str,
        completion_url: str,
    ) -> Dict[str, Any]:
        return {
            "frequency": "ONE_TIME",
            "methods": ["PIX"],
            "products": [
                {
                    "externalId": PRODUTO_EXTERNAL_ID,
                    "name": PRODUTO_NOME,
                    "description": PRODUTO_DESCRICAO,
                    "quantity": 1,
                    "price": UNIT_PRICE_CENTS,
                }
            ],
            "customer": {
                "name": name,
                "email": email,
                "taxId": only_digits(tax_id),
                "cellphone": only_digits(phone),
            },
            "returnUrl": return_url,
            "completionUrl": completion_url,
            "devMode": self.dev_mode,
        }

    async def _request(self, method: str, path: str, json: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        if not self.api_key:
            raise PagamentoError("Chave do Abacate Pay não configurada")

        url = f"{self.base_url}{path}"
        try:
            client = await get_http_client()
            response = await client.request(method, url, json=json, headers=self._headers())
        except httpx.HTTPError as e:
            logger.error("Falha de comunicação com Abacate Pay", path=path, erro=str(e))
            raise PagamentoError(f"Falha de comunicação com o provedor de pagamento: {e}") from e

        try:
            result = response.json()
        except ValueError:
            result = {}

        if response.status_code >= 400 or result.get("error"):
            error = result.get("error")
            message = error.get("message") if isinstance(error, dict) else error
            logger.error(
                "Erro do Abacate Pay",
                path=path,
                status_code=response.status_code,
                erro=str(message or response.text)[:300],
            )
            raise PagamentoError(message or f"Erro HTTP {response.status_code} no Abacate Pay")

        return result

    async def criar_cobranca(
        self,
        name: str,
        email: str,
        tax_id: str,
        phone: str,
        return_url: str,
        completion_url: str,
    ) -> CobrancaCriada:
        """
        Cria uma cobrança PIX de valor fixo.

        Returns:
            CobrancaCriada com o id da cobrança e a URL de checkout

        Raises:
            PagamentoError: chave ausente, falha de rede ou erro do provedor
        """
        payload = self._build_billing_payload(name, email, tax_id, phone, return_url, completion_url)
        result = await self._request("POST", "/billing/create", json=payload)

        data = result.get("data") or {}
        if not data.get("id") or not data.get("url"):
            raise PagamentoError("Resposta do Abacate Pay sem id ou url da cobrança")

        logger.info("Cobrança criada", billing_id=data["id"], dev_mode=self.dev_mode)
        return CobrancaCriada(id=data["id"], url=data["url"])

    async def consultar_status(self, billing_id: str) -> str:
        """
        Retorna o status da cobrança (ex: PENDING, PAID) ou "NOT_FOUND".
        """
        result = await self._request("GET", "/billing/list")

        for cobranca in result.get("data") or []:
            if cobranca.get("id") == billing_id:
                status = cobranca.get("status", "")
                logger.info("Status da cobrança consultado", billing_id=billing_id, status=status)
                return status

        logger.warning("Cobrança não encontrada na listagem", billing_id=billing_id)
        return STATUS_NAO_ENCONTRADO


def pagamento_confirmado(status: str) -> bool:
    return status in STATUS_CONFIRMADOS


abacatepay_service = AbacatePayService()


__all__ = [
    "AbacatePayService",
    "CobrancaCriada",
    "PagamentoError",
    "STATUS_NAO_ENCONTRADO",
    "pagamento_confirmado",
    "abacatepay_service",
]
