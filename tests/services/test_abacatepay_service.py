# tests/services/test_abacatepay_service.py
"""
Testes do cliente Abacate Pay (HTTP mockado).

Cobertura:
- Payload da cobrança (dígitos apenas, preço em centavos, devMode)
- Tratamento de erro do provedor
- Consulta de status pela listagem
"""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from config import UNIT_PRICE_CENTS
from services.abacatepay_service import (
    AbacatePayService,
    CobrancaCriada,
    PagamentoError,
    STATUS_NAO_ENCONTRADO,
    pagamento_confirmado,
)


def _cliente(resposta):
    client = MagicMock()
    if isinstance(resposta, Exception):
        client.request = AsyncMock(side_effect=resposta)
    else:
        client.request = AsyncMock(return_value=resposta)
    return client


def _cobrar(service):
    return service.criar_cobranca(
        name="Maria da Silva",
        email="maria@email.com",
        tax_id="111.444.777-35",
        phone="(67) 99999-8888",
        return_url="https://autorecurso.online/",
        completion_url="https://autorecurso.online/recurso/api/retorno?success=true&sessao=s1",
    )


class TestPayload:

    def test_cliente_somente_digitos(self):
        service = AbacatePayService(api_key="abc_dev_123")
        payload = service._build_billing_payload(
            "Maria", "maria@email.com", "111.444.777-35", "(67) 99999-8888", "ret", "fim"
        )

        assert payload["customer"] == {
            "name": "Maria",
            "email": "maria@email.com",
            "taxId": "11144477735",
            "cellphone": "67999998888",
        }
        assert payload["frequency"] == "ONE_TIME"
        assert payload["methods"] == ["PIX"]
        assert payload["products"][0]["price"] == UNIT_PRICE_CENTS
        assert payload["products"][0]["quantity"] == 1
        assert payload["returnUrl"] == "ret"
        assert payload["completionUrl"] == "fim"
        assert payload["devMode"] is True

    def test_chave_de_producao(self):
        assert AbacatePayService(api_key="abc_prod_123").dev_mode is False

    def test_preco_padrao_em_centavos(self):
        assert UNIT_PRICE_CENTS == 2490


class TestCriarCobranca:

    @pytest.mark.asyncio
    async def test_sucesso(self):
        service = AbacatePayService(api_key="abc_dev_123", base_url="https://api.abacatepay.com/v1/")
        resposta = httpx.Response(200, json={"data": {"id": "bill_1", "url": "https://pay/bill_1"}, "error": None})
        client = _cliente(resposta)

        with patch("services.abacatepay_service.get_http_client", AsyncMock(return_value=client)):
            cobranca = await _cobrar(service)

        assert cobranca == CobrancaCriada(id="bill_1", url="https://pay/bill_1")
        metodo, url = client.request.await_args.args
        assert metodo == "POST"
        assert url == "https://api.abacatepay.com/v1/billing/create"
        assert client.request.await_args.kwargs["headers"]["Authorization"] == "Bearer abc_dev_123"

    @pytest.mark.asyncio
    async def test_erro_do_provedor_usa_mensagem(self):
        service = AbacatePayService(api_key="abc_dev_123")
        client = _cliente(httpx.Response(200, json={"data": None, "error": "Invalid taxId"}))

        with patch("services.abacatepay_service.get_http_client", AsyncMock(return_value=client)):
            with pytest.raises(PagamentoError, match="Invalid taxId"):
                await _cobrar(service)

    @pytest.mark.asyncio
    async def test_erro_http(self):
        service = AbacatePayService(api_key="abc_dev_123")
        client = _cliente(httpx.Response(401, json={"error": {"message": "Unauthorized"}}))

        with patch("services.abacatepay_service.get_http_client", AsyncMock(return_value=client)):
            with pytest.raises(PagamentoError, match="Unauthorized"):
                await _cobrar(service)

    @pytest.mark.asyncio
    async def test_resposta_sem_url(self):
        service = AbacatePayService(api_key="abc_dev_123")
        client = _cliente(httpx.Response(200, json={"data": {"id": "bill_1"}}))

        with patch("services.abacatepay_service.get_http_client", AsyncMock(return_value=client)):
            with pytest.raises(PagamentoError):
                await _cobrar(service)

    @pytest.mark.asyncio
    async def test_falha_de_rede(self):
        service = AbacatePayService(api_key="abc_dev_123")
        client = _cliente(httpx.ConnectTimeout("timeout"))

        with patch("services.abacatepay_service.get_http_client", AsyncMock(return_value=client)):
            with pytest.raises(PagamentoError):
                await _cobrar(service)

    @pytest.mark.asyncio
    async def test_sem_chave(self):
        with pytest.raises(PagamentoError):
            await _cobrar(AbacatePayService(api_key=""))


class TestConsultarStatus:

    @pytest.mark.asyncio
    async def test_encontra_cobranca_na_listagem(self):
        service = AbacatePayService(api_key="abc_dev_123")
        client = _cliente(httpx.Response(200, json={"data": [
            {"id": "bill_0", "status": "PENDING"},
            {"id": "bill_1", "status": "PAID"},
        ]}))

        with patch("services.abacatepay_service.get_http_client", AsyncMock(return_value=client)):
            assert await service.consultar_status("bill_1") == "PAID"

        metodo, url = client.request.await_args.args
        assert metodo == "GET"
        assert url.endswith("/billing/list")

    @pytest.mark.asyncio
    async def test_cobranca_fora_da_listagem(self):
        service = AbacatePayService(api_key="abc_dev_123")
        client = _cliente(httpx.Response(200, json={"data": [{"id": "bill_0", "status": "PAID"}]}))

        with patch("services.abacatepay_service.get_http_client", AsyncMock(return_value=client)):
            assert await service.consultar_status("bill_9") == STATUS_NAO_ENCONTRADO


class TestPagamentoConfirmado:

    @pytest.mark.parametrize("status, esperado", [
        ("PAID", True),
        ("CONFIRMED", True),
        ("PENDING", False),
        ("EXPIRED", False),
        (STATUS_NAO_ENCONTRADO, False),
    ])
    def test_status(self, status, esperado):
        assert pagamento_confirmado(status) is esperado
