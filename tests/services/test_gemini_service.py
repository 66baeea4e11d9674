# tests/services/test_gemini_service.py
"""
Testes unitários para o GeminiService.

Cobertura:
- Montagem do payload (texto, imagens, modo JSON, system prompt)
- Extração de conteúdo e tokens
- Detecção de rate limit
- Retry apenas para rate limit
- Métricas (GeminiMetrics)
"""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from services.gemini_service import (
    GEMINI_RETRY_CONFIG,
    GeminiError,
    GeminiMetrics,
    GeminiRateLimitError,
    GeminiService,
    is_rate_limit_response,
)


RESPOSTA_OK = {
    "candidates": [{"content": {"parts": [{"text": "Olá!"}]}, "finishReason": "STOP"}],
    "usageMetadata": {"totalTokenCount": 42},
}


def _resposta(status_code=200, json=None, text=None):
    if json is not None:
        return httpx.Response(status_code, json=json)
    return httpx.Response(status_code, text=text or "")


def _cliente(*respostas):
    client = MagicMock()
    client.post = AsyncMock(side_effect=list(respostas))
    return client


@pytest.fixture
def service():
    return GeminiService(api_key="test-key", model="gemini-teste")


# ============================================
# CONFIGURAÇÃO
# ============================================

class TestConfiguracao:

    def test_is_configured(self):
        assert GeminiService(api_key="k").is_configured()
        assert not GeminiService(api_key="").is_configured()

    def test_normalize_model(self):
        assert GeminiService.normalize_model("google/gemini-3-flash-preview") == "gemini-3-flash-preview"
        assert GeminiService.normalize_model("gemini-3-flash-preview") == "gemini-3-flash-preview"

    def test_politica_de_retry(self):
        assert GEMINI_RETRY_CONFIG.max_retries == 4
        assert GEMINI_RETRY_CONFIG.base_delay == 12.0
        assert GEMINI_RETRY_CONFIG.exponential_base == 1.5
        assert GEMINI_RETRY_CONFIG.retryable_exceptions == (GeminiRateLimitError,)


# ============================================
# PAYLOAD
# ============================================

class TestBuildPayload:

    def test_texto_simples(self, service):
        payload = service._build_payload(parts=[{"text": "oi"}], temperature=0.3)

        assert payload["contents"] == [{"role": "user", "parts": [{"text": "oi"}]}]
        assert payload["generationConfig"] == {"temperature": 0.3}
        assert "systemInstruction" not in payload

    def test_modo_json_e_system_prompt(self, service):
        schema = {"type": "OBJECT"}
        payload = service._build_payload(
            parts=[{"text": "oi"}],
            system_prompt="Seja formal",
            max_tokens=100,
            response_schema=schema,
        )

        config = payload["generationConfig"]
        assert config["responseMimeType"] == "application/json"
        assert config["responseSchema"] == schema
        assert config["maxOutputTokens"] == 100
        assert payload["systemInstruction"] == {"parts": [{"text": "Seja formal"}]}

    def test_imagem_base64_pura(self):
        parte = GeminiService._image_part("QUJD", "image/png")
        assert parte == {"inline_data": {"mime_type": "image/png", "data": "QUJD"}}

    def test_imagem_data_url(self):
        parte = GeminiService._image_part("data:image/webp;base64,QUJD", "image/jpeg")
        assert parte == {"inline_data": {"mime_type": "image/webp", "data": "QUJD"}}


# ============================================
# RESPOSTA
# ============================================

class TestExtracao:

    def test_extrai_texto_e_tokens(self, service):
        assert service._extract_content(RESPOSTA_OK) == "Olá!"
        assert service._extract_tokens(RESPOSTA_OK) == 42

    def test_ignora_partes_de_raciocinio(self, service):
        data = {"candidates": [{"content": {"parts": [
            {"text": "pensando...", "thought": True},
            {"text": "resposta"},
        ]}}]}
        assert service._extract_content(data) == "resposta"

    def test_sem_candidates(self, service):
        assert service._extract_content({"promptFeedback": {"blockReason": "SAFETY"}}) == ""


class TestRateLimit:

    def test_status_429(self):
        assert is_rate_limit_response(_resposta(429, text="Too Many Requests"))

    def test_resource_exhausted_no_corpo(self):
        corpo = {"error": {"code": 400, "status": "RESOURCE_EXHAUSTED", "message": "quota"}}
        assert is_rate_limit_response(_resposta(400, json=corpo))

    def test_outros_erros(self):
        assert not is_rate_limit_response(_resposta(500, json={"error": {"status": "INTERNAL"}}))
        assert not is_rate_limit_response(_resposta(500, text="Internal error"))


# ============================================
# CHAMADAS (HTTP mockado)
# ============================================

class TestGenerate:

    @pytest.mark.asyncio
    async def test_sucesso(self, service):
        client = _cliente(_resposta(200, json=RESPOSTA_OK))

        with patch("services.gemini_service.get_http_client", AsyncMock(return_value=client)):
            response = await service.generate("Diga olá", system_prompt="Seja breve")

        assert response.content == "Olá!"
        assert response.tokens_used == 42
        assert response.metrics.success is True

        url = client.post.await_args.args[0]
        assert "/gemini-teste:generateContent?key=test-key" in url
        payload = client.post.await_args.kwargs["json"]
        assert payload["contents"][0]["parts"] == [{"text": "Diga olá"}]

    @pytest.mark.asyncio
    async def test_generate_with_images_monta_partes(self, service):
        client = _cliente(_resposta(200, json=RESPOSTA_OK))

        with patch("services.gemini_service.get_http_client", AsyncMock(return_value=client)):
            await service.generate_with_images("Leia", images_base64=["QUJD"], default_mime_type="image/png")

        partes = client.post.await_args.kwargs["json"]["contents"][0]["parts"]
        assert partes[0] == {"inline_data": {"mime_type": "image/png", "data": "QUJD"}}
        assert partes[-1] == {"text": "Leia"}

    @pytest.mark.asyncio
    async def test_sem_chave(self):
        with pytest.raises(GeminiError):
            await GeminiService(api_key="").generate("oi")

    @pytest.mark.asyncio
    async def test_rate_limit_repete_e_recupera(self, service):
        client = _cliente(
            _resposta(429, text="quota"),
            _resposta(429, text="quota"),
            _resposta(200, json=RESPOSTA_OK),
        )

        with patch("services.gemini_service.get_http_client", AsyncMock(return_value=client)), \
             patch("utils.retry.asyncio.sleep", new_callable=AsyncMock) as sleep:
            response = await service.generate("oi")

        assert response.content == "Olá!"
        assert client.post.await_count == 3
        assert [c.args[0] for c in sleep.await_args_list] == [12.0, 18.0]

    @pytest.mark.asyncio
    async def test_rate_limit_esgota_tentativas(self, service):
        client = _cliente(*[_resposta(429, text="quota") for _ in range(4)])

        with patch("services.gemini_service.get_http_client", AsyncMock(return_value=client)), \
             patch("utils.retry.asyncio.sleep", new_callable=AsyncMock):
            with pytest.raises(GeminiRateLimitError) as exc:
                await service.generate("oi")

        assert exc.value.status_code == 429
        assert client.post.await_count == 4

    @pytest.mark.asyncio
    async def test_erro_comum_nao_repete(self, service):
        client = _cliente(_resposta(500, json={"error": {"status": "INTERNAL"}}))

        with patch("services.gemini_service.get_http_client", AsyncMock(return_value=client)), \
             patch("utils.retry.asyncio.sleep", new_callable=AsyncMock) as sleep:
            with pytest.raises(GeminiError) as exc:
                await service.generate("oi")

        assert not isinstance(exc.value, GeminiRateLimitError)
        assert client.post.await_count == 1
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_falha_de_rede(self, service):
        client = MagicMock()
        client.post = AsyncMock(side_effect=httpx.ConnectError("recusada"))

        with patch("services.gemini_service.get_http_client", AsyncMock(return_value=client)):
            with pytest.raises(GeminiError):
                await service.generate("oi")

    @pytest.mark.asyncio
    async def test_resposta_vazia(self, service):
        client = _cliente(_resposta(200, json={"candidates": [{"content": {"parts": []}}]}))

        with patch("services.gemini_service.get_http_client", AsyncMock(return_value=client)):
            with pytest.raises(GeminiError):
                await service.generate("oi")

    @pytest.mark.asyncio
    async def test_corpo_nao_json_vira_gemini_error(self, service):
        client = _cliente(_resposta(200, text="<html>gateway</html>"))

        with patch("services.gemini_service.get_http_client", AsyncMock(return_value=client)):
            with pytest.raises(GeminiError) as exc:
                await service.generate("oi")

        assert not isinstance(exc.value, GeminiRateLimitError)
        assert exc.value.status_code == 200
        assert "<html>gateway</html>" in str(exc.value)


class TestGeminiMetrics:

    def test_log_sucesso(self):
        with patch("services.gemini_service.logger") as logger:
            GeminiMetrics(model="gemini-teste", time_total_ms=12.6).log()

        logger.info.assert_called_once()
        assert logger.info.call_args.kwargs["total_ms"] == 13

    def test_log_falha(self):
        with patch("services.gemini_service.logger") as logger:
            GeminiMetrics(model="gemini-teste", success=False, error="HTTP 500").log()

        logger.warning.assert_called_once()
        assert logger.warning.call_args.kwargs["error"] == "HTTP 500"
