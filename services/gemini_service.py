# services/gemini_service.py
"""
Serviço centralizado para chamadas à API do Google Gemini.

Usado pelo AUTO RECURSO para:
- Ler a foto da multa (visão + JSON estruturado)
- Ler a foto da CNH (visão + JSON estruturado)
- Redigir o recurso final em Markdown

DETALHES:
- HTTP Client reutilizável (connection pooling)
- Métricas de latência por chamada (log estruturado)
- Retry com backoff exponencial APENAS para rate limit (429 / RESOURCE_EXHAUSTED)
- Modo JSON com responseSchema
"""

import asyncio
import time
from dataclasses import dataclass
from typing import List, Optional, Dict, Any

import httpx

from config import (
    GEMINI_KEY,
    GEMINI_MODEL,
    GEMINI_RETRY_MAX_ATTEMPTS,
    GEMINI_RETRY_BASE_DELAY,
    GEMINI_RETRY_MULTIPLIER,
)
from utils.logging_config import get_logger
from utils.retry import RetryConfig, retry_async

logger = get_logger(__name__)


# ============================================
# EXCEÇÕES
# ============================================

class GeminiError(Exception):
    """Falha na chamada ao Gemini (HTTP, resposta vazia ou JSON inválido)"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class GeminiRateLimitError(GeminiError):
    """Cota excedida (HTTP 429 ou status RESOURCE_EXHAUSTED)"""


# ============================================
# INSTRUMENTAÇÃO DE MÉTRICAS
# ============================================

@dataclass
class GeminiMetrics:
    """Métricas de uma chamada ao Gemini para diagnóstico de latência"""
    model: str = ""
    prompt_chars: int = 0
    images: int = 0
    response_tokens: int = 0

    # Tempos em milissegundos
    time_ttft_ms: float = 0
    time_total_ms: float = 0

    success: bool = True
    json_mode: bool = False
    error: str = ""

    def log(self):
        """Log estruturado das métricas"""
        if self.success:
            logger.info(
                "Chamada Gemini",
                model=self.model,
                prompt_chars=self.prompt_chars,
                images=self.images,
                response_tokens=self.response_tokens,
                ttft_ms=round(self.time_ttft_ms),
                total_ms=round(self.time_total_ms),
                json_mode=self.json_mode,
            )
        else:
            logger.warning(
                "Chamada Gemini falhou",
                model=self.model,
                total_ms=round(self.time_total_ms),
                error=self.error[:200],
            )


@dataclass
class GeminiResponse:
    """Resposta padronizada do Gemini"""
    content: str
    tokens_used: int = 0
    metrics: Optional[GeminiMetrics] = None


# ============================================
# CONFIGURAÇÃO DE TIMEOUTS E RETRY
# ============================================

TIMEOUT_CONNECT = 10.0
TIMEOUT_READ = 120.0

GEMINI_RETRY_CONFIG = RetryConfig(
    max_retries=GEMINI_RETRY_MAX_ATTEMPTS,
    base_delay=GEMINI_RETRY_BASE_DELAY,
    max_delay=120.0,
    exponential_base=GEMINI_RETRY_MULTIPLIER,
    retryable_exceptions=(GeminiRateLimitError,),
)

# HTTP Client singleton
_http_client: Optional[httpx.AsyncClient] = None
_http_client_lock = asyncio.Lock()


async def get_http_client() -> httpx.AsyncClient:
    """
    Retorna HTTP client singleton com connection pooling.

    Compartilhado pelos clientes de IA, pagamento e email.
    """
    global _http_client

    if _http_client is None or _http_client.is_closed:
        async with _http_client_lock:
            if _http_client is None or _http_client.is_closed:
                _http_client = httpx.AsyncClient(
                    timeout=httpx.Timeout(
                        connect=TIMEOUT_CONNECT,
                        read=TIMEOUT_READ,
                        write=30.0,
                        pool=10.0
                    ),
                    limits=httpx.Limits(
                        max_keepalive_connections=10,
                        max_connections=20,
                        keepalive_expiry=30.0
                    ),
                    http2=True
                )
                logger.info("HTTP client criado", http2=True)

    return _http_client


async def close_http_client():
    """Fecha o HTTP client (para shutdown graceful)"""
    global _http_client
    if _http_client is not None:
        await _http_client.aclose()
        _http_client = None
        logger.info("HTTP client fechado")


def is_rate_limit_response(response: httpx.Response) -> bool:
    """429 ou corpo de erro com status RESOURCE_EXHAUSTED"""
    if response.status_code == 429:
        return True
    try:
        body = response.json()
    except ValueError:
        return "RESOURCE_EXHAUSTED" in response.text
    error = body.get("error") if isinstance(body, dict) else None
    return isinstance(error, dict) and error.get("status") == "RESOURCE_EXHAUSTED"


class GeminiService:
    """
    Serviço centralizado para chamadas à API do Google Gemini.

    Uso:
        from services.gemini_service import gemini_service

        response = await gemini_service.generate(prompt="Olá!")

        response = await gemini_service.generate_with_images(
            prompt="Extraia os dados",
            images_base64=["data:image/jpeg;base64,..."],
            response_schema={...},
        )
    """

    BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"

    def __init__(self, api_key: str = None, model: str = None):
        self._api_key = api_key if api_key is not None else GEMINI_KEY
        self.model = model or GEMINI_MODEL

    @property
    def api_key(self) -> str:
        return self._api_key

    @api_key.setter
    def api_key(self, value: str):
        self._api_key = value

    def is_configured(self) -> bool:
        return bool(self._api_key)

    @staticmethod
    def normalize_model(model: str) -> str:
        """Remove prefixo 'google/' se presente"""
        if model.startswith("google/"):
            return model[7:]
        return model

    async def generate(
        self,
        prompt: str,
        system_prompt: str = "",
        model: str = None,
        max_tokens: int = None,
        temperature: float = 0.7,
        response_schema: Dict[str, Any] = None,
    ) -> GeminiResponse:
        """
        Gera texto usando o Gemini.

        Args:
            prompt: Prompt do usuário
            system_prompt: Instruções do sistema (opcional)
            model: Nome do modelo (opcional, usa GEMINI_MODEL)
            max_tokens: Limite de tokens na resposta (None = máximo do modelo)
            temperature: Temperatura (0-2)
            response_schema: Se informado, força saída JSON nesse schema

        Raises:
            GeminiRateLimitError: cota excedida após todas as tentativas
            GeminiError: qualquer outra falha
        """
        payload = self._build_payload(
            parts=[{"text": prompt}],
            system_prompt=system_prompt,
            max_tokens=max_tokens,
            temperature=temperature,
            response_schema=response_schema,
        )
        return await self._call(payload, model=model, prompt_chars=len(prompt), images=0)

    async def generate_with_images(
        self,
        prompt: str,
        images_base64: List[str],
        system_prompt: str = "",
        model: str = None,
        max_tokens: int = None,
        temperature: float = 0.2,
        response_schema: Dict[str, Any] = None,
        default_mime_type: str = "image/jpeg",
    ) -> GeminiResponse:
        """
        Gera texto analisando imagens.

        Args:
            images_base64: Imagens em base64 puro ou no formato data URL
            default_mime_type: MIME usado quando a imagem não é data URL
        """
        parts = [self._image_part(img, default_mime_type) for img in images_base64]
        parts.append({"text": prompt})

        payload = self._build_payload(
            parts=parts,
            system_prompt=system_prompt,
            max_tokens=max_tokens,
            temperature=temperature,
            response_schema=response_schema,
        )
        return await self._call(payload, model=model, prompt_chars=len(prompt), images=len(images_base64))

    async def _call(self, payload: Dict[str, Any], model: str, prompt_chars: int, images: int) -> GeminiResponse:
        if not self._api_key:
            raise GeminiError("GEMINI_KEY não configurada")

        model = self.normalize_model(model or self.model)

        @retry_async(config=GEMINI_RETRY_CONFIG)
        async def _tentativa() -> GeminiResponse:
            return await self._post_once(payload, model, prompt_chars, images)

        return await _tentativa()

    async def _post_once(
        self,
        payload: Dict[str, Any],
        model: str,
        prompt_chars: int,
        images: int,
    ) -> GeminiResponse:
        """Uma única chamada HTTP, sem retry"""
        metrics = GeminiMetrics(
            model=model,
            prompt_chars=prompt_chars,
            images=images,
            json_mode="responseSchema" in payload["generationConfig"],
        )
        t_start = time.perf_counter()
        url = f"{self.BASE_URL}/{model}:generateContent?key={self._api_key}"

        try:
            client = await get_http_client()
            response = await client.post(url, json=payload)
        except httpx.HTTPError as e:
            metrics.success = False
            metrics.error = f"{type(e).__name__}: {e}"
            metrics.time_total_ms = (time.perf_counter() - t_start) * 1000
            metrics.log()
            raise GeminiError(f"Falha de comunicação com o Gemini: {e}") from e

        metrics.time_ttft_ms = (time.perf_counter() - t_start) * 1000

        if response.status_code >= 400:
            metrics.success = False
            metrics.error = f"HTTP {response.status_code}: {response.text[:200]}"
            metrics.time_total_ms = (time.perf_counter() - t_start) * 1000
            metrics.log()
            if is_rate_limit_response(response):
                raise GeminiRateLimitError(metrics.error, status_code=response.status_code)
            raise GeminiError(metrics.error, status_code=response.status_code)

        try:
            data = response.json()
        except ValueError as e:
            metrics.success = False
            metrics.error = f"Resposta inválida do Gemini (HTTP {response.status_code}): {response.text[:200]}"
            metrics.time_total_ms = (time.perf_counter() - t_start) * 1000
            metrics.log()
            raise GeminiError(metrics.error, status_code=response.status_code) from e

        content = self._extract_content(data)
        metrics.response_tokens = self._extract_tokens(data)
        metrics.time_total_ms = (time.perf_counter() - t_start) * 1000

        if not content:
            metrics.success = False
            metrics.error = "Resposta vazia do Gemini (sem conteúdo gerado)"
            metrics.log()
            raise GeminiError(metrics.error)

        metrics.log()
        return GeminiResponse(content=content, tokens_used=metrics.response_tokens, metrics=metrics)

    @staticmethod
    def _image_part(img_base64: str, default_mime_type: str) -> Dict[str, Any]:
        if img_base64.startswith("data:"):
            # Formato: data:image/png;base64,<dados>
            header, data = img_base64.split(",", 1)
            mime_type = header.split(":")[1].split(";")[0]
        else:
            mime_type = default_mime_type
            data = img_base64

        return {"inline_data": {"mime_type": mime_type, "data": data}}

    def _build_payload(
        self,
        parts: List[Dict[str, Any]],
        system_prompt: str = "",
        max_tokens: int = None,
        temperature: float = 0.7,
        response_schema: Dict[str, Any] = None,
    ) -> Dict[str, Any]:
        generation_config = {"temperature": temperature}

        if max_tokens is not None:
            generation_config["maxOutputTokens"] = max_tokens

        if response_schema:
            generation_config["responseMimeType"] = "application/json"
            generation_config["responseSchema"] = response_schema

        payload = {
            "contents": [{"role": "user", "parts": parts}],
            "generationConfig": generation_config
        }

        if system_prompt:
            payload["systemInstruction"] = {
                "parts": [{"text": system_prompt}]
            }

        return payload

    def _extract_content(self, data: Dict) -> str:
        """Extrai conteúdo da resposta do Gemini"""
        candidates = data.get("candidates", [])
        if candidates:
            finish_reason = candidates[0].get("finishReason", "")
            if finish_reason in ("SAFETY", "RECITATION", "OTHER"):
                logger.warning("Resposta Gemini bloqueada", finish_reason=finish_reason)

            parts = candidates[0].get("content", {}).get("parts", [])
            # Com thinking a primeira part pode ser "thought"; pega o primeiro texto real
            for part in parts:
                if part.get("thought"):
                    continue
                text = part.get("text", "")
                if text:
                    return text
        else:
            block_reason = data.get("promptFeedback", {}).get("blockReason", "")
            if block_reason:
                logger.warning("Prompt bloqueado pelo Gemini", block_reason=block_reason)
            else:
                logger.warning("Resposta Gemini sem candidates", keys=list(data.keys()))
        return ""

    def _extract_tokens(self, data: Dict) -> int:
        usage = data.get("usageMetadata", {})
        return usage.get("totalTokenCount", 0)


# Singleton
gemini_service = GeminiService()


__all__ = [
    "GeminiService",
    "GeminiResponse",
    "GeminiMetrics",
    "GeminiError",
    "GeminiRateLimitError",
    "GEMINI_RETRY_CONFIG",
    "gemini_service",
    "get_http_client",
    "close_http_client",
]
