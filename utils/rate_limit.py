# utils/rate_limit.py
# -*- coding: utf-8 -*-
"""
Rate Limiting do AUTO RECURSO (slowapi).

Limites padrão:
- Geral: 100 requests/minuto por IP
- Login do painel: 5 tentativas/minuto por IP
- Upload de fotos (IA): 10 requests/minuto por IP

Uso:
    from utils.rate_limit import limiter, rate_limit_exceeded_handler

    # No main.py
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    # Nos routers (o endpoint precisa receber `request: Request`)
    @router.post("/endpoint")
    @limit_upload
    async def endpoint(request: Request):
        ...
"""

import os

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.util import get_remote_address

from utils.logging_config import get_logger

logger = get_logger(__name__)


def get_real_ip(request: Request) -> str:
    """
    Obtém IP real do cliente, considerando headers de proxy.

    Prioridade: X-Forwarded-For (primeiro IP), X-Real-IP, conexão direta.
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    return get_remote_address(request)


RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
RATE_LIMIT_DEFAULT = os.getenv("RATE_LIMIT_DEFAULT", "100/minute")
RATE_LIMIT_LOGIN = os.getenv("RATE_LIMIT_LOGIN", "5/minute")
RATE_LIMIT_UPLOAD = os.getenv("RATE_LIMIT_UPLOAD", "10/minute")

# Storage: memória por padrão, Redis em produção
RATE_LIMIT_STORAGE = os.getenv("RATE_LIMIT_STORAGE", "memory://")

limiter = Limiter(
    key_func=get_real_ip,
    default_limits=[RATE_LIMIT_DEFAULT],
    enabled=RATE_LIMIT_ENABLED,
    storage_uri=RATE_LIMIT_STORAGE,
)


async def rate_limit_exceeded_handler(request: Request, exc: Exception) -> JSONResponse:
    """Resposta JSON amigável (pt-BR) para limite excedido."""
    logger.warning(
        "Rate limit excedido",
        ip=get_real_ip(request),
        path=request.url.path,
        detalhe=str(getattr(exc, "detail", exc)),
    )

    return JSONResponse(
        status_code=429,
        content={
            "detail": "Limite de requisições excedido. Tente novamente em alguns minutos.",
            "error": "rate_limit_exceeded",
            "retry_after": "60",
        },
        headers={"Retry-After": "60"},
    )


def limit_login(func):
    """Decorator para limitar tentativas de login no painel."""
    return limiter.limit(RATE_LIMIT_LOGIN)(func)


def limit_upload(func):
    """Decorator para limitar uploads que disparam análise por IA."""
    return limiter.limit(RATE_LIMIT_UPLOAD)(func)
