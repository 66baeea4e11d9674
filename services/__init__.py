# services/__init__.py
"""
Serviços compartilhados do AUTO RECURSO

- gemini_service: IA (visão e geração de texto)
- abacatepay_service: cobrança PIX
- email_service: emails transacionais (Brevo)
"""

from services.gemini_service import (
    GeminiService,
    GeminiError,
    GeminiRateLimitError,
    gemini_service,
)
from services.abacatepay_service import AbacatePayService, PagamentoError, abacatepay_service
from services.email_service import BrevoEmailService, EmailError, email_service

__all__ = [
    "GeminiService",
    "GeminiError",
    "GeminiRateLimitError",
    "gemini_service",
    "AbacatePayService",
    "PagamentoError",
    "abacatepay_service",
    "BrevoEmailService",
    "EmailError",
    "email_service",
]
