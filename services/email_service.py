# services/email_service.py
"""
Envio de emails transacionais pelo Brevo.

- send_email: primitivo genérico (destinatário, assunto, HTML, texto opcional)
- enviar_recurso: entrega do recurso gerado
- enviar_recuperacao_carrinho: lembrete para quem não finalizou o pagamento

Sem retry. Quem chama trata a falha (o fluxo registra email_failed e segue).
"""

from typing import Any, Dict, Optional

import httpx
from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup, escape

from config import (
    BASE_DIR,
    BREVO_API_KEY,
    BREVO_API_URL,
    EMAIL_SENDER_NAME,
    EMAIL_SENDER_ADDRESS,
    PUBLIC_BASE_URL,
)
from services.gemini_service import get_http_client
from utils.logging_config import get_logger

logger = get_logger(__name__)

TEMPLATES_DIR = BASE_DIR / "services" / "templates" / "email"


class EmailError(Exception):
    """Falha ao enviar email pelo Brevo"""


def nl2br(value: str) -> Markup:
    """Escapa o texto e converte quebras de linha em <br>"""
    return Markup("<br>").join(escape(value or "").split("\n"))


def _criar_ambiente() -> Environment:
    env = Environment(
        loader=FileSystemLoader(str(TEMPLATES_DIR)),
        autoescape=select_autoescape(["html"]),
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.filters["nl2br"] = nl2br
    return env


class BrevoEmailService:
    """
    Uso:
        from services.email_service import email_service

        await email_service.enviar_recurso(
            email="fulano@email.com", name="Fulano", document="# RECURSO...", plate="ABC1234"
        )
    """

    def __init__(self, api_key: str = None, api_url: str = None):
        self.api_key = api_key if api_key is not None else BREVO_API_KEY
        self.api_url = api_url or BREVO_API_URL
        self.templates = _criar_ambiente()

    def is_configured(self) -> bool:
        return bool(self.api_key)

    def render(self, template_name: str, **context) -> str:
        return self.templates.get_template(template_name).render(**context)

    def _build_payload(self, to: str, subject: str, html: str, text: Optional[str]) -> Dict[str, Any]:
        payload = {
            "sender": {"name": EMAIL_SENDER_NAME, "email": EMAIL_SENDER_ADDRESS},
            "to": [{"email": to, "name": to.split("@")[0]}],
            "subject": subject,
            "htmlContent": html,
        }
        if text:
            payload["textContent"] = text
        return payload

    async def send_email(self, to: str, subject: str, html: str, text: Optional[str] = None) -> bool:
        """
        Envia um email pelo Brevo.

        Raises:
            EmailError: chave ausente, falha de rede ou resposta não-2xx
        """
        if not self.api_key:
            logger.error("BREVO_API_KEY não configurada")
            raise EmailError("Serviço de email não configurado")

        headers = {
            "accept": "application/json",
            "api-key": self.api_key,
            "content-type": "application/json",
        }

        try:
            client = await get_http_client()
            response = await client.post(
                self.api_url,
                json=self._build_payload(to, subject, html, text),
                headers=headers,
            )
        except httpx.HTTPError as e:
            logger.error("Falha de comunicação com Brevo", to=to, erro=str(e))
            raise EmailError(f"Falha de comunicação com o serviço de email: {e}") from e

        if response.status_code >= 400:
            logger.error("Erro da API Brevo", to=to, status_code=response.status_code, body=response.text[:300])
            raise EmailError(f"Brevo API error: {response.text}")

        logger.info("Email enviado", to=to, subject=subject)
        return True

    async def enviar_recurso(self, email: str, name: str, document: str, plate: str) -> bool:
        """Entrega o recurso gerado (conteúdo completo no corpo do email)"""
        context = {"nome": name, "placa": plate, "documento": document}
        return await self.send_email(
            to=email,
            subject=f"✅ Seu Recurso de Multa - Veículo {plate}",
            html=self.render("recurso_pronto.html", **context),
            text=self.render("recurso_pronto.txt", **context),
        )

    async def enviar_recuperacao_carrinho(
        self,
        email: str,
        name: str,
        plate: Optional[str] = None,
        app_url: str = None,
    ) -> bool:
        """Convida quem abandonou o fluxo a finalizar o recurso"""
        context = {"nome": name, "placa": plate, "app_url": app_url or PUBLIC_BASE_URL}
        subject = "⏰ Complete seu Recurso de Multa"
        if plate:
            subject += f" - {plate}"
        return await self.send_email(
            to=email,
            subject=subject,
            html=self.render("recuperacao_carrinho.html", **context),
            text=self.render("recuperacao_carrinho.txt", **context),
        )


email_service = BrevoEmailService()


__all__ = [
    "BrevoEmailService",
    "EmailError",
    "email_service",
    "nl2br",
]
