# sistemas/recurso_multa/ia_service.py
"""
Chamadas de IA do Recurso de Multa (via GeminiService).

- analisar_multa: foto da multa -> TicketInfo
- analisar_cnh: foto da CNH -> dados pessoais parciais
- gerar_recurso: texto final do recurso em Markdown

O retry para rate limit fica no GeminiService. Qualquer outra falha,
resposta vazia ou JSON fora do schema vira GeminiError.
"""

import json
from typing import Any, Dict, Optional

from pydantic import ValidationError

from services.gemini_service import GeminiError, GeminiService, gemini_service
from sistemas.recurso_multa.constants import CAMPOS_EXTRAIDOS_CNH
from sistemas.recurso_multa.prompts import (
    PROMPT_ANALISE_CNH,
    PROMPT_ANALISE_MULTA,
    SCHEMA_ANALISE_CNH,
    SCHEMA_ANALISE_MULTA,
    SYSTEM_PROMPT_RECURSO,
    montar_prompt_recurso,
)
from sistemas.recurso_multa.schemas import PersonalInfo, TicketInfo
from utils.logging_config import get_logger

logger = get_logger(__name__)


def _parse_json(content: str, contexto: str) -> Dict[str, Any]:
    texto = content.strip()
    # Alguns modelos embrulham o JSON em bloco de código mesmo no modo JSON
    if texto.startswith("```"):
        texto = texto.strip("`")
        if texto.lower().startswith("json"):
            texto = texto[4:]
    try:
        data = json.loads(texto)
    except ValueError as e:
        logger.error("JSON inválido do Gemini", contexto=contexto, erro=str(e), inicio=content[:200])
        raise GeminiError(f"Resposta inválida da IA ({contexto})") from e

    if not isinstance(data, dict):
        raise GeminiError(f"Resposta inesperada da IA ({contexto})")
    return data


class RecursoMultaIAService:
    """
    Uso:
        ia = RecursoMultaIAService()
        ticket = await ia.analisar_multa(base64_da_foto, "image/jpeg")
    """

    def __init__(self, gemini: Optional[GeminiService] = None):
        self._gemini = gemini

    @property
    def gemini(self) -> GeminiService:
        return self._gemini or gemini_service

    async def analisar_multa(self, imagem_base64: str, mime_type: str = "image/jpeg") -> TicketInfo:
        response = await self.gemini.generate_with_images(
            prompt=PROMPT_ANALISE_MULTA,
            images_base64=[imagem_base64],
            response_schema=SCHEMA_ANALISE_MULTA,
            default_mime_type=mime_type,
        )
        data = _parse_json(response.content, "multa")

        try:
            ticket = TicketInfo.model_validate(data)
        except ValidationError as e:
            logger.error("Multa fora do schema esperado", erro=str(e)[:300])
            raise GeminiError("Não foi possível processar a imagem.") from e

        logger.info(
            "Multa analisada",
            placa=ticket.vehiclePlate,
            artigo=ticket.article,
            estrategias=len(ticket.strategies),
        )
        return ticket

    async def analisar_cnh(self, imagem_base64: str, mime_type: str = "image/jpeg") -> Dict[str, str]:
        response = await self.gemini.generate_with_images(
            prompt=PROMPT_ANALISE_CNH,
            images_base64=[imagem_base64],
            response_schema=SCHEMA_ANALISE_CNH,
            default_mime_type=mime_type,
        )
        data = _parse_json(response.content, "cnh")

        extraidos = {
            campo: str(data[campo])
            for campo in CAMPOS_EXTRAIDOS_CNH
            if data.get(campo) is not None
        }
        logger.info("CNH analisada", campos=sorted(k for k, v in extraidos.items() if v))
        return extraidos

    async def gerar_recurso(
        self,
        ticket: TicketInfo,
        strategy_id: str,
        reason: str,
        personal: PersonalInfo,
        city: str,
        date: str,
    ) -> str:
        """
        Redige o recurso final.

        Raises:
            GeminiError: estratégia inexistente, falha da API ou texto vazio
        """
        estrategia = ticket.estrategia(strategy_id)
        if estrategia is None:
            raise GeminiError(f"Estratégia {strategy_id} não pertence à multa analisada")

        prompt = montar_prompt_recurso(ticket, estrategia, reason, personal, city, date)
        response = await self.gemini.generate(
            prompt=prompt,
            system_prompt=SYSTEM_PROMPT_RECURSO,
            temperature=0.7,
        )

        documento = response.content.strip()
        if not documento:
            raise GeminiError("Erro ao gerar o recurso.")

        logger.info("Recurso redigido", placa=ticket.vehiclePlate, caracteres=len(documento))
        return documento


recurso_ia_service = RecursoMultaIAService()
