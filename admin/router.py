# admin/router.py
"""
Router do painel administrativo (montado em /admin/api)

- Estatísticas recalculadas sobre o log de eventos
- Clientes, recursos gerados, eventos e carrinhos abandonados
- Reenvio manual de recurso e email de recuperação de carrinho
- Configurações do modo gratuito
- Limpeza total dos dados (configurações preservadas)

Todas as rotas exigem o token obtido em POST /auth/login.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from admin.schemas import (
    AcaoResponse,
    CarrinhoResponse,
    ClienteResponse,
    ConfiguracoesResponse,
    ConfiguracoesUpdate,
    EventoListResponse,
    EventoResponse,
    RecuperarCarrinhoRequest,
    RecursoDetalheResponse,
    RecursoResumoResponse,
    StatsResponse,
)
from auth.dependencies import require_admin
from database.connection import get_db
from services.email_service import EmailError, email_service
from sistemas.recurso_multa.analytics import AnalyticsService
from sistemas.recurso_multa.constants import EVENTOS_REENVIAVEIS, ROTULOS_EVENTO, TipoEvento
from sistemas.recurso_multa.store import RecordStore
from utils.logging_config import get_logger
from utils.timezone import now_ms

logger = get_logger(__name__)

router = APIRouter(tags=["Administração"], dependencies=[Depends(require_admin)])


def get_analytics(db: Session = Depends(get_db)) -> AnalyticsService:
    return AnalyticsService(RecordStore(db))


def _evento_response(evento: dict) -> EventoResponse:
    tipo = evento.get("type", "")
    data = evento.get("data") or {}
    return EventoResponse(
        id=evento["id"],
        timestamp=evento.get("timestamp", 0),
        type=tipo,
        label=ROTULOS_EVENTO.get(tipo, tipo),
        data=data,
        reenviavel=tipo in EVENTOS_REENVIAVEIS and bool(data.get("customerEmail")),
    )


# ============================================
# Estatísticas
# ============================================

@router.get("/stats", response_model=StatsResponse)
async def obter_stats(analytics: AnalyticsService = Depends(get_analytics)):
    """Contagens, janelas de 24h/7d, receita e taxa de sucesso"""
    return analytics.get_stats()


# ============================================
# Clientes e recursos
# ============================================

@router.get("/clientes", response_model=List[ClienteResponse])
async def listar_clientes(analytics: AnalyticsService = Depends(get_analytics)):
    return sorted(analytics.get_customers(), key=lambda c: c.get("lastActivity", 0), reverse=True)


@router.get("/clientes/{cliente_id}/recursos", response_model=List[RecursoResumoResponse])
async def listar_recursos_do_cliente(cliente_id: str, analytics: AnalyticsService = Depends(get_analytics)):
    return sorted(
        analytics.get_resources_by_customer(cliente_id),
        key=lambda r: r.get("generatedAt", 0),
        reverse=True,
    )


@router.get("/recursos", response_model=List[RecursoResumoResponse])
async def listar_recursos(analytics: AnalyticsService = Depends(get_analytics)):
    return sorted(analytics.get_resources(), key=lambda r: r.get("generatedAt", 0), reverse=True)


@router.get("/recursos/{recurso_id}", response_model=RecursoDetalheResponse)
async def obter_recurso(recurso_id: str, analytics: AnalyticsService = Depends(get_analytics)):
    """Recurso com o documento completo"""
    recurso = analytics.get_resource(recurso_id)
    if recurso is None:
        raise HTTPException(status_code=404, detail="Recurso não encontrado")
    return recurso


# ============================================
# Eventos
# ============================================

@router.get("/eventos", response_model=EventoListResponse)
async def listar_eventos(
    tipo: Optional[TipoEvento] = Query(None),
    desde: Optional[int] = Query(None, ge=0, description="Epoch em ms (inclusivo)"),
    ate: Optional[int] = Query(None, ge=0, description="Epoch em ms (inclusivo)"),
    analytics: AnalyticsService = Depends(get_analytics),
):
    """Log de eventos, mais recentes primeiro, com filtros opcionais por tipo e período"""
    if desde is not None or ate is not None:
        eventos = analytics.get_events_by_date_range(desde or 0, ate if ate is not None else now_ms())
    else:
        eventos = analytics.get_events()
    if tipo:
        eventos = [e for e in eventos if e.get("type") == tipo.value]
    eventos = sorted(eventos, key=lambda e: e.get("timestamp", 0), reverse=True)
    return EventoListResponse(eventos=[_evento_response(e) for e in eventos], total=len(eventos))


@router.post("/eventos/{evento_id}/reenviar", response_model=AcaoResponse)
async def reenviar_recurso(evento_id: str, analytics: AnalyticsService = Depends(get_analytics)):
    """Reenvia por email o recurso mais recente do cliente do evento"""
    evento = analytics.get_event(evento_id)
    if evento is None:
        raise HTTPException(status_code=404, detail="Evento não encontrado")

    data = evento.get("data") or {}
    email = data.get("customerEmail")
    if not email:
        raise HTTPException(status_code=422, detail="Evento sem email do cliente")

    recurso = analytics.get_latest_resource_by_email(email)
    if recurso is None or not recurso.get("documentContent"):
        raise HTTPException(status_code=404, detail="Recurso não encontrado no sistema")

    placa = data.get("ticketPlate") or recurso.get("ticketPlate") or "N/A"
    try:
        await email_service.enviar_recurso(
            email=email,
            name=data.get("customerName") or recurso.get("customerName") or "Cliente",
            document=recurso["documentContent"],
            plate=placa,
        )
    except EmailError as e:
        logger.error("Reenvio de recurso falhou", evento_id=evento_id, erro=str(e))
        raise HTTPException(status_code=502, detail=f"Falha: {e}") from e

    analytics.log_event(TipoEvento.EMAIL_SENT, {
        "customerEmail": email,
        "customerName": data.get("customerName"),
        "ticketPlate": placa,
    })
    return AcaoResponse(mensagem="Email reenviado com sucesso!")


# ============================================
# Carrinhos abandonados
# ============================================

@router.get("/carrinhos", response_model=List[CarrinhoResponse])
async def listar_carrinhos(analytics: AnalyticsService = Depends(get_analytics)):
    return sorted(analytics.get_abandoned_carts(), key=lambda c: c.get("timestamp", 0), reverse=True)


@router.post("/carrinhos/recuperar", response_model=AcaoResponse)
async def recuperar_carrinho(req: RecuperarCarrinhoRequest, analytics: AnalyticsService = Depends(get_analytics)):
    """Envia o email de recuperação para um carrinho abandonado"""
    carrinho = next((c for c in analytics.get_abandoned_carts() if c.get("email") == req.email), None)
    if carrinho is None:
        raise HTTPException(status_code=404, detail="Carrinho não encontrado")

    try:
        await email_service.enviar_recuperacao_carrinho(
            email=carrinho["email"],
            name=carrinho.get("name") or "Cliente",
            plate=carrinho.get("ticketPlate"),
        )
    except EmailError as e:
        logger.error("Email de recuperação falhou", email=req.email, erro=str(e))
        raise HTTPException(status_code=502, detail=f"Falha: {e}") from e

    return AcaoResponse(mensagem="Email de recuperação enviado com sucesso!")


# ============================================
# Configurações e limpeza
# ============================================

@router.get("/configuracoes", response_model=ConfiguracoesResponse)
async def obter_configuracoes(analytics: AnalyticsService = Depends(get_analytics)):
    return analytics.get_admin_settings()


@router.put("/configuracoes", response_model=ConfiguracoesResponse)
async def atualizar_configuracoes(req: ConfiguracoesUpdate, analytics: AnalyticsService = Depends(get_analytics)):
    """Liga/desliga o modo gratuito e ajusta limite e contador"""
    return analytics.update_admin_settings(req.model_dump(exclude_none=True))


@router.delete("/dados", response_model=AcaoResponse)
async def limpar_dados(analytics: AnalyticsService = Depends(get_analytics)):
    """Apaga eventos, carrinhos, clientes e recursos"""
    analytics.clear_all_data()
    return AcaoResponse(mensagem="Dados apagados. Configurações preservadas.")
