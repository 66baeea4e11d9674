# sistemas/recurso_multa/router.py
"""
Router do Recurso de Multa (montado em /recurso/api)

Endpoints:
- Sessões: criar, consultar, reiniciar, voltar
- Multa: upload da foto, escolha da estratégia, relato
- Dados pessoais: edição, validação, importação da CNH
- Pagamento: iniciar, retorno do checkout, verificação manual
- Documento: recurso final
"""

import uuid

from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, UploadFile, status
from sqlalchemy.orm import Session

from config import ALLOWED_IMAGE_TYPES, MAX_UPLOAD_SIZE, UNIT_PRICE
from database.connection import get_db
from services.abacatepay_service import abacatepay_service
from utils.logging_config import get_logger
from utils.rate_limit import limit_upload

from .analytics import AnalyticsService
from .exceptions import DadosInvalidosError, RecursoMultaError, SessaoNaoEncontradaError, TransicaoInvalidaError
from .flow import FluxoRecurso
from .schemas import (
    ConfiguracaoPublicaResponse,
    DocumentoResponse,
    EstadoFluxoResponse,
    EstrategiaRequest,
    PersonalInfoUpdate,
    RelatoRequest,
    ValidacaoResponse,
    VoltarRequest,
)
from .store import RecordStore

logger = get_logger(__name__)
router = APIRouter(tags=["Recurso de Multa"])


def _http_error(e: RecursoMultaError) -> HTTPException:
    if isinstance(e, SessaoNaoEncontradaError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
    if isinstance(e, TransicaoInvalidaError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message)
    if isinstance(e, DadosInvalidosError):
        return HTTPException(
            status_code=422,
            detail={"mensagem": e.message, "erros": e.erros},
        )
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)


def _abrir(sessao_id: str, db: Session) -> FluxoRecurso:
    try:
        return FluxoRecurso.abrir(RecordStore(db), sessao_id)
    except SessaoNaoEncontradaError as e:
        raise _http_error(e) from e


async def _ler_imagem(arquivo: UploadFile) -> bytes:
    if arquivo.content_type not in ALLOWED_IMAGE_TYPES:
        raise HTTPException(
            status_code=415,
            detail=f"Tipo de arquivo não suportado: {arquivo.content_type}",
        )
    conteudo = await arquivo.read()
    if len(conteudo) > MAX_UPLOAD_SIZE:
        raise HTTPException(
            status_code=413,
            detail="Arquivo muito grande (máximo 15MB)",
        )
    return conteudo


# ============================================
# Configuração pública
# ============================================

@router.get("/configuracao", response_model=ConfiguracaoPublicaResponse)
async def obter_configuracao_publica(db: Session = Depends(get_db)):
    """Preço, modo gratuito e modo de testes do pagamento"""
    analytics = AnalyticsService(RecordStore(db))
    settings = analytics.get_admin_settings()
    restantes = 0
    if settings["isFreeGenerationEnabled"]:
        restantes = max(0, int(settings["freeGenerationLimit"]) - int(settings["freeGenerationsUsed"]))

    return ConfiguracaoPublicaResponse(
        preco=UNIT_PRICE,
        modo_gratuito={"disponivel": analytics.free_mode_available(), "restantes": restantes},
        pagamento_dev_mode=abacatepay_service.dev_mode,
    )


# ============================================
# Sessões
# ============================================

@router.post("/sessoes", response_model=EstadoFluxoResponse, status_code=201)
async def criar_sessao(db: Session = Depends(get_db)):
    """Abre uma nova sessão do fluxo (etapa START)"""
    fluxo = FluxoRecurso.criar(RecordStore(db), str(uuid.uuid4()))
    return fluxo.estado()


@router.get("/sessoes/{sessao_id}", response_model=EstadoFluxoResponse)
async def obter_sessao(sessao_id: str, db: Session = Depends(get_db)):
    """Estado atual da sessão, reidratado do armazenamento"""
    return _abrir(sessao_id, db).estado()


@router.post("/sessoes/{sessao_id}/voltar", response_model=EstadoFluxoResponse)
async def voltar_etapa(sessao_id: str, req: VoltarRequest, db: Session = Depends(get_db)):
    fluxo = _abrir(sessao_id, db)
    try:
        fluxo.voltar(req.step)
    except RecursoMultaError as e:
        raise _http_error(e) from e
    return fluxo.estado()


@router.post("/sessoes/{sessao_id}/reiniciar", response_model=EstadoFluxoResponse)
async def reiniciar_sessao(sessao_id: str, db: Session = Depends(get_db)):
    """Novo recurso na mesma sessão"""
    fluxo = _abrir(sessao_id, db)
    fluxo.reiniciar()
    return fluxo.estado()


# ============================================
# Multa, estratégia e relato
# ============================================

@router.post("/sessoes/{sessao_id}/multa", response_model=EstadoFluxoResponse)
@limit_upload
async def enviar_foto_multa(
    request: Request,
    sessao_id: str,
    arquivo: UploadFile = File(...),
    db: Session = Depends(get_db),
):
    """Analisa a foto da multa e sugere estratégias de defesa"""
    fluxo = _abrir(sessao_id, db)
    conteudo = await _ler_imagem(arquivo)
    try:
        await fluxo.analisar_multa(conteudo, arquivo.content_type)
    except RecursoMultaError as e:
        raise _http_error(e) from e
    return fluxo.estado()


@router.post("/sessoes/{sessao_id}/estrategia", response_model=EstadoFluxoResponse)
async def escolher_estrategia(sessao_id: str, req: EstrategiaRequest, db: Session = Depends(get_db)):
    fluxo = _abrir(sessao_id, db)
    try:
        fluxo.selecionar_estrategia(req.strategy_id)
    except RecursoMultaError as e:
        raise _http_error(e) from e
    return fluxo.estado()


@router.post("/sessoes/{sessao_id}/relato", response_model=EstadoFluxoResponse)
async def enviar_relato(sessao_id: str, req: RelatoRequest, db: Session = Depends(get_db)):
    fluxo = _abrir(sessao_id, db)
    try:
        fluxo.registrar_relato(req.reason)
    except RecursoMultaError as e:
        raise _http_error(e) from e
    return fluxo.estado()


# ============================================
# Dados pessoais
# ============================================

@router.patch("/sessoes/{sessao_id}/dados-pessoais", response_model=EstadoFluxoResponse)
async def atualizar_dados_pessoais(sessao_id: str, req: PersonalInfoUpdate, db: Session = Depends(get_db)):
    fluxo = _abrir(sessao_id, db)
    try:
        fluxo.atualizar_dados_pessoais(req.model_dump(exclude_unset=True))
    except RecursoMultaError as e:
        raise _http_error(e) from e
    return fluxo.estado()


@router.get("/sessoes/{sessao_id}/validacao", response_model=ValidacaoResponse)
async def validar_dados_pessoais(sessao_id: str, db: Session = Depends(get_db)):
    """Erros do formulário (o botão de pagamento só habilita sem erros)"""
    erros = _abrir(sessao_id, db).validar_dados_pessoais()
    return ValidacaoResponse(valido=not erros, erros=erros)


@router.post("/sessoes/{sessao_id}/cnh", response_model=EstadoFluxoResponse)
@limit_upload
async def enviar_foto_cnh(
    request: Request,
    sessao_id: str,
    arquivo: UploadFile = File(...),
    db: Session = Depends(get_db),
):
    """Preenche os campos vazios a partir da foto da CNH"""
    fluxo = _abrir(sessao_id, db)
    conteudo = await _ler_imagem(arquivo)
    try:
        await fluxo.analisar_cnh(conteudo, arquivo.content_type)
    except RecursoMultaError as e:
        raise _http_error(e) from e
    return fluxo.estado()


@router.post("/sessoes/{sessao_id}/abandono", status_code=204)
async def registrar_abandono(sessao_id: str, db: Session = Depends(get_db)):
    """Chamado pelo front ao sair da página com o formulário incompleto"""
    _abrir(sessao_id, db).registrar_abandono()


# ============================================
# Pagamento
# ============================================

@router.post("/sessoes/{sessao_id}/pagamento", response_model=EstadoFluxoResponse)
async def iniciar_pagamento(sessao_id: str, db: Session = Depends(get_db)):
    """
    Cria a cobrança PIX (o front redireciona para `payment_url`) ou,
    no modo gratuito, gera o recurso direto.
    """
    fluxo = _abrir(sessao_id, db)
    try:
        await fluxo.iniciar_pagamento()
    except RecursoMultaError as e:
        raise _http_error(e) from e
    return fluxo.estado()


@router.get("/retorno", response_model=EstadoFluxoResponse)
async def retorno_pagamento(
    sessao: str = Query(...),
    success: bool = Query(False),
    db: Session = Depends(get_db),
):
    """completionUrl do Abacate Pay"""
    fluxo = _abrir(sessao, db)
    await fluxo.processar_retorno_pagamento(success)
    return fluxo.estado()


@router.post("/sessoes/{sessao_id}/pagamento/verificar", response_model=EstadoFluxoResponse)
async def verificar_pagamento(sessao_id: str, db: Session = Depends(get_db)):
    fluxo = _abrir(sessao_id, db)
    try:
        await fluxo.verificar_pagamento()
    except RecursoMultaError as e:
        raise _http_error(e) from e
    return fluxo.estado()


# ============================================
# Documento
# ============================================

@router.get("/sessoes/{sessao_id}/documento", response_model=DocumentoResponse)
async def obter_documento(sessao_id: str, db: Session = Depends(get_db)):
    fluxo = _abrir(sessao_id, db)
    if not fluxo.resource_id or not fluxo.final_document:
        raise HTTPException(status_code=404, detail="Recurso ainda não gerado")

    recurso = fluxo.analytics.get_resource(fluxo.resource_id) or {}
    return DocumentoResponse(
        resource_id=fluxo.resource_id,
        ticket_plate=recurso.get("ticketPlate"),
        document=fluxo.final_document,
    )
