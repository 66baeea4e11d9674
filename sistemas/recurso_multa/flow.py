# sistemas/recurso_multa/flow.py
"""
Máquina de etapas do Recurso de Multa.

START -> ANALYZING -> STRATEGY_SELECTION -> USER_INPUT -> USER_DATA
      -> PAYMENT (ou direto, no modo gratuito) -> GENERATING -> FINAL_DOCUMENT

Cada sessão tem seu estado em memória espelhado no armazenamento (chaves
com escopo da sessão). A cada requisição o FluxoRecurso é recriado e
reidratado, o que também cobre o retorno do checkout do Abacate Pay.

Falhas dos serviços externos não viram exceção: a mensagem vai para
`error` e a etapa volta para um ponto em que o usuário pode tentar de novo.
Só operações fora de ordem (TransicaoInvalidaError) e entradas inválidas
(DadosInvalidosError) sobem como exceção.
"""

import base64
from datetime import date
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Tuple

from pydantic import ValidationError

from config import PUBLIC_BASE_URL, UNIT_PRICE
from services.abacatepay_service import PagamentoError, abacatepay_service, pagamento_confirmado
from services.email_service import EmailError, email_service
from services.gemini_service import GeminiError
from sistemas.recurso_multa.analytics import AnalyticsService
from sistemas.recurso_multa.constants import (
    AppStep,
    CAMPOS_EXTRAIDOS_CNH,
    CAMPOS_EXTRAIDOS_MULTA,
    CHAVE_BILLING_ID,
    CHAVE_DADOS_PESSOAIS,
    CHAVE_ESTRATEGIA,
    CHAVE_ETAPA,
    CHAVE_RELATO,
    CHAVE_TICKET_INFO,
    CHAVE_ULTIMO_RECURSO,
    CHAVES_TRANSITORIAS,
    CIDADE_PADRAO,
    ETAPAS_RETORNAVEIS,
    MESES,
    MSG_CAMPOS_OBRIGATORIOS,
    MSG_DADOS_INSUFICIENTES,
    MSG_ERRO_ANALISE_CNH,
    MSG_ERRO_ANALISE_MULTA,
    MSG_ERRO_GERACAO,
    MSG_ERRO_INICIAR_PAGAMENTO,
    MSG_FALHA_VERIFICACAO,
    MSG_PAGAMENTO_NAO_CONFIRMADO,
    ORDEM_ETAPAS,
    PLACEHOLDERS_IA,
    TipoEvento,
)
from sistemas.recurso_multa.exceptions import (
    DadosInvalidosError,
    SessaoNaoEncontradaError,
    TransicaoInvalidaError,
)
from sistemas.recurso_multa.ia_service import recurso_ia_service
from sistemas.recurso_multa.schemas import PersonalInfo, TicketInfo
from sistemas.recurso_multa.store import RecordStore
from utils.logging_config import get_logger
from utils.timezone import now_local
from utils.validators import validate_cpf, validate_email, validate_telefone

logger = get_logger(__name__)

# Campos exigidos para redigir o documento (checagem após reidratação)
CAMPOS_DOCUMENTO: Tuple[str, ...] = ("fullName", "cpf", "rg", "cnh", "address")

CAMPOS_OBRIGATORIOS: Dict[str, str] = {
    "fullName": "Nome completo",
    "cpf": "CPF",
    "rg": "RG",
    "cnh": "CNH",
    "address": "Endereço",
    "email": "Email",
    "phone": "Telefone",
}

CAMPOS_CONDUTOR: Dict[str, str] = {
    "driverFullName": "Nome do condutor",
    "driverCpf": "CPF do condutor",
    "driverRg": "RG do condutor",
    "driverCnh": "CNH do condutor",
}


# =============================================================================
# HELPERS
# =============================================================================

def limpar_valor_extraido(texto: Optional[str], placeholders: Iterable[str] = PLACEHOLDERS_IA) -> str:
    """
    Descarta textos que a IA usa no lugar de "campo vazio".

    >>> limpar_valor_extraido("Não informado")
    ''
    >>> limpar_valor_extraido(" João da Silva ")
    'João da Silva'
    """
    if not texto:
        return ""
    minusculo = texto.lower()
    if any(p in minusculo for p in placeholders):
        return ""
    return texto.strip()


def mesclar_dados_extraidos(
    atual: PersonalInfo,
    extraidos: Optional[Dict[str, Any]],
    campos: Iterable[str],
    placeholders: Iterable[str] = PLACEHOLDERS_IA,
) -> Tuple[PersonalInfo, List[str]]:
    """
    Preenche com os dados extraídos apenas os campos ainda vazios.

    Returns:
        (dados mesclados, campos que foram preenchidos)
    """
    if not extraidos:
        return atual, []

    alteracoes = {}
    for campo in campos:
        valor = limpar_valor_extraido(extraidos.get(campo), placeholders)
        if valor and not getattr(atual, campo):
            alteracoes[campo] = valor

    if not alteracoes:
        return atual, []
    return atual.model_copy(update=alteracoes), sorted(alteracoes)


def extrair_cidade(endereco: Optional[str], padrao: str = CIDADE_PADRAO) -> str:
    """
    Palpite da cidade para a linha de data do documento.

    Último trecho após o último hífen ("Rua X, 10 - Campo Grande/MS");
    sem hífen, último trecho após a última vírgula.
    """
    if not endereco:
        return padrao

    for separador in ("-", ","):
        partes = endereco.split(separador)
        if len(partes) > 1:
            cidade = partes[-1].strip()
            return cidade or padrao

    return padrao


def data_por_extenso(dia: date) -> str:
    """date(2026, 3, 5) -> '5 de Março de 2026'"""
    return f"{dia.day} de {MESES[dia.month - 1]} de {dia.year}"


def validar_dados_pessoais(dados: PersonalInfo) -> Dict[str, str]:
    """
    Valida o formulário completo.

    Returns:
        {campo: mensagem} para cada problema; vazio se o formulário é válido
    """
    erros: Dict[str, str] = {}

    for campo, rotulo in CAMPOS_OBRIGATORIOS.items():
        if not getattr(dados, campo).strip():
            erros[campo] = f"{rotulo} é obrigatório"

    if "cpf" not in erros and not validate_cpf(dados.cpf):
        erros["cpf"] = "CPF inválido"

    if "email" not in erros and not validate_email(dados.email):
        erros["email"] = "Email inválido"

    if "phone" not in erros and not validate_telefone(dados.phone):
        erros["phone"] = "Telefone inválido"

    if dados.isDifferentDriver:
        for campo, rotulo in CAMPOS_CONDUTOR.items():
            if not getattr(dados, campo).strip():
                erros[campo] = f"{rotulo} é obrigatório"
        if "driverCpf" not in erros and not validate_cpf(dados.driverCpf):
            erros["driverCpf"] = "CPF do condutor inválido"

    return erros


def _indice(step: AppStep) -> int:
    return ORDEM_ETAPAS.index(step)


# =============================================================================
# FLUXO
# =============================================================================

class FluxoRecurso:
    """
    Estado de uma sessão do fluxo.

    Uso:
        fluxo = FluxoRecurso.abrir(RecordStore(db), sessao_id)
        await fluxo.analisar_multa(conteudo, "image/jpeg")
        fluxo.selecionar_estrategia("1")
        return fluxo.estado()
    """

    def __init__(
        self,
        store: RecordStore,
        sessao_id: str,
        ia=None,
        pagamentos=None,
        emails=None,
        analytics: Optional[AnalyticsService] = None,
        placeholders: FrozenSet[str] = PLACEHOLDERS_IA,
    ):
        self.sessao_id = sessao_id
        self.sessao = store.scoped(sessao_id)
        self.analytics = analytics or AnalyticsService(store)
        self.ia = ia or recurso_ia_service
        self.pagamentos = pagamentos or abacatepay_service
        self.emails = emails or email_service
        self.placeholders = placeholders

        self.step: AppStep = AppStep.START
        self.error: Optional[str] = None
        self.ticket_info: Optional[TicketInfo] = None
        self.selected_strategy: Optional[str] = None
        self.user_reason: str = ""
        self.personal_data = PersonalInfo()
        self.billing_id: Optional[str] = None
        self.payment_url: Optional[str] = None
        self.final_document: Optional[str] = None
        self.resource_id: Optional[str] = None
        self.campos_preenchidos: List[str] = []

    # =========================================================================
    # CRIAÇÃO / REIDRATAÇÃO
    # =========================================================================

    @classmethod
    def criar(cls, store: RecordStore, sessao_id: str, **kwargs) -> "FluxoRecurso":
        fluxo = cls(store, sessao_id, **kwargs)
        fluxo._salvar_etapa()
        logger.info("Sessão do fluxo criada", sessao_id=sessao_id)
        return fluxo

    @classmethod
    def abrir(cls, store: RecordStore, sessao_id: str, **kwargs) -> "FluxoRecurso":
        """Reidrata uma sessão existente. Raises SessaoNaoEncontradaError."""
        fluxo = cls(store, sessao_id, **kwargs)
        if not fluxo.sessao.exists():
            raise SessaoNaoEncontradaError(sessao_id)
        fluxo.carregar()
        return fluxo

    def carregar(self) -> None:
        """Lê do armazenamento tudo que a sessão gravou"""
        self.ticket_info = self._ler_ticket()
        self.selected_strategy = self.sessao.get_raw(CHAVE_ESTRATEGIA) or None
        self.user_reason = self.sessao.get_raw(CHAVE_RELATO) or ""
        self.personal_data = self._ler_dados_pessoais()
        self.billing_id = self.sessao.get_raw(CHAVE_BILLING_ID) or None

        etapa = self.sessao.get_raw(CHAVE_ETAPA)
        try:
            self.step = AppStep(etapa) if etapa else AppStep.START
        except ValueError:
            logger.warning("Etapa desconhecida no armazenamento", sessao_id=self.sessao_id, etapa=etapa)
            self.step = AppStep.START

        # Geração concluída: as chaves transitórias já foram removidas
        ultimo_recurso = self.sessao.get_raw(CHAVE_ULTIMO_RECURSO)
        if etapa is None and ultimo_recurso:
            recurso = self.analytics.get_resource(ultimo_recurso)
            if recurso is not None:
                self.step = AppStep.FINAL_DOCUMENT
                self.resource_id = recurso["id"]
                self.final_document = recurso.get("documentContent")

    def _ler_ticket(self) -> Optional[TicketInfo]:
        salvo = self.sessao.read_json(CHAVE_TICKET_INFO, None)
        if not salvo:
            return None
        try:
            return TicketInfo.model_validate(salvo)
        except ValidationError:
            logger.warning("ticketInfo inválido no armazenamento", sessao_id=self.sessao_id)
            return None

    def _ler_dados_pessoais(self) -> PersonalInfo:
        salvo = self.sessao.read_json(CHAVE_DADOS_PESSOAIS, None)
        if not isinstance(salvo, dict):
            return PersonalInfo()
        try:
            return PersonalInfo.model_validate(salvo)
        except ValidationError:
            logger.warning("personalData inválido no armazenamento", sessao_id=self.sessao_id)
            return PersonalInfo()

    # =========================================================================
    # ESPELHAMENTO NO ARMAZENAMENTO
    # =========================================================================

    def _ir_para(self, step: AppStep) -> None:
        self.step = step
        self._salvar_etapa()

    def _salvar_etapa(self) -> None:
        self.sessao.set_raw(CHAVE_ETAPA, self.step.value)

    def _salvar_ticket(self) -> None:
        if self.ticket_info is None:
            self.sessao.remove(CHAVE_TICKET_INFO)
        else:
            self.sessao.write_json(CHAVE_TICKET_INFO, self.ticket_info.model_dump())

    def _salvar_estrategia(self) -> None:
        if self.selected_strategy:
            self.sessao.set_raw(CHAVE_ESTRATEGIA, self.selected_strategy)
        else:
            self.sessao.remove(CHAVE_ESTRATEGIA)

    def _salvar_relato(self) -> None:
        self.sessao.set_raw(CHAVE_RELATO, self.user_reason)

    def _salvar_dados_pessoais(self) -> None:
        self.sessao.write_json(CHAVE_DADOS_PESSOAIS, self.personal_data.model_dump())

    def _salvar_billing_id(self) -> None:
        if self.billing_id:
            self.sessao.set_raw(CHAVE_BILLING_ID, self.billing_id)
        else:
            self.sessao.remove(CHAVE_BILLING_ID)

    def _limpar_transitorios(self) -> None:
        for chave in CHAVES_TRANSITORIAS:
            self.sessao.remove(chave)

    # =========================================================================
    # SNAPSHOT
    # =========================================================================

    def modo_gratuito_disponivel(self) -> bool:
        return self.analytics.free_mode_available()

    def gratuitos_restantes(self) -> int:
        settings = self.analytics.get_admin_settings()
        if not settings["isFreeGenerationEnabled"]:
            return 0
        return max(0, int(settings["freeGenerationLimit"]) - int(settings["freeGenerationsUsed"]))

    def estado(self) -> Dict[str, Any]:
        return {
            "sessao_id": self.sessao_id,
            "step": self.step,
            "error": self.error,
            "ticket_info": self.ticket_info,
            "selected_strategy": self.selected_strategy,
            "user_reason": self.user_reason,
            "personal_data": self.personal_data,
            "billing_id": self.billing_id,
            "payment_url": self.payment_url,
            "final_document": self.final_document,
            "resource_id": self.resource_id,
            "campos_preenchidos": self.campos_preenchidos,
            "modo_gratuito": {
                "disponivel": self.modo_gratuito_disponivel(),
                "restantes": self.gratuitos_restantes(),
            },
        }

    def _exigir_etapa(self, operacao: str, *etapas: AppStep) -> None:
        if self.step not in etapas:
            raise TransicaoInvalidaError(operacao, self.step.value)

    # =========================================================================
    # START -> ANALYZING -> STRATEGY_SELECTION
    # =========================================================================

    async def analisar_multa(self, conteudo: bytes, mime_type: str = "image/jpeg") -> None:
        """Lê a foto da multa, sugere estratégias e pré-preenche dados pessoais"""
        self._exigir_etapa("analisar_multa", AppStep.START)
        self.error = None

        if not conteudo:
            self.error = MSG_ERRO_ANALISE_MULTA
            return

        self._ir_para(AppStep.ANALYZING)
        imagem_base64 = base64.b64encode(conteudo).decode("ascii")

        try:
            ticket = await self.ia.analisar_multa(imagem_base64, mime_type)
        except GeminiError as e:
            logger.error("Falha ao analisar multa", sessao_id=self.sessao_id, erro=str(e))
            self.error = MSG_ERRO_ANALISE_MULTA
            self._ir_para(AppStep.START)
            return

        self.ticket_info = ticket
        self.selected_strategy = None
        self._salvar_ticket()
        self._salvar_estrategia()

        self.personal_data, self.campos_preenchidos = mesclar_dados_extraidos(
            self.personal_data,
            ticket.extractedPersonalInfo,
            CAMPOS_EXTRAIDOS_MULTA,
            self.placeholders,
        )
        self._salvar_dados_pessoais()

        self._ir_para(AppStep.STRATEGY_SELECTION)

    # =========================================================================
    # STRATEGY_SELECTION -> USER_INPUT -> USER_DATA
    # =========================================================================

    def selecionar_estrategia(self, strategy_id: str) -> None:
        self._exigir_etapa("selecionar_estrategia", AppStep.STRATEGY_SELECTION)

        if not strategy_id or self.ticket_info is None or self.ticket_info.estrategia(strategy_id) is None:
            raise DadosInvalidosError(
                "Estratégia inválida",
                {"strategy_id": "Escolha uma das estratégias sugeridas"},
            )

        self.error = None
        self.selected_strategy = strategy_id
        self._salvar_estrategia()
        self._ir_para(AppStep.USER_INPUT)

    def registrar_relato(self, texto: str) -> None:
        self._exigir_etapa("registrar_relato", AppStep.USER_INPUT)
        self.error = None
        self.user_reason = texto or ""
        self._salvar_relato()
        self._ir_para(AppStep.USER_DATA)

    # =========================================================================
    # USER_DATA
    # =========================================================================

    def atualizar_dados_pessoais(self, parcial: Dict[str, Any]) -> None:
        self._exigir_etapa("atualizar_dados_pessoais", AppStep.USER_INPUT, AppStep.USER_DATA)
        alteracoes = {k: v for k, v in parcial.items() if v is not None}
        if alteracoes:
            self.personal_data = self.personal_data.model_copy(update=alteracoes)
            self._salvar_dados_pessoais()

    async def analisar_cnh(self, conteudo: bytes, mime_type: str = "image/jpeg") -> None:
        """Auto-preenchimento pela foto da CNH (só campos vazios)"""
        self._exigir_etapa("analisar_cnh", AppStep.USER_DATA)
        self.error = None

        if not conteudo:
            self.error = MSG_ERRO_ANALISE_CNH
            return

        imagem_base64 = base64.b64encode(conteudo).decode("ascii")
        try:
            extraidos = await self.ia.analisar_cnh(imagem_base64, mime_type)
        except GeminiError as e:
            logger.error("Falha ao analisar CNH", sessao_id=self.sessao_id, erro=str(e))
            self.error = MSG_ERRO_ANALISE_CNH
            return

        self.personal_data, self.campos_preenchidos = mesclar_dados_extraidos(
            self.personal_data,
            extraidos,
            CAMPOS_EXTRAIDOS_CNH,
            self.placeholders,
        )
        self._salvar_dados_pessoais()

    def validar_dados_pessoais(self) -> Dict[str, str]:
        return validar_dados_pessoais(self.personal_data)

    def _dados_evento(self, **extras) -> Dict[str, Any]:
        dados = self.personal_data
        evento = {
            "customerName": dados.fullName,
            "customerEmail": dados.email,
            "customerCpf": dados.cpf,
            "customerPhone": dados.phone,
        }
        if self.ticket_info is not None:
            evento["ticketPlate"] = self.ticket_info.vehiclePlate
            evento["ticketArticle"] = self.ticket_info.article
        evento.update(extras)
        return evento

    def registrar_abandono(self) -> bool:
        """Registra form_abandoned com o contato já digitado (sem email, nada a fazer)"""
        if not self.personal_data.email:
            return False
        return self.analytics.log_event(TipoEvento.FORM_ABANDONED, self._dados_evento()) is not None

    # =========================================================================
    # USER_DATA -> PAYMENT | GENERATING
    # =========================================================================

    def _url_retorno(self) -> str:
        return f"{PUBLIC_BASE_URL}/recurso/api/retorno?success=true&sessao={self.sessao_id}"

    async def iniciar_pagamento(self) -> None:
        """
        Modo gratuito disponível: gera direto, com payment_completed de valor zero.
        Senão cria a cobrança PIX e deixa `payment_url` para o redirecionamento.
        """
        self._exigir_etapa("iniciar_pagamento", AppStep.USER_DATA)

        erros = self.validar_dados_pessoais()
        if erros:
            raise DadosInvalidosError(MSG_CAMPOS_OBRIGATORIOS, erros)

        self.error = None
        self._salvar_dados_pessoais()

        ticket, estrategia, _, _ = self._recuperar_estado()
        if ticket is None or not estrategia:
            logger.warning("Pagamento recusado sem multa ou estratégia", sessao_id=self.sessao_id)
            self.error = MSG_DADOS_INSUFICIENTES
            self._ir_para(AppStep.START)
            return

        if self.billing_id and await self._cobranca_anterior_paga():
            logger.info("Cobrança anterior já paga", sessao_id=self.sessao_id, billing_id=self.billing_id)
            self._ir_para(AppStep.PAYMENT)
            await self._concluir_pagamento(self.billing_id)
            return

        if self.modo_gratuito_disponivel():
            self.analytics.log_event(TipoEvento.PAYMENT_COMPLETED, {
                "customerName": self.personal_data.fullName,
                "customerEmail": self.personal_data.email,
                "amount": 0,
                "isFree": True,
            })
            self.analytics.increment_free_usage()
            logger.info("Geração gratuita", sessao_id=self.sessao_id)
            await self.gerar_documento()
            return

        self._ir_para(AppStep.PAYMENT)
        self.analytics.log_event(TipoEvento.PAYMENT_STARTED, self._dados_evento(amount=UNIT_PRICE))

        dados = self.personal_data
        try:
            cobranca = await self.pagamentos.criar_cobranca(
                name=dados.fullName,
                email=dados.email,
                tax_id=dados.cpf,
                phone=dados.phone,
                return_url=f"{PUBLIC_BASE_URL}/",
                completion_url=self._url_retorno(),
            )
        except PagamentoError as e:
            mensagem = str(e) or MSG_ERRO_INICIAR_PAGAMENTO
            self.analytics.log_event(TipoEvento.PAYMENT_FAILED, {
                "customerEmail": dados.email,
                "errorMessage": mensagem,
            })
            self.error = mensagem
            self._ir_para(AppStep.USER_DATA)
            return

        self.billing_id = cobranca.id
        self.payment_url = cobranca.url
        self._salvar_billing_id()
        logger.info("Redirecionando para checkout", sessao_id=self.sessao_id, billing_id=cobranca.id)

    # =========================================================================
    # PAYMENT -> GENERATING
    # =========================================================================

    async def processar_retorno_pagamento(self, success: bool) -> None:
        """Retorno do checkout: só age com success=true numa sessão aguardando pagamento"""
        if not success:
            return
        if self.step != AppStep.PAYMENT or not self.billing_id:
            logger.info("Retorno de pagamento ignorado", sessao_id=self.sessao_id, step=self.step.value)
            return
        await self._confirmar_pagamento()

    async def verificar_pagamento(self) -> None:
        """Nova consulta manual ("já paguei") para uma cobrança já criada"""
        self._exigir_etapa("verificar_pagamento", AppStep.PAYMENT, AppStep.USER_DATA)
        if not self.billing_id:
            raise TransicaoInvalidaError("verificar_pagamento", self.step.value)
        await self._confirmar_pagamento()

    async def _confirmar_pagamento(self) -> None:
        billing_id = self.billing_id
        self.error = None

        try:
            status = await self.pagamentos.consultar_status(billing_id)
        except PagamentoError as e:
            logger.error("Falha ao verificar pagamento", sessao_id=self.sessao_id, erro=str(e))
            self.analytics.log_event(TipoEvento.PAYMENT_FAILED, {
                "billingId": billing_id,
                "customerEmail": self.personal_data.email,
                "errorMessage": str(e),
            })
            self.error = MSG_FALHA_VERIFICACAO
            self._ir_para(AppStep.USER_DATA)
            return

        if not pagamento_confirmado(status):
            self.analytics.log_event(TipoEvento.PAYMENT_FAILED, {
                "billingId": billing_id,
                "customerEmail": self.personal_data.email,
                "errorMessage": f"Status: {status}",
            })
            self.error = MSG_PAGAMENTO_NAO_CONFIRMADO.format(status=status)
            self._ir_para(AppStep.USER_DATA)
            return

        await self._concluir_pagamento(billing_id)

    async def _concluir_pagamento(self, billing_id: str) -> None:
        if not self._pagamento_ja_registrado(billing_id):
            self._registrar_pagamento(billing_id)

        await self.gerar_documento()

    async def _cobranca_anterior_paga(self) -> bool:
        """Uma cobrança anterior da sessão pode ter sido paga depois do voltar"""
        try:
            status = await self.pagamentos.consultar_status(self.billing_id)
        except PagamentoError as e:
            logger.warning(
                "Falha ao consultar cobrança anterior",
                sessao_id=self.sessao_id,
                billing_id=self.billing_id,
                erro=str(e),
            )
            return False
        return pagamento_confirmado(status)

    def _pagamento_ja_registrado(self, billing_id: str) -> bool:
        return any(
            evento.get("data", {}).get("billingId") == billing_id
            for evento in self.analytics.get_events_by_type(TipoEvento.PAYMENT_COMPLETED)
        )

    def _registrar_pagamento(self, billing_id: str) -> None:
        dados = self.personal_data
        self.analytics.log_event(TipoEvento.PAYMENT_COMPLETED, {
            "billingId": billing_id,
            "customerName": dados.fullName,
            "customerEmail": dados.email,
            "amount": UNIT_PRICE,
        })
        if dados.email:
            self.analytics.register_customer(
                name=dados.fullName,
                email=dados.email,
                cpf=dados.cpf,
                phone=dados.phone,
                rg=dados.rg,
                cnh=dados.cnh,
                address=dados.address,
            )
            self.analytics.update_customer_stats(dados.email, resource_generated=False, amount_paid=UNIT_PRICE)

    # =========================================================================
    # GENERATING -> FINAL_DOCUMENT
    # =========================================================================

    def _recuperar_estado(self) -> Tuple[Optional[TicketInfo], Optional[str], str, PersonalInfo]:
        """Memória primeiro; o que faltar vem do armazenamento"""
        ticket = self.ticket_info or self._ler_ticket()
        estrategia = self.selected_strategy or self.sessao.get_raw(CHAVE_ESTRATEGIA) or None
        relato = self.user_reason or self.sessao.get_raw(CHAVE_RELATO) or ""

        salvos = self._ler_dados_pessoais()
        faltantes = {
            campo: valor
            for campo, valor in salvos.model_dump().items()
            if valor and not getattr(self.personal_data, campo)
        }
        dados = self.personal_data.model_copy(update=faltantes)
        return ticket, estrategia, relato, dados

    async def gerar_documento(self) -> None:
        ticket, estrategia, relato, dados = self._recuperar_estado()
        self.ticket_info, self.selected_strategy, self.user_reason, self.personal_data = (
            ticket, estrategia, relato, dados,
        )

        if ticket is None or not estrategia:
            self.error = MSG_DADOS_INSUFICIENTES
            self._ir_para(AppStep.START)
            return

        if any(not getattr(dados, campo) for campo in CAMPOS_DOCUMENTO):
            self.error = MSG_CAMPOS_OBRIGATORIOS
            self._ir_para(AppStep.USER_DATA)
            return

        self._ir_para(AppStep.GENERATING)

        try:
            documento = await self.ia.gerar_recurso(
                ticket,
                estrategia,
                relato,
                dados,
                city=extrair_cidade(dados.address),
                date=data_por_extenso(now_local().date()),
            )
        except GeminiError as e:
            logger.error("Falha ao gerar recurso", sessao_id=self.sessao_id, erro=str(e))
            self.analytics.log_event(TipoEvento.GENERATION_ERROR, {
                "customerName": dados.fullName,
                "customerEmail": dados.email,
                "errorMessage": str(e),
            })
            self.error = MSG_ERRO_GERACAO
            self._ir_para(AppStep.USER_DATA)
            return

        self.analytics.log_event(TipoEvento.RESOURCE_GENERATED, {
            "customerName": dados.fullName,
            "customerEmail": dados.email,
            "customerCpf": dados.cpf,
            "ticketPlate": ticket.vehiclePlate,
            "ticketArticle": ticket.article,
        })

        escolhida = ticket.estrategia(estrategia)
        recurso = self.analytics.register_resource(
            customer_name=dados.fullName,
            customer_email=dados.email,
            customer_cpf=dados.cpf,
            customer_phone=dados.phone,
            customer_rg=dados.rg,
            customer_cnh=dados.cnh,
            customer_address=dados.address,
            ticket_plate=ticket.vehiclePlate,
            ticket_article=ticket.article,
            ticket_location=ticket.location,
            ticket_date=ticket.date,
            strategy=escolhida.title if escolhida else None,
            document_content=documento,
        )

        await self._enviar_documento(documento)

        self.final_document = documento
        self.resource_id = recurso["id"]
        self.billing_id = None
        self.payment_url = None
        self.step = AppStep.FINAL_DOCUMENT
        self._limpar_transitorios()
        self.sessao.set_raw(CHAVE_ULTIMO_RECURSO, recurso["id"])
        logger.info("Recurso concluído", sessao_id=self.sessao_id, recurso_id=recurso["id"])

    async def _enviar_documento(self, documento: str) -> None:
        """Falha de email vira evento; o documento continua disponível"""
        dados = self.personal_data
        placa = self.ticket_info.vehiclePlate if self.ticket_info else ""
        try:
            await self.emails.enviar_recurso(
                email=dados.email,
                name=dados.fullName,
                document=documento,
                plate=placa,
            )
        except EmailError as e:
            logger.warning("Recurso gerado sem email", sessao_id=self.sessao_id, erro=str(e))
            self.analytics.log_event(TipoEvento.EMAIL_FAILED, {
                "customerName": dados.fullName,
                "customerEmail": dados.email,
                "ticketPlate": placa,
                "errorMessage": str(e) or "Erro desconhecido ao enviar email",
            })

    # =========================================================================
    # NAVEGAÇÃO
    # =========================================================================

    def voltar(self, destino: AppStep) -> None:
        """Volta para uma etapa anterior; os dados já digitados ficam salvos"""
        operacao = f"voltar para {destino.value}"

        # Documento pronto: os dados transitórios já foram descartados
        if self.step == AppStep.FINAL_DOCUMENT:
            if destino != AppStep.START:
                raise TransicaoInvalidaError(operacao, self.step.value)
            self.reiniciar()
            return

        if destino not in ETAPAS_RETORNAVEIS or _indice(destino) >= _indice(self.step):
            raise TransicaoInvalidaError(operacao, self.step.value)

        if destino != AppStep.START and self.ticket_info is None:
            raise TransicaoInvalidaError(operacao, self.step.value)

        if destino in (AppStep.USER_INPUT, AppStep.USER_DATA) and not self.selected_strategy:
            raise TransicaoInvalidaError(operacao, self.step.value)

        self.error = None
        self.payment_url = None
        self._ir_para(destino)

    def reiniciar(self) -> None:
        """Novo recurso: descarta o estado transitório da sessão"""
        self._limpar_transitorios()
        self.sessao.remove(CHAVE_ULTIMO_RECURSO)

        self.error = None
        self.ticket_info = None
        self.selected_strategy = None
        self.user_reason = ""
        self.personal_data = PersonalInfo()
        self.billing_id = None
        self.payment_url = None
        self.final_document = None
        self.resource_id = None
        self.campos_preenchidos = []
        self._ir_para(AppStep.START)
