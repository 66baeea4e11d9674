# sistemas/recurso_multa/constants.py
"""
Constantes do sistema de Recurso de Multa.

Centraliza etapas do fluxo, chaves do armazenamento local, tipos de evento
e textos exibidos ao usuário.
"""

from enum import Enum
from typing import Dict, FrozenSet, Tuple


# =============================================================================
# ETAPAS DO FLUXO
# =============================================================================

class AppStep(str, Enum):
    START = "START"
    UPLOADING = "UPLOADING"  # declarada, sem uso no fluxo
    ANALYZING = "ANALYZING"
    STRATEGY_SELECTION = "STRATEGY_SELECTION"
    USER_INPUT = "USER_INPUT"
    USER_DATA = "USER_DATA"
    PAYMENT = "PAYMENT"
    GENERATING = "GENERATING"
    FINAL_DOCUMENT = "FINAL_DOCUMENT"


# Ordem de progressão (usada para validar "voltar")
ORDEM_ETAPAS: Tuple[AppStep, ...] = (
    AppStep.START,
    AppStep.ANALYZING,
    AppStep.STRATEGY_SELECTION,
    AppStep.USER_INPUT,
    AppStep.USER_DATA,
    AppStep.PAYMENT,
    AppStep.GENERATING,
    AppStep.FINAL_DOCUMENT,
)

# Etapas para as quais o usuário pode voltar manualmente
ETAPAS_RETORNAVEIS: FrozenSet[AppStep] = frozenset({
    AppStep.START,
    AppStep.STRATEGY_SELECTION,
    AppStep.USER_INPUT,
    AppStep.USER_DATA,
})


# =============================================================================
# CHAVES DO ARMAZENAMENTO
# =============================================================================

# Estado transitório de uma sessão (removido após geração bem-sucedida)
CHAVE_TICKET_INFO = "ticketInfo"
CHAVE_ESTRATEGIA = "selectedStrategy"
CHAVE_RELATO = "userReason"
CHAVE_DADOS_PESSOAIS = "personalData"
CHAVE_ETAPA = "appStep"
CHAVE_BILLING_ID = "billingId"

CHAVES_TRANSITORIAS: Tuple[str, ...] = (
    CHAVE_ETAPA,
    CHAVE_TICKET_INFO,
    CHAVE_ESTRATEGIA,
    CHAVE_RELATO,
    CHAVE_DADOS_PESSOAIS,
    CHAVE_BILLING_ID,
)

# Ponteiro para o último recurso gerado pela sessão (sobrevive à limpeza)
CHAVE_ULTIMO_RECURSO = "lastResourceId"

# Tabelas de longa duração (globais)
CHAVE_EVENTOS = "analytics_events"
CHAVE_CARRINHOS = "abandoned_carts"
CHAVE_CLIENTES = "customers_registry"
CHAVE_RECURSOS = "resources_registry"
CHAVE_CONFIGURACOES = "admin_settings"

# Limpeza total do painel: tudo menos as configurações
CHAVES_LIMPEZA_TOTAL: Tuple[str, ...] = (
    CHAVE_EVENTOS,
    CHAVE_CARRINHOS,
    CHAVE_CLIENTES,
    CHAVE_RECURSOS,
)


# =============================================================================
# EVENTOS
# =============================================================================

class TipoEvento(str, Enum):
    PAYMENT_STARTED = "payment_started"
    PAYMENT_COMPLETED = "payment_completed"
    PAYMENT_FAILED = "payment_failed"
    RESOURCE_GENERATED = "resource_generated"
    GENERATION_ERROR = "generation_error"
    FORM_ABANDONED = "form_abandoned"
    EMAIL_FAILED = "email_failed"
    EMAIL_SENT = "email_sent"


ROTULOS_EVENTO: Dict[str, str] = {
    TipoEvento.PAYMENT_STARTED.value: "Pagamento Iniciado",
    TipoEvento.PAYMENT_COMPLETED.value: "Pagamento Concluído",
    TipoEvento.PAYMENT_FAILED.value: "Pagamento Falhou",
    TipoEvento.RESOURCE_GENERATED.value: "Recurso Gerado",
    TipoEvento.GENERATION_ERROR.value: "Erro na Geração",
    TipoEvento.FORM_ABANDONED.value: "Formulário Abandonado",
    TipoEvento.EMAIL_FAILED.value: "Falha no Envio de Email",
    TipoEvento.EMAIL_SENT.value: "Email Enviado",
}

# Eventos que criam/atualizam o carrinho abandonado do email
EVENTOS_ABREM_CARRINHO: FrozenSet[str] = frozenset({
    TipoEvento.FORM_ABANDONED.value,
    TipoEvento.PAYMENT_STARTED.value,
})

# Eventos que removem o carrinho abandonado do email
EVENTOS_FECHAM_CARRINHO: FrozenSet[str] = frozenset({
    TipoEvento.PAYMENT_COMPLETED.value,
    TipoEvento.RESOURCE_GENERATED.value,
})

# Eventos que permitem reenvio manual do recurso no painel
EVENTOS_REENVIAVEIS: FrozenSet[str] = frozenset({
    TipoEvento.EMAIL_FAILED.value,
    TipoEvento.GENERATION_ERROR.value,
})


# =============================================================================
# CONFIGURAÇÕES DO PAINEL (padrões)
# =============================================================================

CONFIGURACOES_PADRAO: Dict[str, object] = {
    "isFreeGenerationEnabled": False,
    "freeGenerationLimit": 10,
    "freeGenerationsUsed": 0,
}


# =============================================================================
# LIMPEZA DE DADOS EXTRAÍDOS PELA IA
# =============================================================================

# Textos que a IA às vezes devolve no lugar de "campo vazio"
PLACEHOLDERS_IA: FrozenSet[str] = frozenset({
    "não visível",
    "não informado",
    "n/a",
    "indisponível",
    "desconhecido",
    "não extraído",
})

# Campos que a foto da multa pode preencher
CAMPOS_EXTRAIDOS_MULTA: Tuple[str, ...] = ("fullName", "cpf", "address")

# Campos que a foto da CNH pode preencher
CAMPOS_EXTRAIDOS_CNH: Tuple[str, ...] = ("fullName", "cpf", "rg", "cnh", "address")


# =============================================================================
# DOCUMENTO
# =============================================================================

MESES: Tuple[str, ...] = (
    "Janeiro", "Fevereiro", "Março", "Abril", "Maio", "Junho",
    "Julho", "Agosto", "Setembro", "Outubro", "Novembro", "Dezembro",
)

CIDADE_PADRAO = "Cidade"


# =============================================================================
# MENSAGENS AO USUÁRIO
# =============================================================================

MSG_ERRO_ANALISE_MULTA = "Erro ao ler arquivo."
MSG_ERRO_ANALISE_CNH = "Erro ao ler CNH."
MSG_DADOS_INSUFICIENTES = "Dados insuficientes para gerar o recurso. Por favor, comece novamente."
MSG_CAMPOS_OBRIGATORIOS = "Por favor, preencha todos os campos obrigatórios para gerar o recurso."
MSG_ERRO_GERACAO = "Erro ao gerar recurso."
MSG_PAGAMENTO_NAO_CONFIRMADO = "O pagamento ainda não foi confirmado (Status: {status})."
MSG_FALHA_VERIFICACAO = "Não conseguimos confirmar seu pagamento automaticamente. Por favor, tente novamente."
MSG_ERRO_INICIAR_PAGAMENTO = "Erro ao iniciar pagamento"
