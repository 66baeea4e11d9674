# sistemas/recurso_multa/exceptions.py
"""
Exceções do sistema de Recurso de Multa.

Falhas dos serviços externos (Gemini, Abacate Pay, Brevo) têm exceções
próprias em services/. Aqui ficam os erros do fluxo.
"""

from typing import Optional


class RecursoMultaError(Exception):
    """Exceção base para erros do Recurso de Multa."""

    def __init__(self, message: str, code: str = None, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.code = code or "RECURSO_MULTA_ERROR"
        self.details = details or {}


class TransicaoInvalidaError(RecursoMultaError):
    """Operação não permitida na etapa atual do fluxo."""

    def __init__(self, operacao: str, etapa_atual: str):
        super().__init__(
            f"Operação '{operacao}' não permitida na etapa {etapa_atual}",
            "TRANSICAO_INVALIDA",
            {"operacao": operacao, "etapa": etapa_atual},
        )


class SessaoNaoEncontradaError(RecursoMultaError):
    """Sessão de fluxo inexistente."""

    def __init__(self, sessao_id: str):
        super().__init__(
            f"Sessão {sessao_id} não encontrada",
            "SESSAO_NAO_ENCONTRADA",
            {"sessao_id": sessao_id},
        )


class DadosInvalidosError(RecursoMultaError):
    """Entrada do usuário inválida (arquivo, estratégia, dados pessoais)."""

    def __init__(self, message: str, erros: Optional[dict] = None):
        super().__init__(message, "DADOS_INVALIDOS", {"erros": erros or {}})
        self.erros = erros or {}
