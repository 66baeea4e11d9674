# sistemas/recurso_multa/schemas.py
"""
Schemas Pydantic do Recurso de Multa.

TicketInfo e PersonalInfo usam chaves camelCase: é o mesmo formato gravado
no armazenamento e devolvido pela IA.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from sistemas.recurso_multa.constants import AppStep


# ============================================
# Dados da multa
# ============================================

class DefenseStrategy(BaseModel):
    """Estratégia de defesa sugerida pela IA"""
    id: str
    title: str
    description: str


class TicketInfo(BaseModel):
    """Dados extraídos da foto da multa"""
    violationType: str = ""
    article: str = ""
    location: str = ""
    date: str = ""
    vehiclePlate: str = ""
    authority: str = ""
    extractedPersonalInfo: Optional[Dict[str, Optional[str]]] = None
    strategies: List[DefenseStrategy] = Field(default_factory=list)

    def estrategia(self, strategy_id: str) -> Optional[DefenseStrategy]:
        return next((s for s in self.strategies if s.id == strategy_id), None)


# ============================================
# Dados pessoais
# ============================================

class PersonalInfo(BaseModel):
    """Qualificação do recorrente (e do condutor, quando diferente)"""
    fullName: str = ""
    cpf: str = ""
    rg: str = ""
    cnh: str = ""
    address: str = ""
    email: str = ""
    phone: str = ""
    isDifferentDriver: bool = False
    driverFullName: str = ""
    driverCpf: str = ""
    driverRg: str = ""
    driverCnh: str = ""
    profession: str = ""
    civilStatus: str = ""


class PersonalInfoUpdate(BaseModel):
    """Edição parcial do formulário: só os campos enviados são alterados"""
    fullName: Optional[str] = None
    cpf: Optional[str] = None
    rg: Optional[str] = None
    cnh: Optional[str] = None
    address: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    isDifferentDriver: Optional[bool] = None
    driverFullName: Optional[str] = None
    driverCpf: Optional[str] = None
    driverRg: Optional[str] = None
    driverCnh: Optional[str] = None
    profession: Optional[str] = None
    civilStatus: Optional[str] = None


# ============================================
# Requests do fluxo
# ============================================

class EstrategiaRequest(BaseModel):
    strategy_id: str = Field(..., min_length=1)


class RelatoRequest(BaseModel):
    reason: str = Field("", max_length=10000)


class VoltarRequest(BaseModel):
    step: AppStep


# ============================================
# Responses do fluxo
# ============================================

class ModoGratuitoResponse(BaseModel):
    disponivel: bool
    restantes: int


class EstadoFluxoResponse(BaseModel):
    """Snapshot da sessão devolvido a cada operação"""
    sessao_id: str
    step: AppStep
    error: Optional[str] = None
    ticket_info: Optional[TicketInfo] = None
    selected_strategy: Optional[str] = None
    user_reason: str = ""
    personal_data: PersonalInfo
    billing_id: Optional[str] = None
    payment_url: Optional[str] = None
    final_document: Optional[str] = None
    resource_id: Optional[str] = None
    campos_preenchidos: List[str] = Field(default_factory=list)
    modo_gratuito: ModoGratuitoResponse


class ValidacaoResponse(BaseModel):
    valido: bool
    erros: Dict[str, str] = Field(default_factory=dict)


class DocumentoResponse(BaseModel):
    resource_id: str
    ticket_plate: Optional[str] = None
    document: str


class ConfiguracaoPublicaResponse(BaseModel):
    """O que a tela inicial precisa saber antes de abrir uma sessão"""
    preco: float
    modo_gratuito: ModoGratuitoResponse
    pagamento_dev_mode: bool
