# admin/schemas.py
"""
Schemas Pydantic do painel administrativo
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


# ============================================
# Estatísticas
# ============================================

class StatsResponse(BaseModel):
    """Agregados calculados sobre o log de eventos"""
    totalResources: int
    totalPayments: int
    totalErrors: int
    totalAbandoned: int
    resources24h: int
    payments24h: int
    resources7d: int
    totalRevenue: float
    successRate: str
    freeGenerationsUsed: int
    freeGenerationLimit: int
    isFreeGenerationEnabled: bool


# ============================================
# Registros
# ============================================

class EventoResponse(BaseModel):
    id: str
    timestamp: int
    type: str
    label: str
    data: Dict[str, Any] = Field(default_factory=dict)
    reenviavel: bool = False


class EventoListResponse(BaseModel):
    eventos: List[EventoResponse]
    total: int


class ClienteResponse(BaseModel):
    id: str
    name: str = ""
    email: str
    cpf: str = ""
    phone: str = ""
    rg: Optional[str] = None
    cnh: Optional[str] = None
    address: Optional[str] = None
    registeredAt: int
    lastActivity: int
    totalResources: int = 0
    totalPaid: float = 0


class RecursoResumoResponse(BaseModel):
    """Linha da listagem (sem o texto do documento)"""
    id: str
    customerId: str
    customerName: str = ""
    customerEmail: str
    ticketPlate: Optional[str] = None
    ticketArticle: Optional[str] = None
    ticketLocation: Optional[str] = None
    ticketDate: Optional[str] = None
    strategy: Optional[str] = None
    generatedAt: int


class RecursoDetalheResponse(RecursoResumoResponse):
    documentContent: Optional[str] = None


class CarrinhoResponse(BaseModel):
    email: str
    name: str = ""
    cpf: str = ""
    phone: str = ""
    timestamp: int
    ticketPlate: Optional[str] = None
    ticketArticle: Optional[str] = None


# ============================================
# Ações
# ============================================

class RecuperarCarrinhoRequest(BaseModel):
    email: str = Field(..., min_length=3)


class AcaoResponse(BaseModel):
    sucesso: bool = True
    mensagem: str


# ============================================
# Configurações
# ============================================

class ConfiguracoesResponse(BaseModel):
    isFreeGenerationEnabled: bool
    freeGenerationLimit: int
    freeGenerationsUsed: int


class ConfiguracoesUpdate(BaseModel):
    """Somente os campos enviados são alterados"""
    isFreeGenerationEnabled: Optional[bool] = None
    freeGenerationLimit: Optional[int] = Field(None, ge=0)
    freeGenerationsUsed: Optional[int] = Field(None, ge=0)
