# tests/conftest.py
"""
Configuração global do pytest para o AUTO RECURSO.

Fixtures compartilhadas:
- db: sessão SQLAlchemy num SQLite em memória (isolado por teste)
- store / analytics: repositório chave-valor e serviço de eventos sobre `db`
- ticket_info / dados_validos: dados de uma multa e de um recorrente válidos
- ia / pagamentos / emails: dublês assíncronos dos serviços externos
- client / admin_headers: TestClient com `get_db` sobrescrito e token do painel
"""

import sys
import os

# Adiciona o diretório raiz do projeto ao PYTHONPATH
# para que os imports funcionem corretamente nos testes
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

# Configura variáveis de ambiente para testes
os.environ.setdefault("ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("GEMINI_KEY", "test-key-for-tests")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")


from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.orm import sessionmaker

from database.connection import Base, criar_engine, get_db
from services.abacatepay_service import CobrancaCriada
from sistemas.recurso_multa import models  # noqa: F401  (registra a tabela no metadata)
from sistemas.recurso_multa.analytics import AnalyticsService
from sistemas.recurso_multa.schemas import DefenseStrategy, TicketInfo
from sistemas.recurso_multa.store import RecordStore


CPF_VALIDO = "111.444.777-35"
CPF_VALIDO_CONDUTOR = "529.982.247-25"
DOCUMENTO_GERADO = "# RECURSO ADMINISTRATIVO\n\n**ILUSTRÍSSIMO SENHOR PRESIDENTE DA JARI**\n\nTexto do recurso."


@pytest.fixture
def db():
    engine = criar_engine("sqlite:///:memory:")
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = Session()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def store(db):
    return RecordStore(db)


@pytest.fixture
def analytics(store):
    return AnalyticsService(store)


@pytest.fixture
def ticket_info():
    return TicketInfo(
        violationType="Avançar o sinal vermelho",
        article="208",
        location="Av. Afonso Pena, 1000",
        date="10/01/2026",
        vehiclePlate="ABC1234",
        authority="AGETRAN",
        strategies=[
            DefenseStrategy(id="1", title="Ausência de Sinalização", description="Semáforo sem manutenção."),
            DefenseStrategy(id="2", title="Aferição do Equipamento", description="Radar sem aferição do INMETRO."),
        ],
    )


@pytest.fixture
def dados_validos():
    return {
        "fullName": "Maria da Silva",
        "cpf": CPF_VALIDO,
        "rg": "1234567",
        "cnh": "01234567890",
        "address": "Rua das Flores, 100 - Campo Grande/MS",
        "email": "maria@email.com",
        "phone": "(67) 99999-8888",
    }


@pytest.fixture
def ia(ticket_info):
    ia = MagicMock()
    ia.analisar_multa = AsyncMock(return_value=ticket_info)
    ia.analisar_cnh = AsyncMock(return_value={})
    ia.gerar_recurso = AsyncMock(return_value=DOCUMENTO_GERADO)
    return ia


@pytest.fixture
def pagamentos():
    pagamentos = MagicMock()
    pagamentos.criar_cobranca = AsyncMock(
        return_value=CobrancaCriada(id="bill_123", url="https://pay.abacatepay.com/bill_123")
    )
    pagamentos.consultar_status = AsyncMock(return_value="PAID")
    pagamentos.dev_mode = True
    return pagamentos


@pytest.fixture
def emails():
    emails = MagicMock()
    emails.enviar_recurso = AsyncMock(return_value=True)
    emails.enviar_recuperacao_carrinho = AsyncMock(return_value=True)
    return emails


@pytest.fixture
def client(db):
    from fastapi.testclient import TestClient
    from main import app

    app.dependency_overrides[get_db] = lambda: db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def admin_headers():
    from auth.security import create_access_token, ADMIN_SUBJECT

    token = create_access_token({"sub": ADMIN_SUBJECT, "role": "admin"})
    return {"Authorization": f"Bearer {token}"}
