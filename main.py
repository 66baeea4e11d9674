# main.py
"""
AUTO RECURSO - Aplicação FastAPI Principal

- /recurso/api: fluxo de recurso de multa (foto -> estratégia -> dados -> PIX -> documento)
- /admin/api: painel administrativo (estatísticas, registros, modo gratuito)
- /auth: login do painel
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded

from auth.router import router as auth_router
from admin.router import router as admin_router
from config import IS_PRODUCTION, PUBLIC_BASE_URL
from database.init_db import init_database
from middleware.request_id import RequestIDMiddleware
from services.gemini_service import close_http_client, gemini_service
from services.abacatepay_service import abacatepay_service
from services.email_service import email_service
from sistemas.recurso_multa.router import router as recurso_router
from utils.logging_config import setup_logging, get_logger
from utils.rate_limit import limiter, rate_limit_exceeded_handler

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifecycle events da aplicação.
    Executa na inicialização e no shutdown.
    """
    # Startup
    setup_logging()
    logger.info("Iniciando AUTO RECURSO", producao=IS_PRODUCTION)
    init_database()
    yield
    # Shutdown
    await close_http_client()
    logger.info("Encerrando AUTO RECURSO")


# Cria a aplicação FastAPI
app = FastAPI(
    title="AUTO RECURSO",
    description="Recurso de multa de trânsito com Inteligência Artificial",
    version="1.0.0",
    lifespan=lifespan
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

app.add_middleware(RequestIDMiddleware)

# Configuração de CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[PUBLIC_BASE_URL] if IS_PRODUCTION else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ==================================================
# ROTAS DE SERVIÇO
# ==================================================

@app.get("/health")
async def health_check():
    """Health check para monitoramento"""
    return {
        "status": "ok",
        "service": "auto-recurso",
        "has_gemini_key": gemini_service.is_configured(),
        "has_abacatepay_key": abacatepay_service.is_configured(),
        "has_brevo_key": email_service.is_configured(),
    }


# ==================================================
# ROUTERS
# ==================================================

app.include_router(auth_router)
app.include_router(admin_router, prefix="/admin/api")
app.include_router(recurso_router, prefix="/recurso/api")


# ==================================================
# EXECUÇÃO DIRETA
# ==================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
