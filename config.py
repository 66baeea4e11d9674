# config.py
# -*- coding: utf-8 -*-
"""
Configurações centralizadas do AUTO RECURSO
"""

import os
import warnings
from pathlib import Path
from dotenv import load_dotenv

# Carrega variáveis de ambiente (apenas se existir .env)
load_dotenv()

# ==================================================
# AMBIENTE
# ==================================================
ENV = os.getenv("ENV", "development")
IS_PRODUCTION = ENV == "production"

# ==================================================
# CONFIGURAÇÕES DO BANCO DE DADOS
# ==================================================
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./autorecurso.db")

# Railway usa postgres:// mas SQLAlchemy precisa de postgresql://
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql://", 1)

# ==================================================
# AUTENTICAÇÃO DO PAINEL ADMINISTRATIVO
# ==================================================
# ATENÇÃO: Em produção, SEMPRE defina SECRET_KEY via variável de ambiente
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    warnings.warn("SECRET_KEY não definida! Usando chave temporária. DEFINA EM PRODUÇÃO!", RuntimeWarning)
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"

ALGORITHM = os.getenv("ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "480"))  # 8 horas

# Senha compartilhada do operador
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD")
if not ADMIN_PASSWORD:
    warnings.warn("ADMIN_PASSWORD não definida! Usando senha padrão insegura.", RuntimeWarning)
    ADMIN_PASSWORD = "admin123"

# ==================================================
# CONFIGURAÇÕES DO GEMINI (IA)
# ==================================================
GEMINI_KEY = os.getenv("GEMINI_KEY", "")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-3-flash-preview")

# Retry apenas para rate limit (429 / RESOURCE_EXHAUSTED)
GEMINI_RETRY_MAX_ATTEMPTS = int(os.getenv("GEMINI_RETRY_MAX_ATTEMPTS", "4"))
GEMINI_RETRY_BASE_DELAY = float(os.getenv("GEMINI_RETRY_BASE_DELAY", "12.0"))
GEMINI_RETRY_MULTIPLIER = float(os.getenv("GEMINI_RETRY_MULTIPLIER", "1.5"))

# ==================================================
# CONFIGURAÇÕES DO ABACATE PAY (PIX)
# ==================================================
ABACATE_PAY_API_KEY = os.getenv("ABACATE_PAY_API_KEY", "")
ABACATE_PAY_BASE_URL = os.getenv("ABACATE_PAY_BASE_URL", "https://api.abacatepay.com/v1")

# Preço unitário do recurso (R$)
UNIT_PRICE = float(os.getenv("UNIT_PRICE", "24.90"))
UNIT_PRICE_CENTS = int(round(UNIT_PRICE * 100))

# ==================================================
# CONFIGURAÇÕES DO BREVO (EMAIL TRANSACIONAL)
# ==================================================
BREVO_API_KEY = os.getenv("BREVO_API_KEY", "")
BREVO_API_URL = os.getenv("BREVO_API_URL", "https://api.brevo.com/v3/smtp/email")
EMAIL_SENDER_NAME = os.getenv("EMAIL_SENDER_NAME", "AUTO RECURSO")
EMAIL_SENDER_ADDRESS = os.getenv("EMAIL_SENDER_ADDRESS", "contato@autorecurso.online")

# ==================================================
# URLS PÚBLICAS
# ==================================================
# Origem usada nos links de retorno do pagamento e nos emails
PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "https://autorecurso.online").rstrip("/")

# ==================================================
# ARQUIVOS
# ==================================================
BASE_DIR = Path(__file__).resolve().parent
ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/png", "image/webp", "image/heic", "image/heif"}
MAX_UPLOAD_SIZE = 15 * 1024 * 1024  # 15MB
