# auth/router.py
"""
Login do painel administrativo.

Uma senha compartilhada do operador troca-se por um JWT com expiração.
"""

from datetime import timedelta

from fastapi import APIRouter, HTTPException, status, Request

from auth.schemas import Token, LoginRequest
from auth.security import verify_admin_password, create_access_token, ADMIN_SUBJECT
from config import ACCESS_TOKEN_EXPIRE_MINUTES
from utils.logging_config import get_logger
from utils.rate_limit import limit_login, get_real_ip

logger = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["Autenticação"])


@router.post("/login", response_model=Token)
@limit_login
async def login(request: Request, dados: LoginRequest):
    """
    Autentica o operador e retorna um token JWT.

    - **password**: Senha do painel
    """
    if not verify_admin_password(dados.password):
        logger.warning("Login do painel recusado", ip=get_real_ip(request))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Senha incorreta",
            headers={"WWW-Authenticate": "Bearer"},
        )

    access_token = create_access_token(
        data={"sub": ADMIN_SUBJECT, "role": "admin"},
        expires_delta=timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES),
    )
    logger.info("Login do painel", ip=get_real_ip(request))

    return Token(access_token=access_token, expires_in=ACCESS_TOKEN_EXPIRE_MINUTES * 60)
