# auth/dependencies.py
"""
Dependencies de autenticação para as rotas do painel
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from auth.security import decode_token, ADMIN_SUBJECT

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


async def require_admin(token: str = Depends(oauth2_scheme)) -> dict:
    """
    Dependency que exige um token de operador válido.
    Lança HTTPException 401 se ausente, inválido ou expirado.

    Uso:
        @router.get("/rota-admin")
        def rota(admin: dict = Depends(require_admin)):
            ...
    """
    payload = decode_token(token)
    if payload is None or payload.get("sub") != ADMIN_SUBJECT:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Credenciais inválidas",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return payload
