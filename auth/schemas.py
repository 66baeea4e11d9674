# auth/schemas.py
"""
Schemas Pydantic para autenticação do painel
"""

from pydantic import BaseModel, Field


class Token(BaseModel):
    """Token JWT retornado no login"""
    access_token: str
    token_type: str = "bearer"
    expires_in: int


class LoginRequest(BaseModel):
    """Request de login (senha única do operador)"""
    password: str = Field(..., min_length=1)
