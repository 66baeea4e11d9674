# middleware/request_id.py
"""
Middleware que atribui um Request ID a cada requisição.

- Reaproveita o header X-Request-ID quando o cliente envia um
- Guarda o ID em request.state e num ContextVar (usado pelo logging)
- Devolve o ID no header X-Request-ID da resposta
"""

import uuid
import logging
from contextvars import ContextVar
from typing import Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

REQUEST_ID_HEADER = "X-Request-ID"
MAX_REQUEST_ID_LENGTH = 64

_request_id_ctx: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

logger = logging.getLogger(__name__)


def get_request_id() -> Optional[str]:
    """Retorna o Request ID da requisição atual (None fora de uma requisição)."""
    return _request_id_ctx.get()


def generate_request_id() -> str:
    return str(uuid.uuid4())


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Uso:
        app.add_middleware(RequestIDMiddleware)
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        recebido = request.headers.get(REQUEST_ID_HEADER)
        request_id = recebido[:MAX_REQUEST_ID_LENGTH] if recebido else generate_request_id()

        request.state.request_id = request_id
        token = _request_id_ctx.set(request_id)

        try:
            response: Response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        except Exception as e:
            logger.error(f"[{request_id}] Erro durante requisição {request.url.path}: {e}")
            raise
        finally:
            _request_id_ctx.reset(token)
