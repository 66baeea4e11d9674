# utils/retry.py
"""
Utilitário de retry com backoff exponencial.

Apenas as exceções listadas em `retryable_exceptions` disparam nova
tentativa; qualquer outra exceção é propagada imediatamente.

USO:
    from utils.retry import retry_async, RetryConfig

    config = RetryConfig(
        max_retries=4,
        base_delay=12.0,
        exponential_base=1.5,
        retryable_exceptions=(GeminiRateLimitError,),
    )

    @retry_async(config=config)
    async def chamar_api():
        ...
"""

import asyncio
from dataclasses import dataclass, field, replace
from functools import wraps
from typing import (
    Any,
    Callable,
    Coroutine,
    Optional,
    Tuple,
    Type,
    TypeVar,
)

from utils.logging_config import get_logger

logger = get_logger(__name__)


T = TypeVar("T")


@dataclass(frozen=True)
class RetryConfig:
    """
    Configuração para retry com backoff exponencial.

    Attributes:
        max_retries: Número máximo de tentativas, incluindo a primeira
        base_delay: Espera antes da segunda tentativa, em segundos
        max_delay: Teto da espera, em segundos
        exponential_base: Multiplicador aplicado à espera a cada tentativa
        retryable_exceptions: Exceções que disparam retry
        on_retry: Callback (tentativa, exceção, espera) chamado antes de esperar
    """
    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 60.0
    exponential_base: float = 2.0
    retryable_exceptions: Tuple[Type[BaseException], ...] = field(
        default_factory=lambda: (
            ConnectionError,
            TimeoutError,
            asyncio.TimeoutError,
        )
    )
    on_retry: Optional[Callable[[int, BaseException, float], None]] = None

    def calculate_delay(self, attempt: int) -> float:
        """
        Calcula a espera após a tentativa `attempt` (0-indexed).
        """
        return min(self.base_delay * (self.exponential_base ** attempt), self.max_delay)


def retry_async(
    max_retries: int = None,
    base_delay: float = None,
    retryable_exceptions: Tuple[Type[BaseException], ...] = None,
    config: RetryConfig = None,
):
    """
    Decorador para retry assíncrono com backoff exponencial.

    Pode receber um RetryConfig pronto e/ou sobrescrever campos individuais.
    """
    cfg = config or RetryConfig()
    overrides = {}
    if max_retries is not None:
        overrides["max_retries"] = max_retries
    if base_delay is not None:
        overrides["base_delay"] = base_delay
    if retryable_exceptions is not None:
        overrides["retryable_exceptions"] = retryable_exceptions
    if overrides:
        cfg = replace(cfg, **overrides)

    def decorator(func: Callable[..., Coroutine[Any, Any, T]]) -> Callable[..., Coroutine[Any, Any, T]]:
        @wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            func_name = func.__name__

            for attempt in range(cfg.max_retries):
                try:
                    return await func(*args, **kwargs)

                except cfg.retryable_exceptions as e:
                    if attempt >= cfg.max_retries - 1:
                        logger.error(
                            "Retry esgotado",
                            funcao=func_name,
                            tentativas=cfg.max_retries,
                            erro=str(e)[:200],
                            tipo=type(e).__name__,
                        )
                        raise

                    delay = cfg.calculate_delay(attempt)
                    logger.warning(
                        "Tentativa falhou, aguardando para repetir",
                        funcao=func_name,
                        tentativa=attempt + 1,
                        max_tentativas=cfg.max_retries,
                        espera_s=round(delay, 1),
                        tipo=type(e).__name__,
                    )
                    if cfg.on_retry:
                        cfg.on_retry(attempt, e, delay)

                    await asyncio.sleep(delay)

            raise RuntimeError(f"Retry loop sem tentativas para {func_name} (max_retries={cfg.max_retries})")

        return wrapper
    return decorator


__all__ = [
    "RetryConfig",
    "retry_async",
]
