# utils/timezone.py
"""
POLÍTICA DE TIMEZONE DO AUTO RECURSO

REGRAS:
1. REGISTROS (eventos, clientes, recursos): epoch em milissegundos (UTC)
2. GRAVAÇÃO NO BANCO: sempre UTC (timezone-aware)
3. DATA DO DOCUMENTO: horário de Brasília (America/Sao_Paulo)

USO:
    from utils.timezone import now_utc, now_ms, now_local

    criado_em = now_utc()
    timestamp = now_ms()
    hoje = now_local().date()
"""

from datetime import datetime, timezone

import pytz

# =============================================================================
# CONFIGURAÇÃO DE TIMEZONE
# =============================================================================

TIMEZONE_LOCAL_NAME = "America/Sao_Paulo"
TIMEZONE_LOCAL = pytz.timezone(TIMEZONE_LOCAL_NAME)

UTC = timezone.utc

MS_POR_HORA = 60 * 60 * 1000
MS_POR_DIA = 24 * MS_POR_HORA


# =============================================================================
# FUNÇÕES PRINCIPAIS
# =============================================================================

def now_utc() -> datetime:
    """Datetime atual em UTC (timezone-aware). Use para gravar no banco."""
    return datetime.now(UTC)


def now_local() -> datetime:
    """Datetime atual no horário de Brasília."""
    return datetime.now(TIMEZONE_LOCAL)


def now_ms() -> int:
    """Epoch atual em milissegundos."""
    return to_ms(now_utc())


def to_ms(dt: datetime) -> int:
    """
    Converte datetime para epoch em milissegundos.

    Datetimes naive são tratados como UTC.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return int(dt.timestamp() * 1000)
