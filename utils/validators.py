# utils/validators.py
"""
Validadores reutilizáveis do AUTO RECURSO.

- CPF (dígitos verificadores)
- Email
- Telefone
- Normalização para apenas dígitos

USO:
    from utils.validators import validate_cpf, only_digits

    if not validate_cpf(cpf):
        raise ValueError("CPF inválido")
"""

import re


def only_digits(value: str) -> str:
    """Remove tudo que não for dígito: '111.444.777-35' -> '11144477735'"""
    return re.sub(r'[^\d]', '', str(value or ""))


# ============================================
# CPF
# ============================================

def _digito_verificador_cpf(digitos: str, peso_inicial: int) -> int:
    """
    Calcula um dígito verificador do CPF.

    Soma ponderada com pesos decrescentes a partir de `peso_inicial` até 2;
    resto de (soma * 10) / 11, onde 10 ou 11 valem 0.
    """
    soma = sum(int(d) * peso for d, peso in zip(digitos, range(peso_inicial, 1, -1)))
    resto = (soma * 10) % 11
    return 0 if resto >= 10 else resto


def validate_cpf(cpf: str) -> bool:
    """
    Valida um CPF brasileiro.

    Args:
        cpf: CPF com ou sem formatação

    Returns:
        True se válido, False caso contrário
    """
    cpf = only_digits(cpf)

    if len(cpf) != 11:
        return False

    # Sequências repetidas (000.000.000-00, 111...) passam no cálculo mas são inválidas
    if cpf == cpf[0] * 11:
        return False

    if _digito_verificador_cpf(cpf[:9], 10) != int(cpf[9]):
        return False

    return _digito_verificador_cpf(cpf[:10], 11) == int(cpf[10])


# ============================================
# EMAIL
# ============================================

def validate_email(email: str) -> bool:
    """Valida formato de email."""
    if not email or not isinstance(email, str):
        return False

    pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
    return bool(re.match(pattern, email.strip()))


# ============================================
# TELEFONE
# ============================================

def validate_telefone(telefone: str) -> bool:
    """
    Valida número de telefone brasileiro.

    Aceita (67) 99999-9999, 67999999999 e +55 67 99999-9999.
    """
    tel = only_digits(telefone)

    if tel.startswith('55') and len(tel) > 11:
        tel = tel[2:]

    if len(tel) not in (10, 11):
        return False

    # DDD válido (11-99)
    return 11 <= int(tel[:2]) <= 99
