"""
Configuração global de testes pytest
"""
import sys
import os

# Adiciona o diretório raiz ao PYTHONPATH ANTES de qualquer outra coisa
# Isso é necessário para que pytest possa importar módulos do projeto
# durante a coleta de testes
PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, PROJECT_ROOT)

# Configura variáveis de ambiente para testes
os.environ.setdefault('ENV', 'test')
os.environ.setdefault('DATABASE_URL', 'sqlite:///:memory:')
os.environ.setdefault('SECRET_KEY', 'test-secret-key')
os.environ.setdefault('ADMIN_PASSWORD', 'senha-de-teste')
os.environ.setdefault('GEMINI_KEY', 'test-key-for-tests')
os.environ.setdefault('ABACATE_PAY_API_KEY', 'abc_dev_test')
os.environ.setdefault('BREVO_API_KEY', 'test-brevo-key')
os.environ.setdefault('RATE_LIMIT_ENABLED', 'false')
