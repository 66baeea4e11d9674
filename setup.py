"""
Setup script para instalação do AUTO RECURSO.

Este arquivo permite instalar o projeto em modo editable para desenvolvimento:
    pip install -e .[test]

Isso adiciona o projeto ao PYTHONPATH e permite imports como:
    from services.gemini_service import GeminiService
"""

from setuptools import setup, find_namespace_packages

setup(
    name="auto-recurso",
    version="1.0.0",
    description="AUTO RECURSO - Recurso de multa de trânsito com IA",
    packages=find_namespace_packages(
        include=["admin*", "auth*", "database*", "middleware*", "services*", "sistemas*", "utils*"]
    ),
    py_modules=["main", "config"],
    include_package_data=True,
    package_data={"services": ["templates/email/*"]},
    python_requires=">=3.10",
    install_requires=[
        "fastapi>=0.110",
        "uvicorn[standard]>=0.27",
        "sqlalchemy>=2.0",
        "pydantic>=2.5",
        "python-dotenv>=1.0",
        "python-multipart>=0.0.9",
        "httpx[http2]>=0.27",
        "jinja2>=3.1",
        "markupsafe>=2.1",
        "structlog>=24.1",
        "slowapi>=0.1.9",
        "python-jose[cryptography]>=3.3",
        "pytz>=2024.1",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
        ],
    },
)
