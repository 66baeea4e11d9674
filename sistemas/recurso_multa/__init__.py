# sistemas/recurso_multa/__init__.py
"""
Sistema de Recurso de Multa (AUTO RECURSO)

Fluxo por etapas:
1. Foto da multa -> Gemini extrai dados e sugere estratégias de defesa
2. Usuário escolhe a estratégia e relata o ocorrido
3. Dados pessoais (com validação de CPF e importação da CNH)
4. Cobrança PIX no Abacate Pay (ou modo gratuito)
5. Gemini redige o recurso em Markdown, enviado por email (Brevo)
"""
