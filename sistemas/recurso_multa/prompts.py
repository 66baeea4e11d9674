# sistemas/recurso_multa/prompts.py
"""
Prompts e schemas de saída usados nas chamadas ao Gemini.

As duas extrações (multa e CNH) rodam em modo JSON com responseSchema.
A redação do recurso é texto livre em Markdown.
"""

from sistemas.recurso_multa.schemas import DefenseStrategy, PersonalInfo, TicketInfo


# =============================================================================
# EXTRAÇÃO: FOTO DA MULTA
# =============================================================================

PROMPT_ANALISE_MULTA = """Analise esta foto de uma multa de trânsito brasileira. Extraia as informações principais e sugira 3 estratégias de defesa baseadas no Código de Trânsito Brasileiro (CTB).
TENTE TAMBÉM identificar dados do condutor/proprietário como Nome, CPF e Endereço se estiverem visíveis.
IMPORTANTE: Se um dado não for encontrado ou for ilegível, retorne uma string VAZIA (""). NUNCA retorne textos como "Não visível", "N/A" ou similares.
Retorne os dados estritamente no formato JSON conforme o schema especificado."""

SCHEMA_ANALISE_MULTA = {
    "type": "OBJECT",
    "properties": {
        "violationType": {"type": "STRING"},
        "article": {"type": "STRING"},
        "location": {"type": "STRING"},
        "date": {"type": "STRING"},
        "vehiclePlate": {"type": "STRING"},
        "authority": {"type": "STRING"},
        "extractedPersonalInfo": {
            "type": "OBJECT",
            "properties": {
                "fullName": {"type": "STRING"},
                "cpf": {"type": "STRING"},
                "address": {"type": "STRING"},
            },
        },
        "strategies": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "id": {"type": "STRING"},
                    "title": {"type": "STRING"},
                    "description": {"type": "STRING"},
                },
                "required": ["id", "title", "description"],
            },
        },
    },
    "required": ["violationType", "article", "location", "date", "vehiclePlate", "authority", "strategies"],
}


# =============================================================================
# EXTRAÇÃO: FOTO DA CNH
# =============================================================================

PROMPT_ANALISE_CNH = """Extraia os dados desta CNH (Carteira Nacional de Habilitação).
Campos: Nome Completo, CPF, RG, Número da CNH e Endereço (se houver).
IMPORTANTE: Se um dado não for encontrado, retorne uma string VAZIA (""). NUNCA retorne textos como "Não visível", "N/A" ou similares.
Retorne estritamente em JSON."""

SCHEMA_ANALISE_CNH = {
    "type": "OBJECT",
    "properties": {
        "fullName": {"type": "STRING"},
        "cpf": {"type": "STRING"},
        "rg": {"type": "STRING"},
        "cnh": {"type": "STRING"},
        "address": {"type": "STRING"},
    },
}


# =============================================================================
# GERAÇÃO DO RECURSO
# =============================================================================

SYSTEM_PROMPT_RECURSO = (
    "Você é um renomado Advogado Especialista em Direito de Trânsito Brasileiro. "
    "Gere recursos de alta qualidade em Markdown puro."
)

PROMPT_RECURSO = """Gere um RECURSO ADMINISTRATIVO DE INFRAÇÃO DE TRÂNSITO extremamente profissional e bem formatado, endereçado à JARI (Junta Administrativa de Recursos de Infrações).

REGRAS CRÍTICAS:
1. USE OS DADOS REAIS ABAIXO. NÃO INVENTE DADOS.
2. Substitua todos os espaços de qualificação pelos dados fornecidos.

ESTRUTURA E ESTÉTICA DO DOCUMENTO:
1. CABEÇALHO: O endereçamento deve ser em CAIXA ALTA e negrito, centralizado visualmente.
2. QUALIFICAÇÃO: Apresente os dados do recorrente de forma elegante e fluida.
3. SEÇÕES: Use numerais romanos (I, II, III) para as seções principais.
4. CITAÇÕES LEGAIS: Use blocos de citação (blockquote) para destacar artigos do CTB ou resoluções do CONTRAN.
5. ESPAÇAMENTO: Garanta linhas em branco entre os parágrafos.
6. LINGUAGEM: Use termos jurídicos adequados.
7. FECHAMENTO: Termine com "{cidade}, {data}." seguido de espaço para assinatura do recorrente.

DADOS DO RECORRENTE:
- Nome: {nome}
- CPF: {cpf}
- RG: {rg}
- CNH: {cnh}
- Endereço: {endereco}
- Profissão: {profissao}
- Estado Civil: {estado_civil}
{condutor}
DETALHES DA MULTA:
- Infração: {infracao}
- Artigo: {artigo}
- Local: {local}
- Data: {data_infracao}
- Placa: {placa}
- Órgão Autuador: {orgao}

TESE JURÍDICA:
- Tese: {tese}
- Fundamentação da Tese: {fundamentacao}
- Relato do Condutor: {relato}

O texto final deve ser em Markdown, pronto para impressão. Retorne APENAS o texto do recurso."""

_LINHA_CONDUTOR = (
    "- Condutor (diferente do proprietário): {nome}, CPF: {cpf}, RG: {rg}, CNH: {cnh}\n"
)


def _ou_nao_informado(valor: str) -> str:
    return valor or "não informado"


def montar_prompt_recurso(
    ticket: TicketInfo,
    estrategia: DefenseStrategy,
    relato: str,
    dados: PersonalInfo,
    cidade: str,
    data: str,
) -> str:
    condutor = ""
    if dados.isDifferentDriver:
        condutor = _LINHA_CONDUTOR.format(
            nome=dados.driverFullName,
            cpf=dados.driverCpf,
            rg=dados.driverRg,
            cnh=dados.driverCnh,
        )

    return PROMPT_RECURSO.format(
        nome=dados.fullName,
        cpf=dados.cpf,
        rg=dados.rg,
        cnh=dados.cnh,
        endereco=dados.address,
        profissao=_ou_nao_informado(dados.profession),
        estado_civil=_ou_nao_informado(dados.civilStatus),
        condutor=condutor,
        infracao=ticket.violationType,
        artigo=ticket.article,
        local=ticket.location,
        data_infracao=ticket.date,
        placa=ticket.vehiclePlate,
        orgao=ticket.authority,
        tese=estrategia.title,
        fundamentacao=estrategia.description,
        relato=relato or "nenhum relato adicional",
        cidade=cidade,
        data=data,
    )
