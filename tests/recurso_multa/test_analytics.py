# tests/recurso_multa/test_analytics.py
"""
Testes do AnalyticsService.

Valida:
- Registro de eventos e manutenção dos carrinhos abandonados
- Estatísticas do painel (janelas de tempo, receita, taxa de sucesso)
- Configurações do modo gratuito
- Cadastro de clientes e recursos
- Limpeza total preservando configurações
"""

from unittest.mock import patch

from sqlalchemy.exc import OperationalError

from config import UNIT_PRICE
from sistemas.recurso_multa.analytics import gerar_id
from sistemas.recurso_multa.constants import TipoEvento
from utils.timezone import MS_POR_DIA, MS_POR_HORA, now_ms


def _contato(email="maria@email.com", **extras):
    dados = {
        "customerName": "Maria da Silva",
        "customerEmail": email,
        "customerCpf": "111.444.777-35",
        "customerPhone": "(67) 99999-8888",
        "ticketPlate": "ABC1234",
        "ticketArticle": "208",
    }
    dados.update(extras)
    return dados


class TestGerarId:

    def test_formato_com_prefixo(self):
        prefixo, ms, sufixo = gerar_id("res").split("-")
        assert prefixo == "res"
        assert ms.isdigit()
        assert len(sufixo) == 9

    def test_sem_prefixo(self):
        assert len(gerar_id().split("-")) == 2


class TestEventos:

    def test_log_event_grava_no_log(self, analytics):
        evento = analytics.log_event(TipoEvento.PAYMENT_STARTED, {"customerEmail": "a@b.com", "amount": 24.9})

        assert evento["type"] == "payment_started"
        assert analytics.get_events() == [evento]
        assert analytics.get_event(evento["id"]) == evento

    def test_filtro_por_tipo(self, analytics):
        analytics.log_event(TipoEvento.PAYMENT_STARTED, {})
        analytics.log_event(TipoEvento.GENERATION_ERROR, {})
        analytics.log_event("generation_error", {})

        assert len(analytics.get_events_by_type(TipoEvento.GENERATION_ERROR)) == 2

    def test_filtro_por_periodo(self, analytics):
        evento = analytics.log_event(TipoEvento.EMAIL_SENT, {})
        ts = evento["timestamp"]

        assert analytics.get_events_by_date_range(ts, ts) == [evento]
        assert analytics.get_events_by_date_range(ts + 1, ts + 10) == []

    def test_falha_de_armazenamento_nao_propaga(self, analytics):
        with patch.object(analytics.store, "write_json", side_effect=OperationalError("stmt", {}, Exception("disco"))):
            assert analytics.log_event(TipoEvento.PAYMENT_STARTED, {}) is None

        assert analytics.get_events() == []


class TestCarrinhosAbandonados:

    def test_form_abandoned_cria_carrinho(self, analytics):
        analytics.log_event(TipoEvento.FORM_ABANDONED, _contato())

        carrinhos = analytics.get_abandoned_carts()
        assert len(carrinhos) == 1
        assert carrinhos[0]["email"] == "maria@email.com"
        assert carrinhos[0]["ticketPlate"] == "ABC1234"

    def test_um_carrinho_por_email(self, analytics):
        analytics.log_event(TipoEvento.FORM_ABANDONED, _contato(customerName="Maria"))
        analytics.log_event(TipoEvento.FORM_ABANDONED, _contato(customerName="Maria Silva"))

        carrinhos = analytics.get_abandoned_carts()
        assert len(carrinhos) == 1
        assert carrinhos[0]["name"] == "Maria Silva"

    def test_payment_started_tambem_abre_carrinho(self, analytics):
        analytics.log_event(TipoEvento.PAYMENT_STARTED, _contato(amount=UNIT_PRICE))
        assert len(analytics.get_abandoned_carts()) == 1

    def test_sem_email_nao_cria_carrinho(self, analytics):
        analytics.log_event(TipoEvento.FORM_ABANDONED, _contato(email=""))
        assert analytics.get_abandoned_carts() == []

    def test_pagamento_concluido_remove_carrinho(self, analytics):
        analytics.log_event(TipoEvento.FORM_ABANDONED, _contato())
        analytics.log_event(TipoEvento.FORM_ABANDONED, _contato(email="outro@email.com"))
        analytics.log_event(TipoEvento.PAYMENT_COMPLETED, {"customerEmail": "maria@email.com", "amount": UNIT_PRICE})

        assert [c["email"] for c in analytics.get_abandoned_carts()] == ["outro@email.com"]

    def test_recurso_gerado_remove_carrinho(self, analytics):
        analytics.log_event(TipoEvento.FORM_ABANDONED, _contato())
        analytics.log_event(TipoEvento.RESOURCE_GENERATED, _contato())
        assert analytics.get_abandoned_carts() == []


class TestEstatisticas:

    def test_sem_eventos(self, analytics):
        stats = analytics.get_stats()

        assert stats["totalResources"] == 0
        assert stats["totalPayments"] == 0
        assert stats["totalRevenue"] == 0
        assert stats["successRate"] == "0"
        assert stats["isFreeGenerationEnabled"] is False
        assert stats["freeGenerationLimit"] == 10

    def test_agregados(self, analytics):
        analytics.log_event(TipoEvento.PAYMENT_COMPLETED, {"amount": UNIT_PRICE})
        analytics.log_event(TipoEvento.PAYMENT_COMPLETED, {"amount": 0, "isFree": True})
        analytics.log_event(TipoEvento.PAYMENT_COMPLETED, {})
        analytics.log_event(TipoEvento.RESOURCE_GENERATED, {})
        analytics.log_event(TipoEvento.RESOURCE_GENERATED, {})
        analytics.log_event(TipoEvento.GENERATION_ERROR, {})
        analytics.log_event(TipoEvento.FORM_ABANDONED, _contato())

        stats = analytics.get_stats()

        assert stats["totalPayments"] == 3
        assert stats["totalResources"] == 2
        assert stats["totalErrors"] == 1
        assert stats["totalAbandoned"] == 1
        assert stats["resources24h"] == 2
        assert stats["payments24h"] == 3
        assert stats["resources7d"] == 2
        # Pagamento sem amount conta pelo preço unitário; gratuito soma zero
        assert stats["totalRevenue"] == round(UNIT_PRICE * 2, 2)
        assert stats["successRate"] == "66.7"

    def test_janelas_de_tempo(self, analytics):
        analytics.log_event(TipoEvento.RESOURCE_GENERATED, {})
        analytics.log_event(TipoEvento.PAYMENT_COMPLETED, {"amount": UNIT_PRICE})

        daqui_2_dias = now_ms() + 2 * MS_POR_DIA
        stats = analytics.get_stats(now=daqui_2_dias)
        assert stats["resources24h"] == 0
        assert stats["payments24h"] == 0
        assert stats["resources7d"] == 1

        daqui_8_dias = now_ms() + 8 * MS_POR_DIA + MS_POR_HORA
        assert analytics.get_stats(now=daqui_8_dias)["resources7d"] == 0

    def test_taxa_de_sucesso_cem_por_cento(self, analytics):
        analytics.log_event(TipoEvento.PAYMENT_COMPLETED, {"amount": UNIT_PRICE})
        analytics.log_event(TipoEvento.RESOURCE_GENERATED, {})
        assert analytics.get_stats()["successRate"] == "100.0"


class TestConfiguracoes:

    def test_padroes(self, analytics):
        assert analytics.get_admin_settings() == {
            "isFreeGenerationEnabled": False,
            "freeGenerationLimit": 10,
            "freeGenerationsUsed": 0,
        }
        assert analytics.free_mode_available() is False

    def test_atualizacao_parcial(self, analytics):
        settings = analytics.update_admin_settings({"isFreeGenerationEnabled": True})

        assert settings["isFreeGenerationEnabled"] is True
        assert settings["freeGenerationLimit"] == 10
        assert analytics.free_mode_available() is True

    def test_limite_atingido(self, analytics):
        analytics.update_admin_settings({"isFreeGenerationEnabled": True, "freeGenerationLimit": 2})
        analytics.increment_free_usage()
        assert analytics.free_mode_available() is True
        analytics.increment_free_usage()

        assert analytics.get_admin_settings()["freeGenerationsUsed"] == 2
        assert analytics.free_mode_available() is False


class TestClientesERecursos:

    def test_register_customer_cria_e_atualiza(self, analytics):
        novo = analytics.register_customer("Maria", "maria@email.com", "111.444.777-35", "67999998888")
        assert novo["id"].startswith("cust-")
        assert novo["totalResources"] == 0
        assert novo["totalPaid"] == 0

        atualizado = analytics.register_customer(
            "Maria da Silva", "maria@email.com", "111.444.777-35", "67999998888", rg="123"
        )
        assert atualizado["id"] == novo["id"]
        assert atualizado["name"] == "Maria da Silva"
        assert atualizado["rg"] == "123"
        assert len(analytics.get_customers()) == 1

    def test_update_customer_stats(self, analytics):
        analytics.register_customer("Maria", "maria@email.com", "", "")
        analytics.update_customer_stats("maria@email.com", resource_generated=False, amount_paid=UNIT_PRICE)
        analytics.update_customer_stats("maria@email.com", resource_generated=True)

        cliente = analytics.get_customer_by_email("maria@email.com")
        assert cliente["totalPaid"] == UNIT_PRICE
        assert cliente["totalResources"] == 1

    def test_update_customer_stats_email_desconhecido(self, analytics):
        analytics.update_customer_stats("ninguem@email.com", resource_generated=True)
        assert analytics.get_customers() == []

    def test_register_resource_cadastra_cliente(self, analytics):
        recurso = analytics.register_resource(
            customer_name="Maria",
            customer_email="maria@email.com",
            customer_cpf="111.444.777-35",
            customer_phone="67999998888",
            ticket_plate="ABC1234",
            ticket_article="208",
            strategy="Ausência de Sinalização",
            document_content="# RECURSO",
        )

        cliente = analytics.get_customer_by_email("maria@email.com")
        assert recurso["id"].startswith("res-")
        assert recurso["customerId"] == cliente["id"]
        assert cliente["totalResources"] == 1
        assert analytics.get_resource(recurso["id"])["documentContent"] == "# RECURSO"
        assert analytics.get_resources_by_customer(cliente["id"]) == [recurso]

    def test_recurso_mais_recente_por_email(self, analytics):
        primeiro = analytics.register_resource("Maria", "maria@email.com", "", "", "AAA0001", "208")
        segundo = analytics.register_resource("Maria", "maria@email.com", "", "", "BBB0002", "218")
        primeiro_salvo = dict(primeiro, generatedAt=primeiro["generatedAt"] - 1000)
        analytics.store.write_json("resources_registry", [primeiro_salvo, segundo])

        assert analytics.get_latest_resource_by_email("maria@email.com")["id"] == segundo["id"]
        assert analytics.get_latest_resource_by_email("outro@email.com") is None


class TestLimpeza:

    def test_clear_all_data_preserva_configuracoes(self, analytics):
        analytics.update_admin_settings({"isFreeGenerationEnabled": True, "freeGenerationsUsed": 3})
        analytics.log_event(TipoEvento.FORM_ABANDONED, _contato())
        analytics.register_resource("Maria", "maria@email.com", "", "", "ABC1234", "208")

        analytics.clear_all_data()

        assert analytics.get_events() == []
        assert analytics.get_abandoned_carts() == []
        assert analytics.get_customers() == []
        assert analytics.get_resources() == []
        settings = analytics.get_admin_settings()
        assert settings["isFreeGenerationEnabled"] is True
        assert settings["freeGenerationsUsed"] == 3
