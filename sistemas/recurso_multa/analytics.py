# sistemas/recurso_multa/analytics.py
"""
Eventos, carrinhos abandonados, clientes, recursos e configurações do painel.

Tudo é lido e gravado pelo RecordStore, uma chave por tabela lógica.
Os registros são dicts com chaves camelCase (mesmo formato exibido no painel).

Falhas de armazenamento ao registrar eventos vão para o log e nunca
interrompem o fluxo do usuário.
"""

import random
import string
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from config import UNIT_PRICE
from sistemas.recurso_multa.constants import (
    CHAVE_EVENTOS,
    CHAVE_CARRINHOS,
    CHAVE_CLIENTES,
    CHAVE_RECURSOS,
    CHAVE_CONFIGURACOES,
    CHAVES_LIMPEZA_TOTAL,
    CONFIGURACOES_PADRAO,
    EVENTOS_ABREM_CARRINHO,
    EVENTOS_FECHAM_CARRINHO,
    TipoEvento,
)
from sistemas.recurso_multa.store import RecordStore
from utils.logging_config import get_logger
from utils.timezone import now_ms, MS_POR_HORA, MS_POR_DIA

logger = get_logger(__name__)

_ALFABETO_BASE36 = string.digits + string.ascii_lowercase


def _sufixo_aleatorio(tamanho: int = 9) -> str:
    return "".join(random.choices(_ALFABETO_BASE36, k=tamanho))


def gerar_id(prefixo: str = "") -> str:
    """Identificadores no formato "<prefixo>-<ms>-<9 chars base36>" (ou sem prefixo)"""
    corpo = f"{now_ms()}-{_sufixo_aleatorio()}"
    return f"{prefixo}-{corpo}" if prefixo else corpo


def _tipo(tipo: Any) -> str:
    return tipo.value if isinstance(tipo, TipoEvento) else str(tipo)


class AnalyticsService:
    """
    Uso:
        analytics = AnalyticsService(RecordStore(db))
        analytics.log_event(TipoEvento.PAYMENT_STARTED, {"customerEmail": "a@b.com"})
        stats = analytics.get_stats()
    """

    def __init__(self, store: RecordStore):
        self.store = store

    # =========================================================================
    # EVENTOS
    # =========================================================================

    def log_event(self, tipo, data: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        """
        Registra um evento e mantém a tabela de carrinhos abandonados.

        Returns:
            O evento gravado, ou None se o armazenamento falhar
        """
        tipo = _tipo(tipo)
        data = dict(data or {})
        evento = {
            "id": gerar_id(),
            "timestamp": now_ms(),
            "type": tipo,
            "data": data,
        }

        try:
            eventos = self.get_events()
            eventos.append(evento)
            self.store.write_json(CHAVE_EVENTOS, eventos)

            if tipo in EVENTOS_ABREM_CARRINHO:
                self._track_abandoned_cart(data)

            if tipo in EVENTOS_FECHAM_CARRINHO:
                self._remove_abandoned_cart(data.get("customerEmail") or "")
        except SQLAlchemyError as e:
            self.store.db.rollback()
            logger.error("Falha ao registrar evento", tipo=tipo, erro=str(e))
            return None

        logger.info("Evento registrado", tipo=tipo, evento_id=evento["id"])
        return evento

    def get_events(self) -> List[Dict[str, Any]]:
        eventos = self.store.read_json(CHAVE_EVENTOS, [])
        return eventos if isinstance(eventos, list) else []

    def get_event(self, event_id: str) -> Optional[Dict[str, Any]]:
        return next((e for e in self.get_events() if e.get("id") == event_id), None)

    def get_events_by_type(self, tipo) -> List[Dict[str, Any]]:
        tipo = _tipo(tipo)
        return [e for e in self.get_events() if e.get("type") == tipo]

    def get_events_by_date_range(self, start: int, end: int) -> List[Dict[str, Any]]:
        """Eventos com start <= timestamp <= end (epoch ms)"""
        return [e for e in self.get_events() if start <= e.get("timestamp", 0) <= end]

    # =========================================================================
    # ESTATÍSTICAS
    # =========================================================================

    def get_stats(self, now: Optional[int] = None) -> Dict[str, Any]:
        """
        Agregados do painel, recalculados a cada chamada sobre o log inteiro.

        A receita soma o `amount` de cada pagamento concluído; eventos sem
        `amount` contam pelo preço unitário.
        """
        eventos = self.get_events()
        now = now if now is not None else now_ms()
        ultimas_24h = now - 24 * MS_POR_HORA
        ultimos_7d = now - 7 * MS_POR_DIA

        recursos = [e for e in eventos if e.get("type") == TipoEvento.RESOURCE_GENERATED.value]
        pagamentos = [e for e in eventos if e.get("type") == TipoEvento.PAYMENT_COMPLETED.value]
        erros = [e for e in eventos if e.get("type") == TipoEvento.GENERATION_ERROR.value]

        total_resources = len(recursos)
        total_payments = len(pagamentos)

        total_revenue = 0.0
        for pagamento in pagamentos:
            amount = (pagamento.get("data") or {}).get("amount")
            total_revenue += UNIT_PRICE if amount is None else float(amount)

        if total_payments > 0:
            success_rate = f"{total_resources / total_payments * 100:.1f}"
        else:
            success_rate = "0"

        settings = self.get_admin_settings()

        return {
            "totalResources": total_resources,
            "totalPayments": total_payments,
            "totalErrors": len(erros),
            "totalAbandoned": len(self.get_abandoned_carts()),
            "resources24h": sum(1 for e in recursos if e.get("timestamp", 0) >= ultimas_24h),
            "payments24h": sum(1 for e in pagamentos if e.get("timestamp", 0) >= ultimas_24h),
            "resources7d": sum(1 for e in recursos if e.get("timestamp", 0) >= ultimos_7d),
            "totalRevenue": round(total_revenue, 2),
            "successRate": success_rate,
            "freeGenerationsUsed": settings["freeGenerationsUsed"],
            "freeGenerationLimit": settings["freeGenerationLimit"],
            "isFreeGenerationEnabled": settings["isFreeGenerationEnabled"],
        }

    # =========================================================================
    # CARRINHOS ABANDONADOS
    # =========================================================================

    def _track_abandoned_cart(self, data: Dict[str, Any]) -> None:
        email = data.get("customerEmail")
        if not email:
            return

        carrinho = {
            "email": email,
            "name": data.get("customerName") or "",
            "cpf": data.get("customerCpf") or "",
            "phone": data.get("customerPhone") or "",
            "timestamp": now_ms(),
            "ticketPlate": data.get("ticketPlate"),
            "ticketArticle": data.get("ticketArticle"),
        }

        carrinhos = [c for c in self.get_abandoned_carts() if c.get("email") != email]
        existente = len(carrinhos) != len(self.get_abandoned_carts())
        carrinhos.append(carrinho)
        self.store.write_json(CHAVE_CARRINHOS, carrinhos)
        logger.info("Carrinho abandonado atualizado" if existente else "Carrinho abandonado criado", email=email)

    def _remove_abandoned_cart(self, email: str) -> None:
        if not email:
            return
        carrinhos = self.get_abandoned_carts()
        restantes = [c for c in carrinhos if c.get("email") != email]
        if len(restantes) != len(carrinhos):
            self.store.write_json(CHAVE_CARRINHOS, restantes)

    def get_abandoned_carts(self) -> List[Dict[str, Any]]:
        carrinhos = self.store.read_json(CHAVE_CARRINHOS, [])
        return carrinhos if isinstance(carrinhos, list) else []

    # =========================================================================
    # LIMPEZA
    # =========================================================================

    def clear_all_data(self) -> None:
        """Apaga eventos, carrinhos, clientes e recursos. Configurações ficam."""
        for chave in CHAVES_LIMPEZA_TOTAL:
            self.store.remove(chave)
        logger.warning("Dados do painel apagados", chaves=list(CHAVES_LIMPEZA_TOTAL))

    # =========================================================================
    # CONFIGURAÇÕES DO PAINEL
    # =========================================================================

    def get_admin_settings(self) -> Dict[str, Any]:
        salvas = self.store.read_json(CHAVE_CONFIGURACOES, None)
        settings = dict(CONFIGURACOES_PADRAO)
        if isinstance(salvas, dict):
            settings.update(salvas)
        return settings

    def update_admin_settings(self, parcial: Dict[str, Any]) -> Dict[str, Any]:
        atualizadas = {**self.get_admin_settings(), **parcial}
        self.store.write_json(CHAVE_CONFIGURACOES, atualizadas)
        logger.info("Configurações do painel atualizadas", **{k: v for k, v in parcial.items()})
        return atualizadas

    def increment_free_usage(self) -> Dict[str, Any]:
        settings = self.get_admin_settings()
        settings["freeGenerationsUsed"] = int(settings["freeGenerationsUsed"]) + 1
        self.store.write_json(CHAVE_CONFIGURACOES, settings)
        return settings

    def free_mode_available(self) -> bool:
        settings = self.get_admin_settings()
        return bool(settings["isFreeGenerationEnabled"]) and (
            settings["freeGenerationsUsed"] < settings["freeGenerationLimit"]
        )

    # =========================================================================
    # CLIENTES
    # =========================================================================

    def get_customers(self) -> List[Dict[str, Any]]:
        clientes = self.store.read_json(CHAVE_CLIENTES, [])
        return clientes if isinstance(clientes, list) else []

    def get_customer_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        return next((c for c in self.get_customers() if c.get("email") == email), None)

    def register_customer(
        self,
        name: str,
        email: str,
        cpf: str,
        phone: str,
        rg: Optional[str] = None,
        cnh: Optional[str] = None,
        address: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Cria ou atualiza o cliente do email (chave natural)"""
        clientes = self.get_customers()
        agora = now_ms()
        dados = {
            "name": name,
            "email": email,
            "cpf": cpf,
            "phone": phone,
            "rg": rg,
            "cnh": cnh,
            "address": address,
        }

        for indice, cliente in enumerate(clientes):
            if cliente.get("email") == email:
                clientes[indice] = {**cliente, **dados, "lastActivity": agora}
                self.store.write_json(CHAVE_CLIENTES, clientes)
                return clientes[indice]

        novo = {
            "id": gerar_id("cust"),
            **dados,
            "registeredAt": agora,
            "lastActivity": agora,
            "totalResources": 0,
            "totalPaid": 0,
        }
        clientes.append(novo)
        self.store.write_json(CHAVE_CLIENTES, clientes)
        logger.info("Cliente registrado", cliente_id=novo["id"])
        return novo

    def update_customer_stats(self, email: str, resource_generated: bool, amount_paid: Optional[float] = None) -> None:
        clientes = self.get_customers()
        cliente = next((c for c in clientes if c.get("email") == email), None)
        if cliente is None:
            return

        if resource_generated:
            cliente["totalResources"] = cliente.get("totalResources", 0) + 1
        if amount_paid:
            cliente["totalPaid"] = round(cliente.get("totalPaid", 0) + amount_paid, 2)
        cliente["lastActivity"] = now_ms()
        self.store.write_json(CHAVE_CLIENTES, clientes)

    # =========================================================================
    # RECURSOS
    # =========================================================================

    def get_resources(self) -> List[Dict[str, Any]]:
        recursos = self.store.read_json(CHAVE_RECURSOS, [])
        return recursos if isinstance(recursos, list) else []

    def get_resources_by_customer(self, customer_id: str) -> List[Dict[str, Any]]:
        return [r for r in self.get_resources() if r.get("customerId") == customer_id]

    def get_resource(self, resource_id: str) -> Optional[Dict[str, Any]]:
        return next((r for r in self.get_resources() if r.get("id") == resource_id), None)

    def get_latest_resource_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        recursos = [r for r in self.get_resources() if r.get("customerEmail") == email]
        return max(recursos, key=lambda r: r.get("generatedAt", 0), default=None)

    def register_resource(
        self,
        customer_name: str,
        customer_email: str,
        customer_cpf: str,
        customer_phone: str,
        ticket_plate: str,
        ticket_article: str,
        customer_rg: Optional[str] = None,
        customer_cnh: Optional[str] = None,
        customer_address: Optional[str] = None,
        ticket_location: Optional[str] = None,
        ticket_date: Optional[str] = None,
        strategy: Optional[str] = None,
        document_content: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Registra um recurso gerado.

        Cadastra o cliente se o email ainda não existir e incrementa o
        totalResources dele.
        """
        cliente = self.get_customer_by_email(customer_email)
        if cliente is None:
            cliente = self.register_customer(
                name=customer_name,
                email=customer_email,
                cpf=customer_cpf,
                phone=customer_phone,
                rg=customer_rg,
                cnh=customer_cnh,
                address=customer_address,
            )

        recurso = {
            "id": gerar_id("res"),
            "customerId": cliente["id"],
            "customerName": customer_name,
            "customerEmail": customer_email,
            "ticketPlate": ticket_plate,
            "ticketArticle": ticket_article,
            "ticketLocation": ticket_location,
            "ticketDate": ticket_date,
            "strategy": strategy,
            "generatedAt": now_ms(),
            "documentContent": document_content,
        }

        recursos = self.get_resources()
        recursos.append(recurso)
        self.store.write_json(CHAVE_RECURSOS, recursos)

        self.update_customer_stats(customer_email, resource_generated=True)
        logger.info("Recurso registrado", recurso_id=recurso["id"], cliente_id=cliente["id"])
        return recurso
