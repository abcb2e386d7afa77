"""Tests de consultas de clientes: totales, listados e historial de precios."""

from datetime import datetime
from decimal import Decimal

import pytest

from distribuidora.config import Settings
from distribuidora.exceptions import NotFoundError
from distribuidora.services.clients import ClientService, compute_discount


@pytest.fixture
def variants(make_product, find_variant):
    make_product(sku="TAL", name="Taladro", variants=[{"sku": "TAL-1"}, {"sku": "TAL-2"}])
    make_product(sku="BRO", name="Brocas", variants=[{"sku": "BRO-1"}])
    return {sku: find_variant(sku) for sku in ("TAL-1", "TAL-2", "BRO-1")}


class TestComputeDiscount:

    def test_with_list_price(self):
        assert compute_discount(Decimal("100"), Decimal("80")) == (Decimal("20"), Decimal("20"))

    def test_percent_is_not_rounded(self):
        _, percent = compute_discount(Decimal("3"), Decimal("2"))
        assert percent == Decimal("1") / Decimal("3") * 100
        assert percent > Decimal("33.333")

    @pytest.mark.parametrize("list_price", [None, Decimal("0")])
    def test_without_list_price(self, list_price):
        assert compute_discount(list_price, Decimal("80")) == (Decimal("0"), Decimal("0"))


class TestRevenueTotals:

    def test_quotes_and_cancellations_do_not_count(self, db, services, make_client, make_order, variants):
        client = make_client()
        v = variants["TAL-1"].id
        make_order(client, "COTIZADO", items=[(v, 1, "1000", None)])
        make_order(client, "CANCELADO", items=[(v, 1, "500", None)])
        make_order(client, "TRANSMITIDO", items=[(v, 2, "100", None)])
        make_order(client, "EN_CURSO", items=[(v, 1, "50", None)])
        make_order(client, "ENVIADO", items=[(v, 1, "25", None), (v, 1, "5", None)])

        assert services.clients.total_spent(db, client.id) == Decimal("280")
        assert services.clients.order_count(db, client.id) == 3

    def test_client_without_orders(self, db, services, make_client):
        client = make_client()

        detail = services.clients.client_detail(db, client.id)

        assert detail.total_spent == Decimal("0")
        assert detail.total_orders == 0

    def test_detail_not_found(self, db, services):
        with pytest.raises(NotFoundError):
            services.clients.client_detail(db, 9999)


class TestListClients:

    def test_pagination_over_25_clients(self, db, services, make_client):
        for _ in range(25):
            make_client()

        page = services.clients.list_clients(db, page=2, limit=10)

        assert len(page.data) == 10
        assert page.pagination.total == 25
        assert page.pagination.total_pages == 3
        assert page.pagination.has_next_page is True
        assert page.pagination.has_prev_page is True
        assert page.data[0].name == "Cliente 011"

    def test_limit_is_clamped(self, db, make_client):
        service = ClientService(Settings(max_page_limit=5))
        for _ in range(7):
            make_client()

        page = service.list_clients(db, page=0, limit=500)

        assert page.pagination.page == 1
        assert page.pagination.limit == 5
        assert len(page.data) == 5

    def test_empty_list_has_one_page(self, db, services):
        page = services.clients.list_clients(db)

        assert page.data == []
        assert page.pagination.total_pages == 1
        assert page.pagination.has_next_page is False

    def test_search_and_status_filters(self, db, services, make_client):
        make_client(name="Abarrotes Juárez", document="AJU990101")
        make_client(name="Papelería Centro", is_active=False)
        make_client(name="Abarrotes Norte", is_active=False)

        assert {c.name for c in services.clients.list_clients(db, search="abarrotes").data} == {
            "Abarrotes Juárez", "Abarrotes Norte",
        }
        assert [c.name for c in services.clients.list_clients(db, search="AJU99").data] == ["Abarrotes Juárez"]
        assert [c.name for c in services.clients.list_clients(db, active=True).data] == ["Abarrotes Juárez"]
        assert len(services.clients.list_clients(db, inactive=True).data) == 2
        assert {c.name for c in services.clients.list_clients(db, active=True, inactive=True).data} == {
            "Papelería Centro", "Abarrotes Norte",
        }
        assert len(services.clients.list_clients(db).data) == 3

    def test_rows_carry_totals(self, db, services, make_client, make_order, variants):
        client = make_client(name="Constructora Río")
        make_order(client, "ENVIADO", items=[(variants["BRO-1"].id, 3, "12.5", None)])

        row = services.clients.list_clients(db).data[0]

        assert row.total_spent == Decimal("37.5")
        assert row.total_orders == 1

    def test_active_clients(self, db, services, make_client):
        make_client(name="B Activo")
        make_client(name="A Activo")
        make_client(name="Inactivo", is_active=False)

        assert [c.name for c in services.clients.active_clients(db)] == ["A Activo", "B Activo"]


class TestClientStatistics:

    def test_statistics(self, db, services, make_client, make_order, variants):
        recent = make_client()
        make_client(is_active=False)
        make_client(created_at=datetime(2020, 1, 1))
        make_order(recent, "ENVIADO", items=[(variants["TAL-1"].id, 1, "300", None)])
        make_order(recent, "COTIZADO", items=[(variants["TAL-1"].id, 1, "999", None)])

        stats = services.clients.client_statistics(db)

        assert stats.total_clients == 3
        assert stats.active_clients == 2
        assert stats.inactive_clients == 1
        assert stats.new_clients_last_month == 2
        assert stats.total_income == Decimal("300")


class TestPriceHistory:

    def test_history_for_product(self, db, services, make_client, make_order, variants):
        client = make_client()
        other = make_client()
        tal1, tal2, bro = variants["TAL-1"].id, variants["TAL-2"].id, variants["BRO-1"].id

        make_order(client, "ENVIADO", items=[(tal1, 1, "80", "100")], created_at=datetime(2025, 1, 1))
        make_order(client, "COTIZADO", items=[(tal2, 2, "90", None), (bro, 1, "5", "5")],
                   created_at=datetime(2025, 3, 1))
        make_order(client, "CANCELADO", items=[(tal1, 1, "70", "0")], created_at=datetime(2025, 2, 1))
        make_order(other, "ENVIADO", items=[(tal1, 1, "60", "100")], created_at=datetime(2025, 4, 1))

        product_id = variants["TAL-1"].product_id
        history = services.clients.price_history(db, client.id, product_id)

        # Todos los renglones del producto, sin importar el estatus, el más reciente primero
        assert [(h.sku, h.order_status) for h in history] == [
            ("TAL-2", "Cotizado"),
            ("TAL-1", "Cancelado"),
            ("TAL-1", "Enviado"),
        ]

        no_list, zero_list, discounted = history
        assert no_list.discount == 0 and no_list.discount_percent == 0
        assert zero_list.discount == 0 and zero_list.discount_percent == 0
        assert discounted.discount == Decimal("20")
        assert discounted.discount_percent == Decimal("20")

    def test_unknown_client(self, db, services):
        with pytest.raises(NotFoundError):
            services.clients.price_history(db, 9999, 1)

    def test_no_rows(self, db, services, make_client, variants):
        client = make_client()

        assert services.clients.price_history(db, client.id, variants["TAL-1"].product_id) == []
