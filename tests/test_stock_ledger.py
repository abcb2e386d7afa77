"""Tests de existencias por almacén y clasificación de stock."""

from decimal import Decimal

import pytest

from distribuidora.config import Settings
from distribuidora.exceptions import NoWarehouseError, NotFoundError, ValidationError
from distribuidora.models import InventoryStock, Warehouse
from distribuidora.schemas.inventory import StockStatus, StockUpdate
from distribuidora.services.inventory import StockLedger, classify_stock


class TestClassify:
    """Clasificación derivada a partir de la cantidad total."""

    @pytest.mark.parametrize("quantity, expected", [
        (0, StockStatus.OUT_OF_STOCK),
        (1, StockStatus.LOW_STOCK),
        (19, StockStatus.LOW_STOCK),
        (20, StockStatus.IN_STOCK),
        (5000, StockStatus.IN_STOCK),
    ])
    def test_boundaries(self, services, quantity, expected):
        assert services.ledger.classify(quantity) is expected

    def test_monotonic(self):
        """Nunca se regresa a una categoría inferior al subir la cantidad."""
        rank = {StockStatus.OUT_OF_STOCK: 0, StockStatus.LOW_STOCK: 1, StockStatus.IN_STOCK: 2}
        previous = 0
        for quantity in range(0, 200):
            current = rank[classify_stock(quantity, 20)]
            assert current >= previous
            previous = current

    def test_threshold_is_configurable(self):
        ledger = StockLedger(Settings(low_stock_threshold=5))

        assert ledger.classify(4) is StockStatus.LOW_STOCK
        assert ledger.classify(5) is StockStatus.IN_STOCK

    def test_labels(self):
        assert StockStatus.IN_STOCK.label == "En Stock"
        assert StockStatus.LOW_STOCK.label == "Stock Bajo"
        assert StockStatus.OUT_OF_STOCK.label == "Sin Stock"


class TestWarehouses:

    def test_default_is_lowest_active_id(self, db, services, main_warehouse):
        assert services.ledger.default_warehouse(db).id == main_warehouse.id

    def test_default_skips_inactive(self, db, services, main_warehouse, second_warehouse):
        main_warehouse.is_active = False
        db.commit()

        assert services.ledger.default_warehouse(db).id == second_warehouse.id

    def test_no_active_warehouse(self, db, services):
        db.query(Warehouse).update({Warehouse.is_active: False})
        db.commit()

        with pytest.raises(NoWarehouseError):
            services.ledger.default_warehouse(db)

    def test_explicit_warehouse_must_exist(self, db, services):
        with pytest.raises(NotFoundError):
            services.ledger.resolve_warehouse(db, 9999)


class TestUpsertStock:

    @pytest.fixture
    def variant(self, make_product, find_variant):
        make_product(sku="LAP", variants=[{"sku": "LAP-15", "initial_stock": 15}])
        return find_variant("LAP-15")

    def test_creates_row_with_omitted_fields_in_zero(self, db, services, variant, second_warehouse):
        stock = services.ledger.update_stock(
            db, StockUpdate(variant_id=variant.id, warehouse_id=second_warehouse.id, qty_on_hand=8)
        )

        assert stock.qty_on_hand == 8
        assert stock.qty_reserved == 0

    def test_partial_update_keeps_other_field(self, db, services, variant, main_warehouse):
        ledger = services.ledger
        ledger.update_stock(db, StockUpdate(variant_id=variant.id, warehouse_id=main_warehouse.id, qty_reserved=3))
        stock = ledger.update_stock(
            db, StockUpdate(variant_id=variant.id, warehouse_id=main_warehouse.id, qty_on_hand=7)
        )

        assert stock.qty_on_hand == 7
        assert stock.qty_reserved == 3

    def test_one_row_per_variant_and_warehouse(self, db, services, variant, main_warehouse):
        for qty in (1, 2, 3):
            services.ledger.update_stock(
                db, StockUpdate(variant_id=variant.id, warehouse_id=main_warehouse.id, qty_on_hand=qty)
            )

        rows = db.query(InventoryStock).filter(InventoryStock.variant_id == variant.id).all()
        assert len(rows) == 1
        assert rows[0].qty_on_hand == 3

    @pytest.mark.parametrize("field", ["qty_on_hand", "qty_reserved"])
    def test_rejects_negative(self, db, services, variant, main_warehouse, field):
        data = StockUpdate(variant_id=variant.id, warehouse_id=main_warehouse.id, **{field: -1})

        with pytest.raises(ValidationError):
            services.ledger.update_stock(db, data)

    def test_rejects_reserved_above_on_hand(self, db, services, variant, main_warehouse):
        data = StockUpdate(variant_id=variant.id, warehouse_id=main_warehouse.id, qty_reserved=16)

        with pytest.raises(ValidationError):
            services.ledger.update_stock(db, data)

        # La fila queda como estaba
        assert services.ledger.total_reserved(db, variant.id) == 0
        assert services.ledger.total_stock(db, variant.id) == 15

    def test_unknown_variant_or_warehouse(self, db, services, variant, main_warehouse):
        with pytest.raises(NotFoundError):
            services.ledger.update_stock(db, StockUpdate(variant_id=9999, warehouse_id=main_warehouse.id, qty_on_hand=1))
        with pytest.raises(NotFoundError):
            services.ledger.update_stock(db, StockUpdate(variant_id=variant.id, warehouse_id=9999, qty_on_hand=1))


class TestTotals:

    @pytest.fixture
    def variant(self, make_product, find_variant):
        make_product(sku="MON", variants=[{"sku": "MON-1", "initial_stock": 15}])
        return find_variant("MON-1")

    def test_total_is_sum_across_warehouses(self, db, services, variant, main_warehouse, second_warehouse):
        ledger = services.ledger
        updates = [
            (second_warehouse.id, 4),
            (main_warehouse.id, 10),
            (second_warehouse.id, 9),
        ]
        for warehouse_id, qty in updates:
            ledger.update_stock(db, StockUpdate(variant_id=variant.id, warehouse_id=warehouse_id, qty_on_hand=qty))
            rows = db.query(InventoryStock).filter(InventoryStock.variant_id == variant.id).all()
            assert ledger.total_stock(db, variant.id) == sum(r.qty_on_hand for r in rows)

        assert ledger.total_stock(db, variant.id) == 19

    def test_availability(self, db, services, variant, main_warehouse):
        services.ledger.update_stock(
            db, StockUpdate(variant_id=variant.id, warehouse_id=main_warehouse.id, qty_reserved=5)
        )

        assert services.ledger.total_reserved(db, variant.id) == 5
        assert services.ledger.availability(db, variant.id) == 10

    def test_low_to_in_stock_after_restock(self, db, services, variant, main_warehouse):
        ledger = services.ledger
        assert ledger.classify(ledger.total_stock(db, variant.id)) is StockStatus.LOW_STOCK

        ledger.update_stock(db, StockUpdate(variant_id=variant.id, warehouse_id=main_warehouse.id, qty_on_hand=25))

        assert ledger.classify(ledger.total_stock(db, variant.id)) is StockStatus.IN_STOCK

    def test_variant_without_rows(self, db, services):
        assert services.ledger.total_stock(db, 12345) == 0
        assert services.ledger.availability(db, 12345) == 0


class TestInventoryQueries:

    @pytest.fixture(autouse=True)
    def catalog(self, make_product):
        make_product(sku="AUD", name="Audífonos", price=Decimal("50"), variants=[
            {"sku": "AUD-0", "initial_stock": 0},
            {"sku": "AUD-5", "initial_stock": 5},
        ])
        make_product(sku="TEC", name="Teclado", price=Decimal("200"), variants=[
            {"sku": "TEC-30", "initial_stock": 30},
        ])

    def test_summary(self, db, services):
        summary = services.ledger.inventory_summary(db)

        assert summary.total_products == 2
        assert summary.stock_total == 35
        # AUD-0 y AUD-5 están por debajo de 20
        assert summary.low_stock_count == 2
        assert summary.inventory_value == Decimal("50") * 5 + Decimal("200") * 30

    def test_list_has_one_line_per_variant(self, db, services):
        page = services.ledger.inventory_list(db)

        assert page.pagination.total == 3
        by_sku = {item.sku: item for item in page.data}
        assert by_sku["AUD-0"].stock_status is StockStatus.OUT_OF_STOCK
        assert by_sku["AUD-5"].stock_status is StockStatus.LOW_STOCK
        assert by_sku["AUD-5"].stock_status_label == "Stock Bajo"
        assert by_sku["TEC-30"].stock_status is StockStatus.IN_STOCK
        assert by_sku["TEC-30"].warehouses[0].warehouse_name == "Almacén Principal"

    @pytest.mark.parametrize("status, skus", [
        ("out-of-stock", {"AUD-0"}),
        ("low-stock", {"AUD-5"}),
        ("in-stock", {"TEC-30"}),
        ("all", {"AUD-0", "AUD-5", "TEC-30"}),
    ])
    def test_filter_by_status(self, db, services, status, skus):
        page = services.ledger.inventory_list(db, stock_status=status)

        assert {item.sku for item in page.data} == skus
        assert page.pagination.total == len(skus)

    def test_invalid_status_filter(self, db, services):
        with pytest.raises(ValidationError):
            services.ledger.inventory_list(db, stock_status="agotado")

    def test_search_by_name_or_sku(self, db, services):
        assert {i.sku for i in services.ledger.inventory_list(db, search="teclado").data} == {"TEC-30"}
        assert {i.sku for i in services.ledger.inventory_list(db, search="AUD-").data} == {"AUD-0", "AUD-5"}

    def test_pagination(self, db, services):
        page = services.ledger.inventory_list(db, page=2, limit=2)

        assert len(page.data) == 1
        assert page.pagination.total_pages == 2
        assert page.pagination.has_prev_page is True
        assert page.pagination.has_next_page is False

    def test_low_stock_items(self, db, services):
        assert [i.sku for i in services.ledger.low_stock_items(db)] == ["AUD-5"]

    def test_low_stock_explicit_threshold(self, db, services):
        assert services.ledger.low_stock_items(db, threshold=0) == []
        assert {i.sku for i in services.ledger.low_stock_items(db, threshold=50)} == {"AUD-5", "TEC-30"}

    def test_detail(self, db, services, find_variant, second_warehouse):
        variant = find_variant("AUD-5")
        services.ledger.update_stock(
            db, StockUpdate(variant_id=variant.id, warehouse_id=second_warehouse.id, qty_on_hand=20, qty_reserved=2)
        )

        detail = services.ledger.inventory_detail(db, variant.id)

        assert detail.total_stock == 25
        assert detail.total_reserved == 2
        assert detail.available == 23
        assert detail.stock_status is StockStatus.IN_STOCK
        assert [w.qty_available for w in detail.stock_by_warehouse] == [5, 18]

    def test_detail_not_found(self, db, services):
        with pytest.raises(NotFoundError):
            services.ledger.inventory_detail(db, 9999)
