"""
Catalog reader tests.

Verifies:
- total stock is the sum over all inventory records
- out_of_stock iff total == 0
- low_stock iff 0 < total <= reorder point of the FIRST record (default 10)
- category / location fallbacks and the search / category / status filters
"""

from types import SimpleNamespace

import pytest

from posadmin.models import Category, InventoryRecord, Product, Warehouse
from posadmin.services import catalog_service
from posadmin.services.catalog_service import (
    IN_STOCK,
    LOW_STOCK,
    OUT_OF_STOCK,
    derive_stock_status,
)


def _rec(reorder_point):
    return SimpleNamespace(reorder_point=reorder_point)


class TestDeriveStockStatus:
    def test_zero_total_is_out_of_stock(self):
        assert derive_stock_status(0, [_rec(10)]) == OUT_OF_STOCK
        assert derive_stock_status(0, []) == OUT_OF_STOCK

    def test_at_reorder_point_is_low(self):
        assert derive_stock_status(10, [_rec(10)]) == LOW_STOCK

    def test_above_reorder_point_is_in_stock(self):
        assert derive_stock_status(11, [_rec(10)]) == IN_STOCK

    def test_default_threshold_without_records(self):
        assert derive_stock_status(10, []) == LOW_STOCK
        assert derive_stock_status(11, []) == IN_STOCK

    def test_only_first_record_threshold_counts(self):
        # Second record's larger threshold is ignored
        assert derive_stock_status(5, [_rec(2), _rec(50)]) == IN_STOCK
        assert derive_stock_status(5, [_rec(50), _rec(2)]) == LOW_STOCK

    def test_zero_reorder_point_is_honoured(self):
        assert derive_stock_status(1, [_rec(0)]) == IN_STOCK


def _product(db_session, sku, name, price=1000, category=None, barcode=None, records=()):
    product = Product(
        sku=sku,
        name=name,
        price_cents=price,
        category_id=category.id if category else None,
        barcode=barcode,
    )
    db_session.add(product)
    db_session.flush()
    for warehouse, stock, reorder in records:
        db_session.add(InventoryRecord(
            product_id=product.id,
            warehouse_id=warehouse.id,
            stock_level=stock,
            reorder_point=reorder,
        ))
    db_session.commit()
    return product


class TestListCatalog:
    def test_entry_sums_stock_and_uses_first_location(self, db_session, laptop):
        entries = catalog_service.list_catalog()
        assert len(entries) == 1
        entry = entries[0]
        assert entry.total_stock == 20
        assert entry.location == "Warehouse A"
        assert entry.category_name == "Electronics"
        assert entry.status == IN_STOCK

    def test_fallbacks_without_category_or_records(self, db_session):
        _product(db_session, "BARE-1", "Bare Product")
        entry = catalog_service.list_catalog()[0]
        assert entry.category_name == "Uncategorized"
        assert entry.location == "No Warehouse"
        assert entry.total_stock == 0
        assert entry.status == OUT_OF_STOCK

    def test_first_record_threshold_with_two_warehouses(self, db_session, warehouse_a, warehouse_b):
        p = _product(db_session, "ASYM-1", "Asymmetric", records=[(warehouse_a, 1, 2), (warehouse_b, 4, 50)])
        entry = catalog_service.get_entry(p.id)
        assert entry.total_stock == 5
        assert entry.status == IN_STOCK

    def test_inactive_products_hidden(self, db_session, laptop):
        laptop.is_active = False
        db_session.commit()
        assert catalog_service.list_catalog() == []
        assert catalog_service.get_entry(laptop.id) is None

    def test_search_matches_name_sku_and_barcode(self, db_session, laptop, mouse):
        _product(db_session, "CAB-9", "Cable", barcode="0123456789")

        assert [e.product.sku for e in catalog_service.list_catalog(search="lap")] == ["LAP-001"]
        assert [e.product.sku for e in catalog_service.list_catalog(search="mou-")] == ["MOU-001"]
        assert [e.product.sku for e in catalog_service.list_catalog(search="34567")] == ["CAB-9"]
        assert catalog_service.list_catalog(search="zzz") == []

    def test_category_filter(self, db_session, laptop, warehouse_a):
        books = Category(name="Books")
        db_session.add(books)
        db_session.commit()
        _product(db_session, "BK-1", "Novel", category=books, records=[(warehouse_a, 30, 10)])
        _product(db_session, "NC-1", "Loose Item")

        assert [e.product.sku for e in catalog_service.list_catalog(category="books")] == ["BK-1"]
        assert [e.product.sku for e in catalog_service.list_catalog(category="Uncategorized")] == ["NC-1"]

    def test_status_filter(self, db_session, laptop, warehouse_a):
        _product(db_session, "LOW-1", "Low Item", records=[(warehouse_a, 3, 10)])
        _product(db_session, "OUT-1", "Out Item", records=[(warehouse_a, 0, 10)])

        assert [e.product.sku for e in catalog_service.list_catalog(status=LOW_STOCK)] == ["LOW-1"]
        assert [e.product.sku for e in catalog_service.list_catalog(status=OUT_OF_STOCK)] == ["OUT-1"]
        assert [e.product.sku for e in catalog_service.list_catalog(status=IN_STOCK)] == ["LAP-001"]

    def test_unknown_status_rejected(self, db_session):
        with pytest.raises(ValueError):
            catalog_service.list_catalog(status="discontinued")

    def test_counts(self, db_session, laptop, mouse, warehouse_a, warehouse_b):
        empty = Warehouse(name="Annex", location="East")
        db_session.add(empty)
        db_session.commit()

        counts = {w["name"]: w["product_count"] for w in catalog_service.warehouses_with_counts()}
        assert counts == {"Annex": 0, "Warehouse A": 2, "Warehouse B": 1}

        categories = catalog_service.categories_with_counts()
        assert [(c["name"], c["product_count"]) for c in categories] == [("Electronics", 2)]


class TestInventoryRoutes:
    def test_overview_with_summary(self, client, db_session, inventory_headers, laptop, warehouse_a):
        _product(db_session, "LOW-1", "Low Item", records=[(warehouse_a, 3, 10)])

        resp = client.get("/api/inventory", headers=inventory_headers)
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["count"] == 2
        assert body["summary"] == {"in_stock": 1, "low_stock": 1, "out_of_stock": 0}

        laptop_row = next(i for i in body["items"] if i["sku"] == "LAP-001")
        assert laptop_row["total_stock"] == 20
        assert laptop_row["location"] == "Warehouse A"
        assert len(laptop_row["inventory"]) == 2

    def test_status_query_param(self, client, inventory_headers, laptop):
        resp = client.get("/api/inventory?status=out_of_stock", headers=inventory_headers)
        assert resp.status_code == 200
        assert resp.get_json()["count"] == 0

    def test_invalid_status_query_param(self, client, inventory_headers):
        resp = client.get("/api/inventory?status=nope", headers=inventory_headers)
        assert resp.status_code == 400

    def test_tab_endpoints(self, client, inventory_headers, laptop):
        assert client.get("/api/inventory/warehouses", headers=inventory_headers).get_json()["count"] == 2
        assert client.get("/api/inventory/categories", headers=inventory_headers).get_json()["count"] == 1
        assert client.get("/api/inventory/transfers", headers=inventory_headers).get_json()["count"] == 0
