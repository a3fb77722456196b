"""Category management tests."""

import pytest

from posadmin.models import Category, Product
from posadmin.services import category_service, products_service
from posadmin.validation import ReferentialIntegrityError


class TestCreateCategory:
    @pytest.mark.parametrize("name", ["", "   ", None])
    def test_blank_name_rejected(self, client, db_session, inventory_headers, name):
        resp = client.post("/api/categories", json={"name": name}, headers=inventory_headers)

        assert resp.status_code == 400
        assert db_session.query(Category).count() == 0

    def test_missing_name_rejected(self, client, db_session, inventory_headers):
        resp = client.post("/api/categories", json={"description": "No name"}, headers=inventory_headers)
        assert resp.status_code == 400
        assert db_session.query(Category).count() == 0

    def test_create(self, client, inventory_headers):
        resp = client.post("/api/categories", json={
            "name": "  Snacks ",
            "description": "Chips and such",
        }, headers=inventory_headers)
        assert resp.status_code == 201
        assert resp.get_json()["name"] == "Snacks"

    def test_duplicate_name_is_conflict(self, client, inventory_headers, category):
        resp = client.post("/api/categories", json={"name": "electronics"}, headers=inventory_headers)
        assert resp.status_code == 409

    def test_unknown_field_rejected(self, client, inventory_headers):
        resp = client.post("/api/categories", json={"name": "Toys", "id": 5}, headers=inventory_headers)
        assert resp.status_code == 400


class TestUpdateCategory:
    def test_rename(self, client, inventory_headers, category):
        resp = client.put(f"/api/categories/{category.id}", json={"name": "Gadgets"}, headers=inventory_headers)
        assert resp.status_code == 200
        assert resp.get_json()["name"] == "Gadgets"

    def test_rename_onto_existing(self, client, db_session, inventory_headers, category):
        other = Category(name="Books")
        db_session.add(other)
        db_session.commit()

        resp = client.put(f"/api/categories/{other.id}", json={"name": "Electronics"}, headers=inventory_headers)
        assert resp.status_code == 409

    def test_missing(self, client, inventory_headers, db_session):
        resp = client.put("/api/categories/404", json={"name": "Nope"}, headers=inventory_headers)
        assert resp.status_code == 404


class TestDeleteCategory:
    def test_refused_while_products_use_it(self, client, db_session, inventory_headers, laptop, category):
        resp = client.delete(f"/api/categories/{category.id}", headers=inventory_headers)

        assert resp.status_code == 409
        assert "1 product(s)" in resp.get_json()["error"]
        assert db_session.get(Category, category.id) is not None

    def test_allowed_once_products_are_deleted(self, db_session, laptop, category):
        products_service.delete_product(product_id=laptop.id)

        category_service.delete_category(category_id=category.id)

        assert db_session.get(Category, category.id) is None
        assert db_session.get(Product, laptop.id).category_id is None

    def test_service_raises_referential_error(self, db_session, mouse, category):
        with pytest.raises(ReferentialIntegrityError):
            category_service.delete_category(category_id=category.id)

    def test_cashier_cannot_delete(self, client, cashier_headers, category):
        resp = client.delete(f"/api/categories/{category.id}", headers=cashier_headers)
        assert resp.status_code == 403
