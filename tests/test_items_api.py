import io

import pytest

import app as app_module
from models import db, InventoryItem

MB = 1024 * 1024
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def item_form(**overrides):
    form = {
        "name": "Multimetr",
        "code": "EL-100",
        "description": "Cyfrowy",
        "category": "elektronika",
        "quantity": "4",
        "unit": "szt",
    }
    form.update(overrides)
    return form


def create(client, headers, **overrides):
    return client.post(
        "/api/warehouse/items",
        data=item_form(**overrides),
        headers=headers,
        content_type="multipart/form-data",
    )


def test_inventory_requires_login(client):
    resp = client.get("/api/warehouse/items")
    assert resp.status_code == 401
    assert resp.get_json()["success"] is False


def test_list_starts_empty(client, admin_headers):
    resp = client.get("/api/warehouse/items", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.get_json() == {"success": True, "items": []}


def test_created_item_appears_in_next_list(client, user_headers):
    resp = create(client, user_headers, name="  Multimetr  ", purchasePrice="10.5")
    assert resp.status_code == 201
    created = resp.get_json()["item"]
    assert created["name"] == "Multimetr"
    assert created["purchasePrice"] == 10.5
    assert created["salePrice"] is None
    assert created["stockStatus"] == "low"
    assert created["image"] is None

    items = client.get("/api/warehouse/items", headers=user_headers).get_json()["items"]
    assert [item["code"] for item in items] == ["EL-100"]


def test_validation_errors_are_returned_per_field(client, admin_headers):
    resp = create(client, admin_headers, name=" ", quantity="-1", purchasePrice="abc")
    assert resp.status_code == 400
    body = resp.get_json()
    assert body["success"] is False
    assert set(body["errors"]) == {"name", "quantity", "purchasePrice"}
    with app_module.app.app_context():
        assert InventoryItem.query.count() == 0


def test_duplicate_code_is_rejected(client, admin_headers):
    assert create(client, admin_headers).status_code == 201
    resp = create(client, admin_headers, name="Inny")
    assert resp.status_code == 409
    assert resp.get_json() == {"success": False, "error": "item code already exists"}


def test_image_upload_is_stored_and_served(client, admin_headers):
    form = item_form()
    form["image"] = (io.BytesIO(PNG_BYTES), "photo.png", "image/png")
    resp = client.post("/api/warehouse/items", data=form, headers=admin_headers,
                       content_type="multipart/form-data")
    assert resp.status_code == 201
    image_url = resp.get_json()["item"]["image"]
    assert image_url.endswith("/image")

    image = client.get(image_url, headers=admin_headers)
    assert image.status_code == 200
    assert image.data == PNG_BYTES


def test_oversized_image_is_rejected(client, admin_headers):
    form = item_form()
    form["image"] = (io.BytesIO(b"0" * (6 * MB)), "big.png", "image/png")
    resp = client.post("/api/warehouse/items", data=form, headers=admin_headers,
                       content_type="multipart/form-data")
    assert resp.status_code == 400
    assert resp.get_json()["errors"] == {"image": "file is too large (max 5MB)"}


def test_non_image_upload_is_rejected(client, admin_headers):
    form = item_form()
    form["image"] = (io.BytesIO(b"%PDF-1.4"), "doc.pdf", "application/pdf")
    resp = client.post("/api/warehouse/items", data=form, headers=admin_headers,
                       content_type="multipart/form-data")
    assert resp.status_code == 400
    assert "image" in resp.get_json()["errors"]


def test_low_access_level_cannot_create(client, monkeypatch, user_headers):
    viewer = {"id": 2, "email": "waldek@example.com", "name": "Waldek", "role": "viewer", "accessLevel": 1}
    monkeypatch.setattr(app_module, "get_user", lambda user_id: viewer)

    assert client.get("/api/warehouse/items", headers=user_headers).status_code == 200
    resp = create(client, user_headers)
    assert resp.status_code == 403
    assert resp.get_json()["message"] == "insufficient access level"


def test_get_update_and_delete_item(client, admin_headers):
    item_id = create(client, admin_headers).get_json()["item"]["id"]

    resp = client.get(f"/api/warehouse/items/{item_id}", headers=admin_headers)
    assert resp.get_json()["item"]["code"] == "EL-100"

    resp = client.put(f"/api/warehouse/items/{item_id}", json={"quantity": 0, "salePrice": "15"},
                      headers=admin_headers)
    assert resp.status_code == 200
    updated = resp.get_json()["item"]
    assert updated["quantity"] == 0
    assert updated["salePrice"] == 15.0
    assert updated["stockStatus"] == "out"
    assert updated["name"] == "Multimetr"

    resp = client.put(f"/api/warehouse/items/{item_id}", json={"quantity": -2}, headers=admin_headers)
    assert resp.status_code == 400

    assert client.delete(f"/api/warehouse/items/{item_id}", headers=admin_headers).status_code == 200
    assert client.get(f"/api/warehouse/items/{item_id}", headers=admin_headers).status_code == 404


def test_update_to_existing_code_conflicts(client, admin_headers):
    create(client, admin_headers, code="A-1")
    second = create(client, admin_headers, code="A-2").get_json()["item"]["id"]
    resp = client.put(f"/api/warehouse/items/{second}", json={"code": "A-1"}, headers=admin_headers)
    assert resp.status_code == 409


def test_missing_item_is_404(client, admin_headers):
    assert client.delete("/api/warehouse/items/404", headers=admin_headers).status_code == 404
    assert client.get("/api/warehouse/items/404/image", headers=admin_headers).status_code == 404


class TestDashboard:
    @pytest.fixture(autouse=True)
    def catalog(self, client, admin_headers):
        create(client, admin_headers, name="ABCdef", code="EL-1", quantity="0")
        create(client, admin_headers, name="Wiertarka", code="NAR-1", category="narzędzia", quantity="3")
        create(client, admin_headers, name="Kabel", code="EL-2", quantity="7")

    def test_stats_cover_whole_catalog(self, client, admin_headers):
        body = client.get("/api/warehouse/dashboard?search=abc", headers=admin_headers).get_json()
        assert [item["name"] for item in body["items"]] == ["ABCdef"]
        assert body["stats"] == {"total": 3, "available": 1, "lowStock": 1, "outOfStock": 1}
        assert body["emptyMessage"] is None

    def test_category_filter(self, client, admin_headers):
        body = client.get("/api/warehouse/dashboard?category=elektronika", headers=admin_headers).get_json()
        assert {item["code"] for item in body["items"]} == {"EL-1", "EL-2"}

        body = client.get("/api/warehouse/dashboard?category=all", headers=admin_headers).get_json()
        assert len(body["items"]) == 3

    def test_no_match_message(self, client, admin_headers):
        body = client.get("/api/warehouse/dashboard?search=zzz", headers=admin_headers).get_json()
        assert body["items"] == []
        assert body["emptyMessage"] == "no items match the current filters"

    def test_permissions_follow_access_level(self, client, admin_headers, user_headers):
        admin = client.get("/api/warehouse/dashboard", headers=admin_headers).get_json()["permissions"]
        user = client.get("/api/warehouse/dashboard", headers=user_headers).get_json()["permissions"]
        assert admin["isAdmin"] is True
        assert user["isAdmin"] is False
        assert user["canAdd"] is True

    def test_unknown_category_is_rejected(self, client, admin_headers):
        assert client.get("/api/warehouse/dashboard?category=meble", headers=admin_headers).status_code == 400


def test_empty_catalog_message(client, admin_headers):
    body = client.get("/api/warehouse/dashboard", headers=admin_headers).get_json()
    assert body["emptyMessage"] == "the catalog is empty"


def test_update_with_non_text_name_is_a_field_error(client, admin_headers):
    item_id = create(client, admin_headers).get_json()["item"]["id"]
    resp = client.put(f"/api/warehouse/items/{item_id}", json={"name": 123, "description": 5},
                      headers=admin_headers)
    assert resp.status_code == 400
    assert set(resp.get_json()["errors"]) == {"name", "description"}


def test_quantity_beyond_integer_column_is_a_field_error(client, admin_headers):
    resp = create(client, admin_headers, quantity="9" * 30)
    assert resp.status_code == 400
    assert resp.get_json()["errors"] == {"quantity": "quantity is too large"}


def test_level_zero_user_can_view_but_not_add(client, monkeypatch, user_headers):
    guest = {"id": 2, "email": "waldek@example.com", "name": "Waldek", "role": "guest", "accessLevel": 0}
    monkeypatch.setattr(app_module, "get_user", lambda user_id: guest)

    resp = client.get("/api/warehouse/dashboard", headers=user_headers)
    assert resp.status_code == 200
    assert resp.get_json()["permissions"]["canView"] is True
    assert create(client, user_headers).status_code == 403
