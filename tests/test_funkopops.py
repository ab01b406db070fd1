import time

import pytest

from conftest import FUNKOPOP_ITEM

URL = "/api/1.0/funkopops"
MISSING_ID = "61503ae7f4a6fb0b9bb9a218"
MALFORMED_ID = "61503ae7f4a6bb9a218"


class TestListing:
    def test_empty_catalog(self, client):
        response = client.get(URL)
        assert response.status_code == 200
        assert response.json() == {"funkopops": [], "size": 0}

    def test_lists_all_with_size(self, client, create_funkopop):
        for _ in range(5):
            create_funkopop()
        body = client.get(URL).json()
        assert body["size"] == 5
        assert len(body["funkopops"]) == 5
        assert set(body["funkopops"][0]) == {"id", "title", "price", "description", "quantity", "instock", "reviews"}

    def test_get_by_id(self, client, create_funkopop):
        pop = create_funkopop()
        response = client.get(f"{URL}/{pop['_id']}")
        assert response.status_code == 200
        assert response.json()["funkopop"]["id"] == str(pop["_id"])

    def test_get_missing(self, client):
        response = client.get(f"{URL}/{MISSING_ID}")
        assert response.status_code == 404
        assert response.json()["message"] == "Sorry! Requested Funko Pop not found"

    def test_get_malformed_id(self, client):
        response = client.get(f"{URL}/{MALFORMED_ID}")
        assert response.status_code == 404
        assert response.json()["message"] == "Sorry! You have provided an invalid resource ID"


class TestCreate:
    def test_admin_creates(self, client, admin_headers):
        response = client.post(URL, json=FUNKOPOP_ITEM, headers=admin_headers)
        assert response.status_code == 201
        pop = response.json()["funkopop"]
        assert pop["title"] == FUNKOPOP_ITEM["title"]
        assert pop["quantity"] == 100
        assert pop["instock"] is True
        assert pop["reviews"] == []

    def test_create_then_get_round_trip(self, client, admin_headers):
        created = client.post(URL, json=FUNKOPOP_ITEM, headers=admin_headers).json()["funkopop"]
        fetched = client.get(f"{URL}/{created['id']}").json()["funkopop"]
        assert fetched == created

    def test_unauthenticated(self, client):
        response = client.post(URL, json=FUNKOPOP_ITEM)
        assert response.status_code == 401
        assert response.json()["message"] == "You are unauthorized to access this route"

    def test_regular_user_is_forbidden(self, client, user_headers):
        response = client.post(URL, json=FUNKOPOP_ITEM, headers=user_headers)
        assert response.status_code == 403
        assert response.json()["message"] == "You are forbidden to access this route"

    def test_invalid_body_envelope(self, client, admin_headers):
        before = int(time.time() * 1000)
        response = client.post(URL, headers=admin_headers)
        assert response.status_code == 400
        body = response.json()
        assert list(body) == ["path", "timestamp", "message", "validationErrors"]
        assert body["path"] == URL
        assert body["message"] == "Validation Failure"
        assert body["timestamp"] >= before

    @pytest.mark.parametrize("field,value,message", [
        ("title", None, "Cannot create funko pop without title!"),
        ("title", "", "Cannot create funko pop without title!"),
        ("title", "h3fh34", "Title has to be 10-50 characters long"),
        ("title", "h" * 51, "Title has to be 10-50 characters long"),
        ("price", None, "Cannot create funko pop without price!"),
        ("price", "asb3", "Price has to be numeric"),
        ("description", None, "Cannot create funko pop without decription!"),
        ("description", "Testdesc", "Description has to be 10-250 characters long"),
        ("description", "T" * 251, "Description has to be 10-250 characters long"),
        ("quantity", None, "Cannot create funko pop without quantity!"),
        ("quantity", "1_000", "Quantity has to be numeric"),
        ("price", "1e5", "Price has to be numeric"),
        ("quantity", "asb4", "Quantity has to be numeric"),
    ])
    def test_field_messages(self, client, admin_headers, field, value, message):
        response = client.post(URL, json={**FUNKOPOP_ITEM, field: value}, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["validationErrors"][field] == message

    @pytest.mark.parametrize("field,value", [
        ("title", "t" * 10),
        ("title", "t" * 50),
        ("description", "d" * 10),
        ("description", "d" * 250),
    ])
    def test_boundary_lengths_are_accepted(self, client, admin_headers, field, value):
        response = client.post(URL, json={**FUNKOPOP_ITEM, field: value}, headers=admin_headers)
        assert response.status_code == 201

    def test_auth_is_checked_before_body(self, client, user_headers):
        response = client.post(URL, json={}, headers=user_headers)
        assert response.status_code == 403
        assert response.json()["validationErrors"] == {}

    @pytest.mark.parametrize("quantity", ["99999999999999999999", 99999999999999999999])
    def test_quantity_wider_than_int64(self, client, admin_headers, db, quantity):
        response = client.post(URL, json={**FUNKOPOP_ITEM, "quantity": quantity}, headers=admin_headers)
        assert response.status_code == 201
        assert response.json()["funkopop"]["quantity"] == 1e20
        assert db.db["funkopop"].find_one()["quantity"] == 1e20


class TestEdit:
    edited = {
        "title": "Marvel: Falcon - Halloween Falcon",
        "price": 7.2,
        "description": "Funko pop of halloween Falcon",
        "quantity": "100",
    }

    def test_edits_all_fields(self, client, admin_headers, create_funkopop):
        pop = create_funkopop()
        response = client.patch(f"{URL}/{pop['_id']}", json=self.edited, headers=admin_headers)
        assert response.status_code == 200
        body = response.json()["funkopop"]
        assert body["title"] == "Marvel: Falcon - Halloween Falcon"
        assert body["description"] == "Funko pop of halloween Falcon"

    @pytest.mark.parametrize("field,value", [
        ("title", "Marvel: Falcon - Halloween Falcon"),
        ("price", 8.9),
        ("description", "Funko pop of halloween Falcon"),
        ("quantity", 200),
    ])
    def test_partial_edit_changes_only_that_field(self, client, admin_headers, create_funkopop, field, value):
        pop = create_funkopop()
        response = client.patch(f"{URL}/{pop['_id']}", json={field: value}, headers=admin_headers)
        assert response.status_code == 200
        body = response.json()["funkopop"]
        assert body[field] == value
        for other in ("title", "price", "description", "quantity"):
            if other != field:
                assert body[other] == pop[other]

    def test_missing_product(self, client, admin_headers):
        response = client.patch(f"{URL}/{MISSING_ID}", json=self.edited, headers=admin_headers)
        assert response.status_code == 404
        assert response.json()["message"] == "Sorry! Requested Funko Pop not found"

    def test_malformed_id(self, client, admin_headers):
        response = client.patch(f"{URL}/{MALFORMED_ID}", json=self.edited, headers=admin_headers)
        assert response.status_code == 404
        assert response.json()["message"] == "Sorry! You have provided an invalid resource ID"

    def test_present_but_empty_fields(self, client, admin_headers, create_funkopop):
        pop = create_funkopop()
        response = client.patch(
            f"{URL}/{pop['_id']}", json={"title": "", "description": "", "quantity": ""}, headers=admin_headers
        )
        assert response.status_code == 400
        body = response.json()
        assert body["path"] == f"{URL}/{pop['_id']}"
        assert body["validationErrors"] == {
            "title": "Cannot edit funko pop without title!",
            "description": "Cannot edit funko pop without decription!",
            "quantity": "Cannot edit funko pop without quantity!",
        }

    @pytest.mark.parametrize("field,value,message", [
        ("title", None, "Cannot edit funko pop without title!"),
        ("title", "h3fh34", "Title has to be 10-50 characters long"),
        ("price", None, "Cannot edit funko pop without price!"),
        ("price", "asb3", "Price has to be numeric"),
        ("description", "Testdesc", "Description has to be 10-250 characters long"),
        ("quantity", "asb4", "Quantity has to be numeric"),
    ])
    def test_field_messages(self, client, admin_headers, create_funkopop, field, value, message):
        pop = create_funkopop()
        response = client.patch(f"{URL}/{pop['_id']}", json={**FUNKOPOP_ITEM, field: value}, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["validationErrors"][field] == message

    def test_regular_user_is_forbidden(self, client, user_headers, create_funkopop):
        pop = create_funkopop()
        response = client.patch(f"{URL}/{pop['_id']}", json=self.edited, headers=user_headers)
        assert response.status_code == 403

    def test_price_wider_than_int64(self, client, admin_headers, create_funkopop, db):
        pop = create_funkopop()
        response = client.patch(f"{URL}/{pop['_id']}", json={"price": "-99999999999999999999"}, headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["funkopop"]["price"] == -1e20
        assert db.db["funkopop"].find_one({"_id": pop["_id"]})["price"] == -1e20


class TestDelete:
    def test_deletes_and_returns_record(self, client, admin_headers, create_funkopop, db):
        pop = create_funkopop()
        response = client.delete(f"{URL}/{pop['_id']}", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["deletedFunkoPop"]["id"] == str(pop["_id"])
        assert db.db["funkopop"].count_documents({}) == 0

    def test_malformed_id(self, client, admin_headers, create_funkopop, db):
        create_funkopop()
        response = client.delete(f"{URL}/{MALFORMED_ID}", headers=admin_headers)
        assert response.status_code == 404
        assert response.json()["message"] == "Sorry! You have provided an invalid resource ID"
        assert db.db["funkopop"].count_documents({}) == 1

    def test_missing_product_is_204(self, client, admin_headers):
        response = client.delete(f"{URL}/{MISSING_ID}", headers=admin_headers)
        assert response.status_code == 204
        assert response.content == b""

    def test_second_delete_is_204(self, client, admin_headers, create_funkopop):
        pop = create_funkopop()
        assert client.delete(f"{URL}/{pop['_id']}", headers=admin_headers).status_code == 200
        assert client.delete(f"{URL}/{pop['_id']}", headers=admin_headers).status_code == 204

    def test_unauthenticated(self, client, create_funkopop):
        pop = create_funkopop()
        assert client.delete(f"{URL}/{pop['_id']}").status_code == 401

    def test_regular_user_is_forbidden(self, client, user_headers, create_funkopop):
        pop = create_funkopop()
        assert client.delete(f"{URL}/{pop['_id']}", headers=user_headers).status_code == 403

    def test_reviews_are_not_cascaded(self, client, admin_headers, create_funkopop, create_review, user, db):
        pop = create_funkopop()
        create_review(pop, user)
        client.delete(f"{URL}/{pop['_id']}", headers=admin_headers)
        assert db.db["review"].count_documents({"productId": pop["_id"]}) == 1
