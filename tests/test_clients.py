"""
Clients API: CRUD, name length, email normalization, parent hierarchy.
"""


def _create(client, headers, **body):
    return client.post("/api/v1/clients", json=body, headers=headers)


class TestClientCRUD:
    def test_create_client(self, client, member_headers):
        res = _create(client, member_headers, name="  Northwind  ", email="Buyer@Northwind.COM",
                      phone="555-0100")
        assert res.status_code == 201
        data = res.get_json()["data"]["client"]
        assert data["name"] == "Northwind"
        assert data["email"] == "Buyer@northwind.com"
        assert data["phone"] == "555-0100"
        assert data["created_by"] == "user_owner"

    def test_name_required(self, client, member_headers):
        res = _create(client, member_headers, email="a@northwind.com")
        assert res.status_code == 400
        assert res.get_json()["error"] == "Missing required fields: name"

    def test_name_too_long(self, client, member_headers):
        res = _create(client, member_headers, name="x" * 201)
        assert res.status_code == 400
        assert res.get_json()["error"] == "Client name must be less than 200 characters"

    def test_name_at_limit_is_accepted(self, client, member_headers):
        assert _create(client, member_headers, name="x" * 200).status_code == 201

    def test_invalid_email(self, client, member_headers):
        res = _create(client, member_headers, name="Bad Mail", email="not-an-email")
        assert res.status_code == 400
        assert res.get_json()["error"].startswith("Invalid email")

    def test_list_sorted_by_name(self, client, member_headers):
        _create(client, member_headers, name="Zeta")
        _create(client, member_headers, name="Alpha")
        res = client.get("/api/v1/clients", headers=member_headers)
        names = [c["name"] for c in res.get_json()["data"]["clients"]]
        assert names == ["Alpha", "Zeta"]

    def test_update(self, client, member_headers):
        c = _create(client, member_headers, name="Old").get_json()["data"]["client"]
        res = client.patch(f"/api/v1/clients/{c['id']}", json={"name": "New", "notes": "VIP"},
                           headers=member_headers)
        assert res.status_code == 200
        data = res.get_json()["data"]["client"]
        assert data["name"] == "New"
        assert data["notes"] == "VIP"

    def test_delete_requires_admin(self, client, member_headers, admin_headers):
        c = _create(client, member_headers, name="Doomed").get_json()["data"]["client"]
        assert client.delete(f"/api/v1/clients/{c['id']}", headers=member_headers).status_code == 403
        res = client.delete(f"/api/v1/clients/{c['id']}", headers=admin_headers)
        assert res.status_code == 200
        assert client.get(f"/api/v1/clients/{c['id']}", headers=admin_headers).status_code == 404


class TestClientHierarchy:
    def test_parent_child(self, client, member_headers):
        parent = _create(client, member_headers, name="Holding").get_json()["data"]["client"]
        child = _create(client, member_headers, name="Subsidiary",
                        parent_client_id=parent["id"]).get_json()["data"]["client"]
        assert child["parent_client_id"] == parent["id"]

        res = client.get(f"/api/v1/clients?parent_client_id={parent['id']}", headers=member_headers)
        assert [c["id"] for c in res.get_json()["data"]["clients"]] == [child["id"]]

    def test_unknown_parent(self, client, member_headers):
        res = _create(client, member_headers, name="Orphan", parent_client_id=9999)
        assert res.status_code == 400
        assert res.get_json()["error"] == "Parent client not found"

    def test_cannot_be_own_parent(self, client, member_headers):
        c = _create(client, member_headers, name="Loop").get_json()["data"]["client"]
        res = client.patch(f"/api/v1/clients/{c['id']}", json={"parent_client_id": c["id"]},
                           headers=member_headers)
        assert res.status_code == 400
        assert res.get_json()["error"] == "A client cannot be its own parent"

    def test_deleting_parent_unlinks_children(self, client, member_headers, admin_headers):
        parent = _create(client, member_headers, name="Holding").get_json()["data"]["client"]
        child = _create(client, member_headers, name="Sub",
                        parent_client_id=parent["id"]).get_json()["data"]["client"]
        client.delete(f"/api/v1/clients/{parent['id']}", headers=admin_headers)
        res = client.get(f"/api/v1/clients/{child['id']}", headers=member_headers)
        assert res.get_json()["data"]["client"]["parent_client_id"] is None


class TestClientIsolation:
    def test_other_org_cannot_read(self, client, member_headers, outsider_headers):
        c = _create(client, member_headers, name="Private").get_json()["data"]["client"]
        res = client.get(f"/api/v1/clients/{c['id']}", headers=outsider_headers)
        assert res.status_code == 404
        assert res.get_json()["error"] == "Client not found"

    def test_parent_from_other_org_rejected(self, client, member_headers, outsider_headers):
        foreign = _create(client, outsider_headers, name="Foreign").get_json()["data"]["client"]
        res = _create(client, member_headers, name="Mine", parent_client_id=foreign["id"])
        assert res.status_code == 400
