"""
Projects API: CRUD, validation, creator/admin permissions, workflow
assignment and deletion semantics.
"""

from conftest import REVIEWER_ID, TWO_STAGES, add_reviewer


def _create(client, headers, **body):
    return client.post("/api/v1/projects", json=body, headers=headers)


class TestProjectCRUD:
    def test_create_defaults(self, client, member_headers):
        res = _create(client, member_headers, name="Summer Launch")
        assert res.status_code == 201
        data = res.get_json()["data"]["project"]
        assert data["status"] == "active"
        assert data["color"] == "#3B82F6"
        assert data["workflow"] is None
        assert data["mockup_count"] == 0
        assert data["created_by"] == "user_owner"

    def test_create_with_workflow(self, client, member_headers, workflow):
        res = _create(client, member_headers, name="Reviewed", workflow_id=workflow["id"])
        data = res.get_json()["data"]["project"]
        assert data["workflow_id"] == workflow["id"]
        assert data["workflow"]["name"] == "Standard Review"

    def test_name_required(self, client, member_headers):
        res = _create(client, member_headers, name="   ")
        assert res.status_code == 400
        assert res.get_json()["error"] == "Project name is required"

    def test_name_too_long(self, client, member_headers):
        res = _create(client, member_headers, name="p" * 101)
        assert res.status_code == 400
        assert res.get_json()["error"] == "Project name must be less than 100 characters"

    def test_color_normalized(self, client, member_headers):
        res = _create(client, member_headers, name="Colorful", color="#ff00aa")
        assert res.get_json()["data"]["project"]["color"] == "#FF00AA"

    def test_invalid_color(self, client, member_headers):
        res = _create(client, member_headers, name="Colorful", color="red")
        assert res.status_code == 400

    def test_invalid_status(self, client, member_headers):
        res = _create(client, member_headers, name="Odd", status="paused")
        assert res.status_code == 400
        assert res.get_json()["error"].startswith("Invalid status")

    def test_unknown_client(self, client, member_headers):
        res = _create(client, member_headers, name="Nobody's", client_id=4242)
        assert res.status_code == 404
        assert res.get_json()["error"] == "Client not found"

    def test_list_filters_by_status(self, client, member_headers):
        _create(client, member_headers, name="Live")
        _create(client, member_headers, name="Done", status="completed")
        res = client.get("/api/v1/projects?status=completed", headers=member_headers)
        data = res.get_json()["data"]
        assert data["total"] == 1
        assert data["projects"][0]["name"] == "Done"

    def test_list_counts_mockups(self, client, member_headers, project, mockup):
        res = client.get("/api/v1/projects", headers=member_headers)
        listed = {p["id"]: p for p in res.get_json()["data"]["projects"]}
        assert listed[project["id"]]["mockup_count"] == 1


class TestProjectWorkflowAssignment:
    def test_archived_workflow_rejected(self, client, admin_headers, member_headers, workflow):
        client.patch(f"/api/v1/workflows/{workflow['id']}", json={"is_archived": True},
                     headers=admin_headers)
        res = _create(client, member_headers, name="Late", workflow_id=workflow["id"])
        assert res.status_code == 400
        assert res.get_json()["error"] == "Archived workflows cannot be assigned to projects"

    def test_reassign_workflow(self, client, admin_headers, member_headers, project):
        other = client.post("/api/v1/workflows",
                            json={"name": "Express", "stages": TWO_STAGES[:1]},
                            headers=admin_headers).get_json()["data"]["workflow"]
        res = client.patch(f"/api/v1/projects/{project['id']}",
                           json={"workflow_id": other["id"]}, headers=member_headers)
        assert res.status_code == 200
        assert res.get_json()["data"]["project"]["workflow"]["name"] == "Express"

    def test_switch_clears_reviewers_and_restarts_review(self, client, admin_headers, owner_headers,
                                                         reviewer_headers, project, mockup):
        solo = client.post("/api/v1/workflows",
                           json={"name": "Solo", "stages": TWO_STAGES[:1]},
                           headers=admin_headers).get_json()["data"]["workflow"]
        res = client.patch(f"/api/v1/projects/{project['id']}",
                           json={"workflow_id": solo["id"]}, headers=owner_headers)
        assert res.status_code == 200

        stages = client.get(f"/api/v1/projects/{project['id']}/reviewers",
                            headers=owner_headers).get_json()["data"]["stages"]
        assert stages == []

        progress = client.get(f"/api/v1/mockups/{mockup['id']}/stage-progress",
                              headers=owner_headers).get_json()["data"]
        assert progress["workflow"]["name"] == "Solo"
        assert [r["stage_order"] for r in progress["rows"]] == [1]
        assert progress["overall_status"] == "in_progress"

        # Old stage-1 reviewer no longer decides until registered again.
        denied = client.post(f"/api/v1/mockups/{mockup['id']}/approve", json={},
                             headers=reviewer_headers)
        assert denied.status_code == 403

        add_reviewer(client, admin_headers, project["id"], 1, REVIEWER_ID)
        approved = client.post(f"/api/v1/mockups/{mockup['id']}/approve", json={},
                               headers=reviewer_headers)
        assert approved.get_json()["data"]["all_stages_complete"] is True
        progress = client.get(f"/api/v1/mockups/{mockup['id']}/stage-progress",
                              headers=owner_headers).get_json()["data"]
        got = client.get(f"/api/v1/mockups/{mockup['id']}", headers=owner_headers)
        assert progress["overall_status"] == "approved"
        assert got.get_json()["data"]["mockup"]["status"] == "approved"

    def test_unassigning_workflow_returns_mockups_to_draft(self, client, owner_headers,
                                                           project, mockup):
        res = client.patch(f"/api/v1/projects/{project['id']}",
                           json={"workflow_id": None}, headers=owner_headers)
        assert res.status_code == 200

        got = client.get(f"/api/v1/mockups/{mockup['id']}", headers=owner_headers)
        assert got.get_json()["data"]["mockup"]["status"] == "draft"
        progress = client.get(f"/api/v1/mockups/{mockup['id']}/stage-progress",
                              headers=owner_headers).get_json()["data"]
        assert progress["has_workflow"] is False
        stages = client.get(f"/api/v1/projects/{project['id']}/reviewers",
                            headers=owner_headers).get_json()["data"]["stages"]
        assert stages == []

    def test_same_workflow_keeps_progress(self, client, owner_headers, reviewer_headers,
                                          project, mockup):
        client.post(f"/api/v1/mockups/{mockup['id']}/approve", json={}, headers=reviewer_headers)
        res = client.patch(f"/api/v1/projects/{project['id']}",
                           json={"workflow_id": project["workflow_id"]}, headers=owner_headers)
        assert res.status_code == 200
        progress = client.get(f"/api/v1/mockups/{mockup['id']}/stage-progress",
                              headers=owner_headers).get_json()["data"]
        assert progress["current_stage"] == 2
        stages = client.get(f"/api/v1/projects/{project['id']}/reviewers",
                            headers=owner_headers).get_json()["data"]["stages"]
        assert [s["stage_order"] for s in stages] == [1, 2]

    def test_workflow_from_other_org(self, client, member_headers, outsider_headers):
        foreign = client.post("/api/v1/workflows",
                              json={"name": "Theirs", "stages": TWO_STAGES},
                              headers=outsider_headers).get_json()["data"]["workflow"]
        res = _create(client, member_headers, name="Mine", workflow_id=foreign["id"])
        assert res.status_code == 404


class TestProjectPermissions:
    def test_other_member_cannot_update(self, client, reviewer_headers, project):
        res = client.patch(f"/api/v1/projects/{project['id']}", json={"name": "Hijacked"},
                           headers=reviewer_headers)
        assert res.status_code == 403
        assert res.get_json()["error"] == "Only the project creator or an admin can modify this project"

    def test_admin_can_update(self, client, admin_headers, project):
        res = client.patch(f"/api/v1/projects/{project['id']}", json={"status": "completed"},
                           headers=admin_headers)
        assert res.status_code == 200
        assert res.get_json()["data"]["project"]["status"] == "completed"

    def test_other_member_cannot_delete(self, client, reviewer_headers, project):
        res = client.delete(f"/api/v1/projects/{project['id']}", headers=reviewer_headers)
        assert res.status_code == 403

    def test_other_org_gets_404(self, client, outsider_headers, project):
        res = client.get(f"/api/v1/projects/{project['id']}", headers=outsider_headers)
        assert res.status_code == 404
        assert res.get_json()["error"] == "Project not found"


class TestProjectDelete:
    def test_delete_unassigns_mockups(self, client, owner_headers, project, mockup):
        res = client.delete(f"/api/v1/projects/{project['id']}", headers=owner_headers)
        assert res.status_code == 200
        assert res.get_json()["data"] == {"id": project["id"], "unassigned_mockups": 1}

        got = client.get(f"/api/v1/mockups/{mockup['id']}", headers=owner_headers)
        data = got.get_json()["data"]["mockup"]
        assert data["project_id"] is None
        assert data["status"] == "draft"

        progress = client.get(f"/api/v1/mockups/{mockup['id']}/stage-progress",
                              headers=owner_headers).get_json()["data"]
        assert progress["has_workflow"] is False

    def test_deleted_project_is_gone(self, client, owner_headers, project):
        client.delete(f"/api/v1/projects/{project['id']}", headers=owner_headers)
        res = client.get(f"/api/v1/projects/{project['id']}", headers=owner_headers)
        assert res.status_code == 404
