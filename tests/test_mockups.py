"""
Mockups API: CRUD, moving between projects, duplication, comments and
the activity feed.
"""

from conftest import REVIEWER_ID, make_headers


def _progress(client, headers, mockup_id):
    return client.get(f"/api/v1/mockups/{mockup_id}/stage-progress", headers=headers).get_json()["data"]


class TestMockupCRUD:
    def test_create_draft(self, client, owner_headers, draft_mockup):
        assert draft_mockup["status"] == "draft"
        assert draft_mockup["project_id"] is None
        assert draft_mockup["created_by"] == "user_owner"

    def test_create_in_project_starts_review(self, client, owner_headers, mockup):
        assert mockup["status"] == "in_review"
        progress = _progress(client, owner_headers, mockup["id"])
        assert progress["has_workflow"] is True
        assert progress["current_stage"] == 1
        assert [s["status"] for s in progress["per_stage"]] == ["in_review", "not_started"]

    def test_create_requires_image(self, client, owner_headers):
        res = client.post("/api/v1/mockups", json={"name": "No image"}, headers=owner_headers)
        assert res.status_code == 400
        assert res.get_json()["error"] == "Missing required fields: image_url"

    def test_create_in_unknown_project(self, client, owner_headers):
        res = client.post("/api/v1/mockups",
                          json={"name": "Lost", "image_url": "https://cdn.example.com/a.png",
                                "project_id": 999},
                          headers=owner_headers)
        assert res.status_code == 404
        assert res.get_json()["error"] == "Project not found"

    def test_list_filters(self, client, owner_headers, project, mockup, draft_mockup):
        by_project = client.get(f"/api/v1/mockups?project_id={project['id']}",
                                headers=owner_headers).get_json()["data"]
        assert [m["id"] for m in by_project["mockups"]] == [mockup["id"]]

        unassigned = client.get("/api/v1/mockups?unassigned=true",
                                headers=owner_headers).get_json()["data"]
        assert [m["id"] for m in unassigned["mockups"]] == [draft_mockup["id"]]

        everything = client.get("/api/v1/mockups", headers=owner_headers).get_json()["data"]
        assert everything["total"] == 2

    def test_update_by_creator(self, client, owner_headers, draft_mockup):
        res = client.patch(f"/api/v1/mockups/{draft_mockup['id']}",
                           json={"name": "Refined Sketch"}, headers=owner_headers)
        assert res.status_code == 200
        assert res.get_json()["data"]["mockup"]["name"] == "Refined Sketch"

    def test_update_by_other_user_forbidden(self, client, admin_headers, draft_mockup):
        res = client.patch(f"/api/v1/mockups/{draft_mockup['id']}",
                           json={"name": "Admin Edit"}, headers=admin_headers)
        assert res.status_code == 403
        assert res.get_json()["error"] == "Only the mockup creator can edit this mockup"

    def test_delete(self, client, owner_headers, reviewer_headers, admin_headers, draft_mockup):
        url = f"/api/v1/mockups/{draft_mockup['id']}"
        assert client.delete(url, headers=reviewer_headers).status_code == 403
        res = client.delete(url, headers=admin_headers)
        assert res.status_code == 200
        assert res.get_json()["data"] == {"id": draft_mockup["id"], "deleted": True}
        assert client.get(url, headers=owner_headers).status_code == 404

    def test_other_org_cannot_see(self, client, outsider_headers, draft_mockup):
        res = client.get(f"/api/v1/mockups/{draft_mockup['id']}", headers=outsider_headers)
        assert res.status_code == 404
        assert res.get_json()["error"] == "Mockup not found"


class TestMoveMockup:
    def test_move_into_project_starts_review(self, client, owner_headers, project, draft_mockup):
        res = client.post(f"/api/v1/mockups/{draft_mockup['id']}/move",
                          json={"project_id": project["id"]}, headers=owner_headers)
        assert res.status_code == 200
        data = res.get_json()["data"]["mockup"]
        assert data["project_id"] == project["id"]
        assert data["status"] == "in_review"

    def test_unassign_clears_progress(self, client, owner_headers, mockup):
        res = client.post(f"/api/v1/mockups/{mockup['id']}/move",
                          json={"project_id": None}, headers=owner_headers)
        data = res.get_json()["data"]["mockup"]
        assert data["project_id"] is None
        assert data["status"] == "draft"
        assert _progress(client, owner_headers, mockup["id"])["has_workflow"] is False

    def test_move_requires_project_key(self, client, owner_headers, draft_mockup):
        res = client.post(f"/api/v1/mockups/{draft_mockup['id']}/move", json={},
                          headers=owner_headers)
        assert res.status_code == 400
        assert res.get_json()["error"] == "Missing required fields: project_id"

    def test_move_to_unknown_project(self, client, owner_headers, draft_mockup):
        res = client.post(f"/api/v1/mockups/{draft_mockup['id']}/move",
                          json={"project_id": 4242}, headers=owner_headers)
        assert res.status_code == 404
        assert res.get_json()["error"] == "Target project not found"

    def test_move_logs_activity(self, client, owner_headers, project, draft_mockup):
        client.post(f"/api/v1/mockups/{draft_mockup['id']}/move",
                    json={"project_id": project["id"]}, headers=owner_headers)
        activity = client.get(f"/api/v1/mockups/{draft_mockup['id']}/activity",
                              headers=owner_headers).get_json()["data"]["activity"]
        moved = [a for a in activity if a["action"] == "moved"]
        assert moved[0]["metadata"] == {"from_project_id": None, "to_project_id": project["id"]}


class TestDuplicateMockup:
    def test_duplicate_is_fresh_draft(self, client, reviewer_headers, mockup):
        res = client.post(f"/api/v1/mockups/{mockup['id']}/duplicate", json={},
                          headers=reviewer_headers)
        assert res.status_code == 201
        copy = res.get_json()["data"]["mockup"]
        assert copy["name"] == "Copy of Holiday Card"
        assert copy["image_url"] == mockup["image_url"]
        assert copy["project_id"] is None
        assert copy["status"] == "draft"
        assert copy["created_by"] == REVIEWER_ID

    def test_duplicate_with_name(self, client, owner_headers, draft_mockup):
        res = client.post(f"/api/v1/mockups/{draft_mockup['id']}/duplicate",
                          json={"name": "Variant B"}, headers=owner_headers)
        assert res.get_json()["data"]["mockup"]["name"] == "Variant B"


class TestComments:
    def test_creator_comments(self, client, owner_headers, mockup):
        res = client.post(f"/api/v1/mockups/{mockup['id']}/comments",
                          json={"comment_text": "Bump the logo", "position_x": 40, "position_y": 12.5,
                                "annotation_type": "point"},
                          headers=owner_headers)
        assert res.status_code == 201
        comment = res.get_json()["data"]["comment"]
        assert comment["user_name"] == "Olive Owner"
        assert comment["position_y"] == 12.5

    def test_reviewer_comments_and_notifies_creator(self, client, owner_headers, reviewer_headers, mockup):
        res = client.post(f"/api/v1/mockups/{mockup['id']}/comments",
                          json={"comment_text": "Looks great"}, headers=reviewer_headers)
        assert res.status_code == 201

        notes = client.get("/api/v1/notifications", headers=owner_headers).get_json()["data"]
        assert any(n["type"] == "comment" for n in notes["notifications"])

    def test_unrelated_member_forbidden(self, client, organization, mockup):
        stranger = make_headers("user_stranger", organization.id)
        res = client.post(f"/api/v1/mockups/{mockup['id']}/comments",
                          json={"comment_text": "Hi"}, headers=stranger)
        assert res.status_code == 403
        assert res.get_json()["error"] == "You do not have access to comment on this mockup"

    def test_comment_text_must_be_text(self, client, owner_headers, draft_mockup):
        for bad in (123, "   ", ["hi"]):
            res = client.post(f"/api/v1/mockups/{draft_mockup['id']}/comments",
                              json={"comment_text": bad}, headers=owner_headers)
            assert res.status_code == 400
            assert res.get_json()["error"] == "Missing required fields: comment_text"

    def test_position_out_of_range(self, client, owner_headers, draft_mockup):
        res = client.post(f"/api/v1/mockups/{draft_mockup['id']}/comments",
                          json={"comment_text": "Off canvas", "position_x": 120},
                          headers=owner_headers)
        assert res.status_code == 400
        assert res.get_json()["error"] == "position_x must be a number between 0 and 100"

    def test_invalid_annotation_type(self, client, owner_headers, draft_mockup):
        res = client.post(f"/api/v1/mockups/{draft_mockup['id']}/comments",
                          json={"comment_text": "Hmm", "annotation_type": "hexagon"},
                          headers=owner_headers)
        assert res.status_code == 400

    def test_list_in_order(self, client, owner_headers, draft_mockup):
        for text in ("first", "second"):
            client.post(f"/api/v1/mockups/{draft_mockup['id']}/comments",
                        json={"comment_text": text}, headers=owner_headers)
        data = client.get(f"/api/v1/mockups/{draft_mockup['id']}/comments",
                          headers=owner_headers).get_json()["data"]
        assert data["total"] == 2
        assert [c["comment_text"] for c in data["comments"]] == ["first", "second"]

    def test_delete_only_by_author_or_admin(self, client, owner_headers, reviewer_headers,
                                            admin_headers, mockup):
        cid = client.post(f"/api/v1/mockups/{mockup['id']}/comments",
                          json={"comment_text": "Mine"},
                          headers=reviewer_headers).get_json()["data"]["comment"]["id"]
        url = f"/api/v1/mockups/{mockup['id']}/comments/{cid}"
        assert client.delete(url, headers=owner_headers).status_code == 403
        assert client.delete(url, headers=admin_headers).status_code == 200
        assert client.delete(url, headers=admin_headers).status_code == 404


class TestActivity:
    def test_feed_records_lifecycle(self, client, owner_headers, mockup):
        client.patch(f"/api/v1/mockups/{mockup['id']}", json={"name": "Holiday Card v2"},
                     headers=owner_headers)
        activity = client.get(f"/api/v1/mockups/{mockup['id']}/activity",
                              headers=owner_headers).get_json()["data"]["activity"]
        actions = {a["action"] for a in activity}
        assert {"created", "review_requested", "updated"} <= actions

    def test_limit(self, client, owner_headers, mockup):
        activity = client.get(f"/api/v1/mockups/{mockup['id']}/activity?limit=1",
                              headers=owner_headers).get_json()["data"]["activity"]
        assert len(activity) == 1
