import io

import pandas as pd


def _create_estimation(client, project_id, template_id, name):
    response = client.post(
        f"/projects/{project_id}/estimations",
        json={"template_id": template_id, "name": name},
    )
    assert response.status_code == 201
    return response.get_json()


def test_healthz(client):
    assert client.get("/healthz").get_json() == {"ok": True}


def test_project_crud(client):
    response = client.post(
        "/projects",
        json={
            "name": "Tech Park Office Building",
            "client_name": "TechCorp Solutions",
            "client_address": "321 IT Park, Hyderabad",
            "project_address": "Block C, HITEC City, Hyderabad",
            "phone_number": "+91 98490 00004",
            "estimated_budget": 6500000,
        },
    )
    assert response.status_code == 201
    project = response.get_json()
    assert project["id"] == "PRJ001"
    assert project["timeline"][0]["title"] == "Project Created"

    response = client.patch(f"/projects/{project['id']}", json={"status": "On Hold"})
    assert response.status_code == 200
    assert response.get_json()["status"] == "On Hold"
    assert response.get_json()["timeline"][0]["title"] == "Status Changed: New → On Hold"

    listed = client.get("/projects?search=Tech").get_json()
    assert [p["id"] for p in listed] == ["PRJ001"]

    stats = client.get("/projects/statistics").get_json()
    assert stats["total_projects"] == 1

    assert client.delete(f"/projects/{project['id']}").status_code == 200
    assert client.get(f"/projects/{project['id']}").status_code == 404


def test_error_status_mapping(client, catalog, project):
    missing = client.get("/projects/PRJ999")
    assert missing.status_code == 404
    assert missing.get_json() == {
        "ok": False,
        "error_type": "NOT_FOUND",
        "error_message": "Project not found: PRJ999",
    }

    invalid = client.post("/projects", json={"name": "Only a name"})
    assert invalid.status_code == 400
    assert invalid.get_json()["error_type"] == "VALIDATION_ERROR"

    estimation = _create_estimation(client, project.id, catalog.template.id, "only")
    last = client.delete(f"/estimations/{estimation['id']}")
    assert last.status_code == 409
    assert last.get_json()["error_type"] == "INVARIANT_VIOLATION"
    assert client.get(f"/estimations/{estimation['id']}").status_code == 200


def test_estimation_flow(client, catalog, project):
    v1 = _create_estimation(client, project.id, catalog.template.id, "v1")
    assert v1["total_amount"] == 75000
    assert v1["version"] == 1
    assert v1["is_active"] is True

    cement_item = v1["items"][0]
    response = client.patch(
        f"/estimations/{v1['id']}/items/{cement_item['id']}",
        json={"quantity": 200},
    )
    assert response.status_code == 200
    assert response.get_json()["total_amount"] == 110000

    bad = client.patch(
        f"/estimations/{v1['id']}/items/{cement_item['id']}",
        json={"rate": -1},
    )
    assert bad.status_code == 400
    assert client.get(f"/estimations/{v1['id']}").get_json()["total_amount"] == 110000

    v2 = _create_estimation(client, project.id, catalog.template.id, "v2")
    assert v2["version"] == 2

    listed = client.get(f"/projects/{project.id}/estimations").get_json()
    assert [(e["name"], e["is_active"]) for e in listed] == [("v2", True), ("v1", False)]

    activated = client.post(f"/projects/{project.id}/estimations/{v1['id']}/activate")
    assert activated.get_json() == {"success": True}
    unknown = client.post(f"/projects/{project.id}/estimations/PE999/activate")
    assert unknown.status_code == 200
    assert unknown.get_json() == {"success": False}

    copy = client.post(f"/estimations/{v1['id']}/duplicate", json={"new_name": "v3"})
    assert copy.status_code == 201
    assert copy.get_json()["version"] == 3

    assert client.delete(f"/estimations/{v1['id']}").status_code == 200
    active = [e for e in client.get(f"/projects/{project.id}/estimations").get_json() if e["is_active"]]
    assert len(active) == 1

    stats = client.get(f"/estimations/statistics?project_id={project.id}").get_json()
    assert stats["total_estimations"] == 2


def test_estimation_items_add_and_delete(client, catalog, project):
    estimation = _create_estimation(client, project.id, catalog.template.id, "v1")

    added = client.post(
        f"/estimations/{estimation['id']}/items",
        json={"line_item_id": catalog.cement.id, "quantity": 10},
    )
    assert added.status_code == 201
    body = added.get_json()
    assert body["total_amount"] == 78500

    new_item = body["items"][-1]
    removed = client.delete(f"/estimations/{estimation['id']}/items/{new_item['id']}")
    assert removed.get_json()["total_amount"] == 75000


def test_export_excel(client, catalog, project):
    estimation = _create_estimation(client, project.id, catalog.template.id, "v1")

    response = client.get(f"/estimations/{estimation['id']}/export")
    assert response.status_code == 200
    assert response.mimetype == "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

    df = pd.read_excel(io.BytesIO(response.data), engine="openpyxl")
    assert df["Item"].tolist()[-1] == "Total Amount"
    assert df["Amount"].tolist()[-1] == 75000


def test_catalog_endpoints(client, catalog):
    items = client.get("/line-items").get_json()
    assert [i["id"] for i in items] == [catalog.cement.id, catalog.bricks.id]

    bad = client.post("/line-items", json={"name": "Gravel", "unit": "Ton", "rate": 0})
    assert bad.status_code == 400

    detail = client.get(f"/templates/{catalog.template.id}").get_json()
    assert detail["items_count"] == 2
    assert detail["total_value"] == 75000


def test_agreement_generate_and_print(client, project):
    created = client.post("/agreements", json={"name": "Standard Construction Agreement"})
    assert created.status_code == 201
    agreement = created.get_json()
    assert agreement["type"] == "Construction"

    generated = client.post(f"/projects/{project.id}/agreements/{agreement['id']}/generate")
    assert generated.status_code == 200
    html = generated.get_json()["html"]
    assert "Riverside Residences" in html
    assert "{{PROJECT_NAME}}" not in html

    timeline = client.get(f"/projects/{project.id}").get_json()["timeline"]
    assert timeline[0]["title"] == "Agreement Generated"

    page = client.get(f"/projects/{project.id}/agreements/{agreement['id']}/print")
    assert page.status_code == 200
    assert page.mimetype == "text/html"
    assert b"window.print()" in page.data

    preview = client.get(f"/agreements/{agreement['id']}/preview").get_json()
    assert preview["budget_in_words"] == "Twenty Five Lakh Only"


def test_generate_failure_leaves_no_timeline_event(client, project):
    response = client.post(f"/projects/{project.id}/agreements/AG999/generate")
    assert response.status_code == 404
    timeline = client.get(f"/projects/{project.id}").get_json()["timeline"]
    assert [e["title"] for e in timeline] == ["Project Created"]


def test_malformed_json_body_is_rejected(client, project):
    response = client.patch(
        f"/projects/{project.id}",
        data='{"name": "Broken',
        content_type="application/json",
    )
    assert response.status_code == 400
    assert response.get_json()["error_type"] == "VALIDATION_ERROR"
    assert client.get(f"/projects/{project.id}").get_json()["name"] == "Riverside Residences"

    rejected = client.post(f"/projects/{project.id}/timeline", json=["not", "an", "object"])
    assert rejected.status_code == 400


def test_non_string_item_notes_are_rejected(client, catalog, project):
    estimation = _create_estimation(client, project.id, catalog.template.id, "v1")
    item = estimation["items"][0]

    response = client.patch(
        f"/estimations/{estimation['id']}/items/{item['id']}",
        json={"notes": 5},
    )
    assert response.status_code == 400
    assert response.get_json()["field"] == "notes"
