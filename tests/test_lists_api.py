import uuid
from datetime import date, timedelta

from app.studiodesk.core.config import settings
from app.studiodesk.core.security import create_access_token
from app.studiodesk.db.models import Task
from tests.studio_helpers import add_clients, add_event, add_profile, auth_headers, create_firm_profile


def test_lists_require_token(client):
    response = client.get("/studiodesk/lists/clients")
    assert response.status_code == 401
    payload = response.json()
    assert payload["code"] == "INVALID_TOKEN"
    assert payload["trace_id"]

    response = client.get("/studiodesk/lists/clients", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401


def test_lists_require_workspace_scope(client):
    token = create_access_token({"sub": str(uuid.uuid4()), "role": "Admin"})
    response = client.get("/studiodesk/lists", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 403
    assert response.json()["code"] == "WORKSPACE_SCOPE_REQUIRED"


def test_list_catalog(client, db_session):
    _firm, admin = create_firm_profile(db_session, suffix="catalog")
    response = client.get("/studiodesk/lists", headers=auth_headers(admin))
    assert response.status_code == 200
    entities = response.json()["entities"]
    assert entities == sorted(entities)
    assert {"clients", "events", "tasks", "quotations", "event_staff_assignments"} <= set(entities)


def test_unknown_list_returns_not_found(client, db_session):
    _firm, admin = create_firm_profile(db_session, suffix="unknown")
    response = client.get("/studiodesk/lists/invoices", headers=auth_headers(admin))
    assert response.status_code == 404
    payload = response.json()
    assert payload["code"] == "UNKNOWN_LIST"
    assert payload["details"]["entity"] == "invoices"


def test_list_clients_with_search_filters_and_paging(client, db_session):
    firm, admin = create_firm_profile(db_session, suffix="clients")
    other_firm, _ = create_firm_profile(db_session, suffix="clients-other")
    add_clients(
        db_session,
        firm,
        {"name": "Mehta Family", "email": "mehta@example.com"},
        {"name": "Mehta Traders"},
        {"name": "Rao & Sons", "email": "rao@example.com"},
    )
    add_clients(db_session, other_firm, {"name": "Mehta Elsewhere", "email": "x@example.com"})
    headers = auth_headers(admin)

    response = client.get(
        "/studiodesk/lists/clients",
        params={"q": "mehta", "filters": ["has_email"], "sort_by": "name", "sort_dir": "asc"},
        headers=headers,
    )
    assert response.status_code == 200
    payload = response.json()
    assert [row["name"] for row in payload["rows"]] == ["Mehta Family"]
    assert payload["meta"]["total_count"] == 1
    assert payload["meta"]["sort_by"] == "name"
    assert payload["meta"]["sort_dir"] == "asc"
    assert payload["meta"]["all_loaded"] is True
    assert payload["trace_id"]

    response = client.get(
        "/studiodesk/lists/clients",
        params={"sort_by": "name", "sort_dir": "asc", "page": 1, "page_size": 2},
        headers=headers,
    )
    payload = response.json()
    assert [row["name"] for row in payload["rows"]] == ["Rao & Sons"]
    assert payload["meta"]["page"] == 1
    assert payload["meta"]["page_size"] == 2
    assert payload["meta"]["total_count"] == 3


def test_list_rejects_invalid_paging(client, db_session):
    _firm, admin = create_firm_profile(db_session, suffix="paging")
    headers = auth_headers(admin)

    response = client.get(
        "/studiodesk/lists/clients",
        params={"page_size": settings.LIST_MAX_PAGE_SIZE + 1},
        headers=headers,
    )
    assert response.status_code == 422
    assert response.json()["code"] == "VALIDATION_ERROR"

    response = client.get("/studiodesk/lists/clients", params={"page": -1}, headers=headers)
    assert response.status_code == 422


def test_events_list_is_enriched_and_filtered_by_staff_role(client, db_session):
    firm, admin = create_firm_profile(db_session, suffix="events")
    (mehta,) = add_clients(db_session, firm, {"name": "Mehta Family", "phone": "9800000001"})
    add_event(
        db_session,
        firm,
        title="Mehta Wedding",
        client_id=mehta.id,
        event_type="Wedding",
        event_date=date.today() + timedelta(days=20),
        roles=("Photographer", "Drone Pilot"),
    )
    add_event(db_session, firm, title="Studio Portraits", event_type="Others")

    response = client.get(
        "/studiodesk/lists/events",
        params={"filters": ["drone", "wedding"]},
        headers=auth_headers(admin),
    )
    assert response.status_code == 200
    rows = response.json()["rows"]
    assert [row["title"] for row in rows] == ["Mehta Wedding"]
    assert rows[0]["client"]["name"] == "Mehta Family"
    assert rows[0]["id"]


def test_tasks_visible_to_assignee_only(client, db_session):
    firm, admin = create_firm_profile(db_session, suffix="tasks")
    editor = add_profile(db_session, firm, name="Editor", role="Editor")
    db_session.add_all(
        [
            Task(firm_id=firm.id, title="Edit album", status="Pending", assigned_to=editor.id),
            Task(firm_id=firm.id, title="Call client", status="Pending", assigned_to=admin.id),
        ]
    )
    db_session.commit()

    editor_rows = client.get("/studiodesk/lists/tasks", headers=auth_headers(editor)).json()["rows"]
    assert [row["title"] for row in editor_rows] == ["Edit album"]

    admin_rows = client.get("/studiodesk/lists/tasks", headers=auth_headers(admin)).json()["rows"]
    assert {row["title"] for row in admin_rows} == {"Edit album", "Call client"}


def test_list_options_describe_config(client, db_session):
    _firm, admin = create_firm_profile(db_session, suffix="options")
    response = client.get("/studiodesk/lists/events/options", headers=auth_headers(admin))
    assert response.status_code == 200
    payload = response.json()
    assert payload["table"] == "events"
    assert payload["default_sort"] == "created_at"
    assert payload["default_sort_dir"] == "desc"
    assert payload["related_tables"] == ["payments", "event_closing_balances"]
    filters = {item["key"]: item for item in payload["filters"]}
    assert filters["drone"] == {"key": "drone", "label": "Drone Pilot", "kind": "staff_role"}
    assert filters["wedding"]["kind"] == "column"
    assert filters["no_staff"]["kind"] == "predicate"
    assert {option["key"] for option in payload["sort_options"]} >= {"created_at", "event_date"}


def test_malformed_ids_in_token_are_rejected(client):
    for claims in (
        {"sub": "not-a-uuid", "firm_id": str(uuid.uuid4()), "role": "Admin"},
        {"sub": str(uuid.uuid4()), "firm_id": "firm-1", "role": "Admin"},
    ):
        token = create_access_token(claims)
        response = client.get("/studiodesk/lists/clients", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert response.json()["code"] == "INVALID_TOKEN"


def test_token_ids_are_canonicalized(client, db_session):
    firm, admin = create_firm_profile(db_session, suffix="canonical")
    add_clients(db_session, firm, {"name": "Upper Case Client"})
    token = create_access_token({"sub": str(admin.id).upper(), "firm_id": firm.id.hex, "role": "Admin"})

    response = client.get("/studiodesk/lists/clients", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    assert [row["name"] for row in response.json()["rows"]] == ["Upper Case Client"]
