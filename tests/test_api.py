"""Tests for the HTTP session API."""

import pytest

COLUMNS = [
    {"name": "name", "storage_type": "VARCHAR", "sample_values": ["Paris", "Lyon"]},
    {"name": "population", "storage_type": "INTEGER", "sample_values": ["2100000"]},
    {"name": "nickname", "storage_type": "VARCHAR", "nullable": True},
]

TARGETS = [
    {"path": "item.terms.labels.en", "accepted_types": ["string"], "is_required": True},
    {"path": "item.terms.aliases.en", "accepted_types": ["string"]},
    {"path": "item.terms.descriptions.en", "accepted_types": ["string", "monolingualtext"]},
    {
        "path": "item.statements[0].value",
        "accepted_types": ["quantity"],
        "property_id": "P1082",
    },
]


@pytest.fixture
def sid(client):
    resp = client.post("/api/sessions", json={"project_id": "p1", "columns": COLUMNS})
    assert resp.status_code == 201
    session_id = resp.json()["session_id"]
    resp = client.put(f"/api/sessions/{session_id}/targets", json=TARGETS)
    assert resp.status_code == 200
    return session_id


class TestSessions:
    """Test session lifecycle endpoints."""

    def test_health(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "sessions": 0}

    def test_create_session(self, client, sid):
        data = client.get(f"/api/sessions/{sid}").json()
        assert data["project_id"] == "p1"
        assert data["knowledge_base"] == "wikidata"
        assert data["column_names"] == ["name", "population", "nickname"]
        assert len(data["target_paths"]) == 4
        assert data["can_save"] is False
        assert client.get("/api/sessions").json() == {"sessions": [sid]}

    def test_malformed_session_id(self, client):
        assert client.get("/api/sessions/not-a-session").status_code == 400

    def test_unknown_session(self, client):
        resp = client.get("/api/sessions/ses_0123456789abcdef0123456789abcdef")
        assert resp.status_code == 404

    def test_close_session(self, client, sid):
        assert client.delete(f"/api/sessions/{sid}").status_code == 200
        assert client.get(f"/api/sessions/{sid}").status_code == 404

    def test_invalid_target(self, client, sid):
        resp = client.put(
            f"/api/sessions/{sid}/targets",
            json=[{"path": "schema.name", "accepted_types": ["string"]}],
        )
        assert resp.status_code == 400

    def test_profile_columns(self, client, sid):
        resp = client.post(
            f"/api/sessions/{sid}/columns/profile",
            json={"headers": ["city", "inhabitants"], "rows": [["Paris", 2100000], ["Lyon", None]]},
        )
        assert resp.status_code == 200
        columns = {c["name"]: c for c in resp.json()}
        assert columns["inhabitants"]["storage_type"] == "INTEGER"
        assert columns["inhabitants"]["nullable"] is True
        listed = client.get(f"/api/sessions/{sid}/columns").json()
        assert [c["name"] for c in listed] == ["city", "inhabitants"]

    def test_duplicate_column_names(self, client, sid):
        resp = client.put(f"/api/sessions/{sid}/columns", json=[COLUMNS[0], COLUMNS[0]])
        assert resp.status_code == 400

    def test_valid_targets_for_column(self, client, sid):
        data = client.get(f"/api/sessions/{sid}/columns/population/targets").json()
        assert data["valid_target_paths"] == ["item.statements[0].value"]
        resp = client.get(f"/api/sessions/{sid}/columns/missing/targets")
        assert resp.status_code == 404


class TestDragDrop:
    """Test the drag endpoints."""

    def test_drag_flow(self, client, sid):
        state = client.post(f"/api/sessions/{sid}/drag/start", json={"column_name": "name"}).json()
        assert state["drag_state"] == "dragging"
        assert "item.terms.labels.en" in state["valid_target_paths"]

        state = client.post(
            f"/api/sessions/{sid}/drag/hover", json={"path": "item.terms.labels.en"}
        ).json()
        assert state["is_current_hover_valid"] is True

        zones = {z["path"]: z["state"] for z in client.get(f"/api/sessions/{sid}/drag/zones").json()}
        assert zones["item.terms.labels.en"] == "valid-hover"
        assert zones["item.statements[0].value"] == "invalid"

        resp = client.post(
            f"/api/sessions/{sid}/drag/drop", json={"target_path": "item.terms.labels.en"}
        )
        assert resp.status_code == 200
        assert resp.json()["success"] is True
        assert client.get(f"/api/sessions/{sid}/drag").json()["drag_state"] == "idle"

        schema = client.get(f"/api/sessions/{sid}/schema").json()
        assert schema["item"]["terms"]["labels"]["en"]["column_name"] == "name"

    def test_required_nullable_rejected(self, client, sid):
        resp = client.post(
            f"/api/sessions/{sid}/drag/drop",
            json={"target_path": "item.terms.labels.en", "column_name": "nickname"},
        )
        data = resp.json()
        assert data["success"] is False
        assert data["feedback"]["message"] == "Required field cannot accept nullable column"
        issues = client.get(f"/api/sessions/{sid}/validation").json()
        assert issues["errors"][0]["code"] == "NULLABLE_REQUIRED_FIELD"

    def test_statement_drop_returns_id(self, client, sid):
        resp = client.post(
            f"/api/sessions/{sid}/drag/drop",
            json={"target_path": "item.statements[0].value", "column_name": "population"},
        )
        statement_id = resp.json()["statement_id"]
        assert statement_id.startswith("stmt_")

    def test_drop_without_drag(self, client, sid):
        resp = client.post(
            f"/api/sessions/{sid}/drag/drop", json={"target_path": "item.terms.labels.en"}
        )
        assert resp.status_code == 400

    def test_unknown_column_and_target(self, client, sid):
        resp = client.post(f"/api/sessions/{sid}/drag/start", json={"column_name": "missing"})
        assert resp.status_code == 404
        client.post(f"/api/sessions/{sid}/drag/start", json={"column_name": "name"})
        resp = client.post(f"/api/sessions/{sid}/drag/hover", json={"path": "item.terms.labels.fr"})
        assert resp.status_code == 404

    def test_end_drag(self, client, sid):
        client.post(f"/api/sessions/{sid}/drag/start", json={"column_name": "name"})
        state = client.post(f"/api/sessions/{sid}/drag/end").json()
        assert state["drag_state"] == "idle"
        assert state["valid_target_paths"] == []


class TestMapping:
    """Test schema mapping endpoints."""

    def test_terms(self, client, sid):
        mapping = {"column_name": "nickname", "storage_type": "VARCHAR"}
        client.post(f"/api/sessions/{sid}/schema/aliases/EN", json=mapping)
        data = client.post(f"/api/sessions/{sid}/schema/aliases/en", json=mapping).json()
        assert len(data["aliases"]) == 1

        data = client.delete(
            f"/api/sessions/{sid}/schema/aliases/en",
            params={"column_name": "nickname", "storage_type": "VARCHAR"},
        ).json()
        assert data["aliases"] == []

        client.put(f"/api/sessions/{sid}/schema/labels/en", json=mapping)
        data = client.delete(f"/api/sessions/{sid}/schema/labels/en").json()
        assert data["labels"] == {}

    def test_statement_crud(self, client, sid):
        body = {
            "property": {"id": "P31", "data_type": "wikibase-item"},
            "value": {"type": "constant", "source": "Q515", "data_type": "wikibase-item"},
        }
        resp = client.post(f"/api/sessions/{sid}/schema/statements", json=body)
        assert resp.status_code == 201
        statement_id = resp.json()["statement_id"]

        resp = client.put(
            f"/api/sessions/{sid}/schema/statements/{statement_id}/rank",
            json={"rank": "preferred"},
        )
        assert resp.json()["rank"] == "preferred"

        qualifier = {
            "property": {"id": "P580"},
            "value": {"type": "constant", "source": "2020", "data_type": "time"},
        }
        resp = client.post(
            f"/api/sessions/{sid}/schema/statements/{statement_id}/qualifiers", json=qualifier
        )
        assert len(resp.json()["qualifiers"]) == 1
        resp = client.delete(
            f"/api/sessions/{sid}/schema/statements/{statement_id}/qualifiers/3"
        )
        assert resp.status_code == 404

        resp = client.post(
            f"/api/sessions/{sid}/schema/statements/{statement_id}/references", json=[qualifier]
        )
        reference_id = resp.json()["references"][0]["id"]
        resp = client.delete(
            f"/api/sessions/{sid}/schema/statements/{statement_id}/references/{reference_id}"
        )
        assert resp.json()["references"] == []

        assert client.delete(
            f"/api/sessions/{sid}/schema/statements/{statement_id}"
        ).status_code == 200
        assert client.delete(
            f"/api/sessions/{sid}/schema/statements/{statement_id}"
        ).status_code == 404

    def test_save(self, client, sid):
        assert client.post(f"/api/sessions/{sid}/save").status_code == 409

        client.put(f"/api/sessions/{sid}/schema/name", json={"name": "Cities"})
        client.put(
            f"/api/sessions/{sid}/schema/labels/en",
            json={"column_name": "name", "storage_type": "VARCHAR"},
        )
        resp = client.post(f"/api/sessions/{sid}/save")
        assert resp.status_code == 200
        data = resp.json()
        assert data["is_dirty"] is False
        assert data["schema_id"].startswith("sch_")

    def test_load_snapshot_is_clean(self, client, sid):
        snapshot = {
            "project_id": "p1",
            "name": "Cities",
            "knowledge_base": "wikidata",
            "item": {"terms": {"labels": {"en": {"column_name": "name", "storage_type": "VARCHAR"}}}},
        }
        data = client.put(f"/api/sessions/{sid}/schema", json=snapshot).json()
        assert data["name"] == "Cities"
        assert data["is_dirty"] is False

    def test_reset(self, client, sid):
        client.put(f"/api/sessions/{sid}/schema/name", json={"name": "Cities"})
        data = client.post(f"/api/sessions/{sid}/reset").json()
        assert data["name"] == ""
        assert data["project_id"] == "p1"


class TestValidation:
    """Test validation endpoints."""

    def test_completeness_suppressed_when_empty(self, client, sid):
        # new sessions start with the default knowledge base filled in
        client.post(f"/api/sessions/{sid}/reset")
        data = client.get(f"/api/sessions/{sid}/validation/completeness").json()
        assert data["is_complete"] is False
        assert data["required_field_highlights"] == []

    def test_completeness_flags_statement_type_mismatch(self, client, sid):
        body = {
            "property": {"id": "P569", "data_type": "time"},
            "value": {
                "type": "column",
                "source": {"column_name": "population", "storage_type": "INTEGER"},
                "data_type": "time",
            },
        }
        client.post(f"/api/sessions/{sid}/schema/statements", json=body)
        client.get(f"/api/sessions/{sid}/validation/completeness")

        state = client.get(
            f"/api/sessions/{sid}/validation/field", params={"path": "item.statements[0]"}
        ).json()
        assert state["has_error"] is True
        assert state["error_message"].startswith("Column type INTEGER is not compatible with time")
        assert "(Column: population)" in state["error_message"]

    def test_completeness_after_name(self, client, sid):
        client.put(f"/api/sessions/{sid}/schema/name", json={"name": "Cities"})
        data = client.get(f"/api/sessions/{sid}/validation/completeness").json()
        paths = [h["path"] for h in data["required_field_highlights"]]
        assert "item.terms.labels" in paths

        state = client.get(
            f"/api/sessions/{sid}/validation/field", params={"path": "item.terms.labels"}
        ).json()
        assert state["has_error"] is True

    def test_constraints_and_clear(self, client, sid):
        body = {
            "path": "item.statements[0].value",
            "violations": [{"constraint_type": "format", "message": "Bad format"}],
        }
        data = client.post(f"/api/sessions/{sid}/validation/constraints", json=body).json()
        assert data["warnings"][0]["code"] == "CONSTRAINT_VIOLATION"

        data = client.delete(
            f"/api/sessions/{sid}/validation", params={"path": "item.statements"}
        ).json()
        assert data["warnings"] == []

    def test_auto_validation(self, client, sid):
        client.put(f"/api/sessions/{sid}/schema/name", json={"name": "Cities"})
        resp = client.put(f"/api/sessions/{sid}/validation/auto", json={"enabled": True})
        assert resp.json() == {"auto_validation": True}
        issues = client.get(f"/api/sessions/{sid}/validation").json()
        assert any(e["path"] == "item.terms.labels" for e in issues["errors"])

    def test_rules(self, client, sid):
        rules = client.get(f"/api/sessions/{sid}/validation/rules").json()
        assert "labels-required" in [r["id"] for r in rules]

        resp = client.put(
            f"/api/sessions/{sid}/validation/rules/labels-required", json={"enabled": False}
        )
        assert resp.json()["enabled"] is False
        resp = client.put(f"/api/sessions/{sid}/validation/rules/missing", json={"enabled": False})
        assert resp.status_code == 404
