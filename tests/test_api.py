"""API tests against an in-process app with temporary storage"""

import inspect

import pytest
from fastapi.routing import APIRoute
from fastapi.testclient import TestClient
from unittest.mock import MagicMock

from src.agents.assistant_agent import ERROR_REPLY
from src.agents.prompt_generator import GREETING
from src.api.main import create_app, platform_context
from src.api.session_manager import SessionManager
from src.config import Settings
from src.state.app_state import AppState
from src.storage.local_store import LocalStore


ADMIN = {"X-Admin-Pin": "4321"}


@pytest.fixture
def settings(tmp_path):
    return Settings(_env_file=None, storage_dir=tmp_path / "store", admin_pin="4321")


@pytest.fixture
def state(settings, clock):
    return AppState(LocalStore(settings.storage_dir), clock=clock)


@pytest.fixture
def router():
    router = MagicMock()
    router.chat.return_value = "Anyone above 18 can pledge."
    router.stream_chat.side_effect = lambda **kwargs: iter(["Anyone ", "can pledge."])
    return router


@pytest.fixture
def client(settings, state, router):
    app = create_app(settings, state=state, session_manager=SessionManager(settings, router=router))
    return TestClient(app)


def pledge(client, organs=("Kidney",), blood_group="O-"):
    response = client.post("/api/v1/donors", json={
        "name": "Ravi Kumar",
        "contact": "9876543210",
        "bloodGroup": blood_group,
        "pledgedOrgans": list(organs),
    })
    assert response.status_code == 201
    return response.json()


def register(client, hospital="HSP-001", organ="Kidney", urgency="Medium", patient_id=None, blood_group="A+"):
    body = {"name": "Meera Nair", "organNeeded": organ, "bloodGroup": blood_group, "urgency": urgency}
    if patient_id:
        body["patientId"] = patient_id
    response = client.post(f"/api/v1/hospitals/{hospital}/recipients", json=body)
    assert response.status_code == 201
    return response.json()


class TestSystemEndpoints:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_state_routes_run_in_threadpool(self, client):
        # Handlers that persist state must be plain functions
        state_routes = [
            route for route in client.app.routes
            if isinstance(route, APIRoute)
            and not route.path.startswith(("/api/v1/chat", "/api/v1/admin/sessions", "/api/v1/admin/usage"))
        ]
        assert state_routes
        assert not [r.path for r in state_routes if inspect.iscoroutinefunction(r.endpoint)]

    def test_hospitals(self, client):
        hospitals = client.get("/api/v1/hospitals").json()
        assert len(hospitals) == 20
        assert hospitals[0]["mockId"] == "HSP-001"


class TestDonorEndpoints:

    def test_pledge(self, client):
        donor = pledge(client, organs=["Kidney", "Eye"])

        assert donor["pledgedOrgans"] == ["Kidney", "Eye"]
        assert donor["status"] == "Pledged"
        assert [d["id"] for d in client.get("/api/v1/donors").json()] == [donor["id"]]

    def test_pledge_requires_organs(self, client):
        response = client.post("/api/v1/donors", json={"name": "X", "bloodGroup": "O-", "pledgedOrgans": []})
        assert response.status_code == 422

    def test_pledge_rejects_unknown_blood_group(self, client):
        response = client.post("/api/v1/donors", json={"name": "X", "bloodGroup": "C+", "pledgedOrgans": ["Eye"]})
        assert response.status_code == 422

    def test_withdraw(self, client):
        donor = pledge(client, organs=["Kidney", "Liver"])

        first = client.delete(f"/api/v1/donors/{donor['id']}/organs/Kidney").json()
        assert first["removed"] is False
        assert first["donor"]["pledgedOrgans"] == ["Liver"]

        second = client.delete(f"/api/v1/donors/{donor['id']}/organs/Liver").json()
        assert second == {"removed": True, "donor": None}
        assert client.get("/api/v1/donors").json() == []

    def test_withdraw_unpledged_organ(self, client):
        donor = pledge(client)
        response = client.delete(f"/api/v1/donors/{donor['id']}/organs/Heart")
        assert response.status_code == 422

    def test_unknown_donor(self, client):
        response = client.post("/api/v1/donors/nobody/interest", json={"organ": "Kidney"})
        assert response.status_code == 404

    def test_interest_auto_matches(self, client):
        donor = pledge(client)
        recipient = register(client, urgency="Critical", patient_id="NOD-5555")

        result = client.post(f"/api/v1/donors/{donor['id']}/interest", json={"organ": "Kidney"}).json()

        assert result["matched_recipient_id"] == recipient["id"]
        status = client.get("/api/v1/waitlist/NOD-5555").json()
        assert status["recipient"]["status"] == "Potential Match Found"
        assert "Good news" in status["message"]

    def test_organ_demand(self, client):
        pledge(client, organs=["Kidney", "Eye"])
        register(client, organ="Liver")
        register(client, organ="Liver")

        result = client.get("/api/v1/organs/demand").json()

        assert result["total_pledges"] == 2
        assert result["demand"] == [{"organ": "Liver", "count": 2}]


class TestWaitlistAndHospitals:

    def test_waitlist_lookup(self, client):
        register(client, hospital="HSP-002", patient_id="NOD-1234")

        status = client.get("/api/v1/waitlist/nod-1234").json()

        assert status["found"] is True
        assert "actively searching" in status["message"]
        assert status["hospital_contact"]

    def test_waitlist_unknown_patient(self, client):
        status = client.get("/api/v1/waitlist/NOD-0000").json()
        assert status["found"] is False
        assert status["recipient"] is None

    def test_hospital_requests(self, client):
        mine = register(client, hospital="HSP-003")
        register(client, hospital="HSP-004")

        listed = client.get("/api/v1/hospitals/HSP-003/recipients").json()

        assert [r["id"] for r in listed] == [mine["id"]]
        assert listed[0]["hospitalName"]

    def test_unknown_hospital(self, client):
        assert client.get("/api/v1/hospitals/HSP-999/recipients").status_code == 404


class TestAdminEndpoints:

    def test_pin_required(self, client):
        assert client.get("/api/v1/admin/dashboard").status_code == 401
        assert client.get("/api/v1/admin/dashboard", headers={"X-Admin-Pin": "0000"}).status_code == 401

    def test_dashboard(self, client):
        pledge(client)
        register(client, urgency="High")

        dashboard = client.get("/api/v1/admin/dashboard", headers=ADMIN).json()

        assert dashboard["total_donors"] == 1
        assert dashboard["total_recipients"] == 1
        assert dashboard["ranked_recipients"][0]["score"] == 100

    def test_pin_prefix_rejected(self, client):
        assert client.get("/api/v1/admin/dashboard", headers={"X-Admin-Pin": "432"}).status_code == 401

    def test_urgency_analysis(self, client):
        assert client.get("/api/v1/admin/urgency-analysis", headers=ADMIN).json() == {}

        recipient = register(client, hospital="HSP-002", urgency="Critical")
        analysis = client.get("/api/v1/admin/urgency-analysis", headers=ADMIN).json()

        assert analysis["recipient"]["id"] == recipient["id"]
        assert analysis["score"] == 150
        assert analysis["hospital_city"] == "Bangalore"

    def test_urgency_analysis_requires_pin(self, client):
        assert client.get("/api/v1/admin/urgency-analysis").status_code == 401

    def test_screening_report(self, client):
        donor = pledge(client)
        client.post(f"/api/v1/donors/{donor['id']}/interest", json={"organ": "Kidney"})
        notification_id = client.get("/api/v1/admin/notifications", headers=ADMIN).json()[0]["id"]

        report = client.get(f"/api/v1/admin/notifications/{notification_id}/screening", headers=ADMIN).json()

        assert report["donor"]["id"] == donor["id"]
        assert report["contact_draft"].startswith("Dear Ravi Kumar")

    def test_screening_report_unknown_notification(self, client):
        response = client.get("/api/v1/admin/notifications/in-missing/screening", headers=ADMIN)
        assert response.status_code == 404

    def test_matching_run(self, client):
        donor = pledge(client, organs=["Kidney", "Liver"])
        register(client, organ="Kidney")
        register(client, organ="Liver")

        per_organ = client.post("/api/v1/admin/matching/run", headers=ADMIN).json()
        one_per_run = client.post("/api/v1/admin/matching/run?policy=one_per_run", headers=ADMIN).json()

        assert per_organ["policy"] == "per_organ"
        assert len(per_organ["matches"]) == 2
        assert {m["donor_id"] for m in per_organ["matches"]} == {donor["id"]}
        assert len(one_per_run["matches"]) == 1

    def test_matching_respects_blood_groups(self, client):
        pledge(client, blood_group="AB+")
        register(client, blood_group="O-")

        result = client.post("/api/v1/admin/matching/run", headers=ADMIN).json()

        assert result["matches"] == []

    def test_update_and_delete_recipient(self, client):
        recipient = register(client)

        updated = client.patch(f"/api/v1/admin/recipients/{recipient['id']}", headers=ADMIN,
                               json={"urgency": "Critical"})
        assert updated.json()["urgency"] == "Critical"

        assert client.delete(f"/api/v1/admin/recipients/{recipient['id']}", headers=ADMIN).status_code == 204
        assert client.delete(f"/api/v1/admin/recipients/{recipient['id']}", headers=ADMIN).status_code == 404

    def test_mock_recipient(self, client):
        response = client.post("/api/v1/admin/recipients/mock", headers=ADMIN)
        assert response.status_code == 201
        assert response.json()["patientId"].startswith("NOD-")

    def test_notifications(self, client):
        donor = pledge(client)
        client.post(f"/api/v1/donors/{donor['id']}/interest", json={"organ": "Kidney"})

        notifications = client.get("/api/v1/admin/notifications", headers=ADMIN).json()
        assert len(notifications) == 1
        assert notifications[0]["donorId"] == donor["id"]

        notification_id = notifications[0]["id"]
        assert client.delete(f"/api/v1/admin/notifications/{notification_id}", headers=ADMIN).status_code == 204
        assert client.get("/api/v1/admin/notifications", headers=ADMIN).json() == []


class TestChatEndpoints:

    def test_chat(self, client):
        result = client.post("/api/v1/chat/s1", json={"message": "Who can pledge?"}).json()
        assert result == {"success": True, "reply": "Anyone above 18 can pledge.", "error": None}

    def test_chat_provider_failure(self, client, router):
        router.chat.side_effect = RuntimeError("down")
        result = client.post("/api/v1/chat/s1", json={"message": "hi"}).json()
        assert result["success"] is False
        assert result["error"] == ERROR_REPLY

    def test_reset_unknown_session(self, client):
        assert client.delete("/api/v1/chat/nobody").status_code == 404

    def test_websocket_stream(self, client):
        with client.websocket_connect("/ws/chat/ws1") as ws:
            assert ws.receive_json() == {"type": "welcome", "session_id": "ws1"}

            ws.send_json({"action": "start"})
            assert ws.receive_json() == {"type": "greeting", "message": GREETING}

            ws.send_json({"action": "message", "content": "Who can pledge?"})
            assert ws.receive_json() == {"type": "chunk", "content": "Anyone "}
            assert ws.receive_json() == {"type": "chunk", "content": "can pledge."}
            assert ws.receive_json() == {"type": "done", "message": "Anyone can pledge."}

            ws.send_json({"action": "reset"})
            assert ws.receive_json() == {"type": "reset_complete"}

    def test_websocket_errors(self, client):
        with client.websocket_connect("/ws/chat/ws2") as ws:
            ws.receive_json()

            ws.send_text("not json")
            assert ws.receive_json()["message"] == "Invalid JSON format"

            ws.send_json({"action": "dance"})
            assert ws.receive_json()["message"] == "Unknown action: dance"

            ws.send_json({"action": "message", "content": "  "})
            assert ws.receive_json()["type"] == "error"

    def test_list_sessions(self, client):
        client.post("/api/v1/chat/s1", json={"message": "hi"})

        result = client.get("/api/v1/admin/sessions", headers=ADMIN).json()

        assert result["count"] == 1
        assert result["sessions"][0]["session_id"] == "s1"

    def test_cleanup_inactive_sessions(self, client):
        client.post("/api/v1/chat/old", json={"message": "hi"})
        client.post("/api/v1/chat/new", json={"message": "hi"})
        client.app.state.session_manager.session_metadata["old"]["last_active"] -= 7200

        result = client.post("/api/v1/admin/sessions/cleanup?timeout_seconds=3600", headers=ADMIN).json()

        assert result["cleaned"] == 1
        assert client.get("/api/v1/admin/sessions", headers=ADMIN).json()["count"] == 1

    def test_session_admin_requires_pin(self, client):
        assert client.post("/api/v1/admin/sessions/cleanup").status_code == 401

    def test_llm_usage(self, client, router):
        router.get_usage_report.return_value = {"total_calls": 3, "total_errors": 0}
        result = client.get("/api/v1/admin/usage", headers=ADMIN).json()
        assert result["total_calls"] == 3

    def test_platform_context(self, state):
        assert "patients on the waitlist: 0" in platform_context(state)
