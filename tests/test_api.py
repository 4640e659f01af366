from __future__ import annotations

from pathlib import Path
import sys

import pytest
from fastapi.testclient import TestClient

sys.path.append(str(Path(__file__).resolve().parents[1]))

from reprocessor.application import reset_session
from reprocessor.core.settings import Settings
from reprocessor.infrastructure import InMemoryEventBus, InMemoryNotifier, InMemoryReprocessingService

LOG_MESSAGE = "\n".join(
    [
        "[START] AccountTriggerHandler",
        "Processing 001002",
        "[WARNING] Phone missing on 001002",
        "[SUCCESS] done",
        "[END] AccountTriggerHandler",
    ]
)


@pytest.fixture(autouse=True)
def reset_state():
    reset_session()
    yield
    reset_session()


@pytest.fixture()
def service() -> InMemoryReprocessingService:
    return InMemoryReprocessingService(
        records={
            "Account": [{"Id": f"001{index:03d}", "Name": f"Account {index}"} for index in range(12)],
            "Contact": [{"Id": "003001", "Name": "Ada"}],
        },
        logic_options=[
            {
                "Id": "m1",
                "Logic_Name__c": "Normalise contact data",
                "Trigger_Context__c": "before_insert",
                "Required_Input_Fields__c": "Email, Phone",
                "target_type": "Account",
            }
        ],
        trigger_logs=[
            {
                "Id": "a01",
                "CreatedDate": "2024-05-01T10:00:00Z",
                "Trigger_Name__c": "AccountTrigger",
                "Message__c": LOG_MESSAGE,
                "Related_Record_Ids__c": "001002,001003",
            },
            {
                "Id": "a02",
                "CreatedDate": "2024-05-02T10:00:00Z",
                "Message__c": "[ERROR] failed for 001002",
                "Related_Record_Ids__c": "001002",
            },
        ],
    )


@pytest.fixture()
def client(service):
    from reprocessor.app import create_app

    app = create_app(
        Settings(poll_interval_seconds=30, page_size=5),
        service=service,
        channel=InMemoryEventBus(),
        notifier=InMemoryNotifier(),
    )
    with TestClient(app) as test_client:
        yield test_client


def test_root_and_session_state(client):
    root = client.get("/")
    assert root.status_code == 200
    assert root.json()["health"] == "/api/session"

    state = client.get("/api/session").json()
    assert state["started"] is True
    assert state["subscribed"] is True
    assert state["target_types"] == ["Account", "Contact"]
    assert state["record_count"] == 12


def test_reprocessing_workflow(client, service):
    logic = client.get("/api/session/logic")
    assert [item["id"] for item in logic.json()["items"]] == ["m1"]

    selected = client.post("/api/session/logic/selection", json={"ids": ["m1"]})
    assert selected.status_code == 200
    assert selected.json()["fields"] == ["id", "name", "createddate", "email", "phone"]

    preview = client.post("/api/preview").json()
    assert preview["total_pages"] == 3
    assert len(preview["records"]) == 5
    assert preview["has_next"] is True

    page = client.post("/api/preview/next").json()
    assert page["page"] == 2
    client.post("/api/preview/next")
    last = client.post("/api/preview/next").json()
    assert last["page"] == 3
    assert len(last["records"]) == 2

    declined = client.post("/api/jobs", json={"confirmed": False}).json()
    assert declined["launched"] is False
    assert service.launched == []

    launched = client.post("/api/jobs", json={"confirmed": True}).json()
    assert launched["launched"] is True
    assert launched["progress_visible"] is True
    assert launched["job"]["status"] == "Queued"
    job_id = launched["job"]["job_id"]

    for _ in range(3):
        current = client.post("/api/jobs/current/poll").json()

    assert current["active"] is False
    assert current["polling"] is False
    assert current["progress_visible"] is False
    assert current["job"]["job_id"] == job_id
    assert current["job"]["status"] == "Completed"
    assert current["job"]["terminal"] is True

    notifications = client.get("/api/notifications").json()["items"]
    assert notifications[0]["title"] == "Batch Job Completed"


def test_launch_without_preview_warns(client, service):
    client.post("/api/session/logic/selection", json={"ids": []})

    response = client.post("/api/jobs", json={"confirmed": True}).json()

    assert response["launched"] is False
    assert service.launched == []
    notifications = client.get("/api/notifications").json()["items"]
    assert notifications[0]["title"] == "Missing Selections"


def test_selection_changes_do_not_rerun_preview(client):
    client.post("/api/preview")

    response = client.put("/api/session/selection", json={"target_type": "Contact", "batch_size": 50})

    state = response.json()
    assert response.status_code == 200
    assert state["target_type"] == "Contact"
    assert state["batch_size"] == 50
    assert state["record_count"] == 1
    assert state["preview"]["preview_count"] == 12


def test_invalid_selection_is_rejected(client):
    assert client.put("/api/session/selection", json={"batch_size": 0}).status_code == 400
    assert client.put("/api/session/selection", json={"trigger_context": "sometime"}).status_code == 400
    assert client.post("/api/session/logic/selection", json={"ids": ["m9"]}).status_code == 400
    assert client.put("/api/session/fields", json={"fields": "id"}).status_code == 400


def test_bad_filter_surfaces_preview_error(client):
    client.put("/api/session/selection", json={"filter": "Name LIKE 'A%'"})

    response = client.post("/api/preview")

    assert response.status_code == 502
    notifications = client.get("/api/notifications").json()["items"]
    assert notifications[0]["message"].startswith("Failed to preview records: unsupported filter clause")


def test_field_inputs(client):
    options = client.get("/api/session/fields/options").json()
    assert options["items"] == ["id", "name"]

    chosen = client.put("/api/session/fields", json={"fields": ["Name", "id", "NAME"]}).json()
    assert chosen == {"fields": ["name", "id"], "field_text": "name, id"}

    typed = client.put("/api/session/fields/text", json={"text": "Email, , email ,Phone"}).json()
    assert typed["fields"] == ["email", "phone"]


def test_live_events_webhook(client):
    client.post("/api/preview")

    matched = client.post("/api/events", json={"Related_Record_Ids__c": "001004", "Message__c": "ran"})
    client.post("/api/events", json={"Related_Record_Ids__c": "999", "Message__c": "elsewhere"})

    assert matched.json() == {"delivered": 1}
    events = client.get("/api/events").json()
    assert events["subscribed"] is True
    assert [item["message"] for item in events["items"]] == ["elsewhere", "ran"]

    only_matched = client.get("/api/events", params={"matched_only": True}).json()
    assert [item["message"] for item in only_matched["items"]] == ["ran"]

    assert client.delete("/api/events").json() == {"items": []}
    assert client.get("/api/events").json()["items"] == []


def test_trigger_logs(client):
    logs = client.get("/api/logs", params={"record_id": "001002"}).json()
    assert logs["logging_enabled"] is True
    assert [item["id"] for item in logs["items"]] == ["a02", "a01"]

    lines = client.get("/api/logs/a01/lines", params={"record_id": "001002", "filter": "001002"}).json()
    assert [line["number"] for line in lines["items"]] == [2, 3]
    assert lines["items"][1]["level"] == "warning"
    assert lines["items"][0]["highlights"] == [[11, 17]]

    missing = client.get("/api/logs/zzz/lines", params={"record_id": "001002"})
    assert missing.status_code == 404


def test_reading_logic_options_keeps_selection(client, service):
    client.post("/api/session/logic/selection", json={"ids": ["m1"]})

    listed = client.get("/api/session/logic").json()
    refreshed = client.post("/api/session/logic/refresh").json()

    assert [item["id"] for item in listed["items"]] == ["m1"]
    assert listed["selected_logic_ids"] == ["m1"]
    assert refreshed["selected_logic_ids"] == ["m1"]
    assert client.get("/api/session").json()["selected_logic_ids"] == ["m1"]

    client.post("/api/preview")
    launched = client.post("/api/jobs", json={"confirmed": True}).json()
    assert launched["launched"] is True
    assert service.launched[0].logic_ids == ["m1"]


def test_preview_without_target_type_is_rejected(client):
    from reprocessor.application import get_session

    get_session().state.target_type = ""

    response = client.post("/api/preview")

    assert response.status_code == 400
    assert response.json()["detail"] == "target type is required"
