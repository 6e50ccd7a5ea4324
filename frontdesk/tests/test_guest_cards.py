"""
Tests for guest card requests, assignment/return and the activity log.

Covers the /api/requests, /api/cards and /api/logs endpoints plus the
database rules behind them (single holder per card, log history,
schema migration).
"""
import sqlite3
from contextlib import contextmanager
from unittest.mock import patch

import pytest

from frontdesk.core.config import settings
from frontdesk.core.db import (
    CardAlreadyAssignedError,
    CardNotAssignedError,
    LogAction,
    assign_card,
    create_log,
    get_latest_assignment_log,
    get_card,
    list_logs,
    migrate_db,
    unassign_card,
    user_identifier,
)

NEW_REQUEST = {
    "firstName": "Ann",
    "lastName": "Lee",
    "email": "ann@example.edu",
    "phone": "555-0100",
}

SWIPE = ";123456789=2410311109?"
CARD = "123456789"


def _assign(client, card_number=CARD, user_name="Ann Lee", **extra):
    body = {"cardNumber": card_number, "userName": user_name, **extra}
    return client.post("/api/cards", params={"action": "assign"}, json=body)


def _unassign(client, card_number=CARD):
    return client.post("/api/cards", params={"action": "unassign"}, json={"cardNumber": card_number})


# ============================================================================
# /api/requests
# ============================================================================

class TestSubmitRequest:
    def test_new_format(self, client):
        """First/last name requests get a combined name and start pending."""
        resp = client.post("/api/requests", json=NEW_REQUEST)
        assert resp.status_code == 201
        data = resp.json()
        assert data["id"]
        assert data["name"] == "Ann Lee"
        assert data["firstName"] == "Ann"
        assert data["lastName"] == "Lee"
        assert data["email"] == "ann@example.edu"
        assert data["phone"] == "555-0100"
        assert data["status"] == "pending"
        assert data["assignedCardId"] is None
        assert data["createdAt"]

    def test_legacy_name(self, client):
        resp = client.post("/api/requests", json={"name": "  Sam Roe "})
        assert resp.status_code == 201
        assert resp.json()["name"] == "Sam Roe"
        assert resp.json()["email"] is None

    def test_missing_email(self, client):
        body = {**NEW_REQUEST, "email": " "}
        resp = client.post("/api/requests", json=body)
        assert resp.status_code == 400
        assert resp.json() == {"error": "Email is required"}

    def test_missing_phone(self, client):
        body = {k: v for k, v in NEW_REQUEST.items() if k != "phone"}
        resp = client.post("/api/requests", json=body)
        assert resp.status_code == 400
        assert resp.json() == {"error": "Phone number is required"}

    def test_blank_first_name(self, client):
        resp = client.post("/api/requests", json={**NEW_REQUEST, "firstName": "   "})
        assert resp.status_code == 400
        assert resp.json() == {"error": "First name and last name are required"}

    def test_no_name(self, client):
        resp = client.post("/api/requests", json={})
        assert resp.status_code == 400
        assert resp.json() == {"error": "Name or first/last name is required"}


class TestListRequests:
    def test_empty(self, client):
        resp = client.get("/api/requests")
        assert resp.status_code == 200
        assert resp.json() == []

    def test_newest_first(self, client):
        first = client.post("/api/requests", json={"name": "First"}).json()
        second = client.post("/api/requests", json={"name": "Second"}).json()
        ids = [r["id"] for r in client.get("/api/requests").json()]
        assert ids == [second["id"], first["id"]]

    def test_pending_only(self, client):
        done = client.post("/api/requests", json={"name": "Done"}).json()
        waiting = client.post("/api/requests", json={"name": "Waiting"}).json()
        client.put("/api/requests", params={"id": done["id"]}, json={"status": "completed"})

        pending = client.get("/api/requests", params={"pending": "true"}).json()
        assert [r["id"] for r in pending] == [waiting["id"]]

    def test_by_id(self, client):
        created = client.post("/api/requests", json=NEW_REQUEST).json()
        resp = client.get("/api/requests", params={"id": created["id"]})
        assert resp.status_code == 200
        assert resp.json() == created

    def test_unknown_id(self, client):
        resp = client.get("/api/requests", params={"id": "missing"})
        assert resp.status_code == 404
        assert resp.json() == {"error": "Request not found"}


class TestUpdateRequest:
    def test_update_status(self, client):
        created = client.post("/api/requests", json={"name": "Ann"}).json()
        resp = client.put("/api/requests", params={"id": created["id"]}, json={"status": "assigned"})
        assert resp.status_code == 200
        assert resp.json() == {"message": "Request updated"}
        fetched = client.get("/api/requests", params={"id": created["id"]}).json()
        assert fetched["status"] == "assigned"

    def test_missing_id(self, client):
        resp = client.put("/api/requests", json={"status": "completed"})
        assert resp.status_code == 400
        assert resp.json() == {"error": "Request id is required"}

    def test_invalid_status(self, client):
        created = client.post("/api/requests", json={"name": "Ann"}).json()
        resp = client.put("/api/requests", params={"id": created["id"]}, json={"status": "lost"})
        assert resp.status_code == 400
        assert resp.json() == {"error": "Status must be one of: pending, assigned, completed"}

    def test_unknown_request(self, client):
        resp = client.put("/api/requests", params={"id": "missing"}, json={"status": "completed"})
        assert resp.status_code == 404


class TestDeleteRequest:
    def test_delete(self, client):
        created = client.post("/api/requests", json={"name": "Ann"}).json()
        resp = client.delete("/api/requests", params={"id": created["id"]})
        assert resp.status_code == 200
        assert resp.json() == {"message": "Request deleted"}
        assert client.get("/api/requests", params={"id": created["id"]}).status_code == 404

    def test_delete_unknown(self, client):
        resp = client.delete("/api/requests", params={"id": "missing"})
        assert resp.status_code == 404

    def test_api_key_required_when_configured(self, client, monkeypatch):
        """With an API key configured, deletes need a matching X-API-Key header."""
        monkeypatch.setattr(settings, "API_KEY", "secret")
        created = client.post("/api/requests", json={"name": "Ann"}).json()

        resp = client.delete("/api/requests", params={"id": created["id"]})
        assert resp.status_code == 401
        assert resp.json() == {"error": "Invalid API key"}

        resp = client.delete(
            "/api/requests", params={"id": created["id"]}, headers={"X-API-Key": "wrong"}
        )
        assert resp.status_code == 401

        resp = client.delete(
            "/api/requests", params={"id": created["id"]}, headers={"X-API-Key": "secret"}
        )
        assert resp.status_code == 200


# ============================================================================
# /api/cards
# ============================================================================

class TestCardStatus:
    def test_unknown_card(self, client):
        resp = client.get("/api/cards", params={"cardNumber": CARD})
        assert resp.status_code == 200
        assert resp.json() == {"exists": False, "isAssigned": False}

    def test_missing_card_number(self, client):
        resp = client.get("/api/cards")
        assert resp.status_code == 400
        assert resp.json() == {"error": "Card number is required"}

    def test_invalid_card_number(self, client):
        resp = client.get("/api/cards", params={"cardNumber": "12"})
        assert resp.status_code == 400
        assert resp.json() == {"error": "Invalid card number"}

    def test_assigned_card(self, client):
        _assign(client)
        resp = client.get("/api/cards", params={"cardNumber": SWIPE})
        data = resp.json()
        assert data["exists"] is True
        assert data["isAssigned"] is True
        assert data["status"] == "assigned"
        assert data["assignedTo"] == "Ann Lee"


class TestAssignCard:
    def test_assign_from_swipe(self, client):
        """Swipe data is reduced to the card number before storing."""
        resp = _assign(client, card_number=SWIPE)
        assert resp.status_code == 200
        data = resp.json()
        assert data["message"] == "Card assigned successfully"
        assert data["card"]["cardNumber"] == CARD
        assert data["card"]["isAssigned"] is True
        assert data["card"]["assignedTo"] == "Ann Lee"
        assert data["card"]["assignedAt"]

    def test_already_assigned(self, client):
        _assign(client)
        resp = _assign(client, user_name="Sam Roe")
        assert resp.status_code == 400
        assert resp.json() == {"error": "Card already assigned"}
        assert get_card(CARD)["assignedTo"] == "Ann Lee"

    def test_missing_user_name(self, client):
        resp = _assign(client, user_name="  ")
        assert resp.status_code == 400
        assert resp.json() == {"error": "Card number and user name are required"}

    def test_missing_body(self, client):
        resp = client.post("/api/cards", params={"action": "assign"})
        assert resp.status_code == 400
        assert resp.json() == {"error": "Card number and user name are required"}

    def test_invalid_card_number(self, client):
        resp = _assign(client, card_number="12")
        assert resp.status_code == 400
        assert resp.json() == {"error": "Invalid card number"}

    def test_invalid_action(self, client):
        resp = client.post("/api/cards", params={"action": "lend"}, json={"cardNumber": CARD})
        assert resp.status_code == 400
        assert resp.json() == {"error": "Invalid action"}

    def test_missing_action(self, client):
        resp = client.post("/api/cards", json={"cardNumber": CARD})
        assert resp.status_code == 400
        assert resp.json() == {"error": "Invalid action"}

    def test_assign_completes_request(self, client):
        """Assigning against a request completes it and records the card."""
        request = client.post("/api/requests", json=NEW_REQUEST).json()
        resp = _assign(
            client,
            requestId=request["id"],
            userEmail=NEW_REQUEST["email"],
            userPhone=NEW_REQUEST["phone"],
        )
        assert resp.status_code == 200
        assert resp.json()["card"]["currentRequestId"] == request["id"]

        fetched = client.get("/api/requests", params={"id": request["id"]}).json()
        assert fetched["status"] == "completed"
        assert fetched["assignedCardId"] == CARD

    def test_assign_writes_log(self, client):
        _assign(client, userEmail="ann@example.edu")
        logs = client.get("/api/logs").json()
        assert len(logs) == 1
        entry = logs[0]
        assert entry["action"] == "assigned"
        assert entry["cardNumber"] == CARD
        assert entry["user"] == "Ann Lee"
        assert entry["userIdentifier"] == "Ann Lee (ann@example.edu)"
        assert entry["timestamp"]


class TestUnassignCard:
    def test_return(self, client):
        _assign(client)
        resp = _unassign(client, card_number=SWIPE)
        assert resp.status_code == 200
        assert resp.json() == {"message": "Card returned successfully"}

        card = get_card(CARD)
        assert card["isAssigned"] is False
        assert card["status"] == "available"
        assert card["assignedTo"] is None

    def test_return_unknown_card(self, client):
        resp = _unassign(client)
        assert resp.status_code == 400
        assert resp.json() == {"error": "Card is not currently assigned"}

    def test_return_twice(self, client):
        _assign(client)
        _unassign(client)
        resp = _unassign(client)
        assert resp.status_code == 400
        assert resp.json() == {"error": "Card is not currently assigned"}

    def test_return_copies_holder_details(self, client):
        """The return entry carries the holder details of the assignment."""
        request = client.post("/api/requests", json=NEW_REQUEST).json()
        _assign(client, requestId=request["id"], userPhone="555-0100")
        _unassign(client)

        latest = client.get("/api/logs").json()[0]
        assert latest["action"] == "unassigned"
        assert latest["user"] == "Ann Lee"
        assert latest["userIdentifier"] == "Ann Lee (555-0100)"
        assert latest["userPhone"] == "555-0100"
        assert latest["requestId"] == request["id"]

    def test_reassign_after_return(self, client):
        _assign(client)
        _unassign(client)
        resp = _assign(client, user_name="Sam Roe")
        assert resp.status_code == 200
        assert resp.json()["card"]["assignedTo"] == "Sam Roe"


# ============================================================================
# /api/logs
# ============================================================================

class TestLogs:
    def test_empty(self, client):
        assert client.get("/api/logs").json() == []

    def test_newest_first(self, client):
        _assign(client)
        _unassign(client)
        actions = [e["action"] for e in client.get("/api/logs").json()]
        assert actions == ["unassigned", "assigned"]

    def test_filter_by_action_and_card(self, client):
        _assign(client)
        _unassign(client)
        _assign(client, card_number="555555")

        assigned = client.get("/api/logs", params={"action": "assigned"}).json()
        assert len(assigned) == 2

        for_card = client.get("/api/logs", params={"cardNumber": SWIPE}).json()
        assert {e["cardNumber"] for e in for_card} == {CARD}
        assert len(for_card) == 2

    def test_limit(self, client):
        _assign(client)
        _unassign(client)
        assert len(client.get("/api/logs", params={"limit": 1}).json()) == 1

    def test_invalid_action_filter(self, client):
        resp = client.get("/api/logs", params={"action": "lost"})
        assert resp.status_code == 400
        assert "error" in resp.json()

    def test_summary(self, client):
        _assign(client)
        _unassign(client)
        _assign(client)
        resp = client.get("/api/logs/summary")
        assert resp.status_code == 200
        assert resp.json() == {"assigned": 2, "unassigned": 1, "total": 3}


# ============================================================================
# Database rules
# ============================================================================

class TestCardRules:
    def test_second_assignment_rejected(self, patch_db):
        assign_card(CARD, "Ann Lee")
        with pytest.raises(CardAlreadyAssignedError):
            assign_card(CARD, "Sam Roe")
        assert len(list_logs(card_number=CARD)) == 1

    def test_unassign_unknown(self, patch_db):
        with pytest.raises(CardNotAssignedError):
            unassign_card(CARD)

    def test_unassign_returns_log_entry(self, patch_db):
        assign_card(CARD, "Ann Lee", user_email="ann@example.edu")
        entry = unassign_card(CARD)
        assert entry["action"] == "unassigned"
        assert entry["userEmail"] == "ann@example.edu"

    def test_one_card_row_per_number(self, patch_db):
        assign_card(CARD, "Ann Lee")
        unassign_card(CARD)
        assign_card(CARD, "Sam Roe")
        count = patch_db.execute("SELECT COUNT(*) FROM cards").fetchone()[0]
        assert count == 1

    def test_latest_assignment_log(self, patch_db):
        assign_card(CARD, "Ann Lee")
        unassign_card(CARD)
        assign_card(CARD, "Sam Roe", user_email="sam@example.edu")
        latest = get_latest_assignment_log(CARD)
        assert latest["user"] == "Sam Roe"
        assert latest["userIdentifier"] == "Sam Roe (sam@example.edu)"
        assert get_latest_assignment_log("555555") is None

    def test_create_log(self, patch_db):
        entry = create_log(LogAction.ASSIGNED, CARD, "Ann Lee", user_phone="555-0100")
        assert entry["action"] == "assigned"
        assert entry["userIdentifier"] == "Ann Lee"
        assert list_logs(action="assigned") == [entry]


class TestUserIdentifier:
    def test_email_preferred(self):
        assert user_identifier("Ann", "a@x.edu", "555") == "Ann (a@x.edu)"

    def test_phone(self):
        assert user_identifier("Ann", None, "555") == "Ann (555)"

    def test_name_only(self):
        assert user_identifier("Ann") == "Ann"


# ============================================================================
# Migrations
# ============================================================================

OLD_SCHEMA = """
    CREATE TABLE requests (id TEXT PRIMARY KEY, name TEXT NOT NULL, status TEXT, created_at TEXT);
    CREATE TABLE cards (
        id TEXT PRIMARY KEY, card_number TEXT NOT NULL UNIQUE,
        is_assigned INTEGER DEFAULT 0, assigned_to TEXT, assigned_at TEXT
    );
    CREATE TABLE logs (
        id TEXT PRIMARY KEY, action TEXT NOT NULL, card_number TEXT NOT NULL,
        user TEXT, timestamp TEXT NOT NULL
    );
"""


class TestMigrateDb:
    def test_adds_columns_and_backfills_status(self):
        conn = sqlite3.connect(":memory:")
        conn.row_factory = sqlite3.Row
        conn.executescript(OLD_SCHEMA)
        conn.execute("INSERT INTO cards (id, card_number, is_assigned) VALUES ('a', '111111', 1)")
        conn.execute("INSERT INTO cards (id, card_number, is_assigned) VALUES ('b', '222222', 0)")

        @contextmanager
        def old_db():
            yield conn
            conn.commit()

        with patch("frontdesk.core.db.base.get_db", old_db):
            migrate_db()
            # Running twice is a no-op
            migrate_db()

        columns = {row[1] for row in conn.execute("PRAGMA table_info(logs)")}
        assert {"user_identifier", "user_email", "user_phone", "request_id"} <= columns
        columns = {row[1] for row in conn.execute("PRAGMA table_info(requests)")}
        assert {"first_name", "last_name", "email", "phone", "assigned_card_id"} <= columns

        rows = conn.execute("SELECT card_number, status FROM cards").fetchall()
        statuses = {row["card_number"]: row["status"] for row in rows}
        assert statuses == {"111111": "assigned", "222222": "available"}
        conn.close()
