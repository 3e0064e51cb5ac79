"""
Tests for the chat HTTP endpoints
"""

from datetime import datetime, timedelta

import jwt
import pytest

from extensions import db
from models.conversation import Conversation, STATUS_FLAGGED, STATUS_ACTIVE
from models.message import Message
from services.message_router import SUPPORT_ACK_TEXT


class TestAuthentication:

    def test_missing_token(self, client):
        response = client.get("/api/chat")
        assert response.status_code == 401
        assert response.get_json()["message"] == "Token is missing!"

    def test_expired_token(self, app, client, user):
        token = jwt.encode(
            {"user_id": user.id, "exp": datetime.utcnow() - timedelta(minutes=1)},
            app.config["SECRET_KEY"], algorithm="HS256"
        )
        response = client.get("/api/chat", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert response.get_json()["message"] == "Token has expired!"

    def test_token_without_bearer_prefix(self, client, user):
        from routes.auth_routes import issue_token
        response = client.get("/auth/me", headers={"Authorization": issue_token(user)})
        assert response.status_code == 200
        assert response.get_json()["id"] == user.id

    def test_admin_only_endpoint_rejects_users(self, client, auth_headers, user, make_conversation):
        conversation = make_conversation(user, status=STATUS_FLAGGED)
        response = client.put(f"/api/chat/{conversation.id}/assign", headers=auth_headers(user))
        assert response.status_code == 403


class TestConversationListing:

    def test_admin_sees_all_high_priority_first(self, client, auth_headers, user, other_user, admin,
                                                 make_conversation, minutes_ago):
        old_flagged = make_conversation(user, status=STATUS_FLAGGED, updated_at=minutes_ago(30))
        recent_active = make_conversation(other_user, updated_at=minutes_ago(1))
        new_flagged = make_conversation(other_user, status=STATUS_FLAGGED, updated_at=minutes_ago(5))

        response = client.get("/api/chat", headers=auth_headers(admin))

        assert [c["id"] for c in response.get_json()] == [new_flagged.id, old_flagged.id, recent_active.id]

    def test_user_sees_only_own_newest_first(self, client, auth_headers, user, other_user,
                                             make_conversation, minutes_ago):
        older = make_conversation(user, updated_at=minutes_ago(10))
        newer = make_conversation(user, updated_at=minutes_ago(2))
        make_conversation(other_user)

        response = client.get("/api/chat", headers=auth_headers(user))

        assert [c["id"] for c in response.get_json()] == [newer.id, older.id]


class TestMessages:

    def test_messages_are_chronological(self, client, auth_headers, user, make_conversation,
                                        add_message, minutes_ago):
        conversation = make_conversation(user)
        add_message(conversation, "bot", "second", created_at=minutes_ago(1))
        add_message(conversation, "user", "first", created_at=minutes_ago(2))
        add_message(conversation, "user", "third")

        response = client.get(f"/api/chat/{conversation.id}", headers=auth_headers(user))

        messages = response.get_json()
        assert [m["text"] for m in messages] == ["first", "second", "third"]
        stamps = [datetime.fromisoformat(m["created_at"]) for m in messages]
        assert stamps == sorted(stamps)

    def test_stranger_cannot_read(self, client, auth_headers, user, other_user, make_conversation):
        conversation = make_conversation(user)
        response = client.get(f"/api/chat/{conversation.id}", headers=auth_headers(other_user))
        assert response.status_code == 403

    def test_unknown_conversation(self, client, auth_headers, user):
        response = client.get("/api/chat/999", headers=auth_headers(user))
        assert response.status_code == 404
        assert response.get_json()["message"] == "Conversation not found"


class TestSendMessage:

    def test_support_request_round_trip(self, client, auth_headers, user):
        response = client.post("/api/chat", json={"text": "please let me talk to human"},
                               headers=auth_headers(user))

        assert response.status_code == 200
        body = response.get_json()
        assert body["userMessage"]["text"] == "please let me talk to human"
        assert body["botMessage"]["text"] == SUPPORT_ACK_TEXT
        assert db.session.get(Conversation, body["conversationId"]).status == STATUS_FLAGGED

    def test_text_is_required(self, client, auth_headers, user):
        response = client.post("/api/chat", json={}, headers=auth_headers(user))
        assert response.status_code == 400

    def test_bad_conversation_id(self, client, auth_headers, user):
        response = client.post("/api/chat", json={"text": "hi", "conversationId": "abc"},
                               headers=auth_headers(user))
        assert response.status_code == 400


class TestDeleteConversation:

    def test_delete_cascades_to_messages(self, client, auth_headers, user, make_conversation, add_message):
        conversation = make_conversation(user)
        add_message(conversation, "user", "hello")
        conversation_id = conversation.id

        response = client.delete(f"/api/chat/{conversation_id}", headers=auth_headers(user))

        assert response.status_code == 200
        assert db.session.get(Conversation, conversation_id) is None
        assert Message.query.filter_by(conversation_id=conversation_id).count() == 0

    def test_admin_may_delete(self, client, auth_headers, user, admin, make_conversation):
        conversation = make_conversation(user)
        response = client.delete(f"/api/chat/{conversation.id}", headers=auth_headers(admin))
        assert response.status_code == 200

    def test_stranger_may_not_delete(self, client, auth_headers, user, other_user, make_conversation):
        conversation = make_conversation(user)
        response = client.delete(f"/api/chat/{conversation.id}", headers=auth_headers(other_user))
        assert response.status_code == 403


class TestOperatorEndpoints:

    def test_assign_conflict_is_distinct(self, client, auth_headers, user, admin, other_admin, make_conversation):
        conversation = make_conversation(user, status=STATUS_FLAGGED, assigned_to=other_admin)

        response = client.put(f"/api/chat/{conversation.id}/assign", headers=auth_headers(admin))

        assert response.status_code == 409
        assert response.get_json()["message"] == "Chat is already assigned to another admin"

    def test_assign_then_release(self, client, auth_headers, user, admin, make_conversation):
        conversation = make_conversation(user, status=STATUS_FLAGGED)

        assigned = client.put(f"/api/chat/{conversation.id}/assign", headers=auth_headers(admin)).get_json()
        assert assigned["assigned_operator_id"] == admin.id
        assert assigned["assigned_to"]["name"] == admin.name

        released = client.put(f"/api/chat/{conversation.id}/release", headers=auth_headers(admin)).get_json()
        assert released["assigned_operator_id"] is None
        assert released["assigned_at"] is None

    def test_queue_endpoint(self, client, auth_headers, user, other_user, make_conversation, minutes_ago):
        make_conversation(other_user, status=STATUS_FLAGGED, updated_at=minutes_ago(10))
        mine = make_conversation(user, status=STATUS_FLAGGED, updated_at=minutes_ago(2))
        idle = make_conversation(user)

        assert client.get(f"/api/chat/{mine.id}/queue", headers=auth_headers(user)).get_json() == {"position": 2}
        assert client.get(f"/api/chat/{idle.id}/queue", headers=auth_headers(user)).get_json() == {
            "position": 0, "message": "Not in queue"
        }

    def test_queue_endpoint_is_owner_or_admin(self, client, auth_headers, user, other_user, make_conversation):
        conversation = make_conversation(user, status=STATUS_FLAGGED)
        response = client.get(f"/api/chat/{conversation.id}/queue", headers=auth_headers(other_user))
        assert response.status_code == 403

    def test_user_end_support(self, client, auth_headers, user, admin, make_conversation):
        conversation = make_conversation(user, status=STATUS_FLAGGED, assigned_to=admin)

        body = client.put(f"/api/chat/{conversation.id}/end-support", headers=auth_headers(user)).get_json()

        assert body["status"] == STATUS_ACTIVE
        assert body["priority"] == "low"
        assert body["assigned_operator_id"] is None

    def test_user_end_support_is_owner_only(self, client, auth_headers, user, admin, make_conversation):
        conversation = make_conversation(user, status=STATUS_FLAGGED)
        response = client.put(f"/api/chat/{conversation.id}/end-support", headers=auth_headers(admin))
        assert response.status_code == 403

    def test_admin_end_support_conflict(self, client, auth_headers, user, admin, other_admin, make_conversation):
        conversation = make_conversation(user, status=STATUS_FLAGGED, assigned_to=other_admin)
        response = client.put(f"/api/chat/{conversation.id}/admin-end-support", headers=auth_headers(admin))
        assert response.status_code == 409


class TestAdminEndpoints:

    def test_stats(self, client, auth_headers, user, admin, make_conversation, add_message):
        waiting = make_conversation(user, status=STATUS_FLAGGED)
        make_conversation(user)
        add_message(waiting, "user", "talk to human")

        body = client.get("/api/admin/stats", headers=auth_headers(admin)).get_json()

        assert body == {"users": 2, "conversations": 2, "messages": 1, "waiting": 1}

    def test_users_directory_is_admin_only(self, client, auth_headers, user, admin):
        assert client.get("/api/admin/users", headers=auth_headers(user)).status_code == 403
        users = client.get("/api/admin/users", headers=auth_headers(admin)).get_json()
        assert {u["email"] for u in users} == {user.email, admin.email}


def test_health(client):
    assert client.get("/").data == b"API is running..."
