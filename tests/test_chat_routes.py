"""
tests/test_chat_routes.py -- Integration tests for the support chat routes.

Coverage:
  - my-chat creates the caller's thread once; send appends to it
  - Students cannot list, read, reply to or close threads by id (403)
  - Admin list / read / reply / close; unknown chat -> 404
  - A student message reopens a closed thread
"""

from __future__ import annotations


def _student(api, email: str) -> tuple[int, str]:
    uid = api.register(email, name="Chatter")["user"]["id"]
    return uid, api.login(email)


class TestStudentThread:
    def test_my_chat_is_created_once(self, api) -> None:
        uid, token = _student(api, "first@example.com")
        first = api.client.get("/api/v1/chat/my-chat", headers=api.auth(token))
        assert first.status_code == 200
        chat = first.json()["chat"]
        assert chat["user_id"] == uid
        assert chat["status"] == "open"
        assert chat["messages"] == []
        second = api.client.get("/api/v1/chat/my-chat", headers=api.auth(token)).json()["chat"]
        assert second["id"] == chat["id"]

    def test_send_appends_to_own_thread(self, api) -> None:
        uid, token = _student(api, "sender@example.com")
        resp = api.client.post("/api/v1/chat/send", headers=api.auth(token), json={"message": "  When do we start?  "})
        assert resp.status_code == 201, resp.text
        messages = resp.json()["chat"]["messages"]
        assert len(messages) == 1
        assert messages[0]["message"] == "When do we start?"
        assert messages[0]["sender_id"] == uid
        assert messages[0]["is_admin"] is False

    def test_empty_message_is_400(self, api) -> None:
        _, token = _student(api, "silent@example.com")
        resp = api.client.post("/api/v1/chat/send", headers=api.auth(token), json={"message": "   "})
        assert resp.status_code == 400

    def test_requires_auth(self, api) -> None:
        assert api.client.get("/api/v1/chat/my-chat").status_code == 401

    def test_student_cannot_reach_threads_by_id(self, api) -> None:
        _, owner_token = _student(api, "owner@example.com")
        chat_id = api.client.get("/api/v1/chat/my-chat", headers=api.auth(owner_token)).json()["chat"]["id"]
        _, other_token = _student(api, "other@example.com")
        headers = api.auth(other_token)

        assert api.client.get("/api/v1/chat/all", headers=headers).status_code == 403
        assert api.client.get(f"/api/v1/chat/{chat_id}", headers=headers).status_code == 403
        assert (
            api.client.post(f"/api/v1/chat/{chat_id}/reply", headers=headers, json={"message": "hi"}).status_code
            == 403
        )
        assert api.client.put(f"/api/v1/chat/{chat_id}/close", headers=headers).status_code == 403
        assert api.chats.get_chat(chat_id).messages == []


class TestAdminInbox:
    def test_reply_close_and_reopen(self, api) -> None:
        uid, token = _student(api, "helped@example.com")
        chat_id = api.client.post(
            "/api/v1/chat/send", headers=api.auth(token), json={"message": "Help"}
        ).json()["chat"]["id"]

        inbox = api.client.get("/api/v1/chat/all", headers=api.auth(api.admin_token)).json()
        assert inbox["count"] == len(inbox["chats"])
        assert inbox["chats"][0]["id"] == chat_id
        assert inbox["chats"][0]["user"]["email"] == "helped@example.com"

        replied = api.client.post(
            f"/api/v1/chat/{chat_id}/reply", headers=api.auth(api.admin_token), json={"message": "On it"}
        )
        assert replied.status_code == 201
        last = replied.json()["chat"]["messages"][-1]
        assert last["is_admin"] is True
        assert last["sender_name"] == "Test Admin"

        closed = api.client.put(f"/api/v1/chat/{chat_id}/close", headers=api.auth(api.admin_token))
        assert closed.json()["chat"]["status"] == "closed"

        reopened = api.client.post("/api/v1/chat/send", headers=api.auth(token), json={"message": "Still stuck"})
        assert reopened.json()["chat"]["status"] == "open"

        detail = api.client.get(f"/api/v1/chat/{chat_id}", headers=api.auth(api.admin_token)).json()["chat"]
        assert [m["message"] for m in detail["messages"]] == ["Help", "On it", "Still stuck"]
        assert detail["user"]["id"] == uid

    def test_unknown_chat_is_404(self, api) -> None:
        headers = api.auth(api.admin_token)
        assert api.client.get("/api/v1/chat/99999", headers=headers).status_code == 404
        assert api.client.post("/api/v1/chat/99999/reply", headers=headers, json={"message": "x"}).status_code == 404
        resp = api.client.put("/api/v1/chat/99999/close", headers=headers)
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "not_found"
