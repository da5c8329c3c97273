from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from authgate_client.http import ApiHttpError, SessionExpiredError
from authgate_client.services import build_session_context
from conftest import BASE_URL, make_settings


class TestOutgoingHook:
    def test_attaches_bearer_header_when_token_stored(self, context, adapter, store):
        store.save("abc123")
        adapter.queue(200, {"ok": True})

        assert context.http_client.get_json("/things") == {"ok": True}
        assert adapter.sent[0].headers["Authorization"] == "Bearer abc123"
        assert adapter.sent[0].url == f"{BASE_URL}/things"

    def test_sends_no_header_without_token(self, context, adapter):
        adapter.queue(200, {"ok": True})
        context.http_client.get_json("/things")
        assert "Authorization" not in adapter.sent[0].headers

    def test_reads_store_on_every_request(self, context, adapter, store):
        store.save("first")
        context.http_client.get_json("/a")
        store.save("second")
        context.http_client.get_json("/b")

        assert adapter.sent[0].headers["Authorization"] == "Bearer first"
        assert adapter.sent[1].headers["Authorization"] == "Bearer second"

    def test_unauthenticated_request_skips_header(self, context, adapter, store):
        store.save("abc123")
        context.http_client.post_json("/auth/login", {"username": "u"}, authenticated=False)
        assert "Authorization" not in adapter.sent[0].headers


class TestIncomingHook:
    @pytest.mark.parametrize("status_code", [401, 403])
    def test_auth_failure_clears_token_and_raises(self, context, adapter, store, status_code):
        store.save("abc123")
        adapter.queue(status_code, {"error": "invalid_token"})

        with pytest.raises(SessionExpiredError) as exc_info:
            context.http_client.get_json("/things")

        assert exc_info.value.status_code == status_code
        assert "invalid_token" in str(exc_info.value)
        assert store.get() is None

    def test_failed_request_is_not_retried(self, store, http_session, adapter):
        context = build_session_context(make_settings(retry_attempts=3), store=store, session=http_session)
        store.save("abc123")
        adapter.queue(401, {})

        with pytest.raises(SessionExpiredError):
            context.http_client.get_json("/things")
        assert len(adapter.sent) == 1

    def test_error_carries_original_response(self, context, adapter, store):
        store.save("abc123")
        adapter.queue(401, {"error": "expired"})

        with pytest.raises(SessionExpiredError) as exc_info:
            context.http_client.get_json("/things")

        response = exc_info.value.response
        assert response is not None
        assert response.status_code == 401
        assert response.json() == {"error": "expired"}
        assert response.headers["Content-Type"] == "application/json"

    def test_hook_returns_original_response(self, context, adapter, store):
        store.save("abc123")
        adapter.queue(401, {"error": "expired"})

        response = context.http_client.session.get(f"{BASE_URL}/things", auth=context.auth)

        assert response.status_code == 401
        assert response.json() == {"error": "expired"}
        assert store.get() is None

    def test_success_keeps_token(self, context, adapter, store):
        store.save("abc123")
        adapter.queue(200, {})
        context.http_client.get_json("/things")
        assert store.get() == "abc123"

    def test_other_errors_keep_token(self, context, adapter, store):
        store.save("abc123")
        adapter.queue(404, {"error": "missing"})

        with pytest.raises(ApiHttpError) as exc_info:
            context.http_client.get_json("/things")

        assert not isinstance(exc_info.value, SessionExpiredError)
        assert exc_info.value.status_code == 404
        assert store.get() == "abc123"

    def test_failure_callback_runs_once_after_clear(self, store, http_session, adapter):
        seen = []
        callback = MagicMock(side_effect=lambda response: seen.append((response.status_code, store.get())))
        context = build_session_context(
            make_settings(), store=store, session=http_session, on_auth_failure=callback
        )
        store.save("abc123")
        adapter.queue(403, {})

        with pytest.raises(SessionExpiredError):
            context.http_client.get_json("/things")

        callback.assert_called_once()
        assert seen == [(403, None)]
