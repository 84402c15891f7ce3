"""Integration tests for the HTTP API.

Runs the real application from ``create_app`` against a temporary SQLite
file, with Discord, rate limiting and the breach lookup switched off.
"""

from __future__ import annotations

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from psychic_homily.config.loader import load_config
from psychic_homily.main import create_app
from tests.helpers import FUTURE, show_payload

PASSWORD = "a perfectly fine passphrase"


@pytest.fixture
def client(test_settings):
    with TestClient(create_app(test_settings)) as c:
        yield c


def _register(client: TestClient, email: str) -> tuple[dict, dict]:
    resp = client.post("/api/v1/auth/register", json={"email": email, "password": PASSWORD})
    assert resp.status_code == 201, resp.text
    data = resp.json()
    # Tests authenticate with explicit headers; anonymous calls stay anonymous.
    client.cookies.clear()
    return data["user"], {"Authorization": f"Bearer {data['token']}"}


def _promote(client: TestClient, user_id: int) -> None:
    # Admin status is reloaded on every request, so the existing token upgrades.
    client.portal.call(client.app.state.user_store.set_admin, user_id, True)


@pytest.fixture
def fan(client):
    return _register(client, "fan@example.com")


@pytest.fixture
def admin(client):
    user, headers = _register(client, "admin@example.com")
    _promote(client, user["id"])
    return user, headers


# ─── Health ───────────────────────────────────────────────────────

class TestHealth:
    def test_health(self, client):
        resp = client.get("/api/v1/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "healthy"
        assert data["environment"] == "development"
        assert data["providers"]["discord"] is False
        assert data["providers"]["discovery_venues"] >= 1


# ─── Auth ─────────────────────────────────────────────────────────

class TestAuth:
    def test_register_sets_cookie_and_me(self, client):
        resp = client.post(
            "/api/v1/auth/register",
            json={"email": "new@example.com", "password": PASSWORD, "first_name": "Nia"},
        )
        assert resp.status_code == 201
        assert "auth_token" in resp.cookies
        assert resp.json()["expires_in_hours"] == 24

        # The cookie alone authenticates.
        me = client.get("/api/v1/auth/me")
        assert me.status_code == 200
        assert me.json()["user"]["first_name"] == "Nia"

    def test_register_conflict_and_weak_password(self, client, fan):
        dup = client.post("/api/v1/auth/register", json={"email": "fan@example.com", "password": PASSWORD})
        assert dup.status_code == 409
        assert dup.json()["code"] == "USER_EXISTS"

        weak = client.post("/api/v1/auth/register", json={"email": "weak@example.com", "password": "short"})
        assert weak.status_code == 422
        assert weak.json()["code"] == "WEAK_PASSWORD"
        assert weak.json()["errors"]

    def test_login_and_bad_credentials(self, client, fan):
        ok = client.post("/api/v1/auth/login", json={"email": "fan@example.com", "password": PASSWORD})
        assert ok.status_code == 200
        assert ok.json()["token"]

        bad = client.post("/api/v1/auth/login", json={"email": "fan@example.com", "password": "nope nope nope"})
        assert bad.status_code == 401
        assert bad.json()["code"] == "INVALID_CREDENTIALS"

    def test_lockout_returns_423(self, client, fan):
        for _ in range(4):
            client.post("/api/v1/auth/login", json={"email": "fan@example.com", "password": "wrong wrong wrong"})
        resp = client.post("/api/v1/auth/login", json={"email": "fan@example.com", "password": "wrong wrong wrong"})
        assert resp.status_code == 423
        assert resp.json()["code"] == "ACCOUNT_LOCKED"

    def test_logout_clears_cookie(self, client, fan):
        client.post("/api/v1/auth/login", json={"email": "fan@example.com", "password": PASSWORD})
        assert client.post("/api/v1/auth/logout").status_code == 200
        assert client.get("/api/v1/auth/me").status_code == 401

    def test_me_requires_auth(self, client):
        resp = client.get("/api/v1/auth/me")
        assert resp.status_code == 401
        assert resp.json()["code"] == "AUTH_REQUIRED"

    def test_garbage_token(self, client):
        resp = client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not.a.jwt"})
        assert resp.status_code == 401
        assert resp.json()["code"] == "TOKEN_INVALID"

    def test_magic_link_echoed_in_development(self, client, fan):
        resp = client.post("/api/v1/auth/magic-link", json={"email": "fan@example.com"})
        token = resp.json()["token"]
        assert token

        unknown = client.post("/api/v1/auth/magic-link", json={"email": "ghost@example.com"})
        assert unknown.status_code == 200
        assert unknown.json()["message"] == resp.json()["message"]
        assert unknown.json().get("token") is None

        verified = client.post("/api/v1/auth/magic-link/verify", json={"token": token})
        assert verified.status_code == 200
        assert verified.json()["user"]["email_verified"] is True

    def test_refresh(self, client, fan):
        _, headers = fan
        resp = client.post("/api/v1/auth/refresh", headers=headers)
        assert resp.status_code == 200
        assert resp.json()["token"]


# ─── Shows ────────────────────────────────────────────────────────

class TestShows:
    def test_submit_requires_auth(self, client):
        assert client.post("/api/v1/shows", json=show_payload()).status_code == 401

    def test_submit_and_duplicate(self, client, fan):
        _, headers = fan
        resp = client.post("/api/v1/shows", json=show_payload(), headers=headers)
        assert resp.status_code == 201, resp.text
        show = resp.json()["show"]
        assert show["status"] == "pending"
        assert show["title"] == "The Black Keys"
        assert show["venues"][0]["name"] == "Valley Bar"

        dup = client.post(
            "/api/v1/shows",
            json=show_payload(headliner="the black keys", event_date=FUTURE + timedelta(hours=1)),
            headers=headers,
        )
        assert dup.status_code == 409
        assert dup.json()["code"] == "DUPLICATE_SHOW"
        assert dup.json()["existing_show_id"] == show["id"]

    def test_missing_artists_is_422(self, client, fan):
        _, headers = fan
        body = show_payload()
        body["artists"] = []
        assert client.post("/api/v1/shows", json=body, headers=headers).status_code == 422

    def test_pending_show_hidden_from_public(self, client, fan):
        _, headers = fan
        show_id = client.post("/api/v1/shows", json=show_payload(), headers=headers).json()["show"]["id"]
        assert client.get(f"/api/v1/shows/{show_id}").status_code == 404
        assert client.get(f"/api/v1/shows/{show_id}", headers=headers).status_code == 200
        assert client.get("/api/v1/shows/upcoming").json()["shows"] == []

        mine = client.get("/api/v1/shows/mine", headers=headers).json()
        assert mine["total"] == 1

    def test_admin_submission_is_public(self, client, admin):
        _, headers = admin
        show = client.post("/api/v1/shows", json=show_payload(), headers=headers).json()["show"]
        assert show["status"] == "approved"

        upcoming = client.get("/api/v1/shows/upcoming").json()
        assert [s["id"] for s in upcoming["shows"]] == [show["id"]]
        assert upcoming["timezone"] == "America/Phoenix"
        assert client.get(f"/api/v1/shows/slug/{show['slug']}").status_code == 200
        assert client.get("/api/v1/shows/cities").json()["cities"][0]["city"] == "Phoenix"

    def test_upcoming_admin_view_requires_admin(self, client, fan):
        _, headers = fan
        resp = client.get("/api/v1/shows/upcoming?include_non_approved=true", headers=headers)
        assert resp.status_code == 403

    def test_owner_edit_and_delete(self, client, fan):
        _, headers = fan
        show_id = client.post("/api/v1/shows", json=show_payload(), headers=headers).json()["show"]["id"]
        resp = client.put(f"/api/v1/shows/{show_id}", json={"price": 25.0}, headers=headers)
        assert resp.status_code == 200
        assert resp.json()["show"]["price"] == 25.0

        assert client.delete(f"/api/v1/shows/{show_id}", headers=headers).status_code == 204
        assert client.get(f"/api/v1/shows/{show_id}", headers=headers).status_code == 404

    def test_save_and_report(self, client, fan, admin):
        _, admin_headers = admin
        _, fan_headers = fan
        show_id = client.post(
            "/api/v1/shows", json=show_payload(), headers=admin_headers
        ).json()["show"]["id"]

        assert client.post(f"/api/v1/shows/{show_id}/save", headers=fan_headers).status_code == 200
        assert client.get(f"/api/v1/shows/{show_id}", headers=fan_headers).json()["is_saved"] is True
        saved = client.get("/api/v1/me/saved-shows", headers=fan_headers).json()
        assert saved["total"] == 1
        assert client.delete(f"/api/v1/shows/{show_id}/save", headers=fan_headers).status_code == 204

        report = client.post(
            f"/api/v1/shows/{show_id}/report", json={"report_type": "sold_out"}, headers=fan_headers
        )
        assert report.status_code == 201
        again = client.post(
            f"/api/v1/shows/{show_id}/report", json={"report_type": "cancelled"}, headers=fan_headers
        )
        assert again.status_code == 409
        mine = client.get(f"/api/v1/shows/{show_id}/my-report", headers=fan_headers).json()
        assert mine["report"]["report_type"] == "sold_out"


# ─── Admin moderation ─────────────────────────────────────────────

class TestAdmin:
    def test_non_admin_forbidden(self, client, fan):
        _, headers = fan
        resp = client.get("/api/v1/admin/shows/pending", headers=headers)
        assert resp.status_code == 403
        assert client.get("/api/v1/admin/shows/pending").status_code == 401

    def test_approve_flow(self, client, fan, admin):
        _, fan_headers = fan
        _, admin_headers = admin
        show_id = client.post("/api/v1/shows", json=show_payload(), headers=fan_headers).json()["show"]["id"]

        pending = client.get("/api/v1/admin/shows/pending", headers=admin_headers).json()
        assert [s["id"] for s in pending["shows"]] == [show_id]

        resp = client.post(
            f"/api/v1/admin/shows/{show_id}/approve",
            json={"verify_venues": True},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["show"]["status"] == "approved"
        assert resp.json()["show"]["venues"][0]["verified"] is True

        again = client.post(f"/api/v1/admin/shows/{show_id}/approve", headers=admin_headers)
        assert again.status_code == 409
        assert again.json()["code"] == "INVALID_STATUS_TRANSITION"

        logs = client.get("/api/v1/admin/audit-logs?action=approve_show", headers=admin_headers).json()
        assert logs["total"] == 1

    def test_reject_requires_reason(self, client, fan, admin):
        _, fan_headers = fan
        _, admin_headers = admin
        show_id = client.post("/api/v1/shows", json=show_payload(), headers=fan_headers).json()["show"]["id"]

        assert client.post(
            f"/api/v1/admin/shows/{show_id}/reject", json={"reason": ""}, headers=admin_headers
        ).status_code == 422
        resp = client.post(
            f"/api/v1/admin/shows/{show_id}/reject", json={"reason": "duplicate listing"}, headers=admin_headers
        )
        assert resp.json()["show"]["rejection_reason"] == "duplicate listing"

        rejected = client.get("/api/v1/admin/shows/rejected?search=duplicate", headers=admin_headers).json()
        assert rejected["total"] == 1

    def test_sold_out_flag_and_stats(self, client, admin):
        _, headers = admin
        show_id = client.post("/api/v1/shows", json=show_payload(), headers=headers).json()["show"]["id"]
        resp = client.post(f"/api/v1/admin/shows/{show_id}/sold-out", json={"value": True}, headers=headers)
        assert resp.json()["show"]["is_sold_out"] is True

        stats = client.get("/api/v1/admin/stats", headers=headers).json()
        assert stats["total_shows"] == 1
        assert stats["total_users"] == 1

    def test_venue_edit_flow(self, client, fan, admin):
        _, fan_headers = fan
        _, admin_headers = admin
        venue = client.post(
            "/api/v1/venues",
            json={"name": "Crescent Ballroom", "city": "Phoenix", "state": "AZ"},
            headers=fan_headers,
        ).json()["venue"]
        assert venue["verified"] is False

        edit = client.put(
            f"/api/v1/venues/{venue['id']}", json={"address": "308 N 2nd Ave"}, headers=fan_headers
        ).json()
        assert edit["status"] == "pending"
        edit_id = edit["pending_edit"]["id"]

        queue = client.get("/api/v1/admin/venue-edits", headers=admin_headers).json()
        assert [e["id"] for e in queue["edits"]] == [edit_id]

        applied = client.post(f"/api/v1/admin/venue-edits/{edit_id}/approve", headers=admin_headers)
        assert applied.json()["venue"]["address"] == "308 N 2nd Ave"

        verified = client.post(f"/api/v1/admin/venues/{venue['id']}/verify", headers=admin_headers)
        assert verified.json()["venue"]["verified"] is True

    def test_report_resolution_sets_flag(self, client, fan, admin):
        _, fan_headers = fan
        _, admin_headers = admin
        show_id = client.post("/api/v1/shows", json=show_payload(), headers=admin_headers).json()["show"]["id"]
        report_id = client.post(
            f"/api/v1/shows/{show_id}/report", json={"report_type": "cancelled"}, headers=fan_headers
        ).json()["report"]["id"]

        resp = client.post(
            f"/api/v1/admin/reports/{report_id}/resolve",
            json={"set_show_flag": True, "notes": "venue confirmed"},
            headers=admin_headers,
        )
        assert resp.json()["report"]["status"] == "resolved"
        assert client.get(f"/api/v1/shows/{show_id}").json()["show"]["is_cancelled"] is True


# ─── Artists ──────────────────────────────────────────────────────

class TestArtists:
    def test_search_and_shows(self, client, admin):
        _, headers = admin
        show = client.post("/api/v1/shows", json=show_payload(headliner="Kurt Vile"), headers=headers).json()["show"]
        artist_id = show["artists"][0]["id"]

        found = client.get("/api/v1/artists/search?q=kurt").json()["artists"]
        assert [a["id"] for a in found] == [artist_id]
        assert client.get("/api/v1/artists/search?q=").json()["artists"] == []

        upcoming = client.get(f"/api/v1/artists/{artist_id}/shows").json()
        assert upcoming["time_filter"] == "upcoming"
        assert [s["id"] for s in upcoming["shows"]] == [show["id"]]

        past = client.get(f"/api/v1/artists/{artist_id}/shows?time_filter=past").json()
        assert past["shows"] == []

    def test_bad_time_filter_is_422(self, client, admin):
        _, headers = admin
        show = client.post("/api/v1/shows", json=show_payload(), headers=headers).json()["show"]
        resp = client.get(f"/api/v1/artists/{show['artists'][0]['id']}/shows?time_filter=soon")
        assert resp.status_code == 422
        assert resp.json()["code"] == "INVALID_TIME_FILTER"

    def test_unknown_artist_is_404(self, client):
        assert client.get("/api/v1/artists/999").status_code == 404
        assert client.get("/api/v1/artists/999/shows").status_code == 404

    def test_report_flow(self, client, fan, admin):
        _, fan_headers = fan
        _, admin_headers = admin
        show = client.post("/api/v1/shows", json=show_payload(headliner="Kurt Vile"), headers=admin_headers).json()["show"]
        artist_id = show["artists"][0]["id"]

        assert client.post(f"/api/v1/artists/{artist_id}/report", json={"report_type": "inaccurate"}).status_code == 401
        resp = client.post(
            f"/api/v1/artists/{artist_id}/report",
            json={"report_type": "inaccurate", "details": "Wrong city"},
            headers=fan_headers,
        )
        assert resp.status_code == 201, resp.text
        report = resp.json()["report"]
        assert report["artist_name"] == "Kurt Vile"

        again = client.post(
            f"/api/v1/artists/{artist_id}/report", json={"report_type": "removal_request"}, headers=fan_headers
        )
        assert again.status_code == 409
        mine = client.get(f"/api/v1/artists/{artist_id}/my-report", headers=fan_headers).json()
        assert mine["report"]["id"] == report["id"]

        assert client.get("/api/v1/admin/artist-reports", headers=fan_headers).status_code == 403
        queue = client.get("/api/v1/admin/artist-reports", headers=admin_headers).json()
        assert queue["total"] == 1

        dismissed = client.post(
            f"/api/v1/admin/artist-reports/{report['id']}/dismiss",
            json={"notes": "city is right"},
            headers=admin_headers,
        ).json()["report"]
        assert dismissed["status"] == "dismissed"

        resolve = client.post(f"/api/v1/admin/artist-reports/{report['id']}/resolve", headers=admin_headers)
        assert resolve.status_code == 409
        assert client.get("/api/v1/admin/stats", headers=admin_headers).json()["pending_artist_reports"] == 0


# ─── API tokens ───────────────────────────────────────────────────

class TestApiTokens:
    def test_token_authenticates_admin_endpoints(self, client, admin):
        _, headers = admin
        resp = client.post(
            "/api/v1/admin/tokens", json={"description": "discovery laptop", "expiration_days": 30}, headers=headers
        )
        assert resp.status_code == 201, resp.text
        token = resp.json()["token"]
        assert token.startswith("phk_")
        token_id = resp.json()["api_token"]["id"]

        token_headers = {"Authorization": f"Bearer {token}"}
        check = client.post("/api/v1/admin/discovery/check", json={"events": []}, headers=token_headers)
        assert check.status_code == 200
        assert client.get("/api/v1/auth/me", headers=token_headers).json()["user"]["email"] == "admin@example.com"

        listed = client.get("/api/v1/admin/tokens", headers=headers).json()["tokens"]
        assert [t["id"] for t in listed] == [token_id]
        assert listed[0]["last_used_at"] is not None
        assert "token" not in listed[0]

        assert client.delete(f"/api/v1/admin/tokens/{token_id}", headers=headers).status_code == 204
        revoked = client.post("/api/v1/admin/discovery/check", json={"events": []}, headers=token_headers)
        assert revoked.status_code == 401
        assert client.delete(f"/api/v1/admin/tokens/{token_id}", headers=headers).status_code == 404

    def test_non_admin_cannot_create(self, client, fan):
        _, headers = fan
        assert client.post("/api/v1/admin/tokens", json={}, headers=headers).status_code == 403

    def test_expiry_limit(self, client, admin):
        _, headers = admin
        resp = client.post("/api/v1/admin/tokens", json={"expiration_days": 400}, headers=headers)
        assert resp.status_code == 422
        assert resp.json()["code"] == "INVALID_EXPIRATION"

    def test_unknown_token_is_anonymous_on_public_routes(self, client):
        headers = {"Authorization": "Bearer phk_" + "0" * 64}
        assert client.get("/api/v1/shows/upcoming", headers=headers).status_code == 200
        assert client.get("/api/v1/auth/me", headers=headers).status_code == 401

    def test_demoted_owner_loses_access(self, client, admin):
        user, headers = admin
        token = client.post("/api/v1/admin/tokens", json={}, headers=headers).json()["token"]
        client.portal.call(client.app.state.user_store.set_admin, user["id"], False)
        resp = client.post(
            "/api/v1/admin/discovery/check", json={"events": []}, headers={"Authorization": f"Bearer {token}"}
        )
        assert resp.status_code == 401


# ─── Discovery ────────────────────────────────────────────────────

class TestDiscovery:
    def _events(self):
        return [
            {
                "id": "vb-2001",
                "title": "Japanese Breakfast",
                "date": FUTURE.date().isoformat(),
                "venueSlug": "valley-bar",
                "showTime": "8:00 pm",
                "artists": ["Japanese Breakfast"],
            },
            {"id": "x-1", "title": "Nowhere", "date": "2030-01-01", "venueSlug": "no-such-venue"},
        ]

    def test_import_and_check(self, client, admin):
        _, headers = admin
        dry = client.post(
            "/api/v1/admin/discovery/import", json={"events": self._events(), "dry_run": True}, headers=headers
        ).json()
        assert (dry["imported"], dry["errors"]) == (1, 1)

        result = client.post(
            "/api/v1/admin/discovery/import", json={"events": self._events()}, headers=headers
        ).json()
        assert (result["total"], result["imported"], result["errors"]) == (2, 1, 1)

        again = client.post(
            "/api/v1/admin/discovery/import", json={"events": self._events()}, headers=headers
        ).json()
        assert again["duplicates"] == 1

        check = client.post(
            "/api/v1/admin/discovery/check",
            json={"events": [{"id": "vb-2001", "venueSlug": "valley-bar"}, {"id": "nope", "venueSlug": "valley-bar"}]},
            headers=headers,
        ).json()
        assert list(check["events"]) == ["vb-2001"]
        assert check["events"]["vb-2001"]["exists"] is True
        assert check["events"]["vb-2001"]["status"] == "approved"
        assert "showId" in check["events"]["vb-2001"]

    def test_import_requires_admin(self, client, fan):
        _, headers = fan
        resp = client.post("/api/v1/admin/discovery/import", json={"events": []}, headers=headers)
        assert resp.status_code == 403


# ─── Rate limiting ────────────────────────────────────────────────

class TestRateLimit:
    def test_auth_paths_throttled(self, test_settings):
        settings = test_settings.model_copy(
            update={"rate_limit_enabled": True, "rate_limit_auth_per_minute": 2}
        )
        with TestClient(create_app(settings)) as c:
            body = {"email": "nobody@example.com", "password": "whatever it is"}
            first = c.post("/api/v1/auth/login", json=body)
            assert first.status_code == 401
            assert first.headers["X-RateLimit-Limit"] == "2"
            assert c.post("/api/v1/auth/login", json=body).status_code == 401

            throttled = c.post("/api/v1/auth/login", json=body)
            assert throttled.status_code == 429
            assert throttled.headers["Retry-After"] == "60"

            # Other clients and non-auth paths keep their own budgets.
            other_ip = c.post("/api/v1/auth/login", json=body, headers={"X-Forwarded-For": "203.0.113.9"})
            assert other_ip.status_code == 401
            assert c.get("/api/v1/health").status_code == 200

    def test_retry_after_comes_from_config(self, test_settings):
        settings = test_settings.model_copy(
            update={"rate_limit_enabled": True, "rate_limit_auth_per_minute": 1}
        )
        config = load_config(settings.config_path, settings)
        config["rate_limit"] = {**config["rate_limit"], "retry_after_seconds": 30}
        with TestClient(create_app(settings, components={"config": config})) as c:
            body = {"email": "nobody@example.com", "password": "whatever it is"}
            c.post("/api/v1/auth/login", json=body)
            throttled = c.post("/api/v1/auth/login", json=body)
            assert throttled.status_code == 429
            assert throttled.headers["Retry-After"] == "30"
            assert "30 seconds" in throttled.json()["message"]
