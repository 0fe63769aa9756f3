"""HTTP tests for the FastAPI application."""

import jwt
import pytest
from sqlalchemy import func, select

from qrlanding.config import settings
from qrlanding.database.models import Scan


def create_qr(client, headers) -> dict:
    response = client.post("/qr-codes", headers=headers)
    assert response.status_code == 200
    return response.json()["qr_code"]


def count_scans(client) -> int:
    async def _count() -> int:
        async with client.session_factory() as session:
            result = await session.execute(select(func.count()).select_from(Scan))
            return result.scalar_one()

    return client.portal.call(_count)


class TestHealthAndScannability:
    def test_health(self, api_client):
        response = api_client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "ok"}

    def test_safe_limits(self, api_client):
        limits = api_client.get("/scannability/limits").json()

        assert limits["logo_size"] == {"optimal": 20, "maximum": 30, "critical": 35}
        assert limits["corner_radius"]["maximum"] == 5
        assert limits["color_contrast"]["critical"] == 3

    def test_validate_critical_configuration(self, api_client):
        response = api_client.post(
            "/scannability/validate",
            json={"logo_size_percent": 40, "corner_radius_level": 10},
        )

        body = response.json()
        assert response.status_code == 200
        assert body["risk_level"] == "critical"
        assert body["is_valid"] is False
        assert body["suggestions"][0] == "⚠️ This QR code configuration will likely NOT scan!"

    @pytest.mark.parametrize(
        "payload",
        [
            {"logo_size_percent": 41},
            {"corner_radius_level": -1},
            {"module_color": "red"},
            {"error_correction_level": "Z"},
        ],
    )
    def test_out_of_range_input_is_rejected(self, api_client, payload):
        response = api_client.post("/scannability/validate", json=payload)

        assert response.status_code == 422

    def test_auto_adjust(self, api_client):
        response = api_client.post(
            "/scannability/auto-adjust",
            json={"logo_size_percent": 40, "corner_radius_level": 10, "module_color": "#eeeeee"},
        )

        body = response.json()
        assert body["configuration"]["logo_size_percent"] == 21
        assert body["configuration"]["corner_radius_level"] == 3
        assert body["configuration"]["module_color"] == "#000000"
        assert body["validation"]["is_valid"] is True


class TestAuth:
    def test_missing_token(self, api_client):
        response = api_client.post("/qr-codes")

        assert response.status_code == 401

    def test_wrong_secret(self, api_client):
        token = jwt.encode(
            {"sub": "auth-alice", "aud": settings.auth_jwt_audience},
            "a-completely-different-32-byte-secret",
            algorithm="HS256",
        )

        response = api_client.post("/qr-codes", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid token"

    def test_token_without_subject(self, api_client):
        token = jwt.encode(
            {"aud": settings.auth_jwt_audience}, settings.auth_jwt_secret, algorithm="HS256"
        )

        response = api_client.post("/qr-codes", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401


class TestQRCodes:
    def test_get_or_create_is_stable(self, api_client, auth_headers):
        first = create_qr(api_client, auth_headers)
        second = create_qr(api_client, auth_headers)

        assert first["id"] == second["id"]
        assert first["url"] == f"http://localhost:8000/q/{first['short_code']}"
        assert first["scan_count"] == 0

    def test_style_update_returns_assessment(self, api_client, auth_headers):
        qr = create_qr(api_client, auth_headers)

        response = api_client.put(
            f"/qr-codes/{qr['id']}/style",
            headers=auth_headers,
            json={"corner_radius_level": 4},
        )

        body = response.json()
        assert response.status_code == 200
        assert body["qr_code"]["corner_radius"] == 4
        assert body["validation"]["risk_level"] == "high"

    def test_style_update_rejected_when_critical(self, api_client, auth_headers, monkeypatch):
        monkeypatch.setattr(settings, "reject_critical_configs", True)
        qr = create_qr(api_client, auth_headers)

        response = api_client.put(
            f"/qr-codes/{qr['id']}/style",
            headers=auth_headers,
            json={"module_color": "#eeeeee"},
        )

        assert response.status_code == 422
        assert response.json()["validation"]["risk_level"] == "critical"

    def test_other_user_is_forbidden(self, api_client, auth_headers, other_auth_headers):
        qr = create_qr(api_client, auth_headers)

        response = api_client.get(f"/qr-codes/{qr['id']}", headers=other_auth_headers)

        assert response.status_code == 403

    def test_unknown_qr_code(self, api_client, auth_headers):
        response = api_client.get("/qr-codes/12345", headers=auth_headers)

        assert response.status_code == 404

    def test_upload_logo(self, api_client, auth_headers, storage, logo_png):
        qr = create_qr(api_client, auth_headers)

        response = api_client.post(
            f"/qr-codes/{qr['id']}/logo/upload",
            headers=auth_headers,
            files={"file": ("logo.png", logo_png, "image/png")},
        )

        assert response.status_code == 200
        logo_url = response.json()["qr_code"]["logo_url"]
        assert storage.path_from_public_url(logo_url) in storage.objects

    def test_upload_rejects_wrong_type(self, api_client, auth_headers):
        qr = create_qr(api_client, auth_headers)

        response = api_client.post(
            f"/qr-codes/{qr['id']}/logo/upload",
            headers=auth_headers,
            files={"file": ("logo.gif", b"GIF89a", "image/gif")},
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid file type"

    def test_upload_storage_failure_is_bad_gateway(self, api_client, auth_headers, storage, logo_png):
        qr = create_qr(api_client, auth_headers)
        storage.fail_upload = True

        response = api_client.post(
            f"/qr-codes/{qr['id']}/logo/upload",
            headers=auth_headers,
            files={"file": ("logo.png", logo_png, "image/png")},
        )

        assert response.status_code == 502

    def test_export_png(self, api_client, auth_headers):
        qr = create_qr(api_client, auth_headers)

        response = api_client.get(f"/qr-codes/{qr['id']}/image.png?size=256", headers=auth_headers)

        assert response.status_code == 200
        assert response.headers["content-type"] == "image/png"
        assert response.content.startswith(b"\x89PNG")

    def test_export_size_is_bounded(self, api_client, auth_headers):
        qr = create_qr(api_client, auth_headers)

        response = api_client.get(f"/qr-codes/{qr['id']}/image.png?size=5000", headers=auth_headers)

        assert response.status_code == 422


class TestDomains:
    def test_add_list_switch_and_delete(self, api_client, auth_headers):
        a = api_client.post("/domains", headers=auth_headers, json={"hostname": "https://A.example.com/"})
        b = api_client.post("/domains", headers=auth_headers, json={"hostname": "b.example.com"})
        a_id = a.json()["domain"]["id"]
        b_id = b.json()["domain"]["id"]

        assert a.json()["domain"]["hostname"] == "a.example.com"
        assert a.json()["domain"]["primary"] is True
        assert b.json()["domain"]["primary"] is False

        switched = api_client.patch(f"/domains/{b_id}/primary", headers=auth_headers)
        assert switched.json()["domain"]["primary"] is True

        domains = api_client.get("/domains", headers=auth_headers).json()["domains"]
        assert [(d["id"], d["primary"]) for d in domains] == [(b_id, True), (a_id, False)]

        deleted = api_client.delete(f"/domains/{b_id}", headers=auth_headers)
        assert deleted.status_code == 200

        domains = api_client.get("/domains", headers=auth_headers).json()["domains"]
        assert [(d["id"], d["primary"]) for d in domains] == [(a_id, True)]

    def test_duplicate_hostname_conflicts(self, api_client, auth_headers, other_auth_headers):
        api_client.post("/domains", headers=auth_headers, json={"hostname": "links.example.com"})

        response = api_client.post(
            "/domains", headers=other_auth_headers, json={"hostname": "links.example.com"}
        )

        assert response.status_code == 409

    def test_invalid_hostname(self, api_client, auth_headers):
        response = api_client.post("/domains", headers=auth_headers, json={"hostname": "bad host"})

        assert response.status_code == 400

    def test_tenant_resolution_from_host_header(self, api_client, auth_headers):
        api_client.post("/domains", headers=auth_headers, json={"hostname": "links.example.com"})

        known = api_client.get("/tenant", headers={"Host": "Links.Example.com"}).json()
        unknown = api_client.get("/tenant", headers={"Host": "nobody.example.com"}).json()

        assert known["client_id"] is not None
        assert known["domain"]["hostname"] == "links.example.com"
        assert unknown == {"host": "nobody.example.com", "client_id": None, "domain": None}

    def test_qr_url_uses_primary_domain(self, api_client, auth_headers):
        api_client.post("/domains", headers=auth_headers, json={"hostname": "links.example.com"})

        qr = create_qr(api_client, auth_headers)

        assert qr["url"] == f"https://links.example.com/q/{qr['short_code']}"


class TestPublicScan:
    def test_link_page_redirect_records_scan(self, api_client, auth_headers):
        qr = create_qr(api_client, auth_headers)
        api_client.put(
            f"/qr-codes/{qr['id']}/links",
            headers=auth_headers,
            json={"links": [{"title": "Menu", "url": "https://example.com/menu"}]},
        )

        response = api_client.get(
            f"/q/{qr['short_code']}",
            headers={"User-Agent": "pytest", "X-Forwarded-For": "203.0.113.7"},
            follow_redirects=False,
        )

        assert response.status_code == 307
        assert response.headers["location"].endswith(f"/q/{qr['short_code']}/links")
        assert count_scans(api_client) == 1

        page = api_client.get(f"/q/{qr['short_code']}/links").json()
        assert page["title"] == "My QR Code"
        assert [link["title"] for link in page["links"]] == ["Menu"]

    def test_custom_url_redirect(self, api_client, auth_headers):
        qr = create_qr(api_client, auth_headers)
        api_client.put(
            f"/qr-codes/{qr['id']}/destination",
            headers=auth_headers,
            json={"redirect_type": "url", "redirect_url": "https://example.com/landing"},
        )

        response = api_client.get(f"/q/{qr['short_code']}", follow_redirects=False)

        assert response.status_code == 307
        assert response.headers["location"] == "https://example.com/landing"

    def test_unknown_short_code(self, api_client):
        response = api_client.get("/q/doesnotexist", follow_redirects=False)

        assert response.status_code == 404
        assert count_scans(api_client) == 0

    def test_short_code_hidden_on_other_tenants_domain(self, api_client, auth_headers, other_auth_headers):
        qr = create_qr(api_client, auth_headers)
        api_client.post("/domains", headers=other_auth_headers, json={"hostname": "bob.example.com"})

        response = api_client.get(
            f"/q/{qr['short_code']}", headers={"Host": "bob.example.com"}, follow_redirects=False
        )

        assert response.status_code == 404


class TestStorageInit:
    def test_bucket_is_created_once(self, api_client, auth_headers):
        first = api_client.post("/storage/init", headers=auth_headers)
        second = api_client.post("/storage/init", headers=auth_headers)

        assert first.json() == {"bucket": "qr-logos", "created": True}
        assert second.json() == {"bucket": "qr-logos", "created": False}
