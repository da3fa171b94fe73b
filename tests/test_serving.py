"""Tests for public site serving.

Covers:
- Sub-domain serving through the tenant middleware
- Path-mode serving under /sites/<site_id>/
- Directory listings and fall-through to normal routing
- Security headers on app pages vs hosted content
- Raw file access under /uploads/
- The full create -> upload -> browse -> delete flow
"""

import pytest

TENANT = "http://my-blog.lvh.me"


@pytest.fixture
def blog(registry, storage, seed_data):
    site = registry.create(seed_data["owner_id"], "My Blog")
    storage.write(site.id, "index.html", b"<h1>Home</h1>")
    storage.write(site.id, "about.html", b"<h1>About</h1>")
    storage.write(site.id, "css/site.css", b"body{}")
    return site


class TestSubdomainServing:
    def test_root_serves_entry_file(self, client, blog):
        resp = client.get("/", base_url=TENANT)
        assert resp.status_code == 200
        assert resp.data == b"<h1>Home</h1>"
        assert resp.mimetype == "text/html"

    def test_exact_file(self, client, blog):
        resp = client.get("/css/site.css", base_url=TENANT)
        assert resp.status_code == 200
        assert resp.mimetype == "text/css"
        assert resp.data == b"body{}"

    def test_port_in_host(self, client, blog):
        resp = client.get("/about.html", base_url="http://my-blog.lvh.me:5001")
        assert resp.data == b"<h1>About</h1>"

    def test_directory_listing(self, client, blog):
        resp = client.get("/css/", base_url=TENANT)
        assert resp.status_code == 200
        assert b"Index of /css" in resp.data
        assert b'href="/css/site.css"' in resp.data
        assert b'href="/"' in resp.data

    def test_missing_file_lists_nearest_directory(self, client, blog):
        resp = client.get("/css/missing.css", base_url=TENANT)
        assert resp.status_code == 200
        assert b"Index of /css" in resp.data

    def test_root_listing_when_entry_file_missing(self, client, registry, blog, seed_data):
        registry.set_entry_file(blog.id, seed_data["owner_id"], "home.html")
        resp = client.get("/", base_url=TENANT)
        assert b"Index of /" in resp.data
        assert b'href="/css/"' in resp.data
        assert b'href="/about.html"' in resp.data

    def test_head_request(self, client, blog):
        resp = client.head("/", base_url=TENANT)
        assert resp.status_code == 200

    def test_unknown_slug_falls_through(self, client, blog):
        resp = client.get("/", base_url="http://nobody.lvh.me")
        assert resp.get_json() == {"ok": True, "service": "sitehost"}

    def test_base_domain_and_www_fall_through(self, client, blog):
        for base_url in ("http://lvh.me", "http://www.lvh.me", "http://localhost"):
            resp = client.get("/", base_url=base_url)
            assert resp.get_json() == {"ok": True, "service": "sitehost"}

    def test_api_is_not_shadowed_for_writes(self, client, blog, seed_data):
        resp = client.post(
            "/api/sites",
            json={"name": "Second"},
            headers=seed_data["headers"],
            base_url=TENANT,
        )
        assert resp.status_code == 201


class TestPathServing:
    def test_site_root(self, client, blog):
        resp = client.get(f"/sites/{blog.id}/")
        assert resp.status_code == 200
        assert resp.data == b"<h1>Home</h1>"

    def test_nested_file(self, client, blog):
        resp = client.get(f"/sites/{blog.id}/css/site.css")
        assert resp.data == b"body{}"

    def test_listing_links_keep_prefix(self, client, blog):
        resp = client.get(f"/sites/{blog.id}/css")
        assert f'href="/sites/{blog.id}/css/site.css"'.encode() in resp.data
        assert f'href="/sites/{blog.id}/"'.encode() in resp.data

    def test_unknown_site_is_404(self, client):
        assert client.get("/sites/no-such-site/").status_code == 404

    def test_empty_directory_listing(self, client, storage, blog):
        storage.ensure_directory(blog.id)
        storage.write(blog.id, "empty/placeholder.txt", b"")
        storage.remove(blog.id, "empty/placeholder.txt")
        resp = client.get(f"/sites/{blog.id}/empty")
        assert b"This directory is empty." in resp.data


class TestSecurityHeaders:
    """Verify security headers on app pages and hosted content."""

    def test_app_responses_are_locked_down(self, client):
        resp = client.get("/")
        assert resp.headers.get("X-Content-Type-Options") == "nosniff"
        assert resp.headers.get("Referrer-Policy") == "strict-origin-when-cross-origin"
        assert resp.headers.get("X-Frame-Options") == "DENY"
        assert "default-src 'self'" in resp.headers.get("Content-Security-Policy")

    def test_hosted_content_keeps_its_own_policy(self, client, blog):
        resp = client.get("/", base_url=TENANT)
        assert resp.headers.get("X-Content-Type-Options") == "nosniff"
        assert resp.headers.get("X-Frame-Options") is None
        assert resp.headers.get("Content-Security-Policy") is None

    def test_no_hsts_in_debug(self, client):
        assert client.get("/").headers.get("Strict-Transport-Security") is None

    def test_headers_on_error_pages(self, client):
        resp = client.get("/nonexistent-page")
        assert resp.status_code == 404
        assert resp.headers.get("X-Content-Type-Options") == "nosniff"
        assert resp.headers.get("X-Frame-Options") == "DENY"


class TestRawUploads:
    """/uploads/<site_id>/<path> reads straight from the content root."""

    def test_serves_stored_file(self, client, blog):
        resp = client.get(f"/uploads/{blog.id}/css/site.css")
        assert resp.status_code == 200
        assert resp.data == b"body{}"
        assert resp.mimetype == "text/css"
        assert resp.headers.get("Content-Security-Policy") is None

    def test_directory_serves_its_index(self, client, blog):
        assert client.get(f"/uploads/{blog.id}/").data == b"<h1>Home</h1>"

    def test_no_listing_for_directory_without_index(self, client, blog):
        assert client.get(f"/uploads/{blog.id}/css/").status_code == 404

    def test_missing_file(self, client, blog):
        assert client.get(f"/uploads/{blog.id}/nope.html").status_code == 404

    def test_cannot_escape_the_content_root(self, client, blog):
        assert client.get(f"/uploads/{blog.id}/../../etc/passwd").status_code == 404
        assert client.get("/uploads/../etc/passwd").status_code == 404


class TestEndToEnd:
    """Create a site, deploy it, browse it, prune it, delete it."""

    def test_blog_lifecycle(self, client, upload, seed_data):
        headers = seed_data["headers"]
        index_html = b"<h1>Hello</h1>".ljust(500, b" ")
        style_css = b"body{}".ljust(200, b" ")

        site = client.post(
            "/api/sites", json={"name": "My Blog"}, headers=headers
        ).get_json()
        assert site["slug"] == "my-blog"

        # Nothing on disk yet: the host is not served.
        assert client.get("/", base_url=TENANT).get_json() == {
            "ok": True,
            "service": "sitehost",
        }

        body = upload(
            site["id"], headers, {"index.html": index_html, "style.css": style_css}
        ).get_json()
        assert body["site"]["fileCount"] == 2
        assert body["site"]["totalSizeBytes"] == 700

        assert client.get("/", base_url=TENANT).data == index_html
        assert client.get("/style.css", base_url=TENANT).data == style_css
        assert client.get(f"/sites/{site['id']}/").data == index_html

        style = next(f for f in body["uploaded"] if f["path"] == "style.css")
        resp = client.delete(
            f"/api/sites/{site['id']}/files/{style['id']}", headers=headers
        )
        assert resp.status_code == 200
        listed = client.get("/api/sites", headers=headers).get_json()
        assert (listed[0]["fileCount"], listed[0]["totalSizeBytes"]) == (1, 500)

        # Another owner cannot delete it, and it stays up.
        resp = client.delete(
            f"/api/sites/{site['id']}", headers=seed_data["other_headers"]
        )
        assert resp.status_code == 404
        assert client.get("/", base_url=TENANT).data == index_html

        resp = client.delete(f"/api/sites/{site['id']}", headers=headers)
        assert resp.status_code == 200
        assert client.get(f"/sites/{site['id']}/").status_code == 404
        assert client.get("/", base_url=TENANT).get_json() == {
            "ok": True,
            "service": "sitehost",
        }
