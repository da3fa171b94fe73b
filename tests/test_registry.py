"""Tests for the tenant registry.

Covers:
- Slug derivation, uniqueness and reserved names
- Site creation defaults and validation
- Owner-scoped reads and deletes
- Entry file nomination
- File rows and recomputed counters
"""

import pytest

from sitehost.errors import NotFound, ValidationError
from sitehost.models.site import SiteFile
from sitehost.services.registry import slugify


def _file(path, size):
    return SiteFile(path=path, original_name=path, size_bytes=size, mime_type="text/html")


class TestSlugify:
    def test_lowercases_and_hyphenates(self):
        assert slugify("My Blog") == "my-blog"

    def test_collapses_runs_of_punctuation(self):
        assert slugify("  Hello,   World!! ") == "hello-world"

    def test_folds_accents(self):
        assert slugify("Café Crème") == "cafe-creme"

    def test_nothing_usable_gives_empty(self):
        assert slugify("!!!") == ""


class TestCreateSite:
    """Slug allocation and defaults for new sites."""

    def test_new_site_defaults(self, registry, seed_data):
        site = registry.create(seed_data["owner_id"], "My Blog", "Posts")

        assert site.slug == "my-blog"
        assert site.status == "active"
        assert site.owner_id == seed_data["owner_id"]
        assert site.description == "Posts"
        assert site.file_count == 0
        assert site.total_size_bytes == 0
        assert site.entry_file == "index.html"
        assert site.files == []

    def test_colliding_names_get_numbered_slugs(self, registry, seed_data):
        first = registry.create(seed_data["owner_id"], "My Blog")
        second = registry.create(seed_data["other_id"], "My Blog")
        third = registry.create(seed_data["owner_id"], "my blog!")

        assert [first.slug, second.slug, third.slug] == [
            "my-blog",
            "my-blog-2",
            "my-blog-3",
        ]

    def test_reserved_slug_is_never_assigned(self, registry, seed_data):
        site = registry.create(seed_data["owner_id"], "WWW")
        assert site.slug == "www-2"

    def test_name_without_alphanumerics_falls_back(self, registry, seed_data):
        site = registry.create(seed_data["owner_id"], "!!!")
        assert site.slug == "site"

    def test_blank_name_is_rejected(self, registry, seed_data):
        with pytest.raises(ValidationError):
            registry.create(seed_data["owner_id"], "   ")

    def test_blank_description_is_stored_as_none(self, registry, seed_data):
        site = registry.create(seed_data["owner_id"], "Docs", "  ")
        assert site.description is None


class TestReads:
    def test_lookup_by_slug_and_id(self, registry, seed_data):
        site = registry.create(seed_data["owner_id"], "Portfolio")
        assert registry.get_by_slug("portfolio").id == site.id
        assert registry.get_by_id(site.id).slug == "portfolio"
        assert registry.get_by_slug("missing") is None

    def test_get_owned_hides_other_owners_sites(self, registry, seed_data):
        site = registry.create(seed_data["owner_id"], "Portfolio")
        with pytest.raises(NotFound):
            registry.get_owned(site.id, seed_data["other_id"])

    def test_list_by_owner_includes_files(self, registry, seed_data):
        site = registry.create(seed_data["owner_id"], "Portfolio")
        registry.create(seed_data["other_id"], "Someone Else")
        registry.record_file_added(site.id, _file("index.html", 12))

        sites = registry.list_by_owner(seed_data["owner_id"])
        assert [s.id for s in sites] == [site.id]
        assert [f.path for f in sites[0].files] == ["index.html"]

    def test_list_site_ids(self, registry, seed_data):
        a = registry.create(seed_data["owner_id"], "A")
        b = registry.create(seed_data["other_id"], "B")
        assert sorted(registry.list_site_ids()) == sorted([a.id, b.id])


class TestDeleteSite:
    def test_delete_removes_site_and_files(self, registry, adapter, seed_data):
        site = registry.create(seed_data["owner_id"], "Portfolio")
        registry.record_file_added(site.id, _file("index.html", 12))

        registry.delete(site.id, seed_data["owner_id"])

        assert registry.get_by_id(site.id) is None
        assert adapter.all("SELECT id FROM site_files WHERE site_id = ?", [site.id]) == []

    def test_non_owner_cannot_delete(self, registry, seed_data):
        site = registry.create(seed_data["owner_id"], "Portfolio")
        with pytest.raises(NotFound):
            registry.delete(site.id, seed_data["other_id"])
        assert registry.get_by_id(site.id) is not None

    def test_unknown_site(self, registry, seed_data):
        with pytest.raises(NotFound):
            registry.delete("no-such-site", seed_data["owner_id"])


class TestEntryFile:
    def test_set_entry_file(self, registry, seed_data):
        site = registry.create(seed_data["owner_id"], "Portfolio")
        assert registry.set_entry_file(site.id, seed_data["owner_id"], "/about.html") == "about.html"
        assert registry.get_by_id(site.id).entry_file == "about.html"

    def test_blank_entry_file_is_rejected(self, registry, seed_data):
        site = registry.create(seed_data["owner_id"], "Portfolio")
        with pytest.raises(ValidationError):
            registry.set_entry_file(site.id, seed_data["owner_id"], " ")

    def test_non_owner_gets_not_found(self, registry, seed_data):
        site = registry.create(seed_data["owner_id"], "Portfolio")
        with pytest.raises(NotFound):
            registry.set_entry_file(site.id, seed_data["other_id"], "about.html")


class TestCounters:
    """file_count / total_size_bytes always match the file rows."""

    def test_counters_follow_file_rows(self, registry, seed_data):
        site = registry.create(seed_data["owner_id"], "Portfolio")
        registry.record_file_added(site.id, _file("index.html", 100))
        style = registry.record_file_added(site.id, _file("style.css", 50))

        site = registry.get_by_id(site.id)
        assert (site.file_count, site.total_size_bytes) == (2, 150)

        registry.record_file_removed(site.id, style.id)
        site = registry.get_by_id(site.id)
        assert (site.file_count, site.total_size_bytes) == (1, 100)

    def test_same_path_replaces_the_row(self, registry, seed_data):
        site = registry.create(seed_data["owner_id"], "Portfolio")
        registry.record_file_added(site.id, _file("index.html", 100))
        registry.record_file_added(site.id, _file("index.html", 30))

        site = registry.get_by_id(site.id)
        assert (site.file_count, site.total_size_bytes) == (1, 30)
        assert [f.size_bytes for f in site.files] == [30]

    def test_removing_a_foreign_file_is_not_found(self, registry, seed_data):
        a = registry.create(seed_data["owner_id"], "A")
        b = registry.create(seed_data["owner_id"], "B")
        stored = registry.record_file_added(a.id, _file("index.html", 10))
        with pytest.raises(NotFound):
            registry.record_file_removed(b.id, stored.id)

    def test_refresh_repairs_drifted_counters(self, registry, adapter, seed_data):
        site = registry.create(seed_data["owner_id"], "Portfolio")
        registry.record_file_added(site.id, _file("index.html", 100))
        adapter.run(
            "UPDATE sites SET file_count = ?, total_size_bytes = ? WHERE id = ?",
            [9, 999, site.id],
        )

        assert registry.refresh_counters(site.id) == (1, 100)
        site = registry.get_by_id(site.id)
        assert (site.file_count, site.total_size_bytes) == (1, 100)

    def test_refresh_records_deploy(self, registry, seed_data):
        site = registry.create(seed_data["owner_id"], "Portfolio")
        assert site.last_deploy_at is None
        registry.refresh_counters(site.id, deployed=True, status="active")
        assert registry.get_by_id(site.id).last_deploy_at is not None

    def test_unknown_status_is_rejected(self, registry, seed_data):
        site = registry.create(seed_data["owner_id"], "Portfolio")
        with pytest.raises(ValidationError):
            registry.set_status(site.id, "exploded")
