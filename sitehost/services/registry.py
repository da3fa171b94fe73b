"""Tenant registry — CRUD over sites and site_files.

Built on the persistence adapter with SQLAlchemy Core statements, so
the same code runs on every back-end.

Counter policy: sites.total_size_bytes / sites.file_count are always
recomputed from the site's current site_files rows, as the last step
of the transaction that changed those rows. Every such transaction
first locks the site row (SELECT ... FOR UPDATE where supported), so
concurrent mutations of one site serialize and the final counters
converge no matter how requests interleave.
"""

import logging
import re
import unicodedata
import uuid

import sqlalchemy as sa

from sitehost.errors import DuplicateKey, NotFound, PersistenceError, ValidationError
from sitehost.models.site import Site, SiteFile

logger = logging.getLogger(__name__)

sites = Site.__table__
site_files = SiteFile.__table__

# Slugs that can never be served by sub-domain.
RESERVED_SLUGS = {"www"}
MAX_SLUG_ATTEMPTS = 10


def slugify(value):
    """Lowercase, ASCII-fold, collapse non-alphanumerics to single hyphens."""
    value = unicodedata.normalize("NFKD", value or "")
    value = value.encode("ascii", "ignore").decode("ascii").lower()
    value = re.sub(r"[^a-z0-9]+", "-", value)
    return value.strip("-")


class TenantRegistry:
    """Site and SiteFile records plus their aggregate counters."""

    def __init__(self, adapter):
        self.db = adapter

    # ──────────────────────────────────────────────
    # Reads
    # ──────────────────────────────────────────────

    def _files_for(self, site_ids):
        if not site_ids:
            return {}
        rows = self.db.all(
            sa.select(site_files)
            .where(site_files.c.site_id.in_(site_ids))
            .order_by(site_files.c.uploaded_at, site_files.c.path)
        )
        grouped = {site_id: [] for site_id in site_ids}
        for row in rows:
            grouped[row["site_id"]].append(SiteFile.from_row(row))
        return grouped

    def _one(self, where, with_files=True):
        row = self.db.get(sa.select(sites).where(where))
        if row is None:
            return None
        files = self._files_for([row["id"]])[row["id"]] if with_files else []
        return Site.from_row(row, files)

    def get_by_id(self, site_id, with_files=True):
        return self._one(sites.c.id == site_id, with_files)

    def get_by_slug(self, slug, with_files=True):
        return self._one(sites.c.slug == slug, with_files)

    def get_owned(self, site_id, owner_id):
        """Return the site if it exists AND belongs to owner_id.

        Raises:
            NotFound: otherwise. Callers can't tell the two cases apart.
        """
        site = self._one(sa.and_(sites.c.id == site_id, sites.c.owner_id == owner_id))
        if site is None:
            raise NotFound("Site not found.")
        return site

    def list_by_owner(self, owner_id):
        rows = self.db.all(
            sa.select(sites)
            .where(sites.c.owner_id == owner_id)
            .order_by(sites.c.created_at, sites.c.name)
        )
        files = self._files_for([row["id"] for row in rows])
        return [Site.from_row(row, files[row["id"]]) for row in rows]

    def list_site_ids(self):
        return [row["id"] for row in self.db.all(sa.select(sites.c.id))]

    # ──────────────────────────────────────────────
    # Site lifecycle
    # ──────────────────────────────────────────────

    def _available_slug(self, base):
        taken = {
            row["slug"]
            for row in self.db.all(
                sa.select(sites.c.slug).where(
                    sa.or_(sites.c.slug == base, sites.c.slug.like(f"{base}-%"))
                )
            )
        }
        taken |= RESERVED_SLUGS
        if base not in taken:
            return base
        n = 2
        while f"{base}-{n}" in taken:
            n += 1
        return f"{base}-{n}"

    def create(self, owner_id, name, description=None):
        """Create a site with a unique slug derived from name.

        New sites start out "active" and are served as soon as they have
        files on disk.

        Raises:
            ValidationError: If name is blank.
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Site name is required.")
        description = (description or "").strip() or None

        base = slugify(name) or "site"
        site_id = str(uuid.uuid4())

        for _ in range(MAX_SLUG_ATTEMPTS):
            slug = self._available_slug(base)
            try:
                self.db.run(
                    sa.insert(sites).values(
                        id=site_id,
                        owner_id=owner_id,
                        name=name,
                        slug=slug,
                        description=description,
                        status="active",
                    )
                )
            except DuplicateKey:
                # Another request took this slug between our read and insert.
                logger.info(f"Slug {slug} taken concurrently, retrying")
                continue
            logger.info(f"Created site {slug} ({site_id}) for owner {owner_id}")
            return self.get_by_id(site_id)

        raise PersistenceError(f"Could not allocate a unique slug for '{name}'")

    def delete(self, site_id, owner_id):
        """Delete a site and all its file rows.

        Ownership is checked inside the same transaction as the delete.
        Removing files from disk is the caller's job, after this returns.

        Raises:
            NotFound: If the site doesn't exist or isn't owned by owner_id.
        """
        with self.db.transaction(write=True) as tx:
            row = tx.get(
                sa.select(sites.c.id)
                .where(sites.c.id == site_id, sites.c.owner_id == owner_id)
                .with_for_update()
            )
            if row is None:
                raise NotFound("Site not found.")
            tx.run(sa.delete(site_files).where(site_files.c.site_id == site_id))
            tx.run(sa.delete(sites).where(sites.c.id == site_id))
        logger.info(f"Deleted site {site_id}")

    def set_entry_file(self, site_id, owner_id, filename):
        """Nominate the file served for the site root.

        The file doesn't have to exist yet; the resolver falls back to a
        directory listing while it is missing.
        """
        filename = (filename or "").strip().lstrip("/")
        if not filename:
            raise ValidationError("Entry file name is required.")

        result = self.db.run(
            sa.update(sites)
            .where(sites.c.id == site_id, sites.c.owner_id == owner_id)
            .values(main_file=filename, updated_at=sa.func.current_timestamp())
        )
        if result.rows_affected == 0:
            raise NotFound("Site not found.")
        return filename

    # ──────────────────────────────────────────────
    # Files + counters
    # ──────────────────────────────────────────────

    def _lock_site(self, tx, site_id):
        row = tx.get(
            sa.select(sites.c.id).where(sites.c.id == site_id).with_for_update()
        )
        if row is None:
            raise NotFound("Site not found.")

    def _recompute(self, tx, site_id, deployed=False, status=None):
        totals = tx.get(
            sa.select(
                sa.func.count(site_files.c.id).label("file_count"),
                sa.func.coalesce(sa.func.sum(site_files.c.size_bytes), 0).label(
                    "total_size_bytes"
                ),
            ).where(site_files.c.site_id == site_id)
        )
        values = {
            "file_count": int(totals["file_count"]),
            "total_size_bytes": int(totals["total_size_bytes"]),
            "updated_at": sa.func.current_timestamp(),
        }
        if deployed:
            values["last_deploy_at"] = sa.func.current_timestamp()
        if status:
            values["status"] = status
        tx.run(sa.update(sites).where(sites.c.id == site_id).values(**values))
        return values["file_count"], values["total_size_bytes"]

    def record_file_added(self, site_id, site_file):
        """Insert a file row (replacing any row with the same path) and
        recompute the site's counters, in one transaction.

        Returns:
            The stored SiteFile.
        """
        file_id = site_file.id or str(uuid.uuid4())
        with self.db.transaction(write=True) as tx:
            self._lock_site(tx, site_id)
            tx.run(
                sa.delete(site_files).where(
                    site_files.c.site_id == site_id,
                    site_files.c.path == site_file.path,
                )
            )
            tx.run(
                sa.insert(site_files).values(
                    id=file_id,
                    site_id=site_id,
                    path=site_file.path,
                    original_name=site_file.original_name,
                    size_bytes=site_file.size_bytes,
                    mime_type=site_file.mime_type,
                )
            )
            self._recompute(tx, site_id)
            row = tx.get(sa.select(site_files).where(site_files.c.id == file_id))
        return SiteFile.from_row(row)

    def record_file_removed(self, site_id, file_id):
        """Delete one file row and recompute counters, in one transaction.

        Returns:
            The removed SiteFile (so the caller can delete it from disk).

        Raises:
            NotFound: If the file doesn't belong to the site.
        """
        with self.db.transaction(write=True) as tx:
            self._lock_site(tx, site_id)
            row = tx.get(
                sa.select(site_files).where(
                    site_files.c.id == file_id, site_files.c.site_id == site_id
                )
            )
            if row is None:
                raise NotFound("File not found.")
            tx.run(sa.delete(site_files).where(site_files.c.id == file_id))
            self._recompute(tx, site_id)
        return SiteFile.from_row(row)

    def refresh_counters(self, site_id, deployed=False, status=None):
        """Recompute counters from the current rows.

        Returns:
            (file_count, total_size_bytes)
        """
        with self.db.transaction(write=True) as tx:
            self._lock_site(tx, site_id)
            return self._recompute(tx, site_id, deployed=deployed, status=status)

    def set_status(self, site_id, status):
        if status not in Site.STATUSES:
            raise ValidationError(
                f"Invalid status '{status}'. Must be one of: {', '.join(Site.STATUSES)}"
            )
        self.db.run(
            sa.update(sites)
            .where(sites.c.id == site_id)
            .values(status=status, updated_at=sa.func.current_timestamp())
        )
