"""Site and SiteFile models.

A Site is one hosted tenant; its files live on disk under
<SITES_ROOT>/<site.id>/ and are inventoried by SiteFile rows.

site.total_size_bytes and site.file_count are DERIVED values -- the
registry recomputes them from site_files after every mutation, never
by applying deltas.

Instances are usually built transiently from adapter rows
(``Site.from_row(row)``) rather than loaded through a session.
"""

import uuid

from sitehost.extensions import db

DEFAULT_ENTRY_FILE = "index.html"


def _iso(value):
    if value is None:
        return None
    return value.isoformat() if hasattr(value, "isoformat") else str(value)


class Site(db.Model):
    __tablename__ = "sites"

    STATUSES = ["active", "deploying", "failed", "inactive"]

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    owner_id = db.Column(
        db.String(36), db.ForeignKey("users.id"), nullable=False
    )
    name = db.Column(db.String(255), nullable=False)
    slug = db.Column(db.String(255), unique=True, nullable=False)
    description = db.Column(db.Text, nullable=True)
    status = db.Column(
        db.String(50), server_default="active"
    )  # active | deploying | failed | inactive
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )
    last_deploy_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # --- Aggregates (recomputed from site_files) ---
    total_size_bytes = db.Column(db.BigInteger, server_default="0")
    file_count = db.Column(db.Integer, server_default="0")

    # --- Informational traffic counters ---
    bandwidth_bytes_30d = db.Column(db.BigInteger, server_default="0")
    visitors_30d = db.Column(db.Integer, server_default="0")

    custom_domain = db.Column(db.String(255), nullable=True)
    ssl_active = db.Column(db.Integer, server_default="0")
    preview_image = db.Column(db.Text, nullable=True)
    main_file = db.Column(db.String(255), server_default=DEFAULT_ENTRY_FILE)

    @classmethod
    def from_row(cls, row, files=None):
        """Build a detached Site from an adapter row (a plain dict)."""
        site = cls(**row)
        site.files = list(files or [])
        return site

    @property
    def entry_file(self):
        return self.main_file or DEFAULT_ENTRY_FILE

    def to_api(self):
        """camelCase representation consumed by the dashboard."""
        return {
            "id": self.id,
            "ownerId": self.owner_id,
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "status": self.status,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
            "lastDeployAt": _iso(self.last_deploy_at),
            "totalSizeBytes": self.total_size_bytes or 0,
            "fileCount": self.file_count or 0,
            "bandwidthBytes30d": self.bandwidth_bytes_30d or 0,
            "visitors30d": self.visitors_30d or 0,
            "customDomain": self.custom_domain,
            "sslActive": bool(self.ssl_active),
            "previewImage": self.preview_image,
            "mainFile": self.entry_file,
            "files": [f.to_api() for f in getattr(self, "files", [])],
        }

    def __repr__(self):
        return f"<Site {self.slug} ({self.status})>"


class SiteFile(db.Model):
    __tablename__ = "site_files"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    site_id = db.Column(
        db.String(36),
        db.ForeignKey("sites.id", ondelete="CASCADE"),
        nullable=False,
    )
    path = db.Column(db.Text, nullable=False)  # relative to the site directory
    original_name = db.Column(db.String(255), nullable=True)
    size_bytes = db.Column(db.BigInteger, nullable=True)
    mime_type = db.Column(db.String(255), nullable=True)
    uploaded_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    @classmethod
    def from_row(cls, row):
        return cls(**row)

    def to_api(self):
        return {
            "id": self.id,
            "siteId": self.site_id,
            "path": self.path,
            "originalName": self.original_name,
            "sizeBytes": self.size_bytes or 0,
            "mimeType": self.mime_type,
            "uploadedAt": _iso(self.uploaded_at),
        }

    def __repr__(self):
        return f"<SiteFile {self.path} ({self.size_bytes} bytes)>"
