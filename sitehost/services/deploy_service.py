"""Deploy service — uploads and deletions that touch disk AND database.

The only code allowed to mutate both the storage layout and the tenant
registry for the same logical operation.

Consistency model ("recompute, don't delta"):
- uploads write each file to disk, then record its row; a failing file
  is reported, earlier files stay (no rollback), and the caller may
  retry just the failed names.
- after every batch the site's counters are recomputed from the rows
  that actually persisted, so they never include a failed file.
- deletes remove the row first (the row is what billing and the
  dashboard see), then make a best-effort attempt on the disk file.
"""

import logging
import mimetypes
from collections import namedtuple

from werkzeug.utils import secure_filename

from sitehost.errors import (
    NotFound,
    PartialFailure,
    PersistenceError,
    StorageError,
    ValidationError,
)
from sitehost.models.site import SiteFile

logger = logging.getLogger(__name__)

IncomingFile = namedtuple("IncomingFile", ["filename", "data", "mime_type"])
FailedFile = namedtuple("FailedFile", ["filename", "kind", "error"])


class UploadReport:
    """Outcome of one upload batch."""

    def __init__(self, site=None, uploaded=None, failed=None):
        self.site = site
        self.uploaded = uploaded or []
        self.failed = failed or []

    @property
    def ok(self):
        return not self.failed

    def to_api(self):
        return {
            "ok": self.ok,
            "uploaded": [f.to_api() for f in self.uploaded],
            "failed": [
                {"filename": f.filename, "kind": f.kind, "error": f.error}
                for f in self.failed
            ],
            "site": self.site.to_api() if self.site is not None else None,
        }


class DeployService:
    def __init__(self, registry, storage):
        self.registry = registry
        self.storage = storage

    def upload_batch(self, site_id, owner_id, files):
        """Store a batch of files for a site.

        Args:
            site_id: Site UUID string.
            owner_id: Caller's user UUID string.
            files: Iterable of IncomingFile.

        Returns:
            UploadReport with every file uploaded.

        Raises:
            NotFound: If the site doesn't exist or isn't owned by owner_id,
                or was deleted while the batch ran.
            StorageError: If the site directory can't be created.
            PartialFailure: If any file failed; ``report`` lists both sides.
        """
        self.registry.get_owned(site_id, owner_id)
        files = list(files)

        self.registry.set_status(site_id, "deploying")
        report = UploadReport()
        status = "failed"
        try:
            self.storage.ensure_directory(site_id)
            for incoming in files:
                try:
                    report.uploaded.append(self._store_one(site_id, incoming))
                except (StorageError, PersistenceError, ValidationError) as e:
                    logger.warning(
                        f"Upload of {incoming.filename!r} to site {site_id} failed: {e}"
                    )
                    report.failed.append(
                        FailedFile(incoming.filename, e.kind, e.message)
                    )
            status = "active" if report.uploaded or not files else "failed"
        finally:
            # Runs on every exit so the site never stays "deploying".
            self._finish_batch(site_id, status, bool(report.uploaded))

        report.site = self.registry.get_by_id(site_id)

        logger.info(
            f"Deployed {len(report.uploaded)} file(s) to site {site_id}"
            f" ({len(report.failed)} failed)"
        )
        if report.failed:
            raise PartialFailure(
                f"{len(report.failed)} of {len(files)} file(s) failed to upload.",
                report,
            )
        return report

    def _finish_batch(self, site_id, status, deployed):
        try:
            self.registry.refresh_counters(site_id, deployed=deployed, status=status)
        except NotFound:
            # Deleted mid-batch: files written after the delete are orphans.
            logger.warning(f"Site {site_id} was deleted during an upload; cleaning up")
            try:
                self.storage.remove_site(site_id)
            except StorageError as e:
                logger.warning(f"Orphaned directory for site {site_id} remains: {e}")
            raise

    def _store_one(self, site_id, incoming):
        name = secure_filename(incoming.filename or "")
        if not name:
            raise ValidationError(f"Unusable file name: {incoming.filename!r}")

        self.storage.write(site_id, name, incoming.data)
        mime_type = (
            incoming.mime_type
            or mimetypes.guess_type(name)[0]
            or "application/octet-stream"
        )
        return self.registry.record_file_added(
            site_id,
            SiteFile(
                path=name,
                original_name=incoming.filename,
                size_bytes=len(incoming.data),
                mime_type=mime_type,
            ),
        )

    def delete_file(self, site_id, owner_id, file_id):
        """Remove one file: row first, then disk (best effort).

        Raises:
            NotFound: If the site isn't owned by owner_id or the file
                doesn't belong to it.
        """
        self.registry.get_owned(site_id, owner_id)
        removed = self.registry.record_file_removed(site_id, file_id)

        try:
            self.storage.remove(site_id, removed.path)
        except StorageError as e:
            logger.warning(f"Row for {removed.path} deleted but disk file kept: {e}")

        logger.info(f"Deleted {removed.path} from site {site_id}")
        return removed

    def delete_site(self, site_id, owner_id):
        """Delete the registry entry (ownership checked first), then the
        site directory (best effort)."""
        self.registry.delete(site_id, owner_id)
        try:
            self.storage.remove_site(site_id)
        except StorageError as e:
            logger.warning(f"Site {site_id} deleted but its directory remains: {e}")
