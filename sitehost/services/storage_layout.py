"""Storage layout — physical placement of site files on local disk.

Each site owns one directory: <SITES_ROOT>/<site_id>/. Nothing outside
this module touches that tree.

Writes overwrite (last write wins, no versioning). Removing a file that
is already gone is not an error.
"""

import logging
import os
import shutil

from sitehost.errors import StorageError

logger = logging.getLogger(__name__)


class StorageLayout:
    """Maps (content root, site id) to a directory and manages its files."""

    def __init__(self, content_root):
        self.content_root = os.path.abspath(content_root)

    def site_directory(self, site_id):
        if not site_id or os.sep in site_id or site_id in (".", ".."):
            raise StorageError(f"Invalid site id: {site_id!r}")
        return os.path.join(self.content_root, site_id)

    def path_for(self, site_id, relative_path=""):
        """Absolute path of relative_path inside the site directory.

        Raises:
            StorageError: if the path escapes the site directory.
        """
        base = self.site_directory(site_id)
        relative_path = (relative_path or "").lstrip("/")
        full_path = os.path.normpath(os.path.join(base, relative_path))
        if full_path != base and not full_path.startswith(base + os.sep):
            raise StorageError(
                f"Path {relative_path} attempts to escape the site directory"
            )
        return full_path

    def ensure_directory(self, site_id):
        directory = self.site_directory(site_id)
        try:
            os.makedirs(directory, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Could not create {directory}: {e}") from e
        return directory

    def write(self, site_id, relative_name, data):
        """Write bytes to the site directory and return the absolute path."""
        full_path = self.path_for(site_id, relative_name)
        if full_path == self.site_directory(site_id):
            raise StorageError("A file name is required")
        try:
            os.makedirs(os.path.dirname(full_path), exist_ok=True)
            with open(full_path, "wb") as f:
                f.write(data)
        except OSError as e:
            raise StorageError(f"Could not write {relative_name}: {e}") from e

        logger.info(f"Stored {full_path} ({len(data)} bytes)")
        return full_path

    def remove(self, site_id, relative_path):
        full_path = self.path_for(site_id, relative_path)
        try:
            os.remove(full_path)
        except FileNotFoundError:
            pass
        except OSError as e:
            raise StorageError(f"Could not delete {relative_path}: {e}") from e

    def remove_site(self, site_id):
        """Delete the whole site directory, if present."""
        directory = self.site_directory(site_id)
        try:
            shutil.rmtree(directory)
        except FileNotFoundError:
            pass
        except OSError as e:
            raise StorageError(f"Could not delete {directory}: {e}") from e

    def site_exists(self, site_id):
        try:
            return os.path.isdir(self.site_directory(site_id))
        except StorageError:
            return False

    def exists(self, site_id, relative_path):
        """True if relative_path is a regular file inside the site."""
        try:
            return os.path.isfile(self.path_for(site_id, relative_path))
        except StorageError:
            return False

    def is_directory(self, site_id, relative_path=""):
        try:
            return os.path.isdir(self.path_for(site_id, relative_path))
        except StorageError:
            return False

    def list_directory(self, site_id, relative_path=""):
        """Immediate entries of a directory as (name, is_dir), dirs first."""
        directory = self.path_for(site_id, relative_path)
        try:
            with os.scandir(directory) as it:
                entries = [(entry.name, entry.is_dir()) for entry in it]
        except OSError as e:
            raise StorageError(f"Could not list {relative_path or '/'}: {e}") from e
        return sorted(entries, key=lambda e: (not e[1], e[0].lower()))
