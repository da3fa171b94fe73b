"""Request resolver — which site, and which file, does a request want?

Two ways in:

  resolve_host(host, path)      sub-domain mode: <slug>.<APP_DOMAIN>
  resolve_path(site_id, path)   path mode: /sites/<site_id>/<path>

Both end in the same precedence:

  1. exact file at <path>                    -> FILE
  2. entry file, only when <path> is "/"     -> FILE
  3. directory listing                       -> LISTING

Anything that isn't a hosted-site request comes back as FALL_THROUGH,
never as an error; the surrounding app then routes it normally.
"""

import logging
import mimetypes
import posixpath
from collections import namedtuple

from sitehost.errors import PersistenceError, StorageError
from sitehost.models.site import DEFAULT_ENTRY_FILE
from sitehost.services.registry import RESERVED_SLUGS

logger = logging.getLogger(__name__)

FALL_THROUGH = "fall_through"
FILE = "file"
LISTING = "listing"

LOOPBACK_HOSTS = {"localhost", "127.0.0.1", "::1", "0.0.0.0"}

Resolution = namedtuple(
    "Resolution",
    ["kind", "site_id", "relative_path", "absolute_path", "mimetype", "entries"],
    defaults=(None, None, None, None, None),
)

NOT_A_SITE = Resolution(FALL_THROUGH)


class SiteResolver:
    """Turns (host | site id) + path into a serving decision."""

    def __init__(self, registry, storage, base_domain, enable_subdomains=True):
        self.registry = registry
        self.storage = storage
        self.base_domain = (base_domain or "").strip().lower().rstrip(".")
        self.enable_subdomains = enable_subdomains

    def slug_from_host(self, host):
        """Extract the tenant slug from a Host header, or None."""
        if not self.enable_subdomains or not self.base_domain or not host:
            return None

        host = host.strip().lower()
        if host in LOOPBACK_HOSTS or host.startswith("["):
            return None

        hostname = host
        name, sep, port = host.rpartition(":")
        if sep and port.isdigit():
            hostname = name
        hostname = hostname.rstrip(".")

        if hostname in LOOPBACK_HOSTS or hostname == self.base_domain:
            return None

        suffix = "." + self.base_domain
        if not hostname.endswith(suffix):
            return None

        # "blog.staging.lvh.me" -> "staging": the label nearest the domain.
        slug = hostname[: -len(suffix)].split(".")[-1]
        if not slug or slug in RESERVED_SLUGS:
            return None
        return slug

    def resolve_host(self, host, path):
        slug = self.slug_from_host(host)
        if slug is None:
            return NOT_A_SITE

        try:
            site = self.registry.get_by_slug(slug, with_files=False)
        except PersistenceError:
            logger.exception(f"Site lookup failed for slug {slug}")
            return NOT_A_SITE

        if site is None or not self.storage.site_exists(site.id):
            return NOT_A_SITE
        return self._resolve_in_site(site.id, site.entry_file, path)

    def resolve_path(self, site_id, path):
        """Path mode. Serves whatever is on disk for site_id, even when
        the registry row is gone; the entry file then defaults to
        index.html."""
        if not self.storage.site_exists(site_id):
            return NOT_A_SITE

        try:
            site = self.registry.get_by_id(site_id, with_files=False)
        except PersistenceError:
            logger.exception(f"Site lookup failed for id {site_id}")
            site = None

        entry_file = site.entry_file if site is not None else DEFAULT_ENTRY_FILE
        return self._resolve_in_site(site_id, entry_file, path)

    def _resolve_in_site(self, site_id, entry_file, path):
        relative = (path or "").lstrip("/")
        if relative:
            relative = posixpath.normpath(relative)
            if relative == ".":
                relative = ""

        if not relative:
            if self.storage.exists(site_id, entry_file):
                return self._file(site_id, entry_file)
            return self._listing(site_id, "")

        if self.storage.exists(site_id, relative):
            return self._file(site_id, relative)
        return self._listing(site_id, relative)

    def _file(self, site_id, relative):
        mimetype = mimetypes.guess_type(relative)[0] or "application/octet-stream"
        return Resolution(
            FILE,
            site_id=site_id,
            relative_path=relative,
            absolute_path=self.storage.path_for(site_id, relative),
            mimetype=mimetype,
        )

    def _listing(self, site_id, relative):
        # List the requested directory, or its nearest existing ancestor.
        directory = relative.strip("/")
        while directory and not self.storage.is_directory(site_id, directory):
            directory = posixpath.dirname(directory)

        try:
            entries = self.storage.list_directory(site_id, directory)
        except StorageError as e:
            logger.warning(f"Listing {site_id}/{directory} failed: {e}")
            return NOT_A_SITE

        return Resolution(
            LISTING,
            site_id=site_id,
            relative_path=directory,
            absolute_path=self.storage.path_for(site_id, directory),
            entries=entries,
        )
