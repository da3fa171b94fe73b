"""Error taxonomy shared by the registry, storage layout and coordinator.

Every error carries a machine-readable ``kind`` and the HTTP status the
management API answers with. The request resolver never raises these for
an unresolved tenant; falling through is a normal outcome there.
"""


class SiteHostError(Exception):
    """Base class for all sitehost errors."""

    kind = "error"
    status_code = 500

    def __init__(self, message=None):
        super().__init__(message or self.__class__.__doc__)
        self.message = message or self.__class__.__doc__

    def to_dict(self):
        return {"ok": False, "kind": self.kind, "error": self.message}


class ValidationError(SiteHostError):
    """Invalid input."""

    kind = "validation"
    status_code = 400


class NotFound(SiteHostError):
    """Resource not found or not owned by the caller."""

    kind = "not_found"
    status_code = 404


class StorageError(SiteHostError):
    """Disk write or delete failed."""

    kind = "storage"
    status_code = 500


class PersistenceError(SiteHostError):
    """Database query or connection failed."""

    kind = "persistence"
    status_code = 500


class DuplicateKey(PersistenceError):
    """A unique constraint was violated."""

    kind = "duplicate"
    status_code = 409


class PartialFailure(SiteHostError):
    """Some items of a batch failed.

    ``report`` holds whatever the batch produced, so callers can retry
    just the failed subset.
    """

    kind = "partial_failure"
    status_code = 207

    def __init__(self, message, report):
        super().__init__(message)
        self.report = report
