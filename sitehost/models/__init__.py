# Models package — import all models here so the metadata sees every table.

from sitehost.models.user import User  # noqa: F401
from sitehost.models.site import Site, SiteFile  # noqa: F401
