"""Tenant middleware — serves hosted sites by sub-domain.

Runs before every request. When the Host header is <slug>.<APP_DOMAIN>
and that slug names a site with files on disk, the request is answered
here (file or directory listing) and normal routing never runs.
Anything else -- the bare domain, www, localhost, unknown slugs --
falls through untouched.

Sets g.serving_site_id when a site answered the request.
"""

from flask import current_app, request

from sitehost.blueprints.serving import respond
from sitehost.services.resolver import FALL_THROUGH


def serve_tenant_host():
    """Before-request hook for sub-domain hosting."""
    if request.method not in ("GET", "HEAD"):
        return None

    resolver = current_app.extensions["site_resolver"]
    resolution = resolver.resolve_host(request.host, request.path)
    if resolution.kind == FALL_THROUGH:
        return None
    return respond(resolution)


def init_tenant_middleware(app):
    """Register the sub-domain resolver as a before_request hook."""
    app.before_request(serve_tenant_host)
