"""Serving blueprint — /sites/<site_id>/*

Public, unauthenticated serving of hosted sites by id ("clean URL"
form). Sub-domain serving goes through the tenant middleware instead;
both end in respond().

Route Map:
  GET /sites/<site_id>/          — entry file, else directory listing
  GET /sites/<site_id>/<path>    — exact file, else directory listing
"""

from urllib.parse import quote

from flask import Blueprint, abort, current_app, g, render_template, send_file

from sitehost.services.resolver import FALL_THROUGH, FILE

serving_bp = Blueprint("serving", __name__, url_prefix="/sites")


def respond(resolution, url_prefix=""):
    """Turn a FILE or LISTING resolution into a response."""
    g.serving_site_id = resolution.site_id

    if resolution.kind == FILE:
        return send_file(
            resolution.absolute_path,
            mimetype=resolution.mimetype,
            conditional=True,
        )

    directory = resolution.relative_path or ""
    base = f"{url_prefix}/{quote(directory)}/" if directory else f"{url_prefix}/"
    entries = [
        {
            "name": name,
            "is_dir": is_dir,
            "href": base + quote(name) + ("/" if is_dir else ""),
        }
        for name, is_dir in resolution.entries
    ]
    parent = None
    if directory:
        parent_dir = directory.rpartition("/")[0]
        parent = f"{url_prefix}/{quote(parent_dir)}/" if parent_dir else f"{url_prefix}/"

    return render_template(
        "serving/listing.html",
        directory="/" + directory,
        entries=entries,
        parent=parent,
    )


@serving_bp.route("/<site_id>/", defaults={"subpath": ""})
@serving_bp.route("/<site_id>/<path:subpath>")
def serve_site(site_id, subpath):
    resolver = current_app.extensions["site_resolver"]
    resolution = resolver.resolve_path(site_id, subpath)
    if resolution.kind == FALL_THROUGH:
        abort(404)
    return respond(resolution, url_prefix=f"/sites/{quote(site_id)}")
