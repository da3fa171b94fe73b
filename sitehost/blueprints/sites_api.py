"""Sites API blueprint — /api/sites/*

Management API consumed by the dashboard. Every route needs a Bearer
token; responses use camelCase fields.

Route Map:
  GET    /api/sites                          — caller's sites, with files
  POST   /api/sites                          — create site {name, description}
  DELETE /api/sites/<id>                     — delete site (404 if not owned)
  POST   /api/sites/<id>/files               — upload files (multipart "files")
  DELETE /api/sites/<id>/files/<file_id>     — delete one file
  PATCH  /api/sites/<id>/main-file           — set entry file {mainFile}

Errors: {"ok": false, "kind": "<kind>", "error": "<message>"}
"""

import logging

from flask import Blueprint, current_app, g, jsonify, request
from werkzeug.exceptions import RequestEntityTooLarge

from sitehost.decorators import owner_required
from sitehost.errors import PartialFailure, SiteHostError, ValidationError
from sitehost.extensions import limiter
from sitehost.services.deploy_service import IncomingFile

sites_api_bp = Blueprint("sites_api", __name__, url_prefix="/api/sites")

logger = logging.getLogger(__name__)


def _registry():
    return current_app.extensions["tenant_registry"]


def _deployer():
    return current_app.extensions["deploy_service"]


def _json_body():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _text(data, key):
    value = data.get(key)
    return value if isinstance(value, str) else None


@sites_api_bp.errorhandler(SiteHostError)
def handle_sitehost_error(error):
    body = error.to_dict()
    if isinstance(error, PartialFailure):
        body.update(error.report.to_api())
        body["ok"] = False
    elif error.status_code >= 500:
        logger.error(f"{error.kind} error on {request.method} {request.path}: {error}")
    return jsonify(body), error.status_code


@sites_api_bp.errorhandler(RequestEntityTooLarge)
def handle_too_large(error):
    return jsonify(ok=False, kind="validation", error="Upload is too large."), 413


# ──────────────────────────────────────────────
# Sites
# ──────────────────────────────────────────────

@sites_api_bp.route("", methods=["GET"])
@owner_required
def list_sites():
    sites = _registry().list_by_owner(g.owner_id)
    return jsonify([site.to_api() for site in sites])


@sites_api_bp.route("", methods=["POST"])
@owner_required
def create_site():
    data = _json_body()
    site = _registry().create(
        g.owner_id,
        _text(data, "name"),
        _text(data, "description"),
    )
    return jsonify(site.to_api()), 201


@sites_api_bp.route("/<site_id>", methods=["DELETE"])
@owner_required
def delete_site(site_id):
    _deployer().delete_site(site_id, g.owner_id)
    return jsonify(ok=True, message="Site deleted.")


# ──────────────────────────────────────────────
# Files
# ──────────────────────────────────────────────

@sites_api_bp.route("/<site_id>/files", methods=["POST"])
@limiter.limit("30 per minute")
@owner_required
def upload_files(site_id):
    uploads = [f for f in request.files.getlist("files") if f and f.filename]
    if not uploads:
        raise ValidationError("No files uploaded.")

    incoming = [IncomingFile(f.filename, f.read(), f.mimetype) for f in uploads]
    report = _deployer().upload_batch(site_id, g.owner_id, incoming)
    return jsonify(report.to_api())


@sites_api_bp.route("/<site_id>/files/<file_id>", methods=["DELETE"])
@owner_required
def delete_file(site_id, file_id):
    removed = _deployer().delete_file(site_id, g.owner_id, file_id)
    return jsonify(ok=True, message="File deleted.", file=removed.to_api())


@sites_api_bp.route("/<site_id>/main-file", methods=["PATCH"])
@owner_required
def set_main_file(site_id):
    data = _json_body()
    main_file = _registry().set_entry_file(site_id, g.owner_id, _text(data, "mainFile"))
    return jsonify(ok=True, message="Entry file updated.", mainFile=main_file)
