# Overview: Flask API routes for file storage; parses input and returns JSON responses.

"""
File storage routes

Upload is two requests:
1. POST /api/files/upload-url (authenticated) -> {"uploadUrl": ...}
2. POST <uploadUrl> with the raw bytes as body -> {"storageId": ...}

The upload URL carries a one-time token, so step 2 needs no session. Download
URLs are addressed by unguessable storage ids so they work from <img> tags.
"""

import io

from flask import Blueprint, request, jsonify, current_app, send_file
from werkzeug.exceptions import RequestEntityTooLarge

from ..services import file_service
from ..validation import LedgerError
from ..decorators import require_auth


files_bp = Blueprint("files", __name__, url_prefix="/api/files")


def _base_url() -> str:
    return request.host_url


@files_bp.post("/upload-url")
@require_auth
def upload_url_route():
    try:
        url = file_service.generate_upload_url(base_url=_base_url())
        return jsonify({"uploadUrl": url}), 200
    except Exception:
        current_app.logger.exception("Failed to generate upload URL")
        return jsonify({"error": "Internal server error"}), 500


@files_bp.post("/upload/<token>")
def upload_route(token: str):
    try:
        stored = file_service.store_upload(
            token,
            request.get_data(cache=False),
            content_type=request.mimetype or None,
        )
        return jsonify({"storageId": stored.storage_id}), 201
    except RequestEntityTooLarge:
        limit = current_app.config["MAX_CONTENT_LENGTH"]
        return jsonify({"error": f"Upload exceeds {limit} bytes"}), 413
    except LedgerError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to store upload")
        return jsonify({"error": "Internal server error"}), 500


@files_bp.post("/store")
@require_auth
def store_file_id_route():
    """Request body: {"storageId": "..."} -> {"storageId", "url"}"""
    try:
        data = request.get_json(silent=True) or {}
        storage_id = data.get("storageId")
        if not storage_id:
            return jsonify({"error": "storageId required"}), 400
        return jsonify(file_service.store_file_id(storage_id, base_url=_base_url())), 200
    except Exception:
        current_app.logger.exception("Failed to resolve stored file")
        return jsonify({"error": "Internal server error"}), 500


@files_bp.get("/<storage_id>/url")
@require_auth
def file_url_route(storage_id: str):
    """{"url": ...} or {"url": null} when nothing is stored under the id."""
    try:
        return jsonify({"url": file_service.get_file_url(storage_id, base_url=_base_url())}), 200
    except Exception:
        current_app.logger.exception("Failed to resolve file URL")
        return jsonify({"error": "Internal server error"}), 500


@files_bp.get("/<storage_id>")
def download_route(storage_id: str):
    try:
        stored = file_service.get_file(storage_id)
        return send_file(
            io.BytesIO(stored.data),
            mimetype=stored.content_type,
            download_name=stored.storage_id,
            etag=stored.sha256,
        )
    except LedgerError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to download file")
        return jsonify({"error": "Internal server error"}), 500
