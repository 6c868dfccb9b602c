# Overview: Service-layer operations for file storage; upload tickets and stored blobs.

"""
File Storage

Two-step upload:
1. generate_upload_url() issues a one-time ticket and returns its URL
2. the client POSTs raw bytes to that URL and receives {"storageId": ...}

A storage id is opaque to every other ledger; they only store it and ask for
its download URL later.
"""

from __future__ import annotations

import hashlib
import uuid
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import StoredFile, UploadTicket
from ..validation import NotFoundError, ValidationError
from studiodesk.time_utils import utcnow
from .concurrency import lock_for_update, run_in_transaction
from .session_service import generate_token, hash_token


UPLOAD_PATH = "/api/files/upload/{token}"
DOWNLOAD_PATH = "/api/files/{storage_id}"

DEFAULT_CONTENT_TYPE = "application/octet-stream"


def _url(path: str, base_url: str | None) -> str:
    if base_url:
        return base_url.rstrip("/") + path
    return path


def generate_upload_url(base_url: str | None = None) -> str:
    """Issue a one-time upload URL valid for UPLOAD_URL_TTL_SECONDS."""
    token = generate_token()
    now = utcnow()
    ttl = current_app.config.get("UPLOAD_URL_TTL_SECONDS", 3600)

    def _op():
        db.session.add(UploadTicket(
            token_hash=hash_token(token),
            created_at=now,
            expires_at=now + timedelta(seconds=ttl),
        ))

    run_in_transaction(_op)
    return _url(UPLOAD_PATH.format(token=token), base_url)


def store_upload(token: str, data: bytes, content_type: str | None = None) -> StoredFile:
    """
    Consume an upload ticket and store the bytes.

    Raises NotFoundError for an unknown token and ValidationError for an
    expired or already used one, an empty body, or one over MAX_UPLOAD_BYTES.
    """
    if not data:
        raise ValidationError("Upload body is empty")
    max_bytes = current_app.config.get("MAX_UPLOAD_BYTES", 10 * 1024 * 1024)
    if len(data) > max_bytes:
        raise ValidationError(f"Upload exceeds {max_bytes} bytes")

    def _op():
        ticket = lock_for_update(
            db.session.query(UploadTicket).filter_by(token_hash=hash_token(token))
        ).first()
        if not ticket:
            raise NotFoundError("Upload URL not found")

        now = utcnow()
        if ticket.used_at is not None:
            raise ValidationError("Upload URL already used")
        if ticket.expires_at < now:
            raise ValidationError("Upload URL expired")
        ticket.used_at = now

        stored = StoredFile(
            storage_id=uuid.uuid4().hex,
            content_type=content_type or DEFAULT_CONTENT_TYPE,
            size_bytes=len(data),
            sha256=hashlib.sha256(data).hexdigest(),
            data=data,
            created_at=now,
        )
        db.session.add(stored)
        db.session.flush()
        return stored

    stored = run_in_transaction(_op)
    current_app.logger.info("Stored file %s (%d bytes)", stored.storage_id, stored.size_bytes)
    return stored


def get_file(storage_id: str) -> StoredFile:
    stored = db.session.query(StoredFile).filter_by(storage_id=storage_id).first()
    if not stored:
        raise NotFoundError("File not found")
    return stored


def get_file_url(storage_id: str, base_url: str | None = None) -> str | None:
    """Download URL for a storage id, or None if nothing is stored under it."""
    exists = db.session.query(StoredFile.id).filter_by(storage_id=storage_id).first()
    if not exists:
        return None
    return _url(DOWNLOAD_PATH.format(storage_id=storage_id), base_url)


def store_file_id(storage_id: str, base_url: str | None = None) -> dict:
    return {"storageId": storage_id, "url": get_file_url(storage_id, base_url)}
