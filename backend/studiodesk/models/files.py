from __future__ import annotations

from ..extensions import db
from studiodesk.time_utils import to_utc_z, utcnow


class UploadTicket(db.Model):
    """
    One-time upload URL handed to a client.

    The client POSTs raw bytes to the URL before expires_at; the ticket is
    consumed on first use.
    """
    __tablename__ = "upload_tickets"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    token_hash = db.Column(db.String(64), nullable=False, unique=True, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)
    used_at = db.Column(db.DateTime(timezone=True), nullable=True)


class StoredFile(db.Model):
    """Uploaded bytes addressed by an opaque storage id."""
    __tablename__ = "stored_files"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    storage_id = db.Column(db.String(64), nullable=False, unique=True, index=True)
    content_type = db.Column(db.String(128), nullable=False, default="application/octet-stream")
    size_bytes = db.Column(db.Integer, nullable=False)
    sha256 = db.Column(db.String(64), nullable=False)
    data = db.Column(db.LargeBinary, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "storage_id": self.storage_id,
            "content_type": self.content_type,
            "size_bytes": self.size_bytes,
            "sha256": self.sha256,
            "created_at": to_utc_z(self.created_at),
        }
