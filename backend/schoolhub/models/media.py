from __future__ import annotations

from ..extensions import db
from .base import AuditedMixin


# Image placement kinds (cover/banner/icon are picked per category card)
UPLOAD_TYPES = ("IMAGE", "COVER", "BANNER", "ICON", "LOGO", "MAP", "PROFILE", "SLIDER")


class MediaFields:
    """File metadata shared by every media kind. Raw bytes live elsewhere."""
    display_name = db.Column(db.String(255), nullable=True)
    file_name = db.Column(db.String(255), nullable=False)
    content_type = db.Column(db.String(128), nullable=True)
    size = db.Column(db.BigInteger, nullable=False, default=0)
    relative_path = db.Column(db.String(512), nullable=False)

    MUTABLE_FIELDS = {"display_name", "file_name", "content_type", "size", "relative_path"}
    REQUIRED_FIELDS = {"file_name", "relative_path"}

    def media_dict(self) -> dict:
        return {
            **self.audit_dict(),
            "display_name": self.display_name,
            "file_name": self.file_name,
            "content_type": self.content_type,
            "size": self.size,
            "relative_path": self.relative_path,
        }


class Document(MediaFields, AuditedMixin, db.Model):
    """
    Shared document row.

    Referenced (never owned) by per-owner-type attachment tables such as
    product_documents or learner_documents.
    """
    __tablename__ = "documents"

    MEDIA_KIND = "document"

    def to_dict(self) -> dict:
        return self.media_dict()


class Image(MediaFields, AuditedMixin, db.Model):
    """Shared image row with placement metadata."""
    __tablename__ = "images"

    MEDIA_KIND = "image"

    featured = db.Column(db.Boolean, nullable=False, default=False)
    image_type = db.Column(db.String(16), nullable=False, default="IMAGE", index=True)

    MUTABLE_FIELDS = MediaFields.MUTABLE_FIELDS | {"featured", "image_type"}

    def to_dict(self) -> dict:
        return {
            **self.media_dict(),
            "featured": self.featured,
            "image_type": self.image_type,
        }


class Video(MediaFields, AuditedMixin, db.Model):
    """Shared video row."""
    __tablename__ = "videos"

    MEDIA_KIND = "video"

    def to_dict(self) -> dict:
        return self.media_dict()


MEDIA_MODELS = {
    "document": Document,
    "image": Image,
    "video": Video,
}
