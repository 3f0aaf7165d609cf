from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z
from .base import AuditedMixin
from .instantiation import instantiate


CONTACT_KINDS = ("address", "contact_number", "email_address")


class Learner(AuditedMixin, db.Model):
    """A learner enrolled at a school."""
    __tablename__ = "learners"
    __table_args__ = (
        db.Index("ix_learners_last_first", "last_name", "first_name"),
    )

    first_name = db.Column(db.String(128), nullable=False)
    last_name = db.Column(db.String(128), nullable=False)
    grade = db.Column(db.String(16), nullable=True)

    MUTABLE_FIELDS = {"first_name", "last_name", "grade"}
    REQUIRED_FIELDS = {"first_name", "last_name"}

    def to_dict(self) -> dict:
        return {
            **self.audit_dict(),
            "first_name": self.first_name,
            "last_name": self.last_name,
            "grade": self.grade,
        }


class Parent(AuditedMixin, db.Model):
    """Parent or guardian of one or more learners."""
    __tablename__ = "parents"

    first_name = db.Column(db.String(128), nullable=False)
    last_name = db.Column(db.String(128), nullable=False)

    MUTABLE_FIELDS = {"first_name", "last_name"}
    REQUIRED_FIELDS = {"first_name", "last_name"}

    def to_dict(self) -> dict:
        return {
            **self.audit_dict(),
            "first_name": self.first_name,
            "last_name": self.last_name,
        }


class Teacher(AuditedMixin, db.Model):
    __tablename__ = "teachers"

    title = db.Column(db.String(16), nullable=True)
    first_name = db.Column(db.String(128), nullable=False)
    last_name = db.Column(db.String(128), nullable=False)

    MUTABLE_FIELDS = {"title", "first_name", "last_name"}
    REQUIRED_FIELDS = {"first_name", "last_name"}

    def to_dict(self) -> dict:
        return {
            **self.audit_dict(),
            "title": self.title,
            "first_name": self.first_name,
            "last_name": self.last_name,
        }


class ActivityGroup(AuditedMixin, db.Model):
    """Extra-mural group (sport team, choir, chess club)."""
    __tablename__ = "activity_groups"

    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    MUTABLE_FIELDS = {"name", "description"}
    REQUIRED_FIELDS = {"name"}

    def to_dict(self) -> dict:
        return {
            **self.audit_dict(),
            "name": self.name,
            "description": self.description,
        }


class SchoolEvent(AuditedMixin, db.Model):
    __tablename__ = "school_events"

    name = db.Column(db.String(255), nullable=False)
    starts_on = db.Column(db.DateTime, nullable=True)
    ends_on = db.Column(db.DateTime, nullable=True)

    MUTABLE_FIELDS = {"name", "starts_on", "ends_on"}
    REQUIRED_FIELDS = {"name"}

    def to_dict(self) -> dict:
        return {
            **self.audit_dict(),
            "name": self.name,
            "starts_on": to_utc_z(self.starts_on),
            "ends_on": to_utc_z(self.ends_on),
        }


class BlogPost(AuditedMixin, db.Model):
    __tablename__ = "blog_posts"

    title = db.Column(db.String(255), nullable=False)
    content = db.Column(db.Text, nullable=True)

    MUTABLE_FIELDS = {"title", "content"}
    REQUIRED_FIELDS = {"title"}

    def to_dict(self) -> dict:
        return {
            **self.audit_dict(),
            "title": self.title,
            "content": self.content,
        }


class Product(AuditedMixin, db.Model):
    """Shop product. Price is stored in cents."""
    __tablename__ = "products"

    sku = db.Column(db.String(64), nullable=True, index=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    price_cents = db.Column(db.Integer, nullable=True)

    MUTABLE_FIELDS = {"sku", "name", "description", "price_cents"}
    REQUIRED_FIELDS = {"name"}

    def to_dict(self) -> dict:
        return {
            **self.audit_dict(),
            "sku": self.sku,
            "name": self.name,
            "description": self.description,
            "price_cents": self.price_cents,
        }


class Advertisement(AuditedMixin, db.Model):
    __tablename__ = "advertisements"

    title = db.Column(db.String(255), nullable=False)
    url = db.Column(db.String(512), nullable=True)

    MUTABLE_FIELDS = {"title", "url"}
    REQUIRED_FIELDS = {"title"}

    def to_dict(self) -> dict:
        return {
            **self.audit_dict(),
            "title": self.title,
            "url": self.url,
        }


class BusinessListing(AuditedMixin, db.Model):
    """Business directory entry."""
    __tablename__ = "business_listings"

    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    MUTABLE_FIELDS = {"name", "description"}
    REQUIRED_FIELDS = {"name"}

    def to_dict(self) -> dict:
        return {
            **self.audit_dict(),
            "name": self.name,
            "description": self.description,
        }


# Per-type tables for every owning entity
instantiate(Learner, "learner", sub_records=("contact_number", "email_address"), media=("image", "document"))
instantiate(Parent, "parent", sub_records=CONTACT_KINDS, media=("image",))
instantiate(Teacher, "teacher", sub_records=CONTACT_KINDS, media=("image", "document"))
instantiate(ActivityGroup, "activity_group", media=("image", "video"), categories=True)
instantiate(SchoolEvent, "school_event", media=("image", "document", "video"), categories=True)
instantiate(BlogPost, "blog_post", media=("image", "document", "video"), categories=True)
instantiate(Product, "product", sub_records=("metadata",), media=("image", "document", "video"), categories=True)
instantiate(Advertisement, "advertisement", media=("image", "video"), categories=True)
instantiate(BusinessListing, "business_listing", sub_records=CONTACT_KINDS, media=("image", "video"), categories=True)
