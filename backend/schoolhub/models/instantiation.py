"""
Per-owner-type model generation.

Each owning entity type (Product, Learner, ActivityGroup, ...) gets its own
physically separate tables for sub-records (contacts, name/value metadata),
media attachments and its category tree. The tables are structurally
identical across owner types; only the table names and the foreign keys
differ. Rather than hand-writing
one class per (owner type, component) pair, instantiate() stamps them out at
import time from shared column mixins and registers the result as an
OwnerBundle:

    instantiate(Product, "product", media=("image", "video"), categories=True)

produces ProductImage (product_images), ProductVideo (product_videos),
ProductCategory (product_categories), ProductCategoryMembership
(product_category_memberships) and, because categories carry their own
cover/banner/icon images, a "product_category" bundle with
ProductCategoryImage (product_category_images).

TYPE SILOING: a ProductCategory id can never be stored in a
learner_category_memberships row because the foreign key points at
learner_categories. Services resolve bundles by owner type tag and raise
CrossTypeViolationError when a bundle lacks the requested component.

No shared polymorphic table with a discriminator column is used.
"""

from __future__ import annotations

import types
from dataclasses import dataclass, field

from ..extensions import db
from ..errors import CrossTypeViolationError
from .base import AuditedMixin
from .media import MEDIA_MODELS


ADDRESS_TYPES = ("PHYSICAL", "BILLING", "SHIPPING")


class SubRecordFields:
    """Single-owner record with a per-owner default flag."""
    is_default = db.Column(db.Boolean, nullable=False, default=False)


class AddressFields(SubRecordFields):
    unit_number = db.Column(db.String(32), nullable=True)
    complex = db.Column(db.String(128), nullable=True)
    street_number = db.Column(db.String(32), nullable=True)
    street_name = db.Column(db.String(255), nullable=True)
    suburb = db.Column(db.String(128), nullable=True)
    postal_code = db.Column(db.String(16), nullable=True)
    city = db.Column(db.String(128), nullable=True)
    province = db.Column(db.String(128), nullable=True)
    country = db.Column(db.String(128), nullable=True)
    latitude = db.Column(db.Float, nullable=True)
    longitude = db.Column(db.Float, nullable=True)
    address_type = db.Column(db.String(16), nullable=False, default="PHYSICAL")
    google_map_link = db.Column(db.String(512), nullable=True)

    MUTABLE_FIELDS = {
        "unit_number", "complex", "street_number", "street_name", "suburb",
        "postal_code", "city", "province", "country", "latitude", "longitude",
        "address_type", "google_map_link", "is_default",
    }
    REQUIRED_FIELDS = {"street_name", "city"}

    def to_dict(self) -> dict:
        return {
            **self.audit_dict(),
            "entity_id": self.entity_id,
            "unit_number": self.unit_number,
            "complex": self.complex,
            "street_number": self.street_number,
            "street_name": self.street_name,
            "suburb": self.suburb,
            "postal_code": self.postal_code,
            "city": self.city,
            "province": self.province,
            "country": self.country,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "address_type": self.address_type,
            "google_map_link": self.google_map_link,
            "is_default": self.is_default,
            "display": self.display_string(),
        }

    def display_string(self) -> str:
        street = " ".join(p for p in (self.street_name, self.street_number) if p)
        place = " ".join(p for p in (self.suburb, self.city, self.province) if p)
        return f"{street}, {place}".strip(", ")


class ContactNumberFields(SubRecordFields):
    international_code = db.Column(db.String(8), nullable=True)
    area_code = db.Column(db.String(8), nullable=True)
    number = db.Column(db.String(32), nullable=False)

    MUTABLE_FIELDS = {"international_code", "area_code", "number", "is_default"}
    REQUIRED_FIELDS = {"number"}

    def to_dict(self) -> dict:
        return {
            **self.audit_dict(),
            "entity_id": self.entity_id,
            "international_code": self.international_code,
            "area_code": self.area_code,
            "number": self.number,
            "is_default": self.is_default,
        }


class EmailAddressFields(SubRecordFields):
    email_address = db.Column(db.String(255), nullable=False)

    MUTABLE_FIELDS = {"email_address", "is_default"}
    REQUIRED_FIELDS = {"email_address"}

    def to_dict(self) -> dict:
        return {
            **self.audit_dict(),
            "entity_id": self.entity_id,
            "email_address": self.email_address,
            "is_default": self.is_default,
        }


class MetadataFields(SubRecordFields):
    """Free-form name/value pair (spec sheet rows, SEO tags)."""
    name = db.Column(db.String(128), nullable=False)
    value = db.Column(db.Text, nullable=True)

    MUTABLE_FIELDS = {"name", "value", "is_default"}
    REQUIRED_FIELDS = {"name"}

    def to_dict(self) -> dict:
        return {
            **self.audit_dict(),
            "entity_id": self.entity_id,
            "name": self.name,
            "value": self.value,
            "is_default": self.is_default,
        }


class AttachmentFields:
    """Owner-to-shared-media link with display ordering."""
    order = db.Column(db.Integer, nullable=False, default=0)
    selector = db.Column(db.String(64), nullable=True)

    MUTABLE_FIELDS = {"order", "selector"}

    def to_dict(self) -> dict:
        return {
            **self.audit_dict(),
            "entity_id": self.entity_id,
            "media_kind": self.MEDIA_KIND,
            "media_id": self.media_id,
            "order": self.order,
            "selector": self.selector,
            "media": self.media.to_dict() if self.media is not None else None,
        }


class CategoryFields:
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    active = db.Column(db.Boolean, nullable=False, default=True)
    featured = db.Column(db.Boolean, nullable=False, default=False)
    display_category_in_main_menu = db.Column(db.Boolean, nullable=False, default=False)
    display_as_slider_item = db.Column(db.Boolean, nullable=False, default=False)
    slogan = db.Column(db.String(255), nullable=True)
    sub_slogan = db.Column(db.String(255), nullable=True)
    web_tags = db.Column(db.Text, nullable=True)

    MUTABLE_FIELDS = {
        "name", "description", "active", "featured",
        "display_category_in_main_menu", "display_as_slider_item",
        "slogan", "sub_slogan", "web_tags",
    }
    REQUIRED_FIELDS = {"name"}

    def to_dict(self) -> dict:
        return {
            **self.audit_dict(),
            "parent_category_id": self.parent_category_id,
            "name": self.name,
            "description": self.description,
            "active": self.active,
            "featured": self.featured,
            "display_category_in_main_menu": self.display_category_in_main_menu,
            "display_as_slider_item": self.display_as_slider_item,
            "slogan": self.slogan,
            "sub_slogan": self.sub_slogan,
            "web_tags": self.web_tags,
        }


class MembershipFields:
    def to_dict(self) -> dict:
        return {
            **self.audit_dict(),
            "entity_id": self.entity_id,
            "category_id": self.category_id,
        }


# kind -> (column mixin, table suffix, class suffix)
SUB_RECORD_KINDS = {
    "address": (AddressFields, "addresses", "Address"),
    "contact_number": (ContactNumberFields, "contact_numbers", "ContactNumber"),
    "email_address": (EmailAddressFields, "email_addresses", "EmailAddress"),
    "metadata": (MetadataFields, "metadata", "Metadata"),
}

MEDIA_KINDS = {
    "document": ("documents", "Document"),
    "image": ("images", "Image"),
    "video": ("videos", "Video"),
}


@dataclass
class OwnerBundle:
    """Every model stamped out for one owning type."""
    owner_type: str
    owner: type
    sub_records: dict[str, type] = field(default_factory=dict)
    attachments: dict[str, type] = field(default_factory=dict)
    category: type | None = None
    membership: type | None = None
    # Set on category bundles: the owner type whose tree this is
    tree_of: str | None = None

    def sub_record_model(self, kind: str) -> type:
        try:
            return self.sub_records[kind]
        except KeyError:
            raise CrossTypeViolationError(
                f"'{self.owner_type}' does not carry {kind} records"
            ) from None

    def attachment_model(self, kind: str) -> type:
        try:
            return self.attachments[kind]
        except KeyError:
            raise CrossTypeViolationError(
                f"'{self.owner_type}' does not accept {kind} attachments"
            ) from None

    def category_model(self) -> type:
        if self.category is None:
            raise CrossTypeViolationError(f"'{self.owner_type}' has no category tree")
        return self.category

    def membership_model(self) -> type:
        if self.membership is None:
            raise CrossTypeViolationError(f"'{self.owner_type}' has no category tree")
        return self.membership

    def dependents(self) -> list[type]:
        """Per-owner tables whose rows follow the owner's soft-delete."""
        deps = list(self.sub_records.values()) + list(self.attachments.values())
        if self.membership is not None:
            deps.append(self.membership)
        return deps

    def describe(self) -> dict:
        return {
            "owner_type": self.owner_type,
            "table": self.owner.__tablename__,
            "sub_records": sorted(self.sub_records),
            "media": sorted(self.attachments),
            "categories": self.category is not None,
            "tree_of": self.tree_of,
        }


# owner type tag -> bundle; filled at import time by models.owners
OWNER_TYPES: dict[str, OwnerBundle] = {}


def _camel(tag: str) -> str:
    return "".join(part.capitalize() for part in tag.split("_"))


def _build(name: str, bases: tuple, tablename: str, attrs: dict) -> type:
    body = dict(attrs, __tablename__=tablename, __module__=__name__)
    return types.new_class(name, bases, exec_body=lambda ns: ns.update(body))


def _owner_fk(owner_table: str):
    return db.Column(
        db.String(36),
        db.ForeignKey(f"{owner_table}.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )


def _build_sub_record(stem: str, owner_type: str, owner_table: str, kind: str) -> type:
    mixin, table_suffix, class_suffix = SUB_RECORD_KINDS[kind]
    return _build(
        f"{stem}{class_suffix}",
        (mixin, AuditedMixin, db.Model),
        f"{owner_type}_{table_suffix}",
        {
            "entity_id": _owner_fk(owner_table),
            "SUB_RECORD_KIND": kind,
        },
    )


def _build_attachment(stem: str, owner_type: str, owner_table: str, kind: str) -> type:
    table_suffix, class_suffix = MEDIA_KINDS[kind]
    media_model = MEDIA_MODELS[kind]
    media_id = db.Column(
        f"{kind}_id",
        db.String(36),
        db.ForeignKey(f"{media_model.__tablename__}.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    return _build(
        f"{stem}{class_suffix}",
        (AttachmentFields, AuditedMixin, db.Model),
        f"{owner_type}_{table_suffix}",
        {
            "entity_id": _owner_fk(owner_table),
            "media_id": media_id,
            "media": db.relationship(media_model, lazy="joined"),
            "MEDIA_KIND": kind,
            "MEDIA_MODEL": media_model,
        },
    )


def _build_category(stem: str, owner_type: str) -> type:
    table = f"{owner_type}_categories"
    return _build(
        f"{stem}Category",
        (CategoryFields, AuditedMixin, db.Model),
        table,
        {
            "parent_category_id": db.Column(
                db.String(36),
                db.ForeignKey(f"{table}.id", ondelete="RESTRICT"),
                nullable=True,
                index=True,
            ),
            "TREE_OF": owner_type,
        },
    )


def _build_membership(stem: str, owner_type: str, owner_table: str, category_table: str) -> type:
    table = f"{owner_type}_category_memberships"
    return _build(
        f"{stem}CategoryMembership",
        (MembershipFields, AuditedMixin, db.Model),
        table,
        {
            "__table_args__": (
                db.UniqueConstraint("entity_id", "category_id", name=f"uq_{table}_entity_category"),
            ),
            "entity_id": _owner_fk(owner_table),
            "category_id": db.Column(
                db.String(36),
                db.ForeignKey(f"{category_table}.id", ondelete="RESTRICT"),
                nullable=False,
                index=True,
            ),
        },
    )


def instantiate(
    owner_cls: type,
    owner_type: str,
    *,
    sub_records: tuple[str, ...] = (),
    media: tuple[str, ...] = (),
    categories: bool = False,
) -> OwnerBundle:
    """
    Stamp out the per-type tables for one owning entity type and register
    them under owner_type.

    Raises ValueError on a repeated tag or an unknown component kind; both
    are programming errors caught at import time.
    """
    if owner_type in OWNER_TYPES:
        raise ValueError(f"Owner type '{owner_type}' is already instantiated")

    stem = _camel(owner_type)
    owner_table = owner_cls.__tablename__
    bundle = OwnerBundle(owner_type=owner_type, owner=owner_cls)

    for kind in sub_records:
        if kind not in SUB_RECORD_KINDS:
            raise ValueError(f"Unknown sub-record kind '{kind}'")
        bundle.sub_records[kind] = _build_sub_record(stem, owner_type, owner_table, kind)

    for kind in media:
        if kind not in MEDIA_KINDS:
            raise ValueError(f"Unknown media kind '{kind}'")
        bundle.attachments[kind] = _build_attachment(stem, owner_type, owner_table, kind)

    OWNER_TYPES[owner_type] = bundle

    if categories:
        category = _build_category(stem, owner_type)
        bundle.category = category
        bundle.membership = _build_membership(stem, owner_type, owner_table, category.__tablename__)
        # Categories are owners too: cover/banner/icon images per node
        category_bundle = instantiate(category, f"{owner_type}_category", media=("image",))
        category_bundle.tree_of = owner_type

    return bundle


def bundle_for(owner: type | str) -> OwnerBundle:
    """Look up a bundle by tag or by owning model class."""
    if isinstance(owner, str):
        return OWNER_TYPES[owner]
    for bundle in OWNER_TYPES.values():
        if bundle.owner is owner:
            return bundle
    raise KeyError(owner)
