"""
Per-owner-type model generation.
"""

import pytest

from schoolhub.errors import CrossTypeViolationError
from schoolhub.extensions import db
from schoolhub.models import (
    OWNER_TYPES,
    Image,
    Product,
    BlogPost,
    Learner,
    bundle_for,
    instantiate,
)


class TestGeneratedTables:
    def test_each_owner_type_gets_its_own_tables(self):
        product = OWNER_TYPES["product"]
        blog = OWNER_TYPES["blog_post"]

        assert product.attachments["image"].__tablename__ == "product_images"
        assert blog.attachments["image"].__tablename__ == "blog_post_images"
        assert product.category.__tablename__ == "product_categories"
        assert product.membership.__tablename__ == "product_category_memberships"
        assert product.attachments["image"] is not blog.attachments["image"]

    def test_class_names_follow_owner_type(self):
        teacher = OWNER_TYPES["teacher"]
        assert teacher.sub_records["address"].__name__ == "TeacherAddress"
        assert teacher.sub_records["email_address"].__name__ == "TeacherEmailAddress"
        assert OWNER_TYPES["product"].sub_records["metadata"].__tablename__ == "product_metadata"
        assert OWNER_TYPES["activity_group"].category.__name__ == "ActivityGroupCategory"

    def test_foreign_keys_point_at_the_owning_table(self):
        att = OWNER_TYPES["product"].attachments["image"].__table__
        owner_fk = next(iter(att.c.entity_id.foreign_keys))
        media_fk = next(iter(att.c.image_id.foreign_keys))

        assert owner_fk.column.table.name == "products"
        assert media_fk.column.table.name == "images"
        assert att.c.entity_id.nullable is False
        assert att.c.image_id.nullable is False

    def test_membership_category_fk_stays_in_its_tree(self):
        table = OWNER_TYPES["blog_post"].membership.__table__
        fk = next(iter(table.c.category_id.foreign_keys))
        assert fk.column.table.name == "blog_post_categories"

    def test_categories_are_owners_with_images(self):
        cat_bundle = OWNER_TYPES["product_category"]
        assert cat_bundle.tree_of == "product"
        assert cat_bundle.owner is OWNER_TYPES["product"].category
        assert cat_bundle.attachments["image"].__tablename__ == "product_category_images"

    def test_every_table_created(self, db_session):
        tables = set(db.metadata.tables)
        for bundle in OWNER_TYPES.values():
            for model in [bundle.owner, *bundle.dependents()]:
                assert model.__tablename__ in tables

    def test_audited_columns_and_version_counter_inherited(self):
        model = OWNER_TYPES["learner"].sub_records["contact_number"]
        cols = set(model.__table__.c.keys())
        assert {"id", "created_by", "created_on", "is_deleted", "deleted_on", "row_version"} <= cols
        assert model.__mapper__.version_id_col is model.__table__.c.row_version


class TestBundleLookup:
    def test_lookup_by_tag_and_class(self):
        assert bundle_for("product").owner is Product
        assert bundle_for(BlogPost).owner_type == "blog_post"

    def test_missing_components_are_cross_type_violations(self):
        learner = OWNER_TYPES["learner"]
        with pytest.raises(CrossTypeViolationError):
            learner.sub_record_model("address")
        with pytest.raises(CrossTypeViolationError):
            learner.attachment_model("video")
        with pytest.raises(CrossTypeViolationError):
            learner.category_model()

    def test_describe(self):
        info = OWNER_TYPES["learner"].describe()
        assert info == {
            "owner_type": "learner",
            "table": "learners",
            "sub_records": ["contact_number", "email_address"],
            "media": ["document", "image"],
            "categories": False,
            "tree_of": None,
        }

    def test_repeated_tag_rejected(self):
        with pytest.raises(ValueError):
            instantiate(Learner, "learner")

    def test_unknown_kind_rejected_before_registration(self):
        with pytest.raises(ValueError):
            instantiate(Image, "gallery", media=("hologram",))
        assert "gallery" not in OWNER_TYPES
