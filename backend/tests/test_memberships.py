"""
Category membership joins.
"""

import pytest

from schoolhub.errors import (
    CrossTypeViolationError,
    DuplicateMembershipError,
    NotFoundError,
    OwnerDeletedError,
)
from schoolhub.services import category_service, membership_service, owner_service


class TestMembership:
    def test_add_and_list_both_ways(self, sport_tree, product):
        membership_service.add_membership("product", product.id, sport_tree["soccer"].id)
        membership_service.add_membership("product", product.id, sport_tree["books"].id)

        cats = membership_service.list_categories_for_owner("product", product.id)
        assert [c.name for c in cats] == ["Books", "Soccer"]

        members = membership_service.list_members("product", sport_tree["soccer"].id)
        assert [m.id for m in members] == [product.id]

    def test_duplicate_rejected(self, sport_tree, product):
        membership_service.add_membership("product", product.id, sport_tree["soccer"].id)

        with pytest.raises(DuplicateMembershipError):
            membership_service.add_membership("product", product.id, sport_tree["soccer"].id)

    def test_remove_then_readd_restores_same_row(self, sport_tree, product):
        first = membership_service.add_membership("product", product.id, sport_tree["soccer"].id)
        membership_service.remove_membership("product", product.id, sport_tree["soccer"].id)
        assert membership_service.list_categories_for_owner("product", product.id) == []

        again = membership_service.add_membership("product", product.id, sport_tree["soccer"].id)
        assert again.id == first.id
        assert again.is_deleted is False

    def test_remove_missing(self, sport_tree, product):
        with pytest.raises(NotFoundError):
            membership_service.remove_membership("product", product.id, sport_tree["soccer"].id)

    def test_category_from_other_tree_rejected(self, db_session, product):
        news = category_service.create_category("blog_post", "News")

        with pytest.raises(CrossTypeViolationError):
            membership_service.add_membership("product", product.id, news.id)

    def test_owner_type_without_tree(self, teacher, sport_tree):
        with pytest.raises(CrossTypeViolationError):
            membership_service.add_membership("teacher", teacher.id, sport_tree["soccer"].id)

    def test_deleted_owner_rejected_and_hidden(self, sport_tree, product, other_product):
        for p in (product, other_product):
            membership_service.add_membership("product", p.id, sport_tree["soccer"].id)

        owner_service.delete_owner("product", product.id)

        members = membership_service.list_members("product", sport_tree["soccer"].id)
        assert [m.id for m in members] == [other_product.id]
        with pytest.raises(OwnerDeletedError):
            membership_service.add_membership("product", product.id, sport_tree["books"].id)

    def test_members_including_subcategories(self, sport_tree, product, other_product):
        membership_service.add_membership("product", product.id, sport_tree["junior"].id)
        membership_service.add_membership("product", other_product.id, sport_tree["soccer"].id)
        membership_service.add_membership("product", other_product.id, sport_tree["junior"].id)

        direct = membership_service.list_members("product", sport_tree["sport"].id)
        assert direct == []

        nested = membership_service.list_members(
            "product", sport_tree["sport"].id, include_subcategories=True
        )
        assert sorted(m.id for m in nested) == sorted([product.id, other_product.id])
        assert membership_service.count_members(
            "product", sport_tree["sport"].id, include_subcategories=True
        ) == 2
        assert membership_service.count_members("product", sport_tree["junior"].id) == 2


class TestIncludeDeleted:
    def test_owner_categories_show_removed_memberships_on_request(self, sport_tree, product):
        membership_service.add_membership("product", product.id, sport_tree["soccer"].id)
        membership_service.add_membership("product", product.id, sport_tree["books"].id)
        membership_service.remove_membership("product", product.id, sport_tree["books"].id)

        live = membership_service.list_categories_for_owner("product", product.id)
        assert [c.name for c in live] == ["Soccer"]

        everything = membership_service.list_categories_for_owner(
            "product", product.id, include_deleted=True
        )
        assert [c.name for c in everything] == ["Books", "Soccer"]

    def test_deleted_owner_categories_need_the_flag(self, sport_tree, product):
        membership_service.add_membership("product", product.id, sport_tree["soccer"].id)
        owner_service.delete_owner("product", product.id)

        with pytest.raises(OwnerDeletedError):
            membership_service.list_categories_for_owner("product", product.id)
        listed = membership_service.list_categories_for_owner("product", product.id, include_deleted=True)
        assert [c.name for c in listed] == ["Soccer"]

    def test_members_and_count_show_deleted_owners_on_request(self, sport_tree, product, other_product):
        soccer = sport_tree["soccer"]
        for p in (product, other_product):
            membership_service.add_membership("product", p.id, soccer.id)
        owner_service.delete_owner("product", other_product.id)

        assert [m.id for m in membership_service.list_members("product", soccer.id)] == [product.id]
        assert membership_service.count_members("product", soccer.id) == 1

        everyone = membership_service.list_members("product", soccer.id, include_deleted=True)
        assert sorted(m.id for m in everyone) == sorted([product.id, other_product.id])
        assert membership_service.count_members("product", soccer.id, include_deleted=True) == 2

    def test_members_of_deleted_subcategory_on_request(self, sport_tree, product):
        membership_service.add_membership("product", product.id, sport_tree["junior"].id)
        category_service.delete_category("product", sport_tree["junior"].id)
        sport = sport_tree["sport"].id

        assert membership_service.count_members("product", sport, include_subcategories=True) == 0
        assert membership_service.count_members(
            "product", sport, include_subcategories=True, include_deleted=True
        ) == 1
        nested = membership_service.list_members(
            "product", sport, include_subcategories=True, include_deleted=True
        )
        assert [m.id for m in nested] == [product.id]
