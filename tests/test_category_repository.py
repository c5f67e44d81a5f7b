"""
Tests for the Category Repository

Tests cover:
- Children ordered by position, roots, depth-first descendants
- Levels and ancestor checks via iterative parent walks
- Cycles and dangling parents raise CategoryTreeError
- Loading trees and many-to-many links from the database
"""

import pytest
from sqlalchemy import create_engine, insert

from benchmark_exceptions import CategoryTreeError, StorageAccessError
from models.shop_models import Category, category_articles, category_avoided_customer_groups
from repositories.category_repository import (
    CategoryNode,
    CategoryTree,
    get_avoided_customer_group_ids,
    get_category_article_ids,
    load_category_tree,
)


@pytest.fixture
def tree():
    """
    1 Root
    ├── 3 Deutsch (position 1)
    │   ├── 5 Genuss
    │   └── 6 Sommerwelten
    │       └── 7 Beachwear
    └── 2 English (position 2)
    """
    return CategoryTree([
        CategoryNode(id=1, parent_id=None, name="Root"),
        CategoryNode(id=2, parent_id=1, name="English", position=2),
        CategoryNode(id=3, parent_id=1, name="Deutsch", position=1),
        CategoryNode(id=5, parent_id=3, name="Genuss", position=1),
        CategoryNode(id=6, parent_id=3, name="Sommerwelten", position=2),
        CategoryNode(id=7, parent_id=6, name="Beachwear"),
    ])


class TestCategoryTree:

    def test_children_ordered_by_position(self, tree):
        assert [c.id for c in tree.children(1)] == [3, 2]
        assert tree.children(7) == []

    def test_roots(self, tree):
        assert [r.name for r in tree.roots()] == ["Root"]

    def test_levels(self, tree):
        assert tree.get_level(1) == 0
        assert tree.get_level(3) == 1
        assert tree.get_level(7) == 3

    def test_ancestors(self, tree):
        assert tree.ancestors(7) == [6, 3, 1]
        assert tree.ancestors(1) == []

    def test_is_child_of(self, tree):
        assert tree.is_child_of(7, 6)
        assert tree.is_child_of(7, 1)
        assert not tree.is_child_of(7, 2)
        assert not tree.is_child_of(3, 3)
        assert not tree.is_child_of(1, 7)

    def test_descendants_depth_first(self, tree):
        assert [c.id for c in tree.descendants(1)] == [3, 5, 6, 7, 2]
        assert tree.descendants(7) == []

    def test_unknown_category(self, tree):
        with pytest.raises(CategoryTreeError) as exc_info:
            tree.get(42)
        assert exc_info.value.category_id == 42

    def test_duplicate_ids_rejected(self):
        with pytest.raises(CategoryTreeError):
            CategoryTree([
                CategoryNode(id=1, parent_id=None, name="a"),
                CategoryNode(id=1, parent_id=None, name="b"),
            ])


class TestMisconfiguredParents:

    def test_cycle_detected(self):
        tree = CategoryTree([
            CategoryNode(id=1, parent_id=None, name="Root"),
            CategoryNode(id=2, parent_id=4, name="a"),
            CategoryNode(id=3, parent_id=2, name="b"),
            CategoryNode(id=4, parent_id=3, name="c"),
        ])
        with pytest.raises(CategoryTreeError, match="cyclic"):
            tree.get_level(3)
        with pytest.raises(CategoryTreeError):
            tree.is_child_of(2, 1)
        with pytest.raises(CategoryTreeError):
            tree.descendants(2)

    def test_self_parent(self):
        tree = CategoryTree([CategoryNode(id=1, parent_id=1, name="loop")])
        with pytest.raises(CategoryTreeError, match="cyclic"):
            tree.ancestors(1)

    def test_dangling_parent(self):
        tree = CategoryTree([
            CategoryNode(id=2, parent_id=1, name="orphan"),
            CategoryNode(id=3, parent_id=2, name="child"),
        ])
        with pytest.raises(CategoryTreeError, match="missing parent 1") as exc_info:
            tree.get_level(3)
        assert exc_info.value.category_id == 2


class TestCategoryLoading:

    @pytest.fixture
    def category_db(self, shop_db):
        engine = create_engine(shop_db)
        with engine.begin() as conn:
            conn.execute(insert(Category.__table__), [
                {"id": 1, "parent": None, "description": "Root", "position": 0, "active": True, "blog": False},
                {"id": 3, "parent": 1, "description": "Deutsch", "position": 1, "active": True, "blog": False},
                {"id": 2, "parent": 1, "description": "English", "position": 2, "active": False, "blog": False},
                {"id": 4, "parent": 3, "description": "Blog", "position": 1, "active": True, "blog": True},
            ])
            conn.execute(insert(category_articles), [
                {"articleID": 17, "categoryID": 3},
                {"articleID": 5, "categoryID": 3},
                {"articleID": 9, "categoryID": 2},
            ])
            conn.execute(insert(category_avoided_customer_groups), [
                {"categoryID": 2, "customergroupID": 2},
            ])
        engine.dispose()
        return shop_db

    def test_load_tree(self, category_db):
        tree = load_category_tree(category_db)

        assert len(tree) == 4
        assert [c.name for c in tree.children(1)] == ["Deutsch", "English"]
        assert tree.get(2).active is False
        assert tree.get(4).blog is True
        assert tree.get(4).added is not None
        assert tree.is_child_of(4, 1)

    def test_article_links(self, category_db):
        assert get_category_article_ids(category_db, 3) == [5, 17]
        assert get_category_article_ids(category_db, 4) == []

    def test_customer_group_links(self, category_db):
        assert get_avoided_customer_group_ids(category_db, 2) == [2]
        assert get_avoided_customer_group_ids(category_db, 1) == []

    def test_unreachable_database(self, tmp_path):
        with pytest.raises(StorageAccessError):
            load_category_tree(f"sqlite:///{tmp_path / 'missing' / 'shop.db'}")
