"""
Category Repository — Materialized Category Trees

Loads the shop's categories into an in-memory tree: nodes are kept in a
dict keyed by id, each node stores its parent as an id, and children are
resolved through an index by parent id. Ancestor walks are iterative so a
misconfigured parent chain (a cycle, or a parent id with no row) surfaces
as a CategoryTreeError instead of unbounded recursion.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import create_engine, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from benchmark_exceptions import CategoryTreeError, StorageAccessError
from models.shop_models import Category, category_articles, category_avoided_customer_groups

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CategoryNode:
    id: int
    parent_id: Optional[int]
    name: str
    position: Optional[int] = None
    active: bool = True
    blog: bool = False
    changed: Optional[datetime] = None
    added: Optional[datetime] = None


class CategoryTree:
    """Index-based category tree built from a flat list of nodes."""

    def __init__(self, nodes: Iterable[CategoryNode]):
        self._nodes: dict[int, CategoryNode] = {}
        self._children: dict[Optional[int], list[int]] = defaultdict(list)

        for node in nodes:
            if node.id in self._nodes:
                raise CategoryTreeError(f"Duplicate category id {node.id}", category_id=node.id)
            self._nodes[node.id] = node

        ordered = sorted(
            self._nodes.values(),
            key=lambda n: (n.position if n.position is not None else 0, n.id),
        )
        for node in ordered:
            self._children[node.parent_id].append(node.id)

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, category_id: int) -> bool:
        return category_id in self._nodes

    def get(self, category_id: int) -> CategoryNode:
        try:
            return self._nodes[category_id]
        except KeyError:
            raise CategoryTreeError(
                f"Unknown category {category_id}", category_id=category_id
            ) from None

    def children(self, category_id: int) -> list[CategoryNode]:
        self.get(category_id)
        return [self._nodes[child_id] for child_id in self._children.get(category_id, [])]

    def roots(self) -> list[CategoryNode]:
        return [self._nodes[node_id] for node_id in self._children.get(None, [])]

    def ancestors(self, category_id: int) -> list[int]:
        """
        Parent ids from the direct parent up to the root.

        Raises
        ------
        CategoryTreeError
            If the chain revisits a category or names a parent that does
            not exist.
        """
        node = self.get(category_id)
        seen = {node.id}
        chain = []

        while node.parent_id is not None:
            parent_id = node.parent_id
            if parent_id in seen:
                raise CategoryTreeError(
                    f"Category {category_id} has a cyclic parent chain at {parent_id}",
                    category_id=category_id,
                )
            if parent_id not in self._nodes:
                raise CategoryTreeError(
                    f"Category {node.id} points at missing parent {parent_id}",
                    category_id=node.id,
                )
            chain.append(parent_id)
            seen.add(parent_id)
            node = self._nodes[parent_id]

        return chain

    def get_level(self, category_id: int) -> int:
        """Depth below the root (a root category is level 0)."""
        return len(self.ancestors(category_id))

    def is_child_of(self, category_id: int, parent_id: int) -> bool:
        """True if ``category_id`` sits anywhere below ``parent_id``."""
        self.get(parent_id)
        return parent_id in self.ancestors(category_id)

    def descendants(self, category_id: int) -> list[CategoryNode]:
        """All categories below ``category_id``, depth first."""
        self.get(category_id)
        result = []
        visited = {category_id}
        stack = list(reversed(self._children.get(category_id, [])))

        while stack:
            child_id = stack.pop()
            if child_id in visited:
                raise CategoryTreeError(
                    f"Category {child_id} reached twice below {category_id}",
                    category_id=child_id,
                )
            visited.add(child_id)
            result.append(self._nodes[child_id])
            stack.extend(reversed(self._children.get(child_id, [])))

        return result


# -------------------------------------------------------------------
# Loaders
# -------------------------------------------------------------------

def load_category_tree(connection_url: str) -> CategoryTree:
    """Load every row of ``s_categories`` into a CategoryTree."""
    try:
        engine = create_engine(connection_url)
        with Session(engine) as session:
            rows = session.scalars(select(Category).order_by(Category.id)).all()
            nodes = [
                CategoryNode(
                    id=row.id,
                    parent_id=row.parent_id,
                    name=row.name,
                    position=row.position,
                    active=bool(row.active),
                    blog=bool(row.blog),
                    changed=row.changed,
                    added=row.added,
                )
                for row in rows
            ]
    except SQLAlchemyError as exc:
        raise StorageAccessError("Loading categories failed") from exc

    logger.info(f"Loaded {len(nodes):,} categories")
    return CategoryTree(nodes)


def get_category_article_ids(connection_url: str, category_id: int) -> list[int]:
    """Ids of the articles assigned to a category."""
    query = (
        select(category_articles.c.articleID)
        .where(category_articles.c.categoryID == category_id)
        .order_by(category_articles.c.articleID)
    )
    return _fetch_ids(connection_url, query)


def get_avoided_customer_group_ids(connection_url: str, category_id: int) -> list[int]:
    """Ids of the customer groups a category is hidden from."""
    query = (
        select(category_avoided_customer_groups.c.customergroupID)
        .where(category_avoided_customer_groups.c.categoryID == category_id)
        .order_by(category_avoided_customer_groups.c.customergroupID)
    )
    return _fetch_ids(connection_url, query)


def _fetch_ids(connection_url: str, query) -> list[int]:
    try:
        engine = create_engine(connection_url)
        with engine.connect() as conn:
            return [int(value) for value in conn.execute(query).scalars()]
    except SQLAlchemyError as exc:
        raise StorageAccessError("Loading category links failed") from exc
