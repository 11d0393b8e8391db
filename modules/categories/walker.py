"""
Ancestor / descendant traversal over a TreeStore.

Every walk is bounded by the number of rows in the store, so a corrupted
parent cycle surfaces as TreeIntegrityError instead of an endless loop.
"""
from collections import deque
from typing import Dict, List

from .exceptions import CategoryNotFoundError, TreeIntegrityError
from .tree_store import CategoryNode, TreeStore


class AncestorWalker:
    """Read-only tree queries scoped to one store per call."""

    def __init__(self, tree_store: TreeStore):
        self.tree_store = tree_store

    def require_live(self, store_id: str, category_id) -> CategoryNode:
        """Get a non-deleted category of the store or raise CategoryNotFoundError."""
        node = self.tree_store.get_by_id(store_id, category_id)
        if node is None or node.is_deleted:
            raise CategoryNotFoundError(category_id=category_id, store_id=store_id)
        return node

    def get_ancestors(self, store_id: str, category_id) -> List[CategoryNode]:
        """
        Return the live ancestors of a category, nearest parent first.

        The chain ends at a root, or at the first soft-deleted ancestor:
        descendants of a deleted category are orphaned and their chain
        stops there.
        """
        node = self.require_live(store_id, category_id)
        limit = self.tree_store.count_nodes(store_id)
        ancestors = []

        while node.parent_id is not None:
            if len(ancestors) >= limit:
                raise TreeIntegrityError(
                    f"Parent chain of category {category_id} exceeds {limit} steps; "
                    f"store {store_id} contains a cycle",
                    store_id=store_id,
                )
            parent = self.tree_store.get_by_id(store_id, node.parent_id)
            if parent is None:
                raise TreeIntegrityError(
                    f"Category {node.id} points at parent {node.parent_id} "
                    f"which is not a category of store {store_id}",
                    store_id=store_id,
                )
            if parent.is_deleted:
                break
            ancestors.append(parent)
            node = parent

        return ancestors

    def is_descendant(self, store_id: str, candidate_id, of_id) -> bool:
        """
        True when of_id is a proper ancestor of candidate_id.

        A category is not its own descendant.
        """
        return any(
            ancestor.id == of_id
            for ancestor in self.get_ancestors(store_id, candidate_id)
        )

    def children_map(self, store_id: str, root: CategoryNode) -> Dict[int, List[CategoryNode]]:
        """
        Map every member of root's subtree (root included) to its live children.

        Breadth-first; leaves map to an empty list.
        """
        limit = self.tree_store.count_nodes(store_id)
        result: Dict[int, List[CategoryNode]] = {}
        queue = deque([root])

        while queue:
            node = queue.popleft()
            if node.id in result:
                raise TreeIntegrityError(
                    f"Category {node.id} reached twice below {root.id}; "
                    f"store {store_id} contains a cycle",
                    store_id=store_id,
                )
            if len(result) >= limit:
                raise TreeIntegrityError(
                    f"Subtree of category {root.id} is larger than store {store_id}",
                    store_id=store_id,
                )
            children = self.tree_store.list_children(store_id, node.id)
            result[node.id] = children
            queue.extend(children)

        return result

    def get_descendants(self, store_id: str, root: CategoryNode) -> List[CategoryNode]:
        """Live transitive descendants of root in breadth-first order."""
        return [
            child
            for children in self.children_map(store_id, root).values()
            for child in children
        ]
