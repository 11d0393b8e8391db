"""
Category hierarchy engine: reparenting, sibling reordering and guarded
soft deletion for one store's category tree.

Each operation validates against the TreeStore, computes the complete set
of row writes, and hands them to the store as a single MutationBatch.
"""
import logging
from collections import Counter, defaultdict
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence

from django.utils import timezone

from .exceptions import (
    CategoryHasAttachedProductsError,
    CategoryHasChildrenError,
    CircularReferenceError,
    DuplicateCategoryIdsError,
    ReorderSetMismatchError,
)
from .tree_store import (
    CategoryNode,
    CategoryUpdate,
    MutationBatch,
    RowExpectation,
    SiblingExpectation,
    TreeStore,
)
from .walker import AncestorWalker

logger = logging.getLogger(__name__)

AttachedProductsCheck = Callable[[str, int], bool]


def no_attached_products(store_id: str, category_id: int) -> bool:
    return False


@dataclass(frozen=True)
class Placement:
    """Where a new category goes: appended to its parent's children."""

    parent_id: Optional[int]
    level: int
    position: int


@dataclass(frozen=True)
class MovedCategory:
    id: int
    level: int
    position: int


class DeletionBlockReason(str, Enum):
    HAS_ACTIVE_CHILDREN = 'HAS_ACTIVE_CHILDREN'
    HAS_ATTACHED_ENTITIES = 'HAS_ATTACHED_ENTITIES'


@dataclass(frozen=True)
class DeletionCheck:
    allowed: bool
    reason: Optional[DeletionBlockReason] = None


class HierarchyService:
    """
    Structural operations on a store's category tree.

    Args:
        tree_store: Persistence for category rows.
        has_attached_products: Catalog capability answering whether live
            products still reference a category.
        clock: Returns the soft-delete timestamp.
    """

    def __init__(
        self,
        tree_store: TreeStore,
        has_attached_products: Optional[AttachedProductsCheck] = None,
        clock: Callable[[], datetime] = timezone.now,
    ):
        self.tree_store = tree_store
        self.walker = AncestorWalker(tree_store)
        self.has_attached_products = has_attached_products or no_attached_products
        self.clock = clock

    # ------------------------------------------------------------------
    # Placement
    # ------------------------------------------------------------------

    def placement_for(self, store_id: str, parent_id: Optional[int] = None) -> Placement:
        """
        Level and position for a category created under parent_id.

        The position is the sibling count when positions are contiguous;
        after a soft delete left a gap it is one past the last sibling.
        """
        level = 0
        if parent_id is not None:
            level = self.walker.require_live(store_id, parent_id).level + 1
        siblings = self.tree_store.list_children(store_id, parent_id)
        position = max([len(siblings)] + [s.position + 1 for s in siblings])
        return Placement(parent_id=parent_id, level=level, position=position)

    # ------------------------------------------------------------------
    # Reparent
    # ------------------------------------------------------------------

    def move(self, store_id: str, category_id, new_parent_id=None) -> MovedCategory:
        """
        Move a category and its subtree under new_parent_id (None = root).

        The category is appended after the new siblings; callers that want
        another position follow up with reorder().
        """
        node = self.walker.require_live(store_id, category_id)

        new_parent = None
        if new_parent_id is not None:
            new_parent = self.walker.require_live(store_id, new_parent_id)
            if new_parent.id == node.id:
                raise CircularReferenceError(node.id, new_parent.id)
            if self.walker.is_descendant(store_id, new_parent.id, node.id):
                raise CircularReferenceError(node.id, new_parent.id)

        if new_parent_id == node.parent_id:
            logger.debug(f"Category {node.id} already under {new_parent_id}; move skipped")
            return MovedCategory(id=node.id, level=node.level, position=node.position)

        new_level = 0 if new_parent is None else new_parent.level + 1
        delta = new_level - node.level

        subtree = self.walker.children_map(store_id, node)
        old_siblings = self.tree_store.list_children(store_id, node.parent_id)
        new_siblings = self.tree_store.list_children(store_id, new_parent_id)

        batch = MutationBatch(store_id=store_id)
        updates: Dict[int, CategoryUpdate] = {}

        remaining = [s for s in old_siblings if s.id != node.id]
        for update in _renumber(remaining) + _renumber(new_siblings):
            updates[update.category_id] = update

        new_position = len(new_siblings)
        updates[node.id] = CategoryUpdate(
            category_id=node.id,
            parent_id=new_parent_id,
            level=new_level,
            position=new_position,
        )

        descendants = [child for children in subtree.values() for child in children]
        if delta:
            for descendant in descendants:
                updates[descendant.id] = CategoryUpdate(
                    category_id=descendant.id,
                    level=descendant.level + delta,
                )

        batch.updates = list(updates.values())
        batch.rows = [RowExpectation.of(node)] + [RowExpectation.of(d) for d in descendants]
        if new_parent is not None:
            batch.rows.append(RowExpectation.of(new_parent))
        batch.sibling_sets = [
            SiblingExpectation.of(node.parent_id, old_siblings),
            SiblingExpectation.of(new_parent_id, new_siblings),
        ] + [
            SiblingExpectation.of(member_id, children)
            for member_id, children in subtree.items()
        ]

        self.tree_store.apply_mutations(batch)
        logger.info(
            f"Moved category {node.id} of store {store_id} from {node.parent_id} to {new_parent_id} "
            f"(level {new_level}, position {new_position}, {len(descendants)} descendants)"
        )
        return MovedCategory(id=node.id, level=new_level, position=new_position)

    # ------------------------------------------------------------------
    # Reorder
    # ------------------------------------------------------------------

    def reorder(self, store_id: str, parent_id, ordered_ids: Sequence) -> None:
        """
        Give the children of parent_id (None = roots) positions 0..n-1 in
        the order of ordered_ids, which must list every live child once.
        """
        ordered_ids = list(ordered_ids)
        duplicates = [category_id for category_id, seen in Counter(ordered_ids).items() if seen > 1]
        if duplicates:
            raise DuplicateCategoryIdsError(duplicates)

        batch = MutationBatch(store_id=store_id)
        if parent_id is not None:
            batch.rows.append(RowExpectation.of(self.walker.require_live(store_id, parent_id)))
        for category_id in ordered_ids:
            self.walker.require_live(store_id, category_id)

        siblings = self.tree_store.list_children(store_id, parent_id)
        sibling_ids = {s.id for s in siblings}
        requested = set(ordered_ids)
        if requested != sibling_ids:
            raise ReorderSetMismatchError(
                parent_id,
                missing=sibling_ids - requested,
                unexpected=requested - sibling_ids,
            )

        current = {s.id: s.position for s in siblings}
        batch.updates = [
            CategoryUpdate(category_id=category_id, position=index)
            for index, category_id in enumerate(ordered_ids)
            if current[category_id] != index
        ]
        batch.sibling_sets.append(SiblingExpectation.of(parent_id, siblings))

        if not batch:
            logger.debug(f"Children of {parent_id} in store {store_id} already in requested order")
            return

        self.tree_store.apply_mutations(batch)
        logger.info(
            f"Reordered {len(ordered_ids)} children of {parent_id} in store {store_id} "
            f"({len(batch.updates)} rows changed)"
        )

    # ------------------------------------------------------------------
    # Deletion guard
    # ------------------------------------------------------------------

    def can_delete(self, store_id: str, category_id) -> DeletionCheck:
        """Report whether a category may be soft-deleted, and why not."""
        node = self.walker.require_live(store_id, category_id)
        return self._deletion_check(store_id, node)

    def soft_delete(self, store_id: str, category_id) -> datetime:
        """
        Stamp deleted_at on a category with no live children and no products.

        Siblings keep their positions; the gap closes on the next reorder.
        Descendants are never touched.
        """
        node = self.walker.require_live(store_id, category_id)
        check = self._deletion_check(store_id, node)
        if check.reason is DeletionBlockReason.HAS_ACTIVE_CHILDREN:
            raise CategoryHasChildrenError(node.id)
        if check.reason is DeletionBlockReason.HAS_ATTACHED_ENTITIES:
            raise CategoryHasAttachedProductsError(node.id)

        deleted_at = self.clock()
        batch = MutationBatch(
            store_id=store_id,
            updates=[CategoryUpdate(category_id=node.id, deleted_at=deleted_at)],
            rows=[RowExpectation.of(node)],
            sibling_sets=[SiblingExpectation(parent_id=node.id, child_ids=frozenset())],
        )
        self.tree_store.apply_mutations(batch)
        logger.info(f"Soft-deleted category {node.id} of store {store_id}")
        return deleted_at

    def _deletion_check(self, store_id: str, node: CategoryNode) -> DeletionCheck:
        if self.tree_store.list_children(store_id, node.id):
            return DeletionCheck(allowed=False, reason=DeletionBlockReason.HAS_ACTIVE_CHILDREN)
        if self.has_attached_products(store_id, node.id):
            return DeletionCheck(allowed=False, reason=DeletionBlockReason.HAS_ATTACHED_ENTITIES)
        return DeletionCheck(allowed=True)

    # ------------------------------------------------------------------
    # Audit
    # ------------------------------------------------------------------

    def audit(self, store_id: str) -> List[str]:
        """
        List invariant violations in the stored tree; empty when healthy.

        Checks parent links, cycles, levels of nodes reachable from a root
        and duplicate sibling positions. Orphans below a soft-deleted
        category are not level-checked, and position gaps are tolerated.
        """
        nodes = {n.id: n for n in self.tree_store.list_nodes(store_id, include_deleted=True)}
        live = {i: n for i, n in nodes.items() if not n.is_deleted}
        problems = []

        children = defaultdict(list)
        dangling = set()
        for node in live.values():
            if node.parent_id is not None and node.parent_id not in nodes:
                dangling.add(node.id)
                problems.append(
                    f"category {node.id}: parent {node.parent_id} is not a category of this store"
                )
                continue
            children[node.parent_id].append(node)

        for parent_id, siblings in children.items():
            positions = Counter(s.position for s in siblings)
            for position, seen in sorted(positions.items()):
                if seen > 1:
                    problems.append(
                        f"children of {parent_id if parent_id is not None else 'root'}: "
                        f"position {position} used {seen} times"
                    )

        reached = set()
        frontier = [(root, 0) for root in children.get(None, [])]
        while frontier:
            node, expected_level = frontier.pop()
            reached.add(node.id)
            if node.level != expected_level:
                problems.append(
                    f"category {node.id}: level {node.level}, expected {expected_level}"
                )
            frontier.extend((child, expected_level + 1) for child in children.get(node.id, []))

        for node in live.values():
            if node.id in reached or node.id in dangling:
                continue
            if not self._ends_at_deleted(node, nodes):
                problems.append(f"category {node.id}: parent chain never reaches a root")

        if problems:
            logger.warning(f"Category tree of store {store_id} has {len(problems)} problems")
        return problems

    def _ends_at_deleted(self, node: CategoryNode, nodes: Dict[int, CategoryNode]) -> bool:
        """
        True when node's chain stops at a soft-deleted category (an orphan)
        or at a dangling link that is reported on its own.
        """
        seen = set()
        while node.parent_id is not None and node.id not in seen:
            seen.add(node.id)
            parent = nodes.get(node.parent_id)
            if parent is None or parent.is_deleted:
                return True
            node = parent
        return node.parent_id is None


def _renumber(siblings: List[CategoryNode]) -> List[CategoryUpdate]:
    """Updates making positions 0..n-1 in the current order."""
    return [
        CategoryUpdate(category_id=sibling.id, position=index)
        for index, sibling in enumerate(siblings)
        if sibling.position != index
    ]
