"""
Persistence boundary for the category tree.

The hierarchy engine reads category rows through a TreeStore and submits
every write as one MutationBatch. A batch carries the preconditions it was
computed against; the store re-checks them inside its atomic unit and
raises CategoryConflictError instead of writing when any of them moved.
"""
import itertools
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Dict, FrozenSet, Iterable, List, Optional

from django.db import DatabaseError, transaction

from .exceptions import CategoryConflictError, InvalidMutationError
from .models import CategoryModel, CategoryStoreLockModel

logger = logging.getLogger(__name__)


class _Unchanged:
    def __repr__(self):
        return 'UNCHANGED'


# parent_id=None means "make root", so a separate marker says "leave it alone"
UNCHANGED = _Unchanged()


@dataclass(frozen=True)
class CategoryNode:
    """Read-only snapshot of one category row."""

    id: int
    store_id: str
    parent_id: Optional[int]
    level: int
    position: int
    deleted_at: Optional[datetime] = None
    name: str = ''

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @classmethod
    def from_model(cls, row: CategoryModel) -> 'CategoryNode':
        return cls(
            id=row.id,
            store_id=row.store_id,
            parent_id=row.parent_id,
            level=row.level,
            position=row.position,
            deleted_at=row.deleted_at,
            name=row.name,
        )


@dataclass(frozen=True)
class CategoryUpdate:
    """Field changes for a single row; untouched fields stay as stored."""

    category_id: int
    parent_id: object = UNCHANGED
    level: Optional[int] = None
    position: Optional[int] = None
    deleted_at: Optional[datetime] = None

    def __post_init__(self):
        if self.level is not None and self.level < 0:
            raise InvalidMutationError(
                f"Category {self.category_id}: level must be non-negative, got {self.level}",
                field='level',
            )
        if self.position is not None and self.position < 0:
            raise InvalidMutationError(
                f"Category {self.category_id}: position must be non-negative, got {self.position}",
                field='position',
            )

    def changes(self) -> Dict[str, object]:
        """Return the fields this update writes, keyed by attribute name."""
        values = {}
        if self.parent_id is not UNCHANGED:
            values['parent_id'] = self.parent_id
        if self.level is not None:
            values['level'] = self.level
        if self.position is not None:
            values['position'] = self.position
        if self.deleted_at is not None:
            values['deleted_at'] = self.deleted_at
        return values


@dataclass(frozen=True)
class RowExpectation:
    """The row must still be live with this parent and level at commit."""

    category_id: int
    parent_id: Optional[int]
    level: int

    @classmethod
    def of(cls, node: CategoryNode) -> 'RowExpectation':
        return cls(category_id=node.id, parent_id=node.parent_id, level=node.level)


@dataclass(frozen=True)
class SiblingExpectation:
    """The live children of parent_id must be exactly child_ids at commit."""

    parent_id: Optional[int]
    child_ids: FrozenSet[int]

    @classmethod
    def of(cls, parent_id: Optional[int], children: Iterable[CategoryNode]) -> 'SiblingExpectation':
        return cls(parent_id=parent_id, child_ids=frozenset(c.id for c in children))


@dataclass
class MutationBatch:
    """All row writes of one engine operation plus the state they assume."""

    store_id: str
    updates: List[CategoryUpdate] = field(default_factory=list)
    rows: List[RowExpectation] = field(default_factory=list)
    sibling_sets: List[SiblingExpectation] = field(default_factory=list)

    def row_ids(self) -> List[int]:
        ids = {u.category_id for u in self.updates}
        ids.update(r.category_id for r in self.rows)
        return sorted(ids)

    def __bool__(self):
        return bool(self.updates)


class TreeStore(ABC):
    """Tenant-scoped access to category rows."""

    @abstractmethod
    def get_by_id(self, store_id: str, category_id: int) -> Optional[CategoryNode]:
        """Return the row (soft-deleted included) or None when it is not in the store."""

    @abstractmethod
    def list_children(self, store_id: str, parent_id: Optional[int]) -> List[CategoryNode]:
        """Return live children of parent_id ordered by position, then id."""

    @abstractmethod
    def list_nodes(self, store_id: str, include_deleted: bool = False) -> List[CategoryNode]:
        """Return every row of the store."""

    @abstractmethod
    def count_nodes(self, store_id: str) -> int:
        """Return the number of rows in the store, soft-deleted included."""

    @abstractmethod
    def apply_mutations(self, batch: MutationBatch) -> None:
        """Verify the batch expectations and apply its updates atomically."""

    def lock_sibling_set(self, store_id: str, parent_id: Optional[int]) -> None:
        """
        Hold off other writers of the children of parent_id (None = roots)
        until the caller's transaction ends. Stores whose batches are
        already serialized need not do anything.
        """

    def _verify(self, batch: MutationBatch, rows: Dict[int, object], child_ids_of) -> None:
        """
        Raise CategoryConflictError when the current state differs from the
        state the batch was computed against.

        rows maps id -> current row (anything with parent_id, level, deleted_at);
        child_ids_of(parent_id) returns the current live child ids.
        """
        for update in batch.updates:
            if update.category_id not in rows:
                raise CategoryConflictError(
                    f"Category {update.category_id} disappeared before commit"
                )
        for expected in batch.rows:
            row = rows.get(expected.category_id)
            if row is None or row.deleted_at is not None:
                raise CategoryConflictError(
                    f"Category {expected.category_id} was deleted concurrently"
                )
            if row.parent_id != expected.parent_id or row.level != expected.level:
                raise CategoryConflictError(
                    f"Category {expected.category_id} was moved concurrently"
                )
        for expected in batch.sibling_sets:
            current = frozenset(child_ids_of(expected.parent_id))
            if current != expected.child_ids:
                raise CategoryConflictError(
                    f"Children of {expected.parent_id if expected.parent_id is not None else 'root'} "
                    f"changed concurrently"
                )


class DjangoTreeStore(TreeStore):
    """
    TreeStore over CategoryModel; one transaction.atomic() per batch.

    A sibling set is guarded by its parent row, or by the store's
    CategoryStoreLockModel row for root categories. Both are locked before
    the batch is verified, so a category inserted into a locked set by a
    concurrent create either commits first and fails verification, or
    waits for the batch.
    """

    def _queryset(self, store_id: str):
        return CategoryModel.objects.filter(store_id=store_id)

    def get_by_id(self, store_id: str, category_id: int) -> Optional[CategoryNode]:
        try:
            return CategoryNode.from_model(self._queryset(store_id).get(id=category_id))
        except CategoryModel.DoesNotExist:
            return None

    def list_children(self, store_id: str, parent_id: Optional[int]) -> List[CategoryNode]:
        rows = self._queryset(store_id).filter(
            parent_id=parent_id,
            deleted_at__isnull=True,
        ).order_by('position', 'id')
        return [CategoryNode.from_model(row) for row in rows]

    def list_nodes(self, store_id: str, include_deleted: bool = False) -> List[CategoryNode]:
        rows = self._queryset(store_id)
        if not include_deleted:
            rows = rows.filter(deleted_at__isnull=True)
        return [CategoryNode.from_model(row) for row in rows.order_by('level', 'position', 'id')]

    def count_nodes(self, store_id: str) -> int:
        return self._queryset(store_id).count()

    def lock_sibling_set(self, store_id: str, parent_id: Optional[int]) -> None:
        if parent_id is None:
            self._lock_store(store_id)
        else:
            list(self._queryset(store_id).select_for_update().filter(id=parent_id))

    def _lock_store(self, store_id: str) -> None:
        CategoryStoreLockModel.objects.get_or_create(store_id=store_id)
        CategoryStoreLockModel.objects.select_for_update().get(store_id=store_id)

    def apply_mutations(self, batch: MutationBatch) -> None:
        parent_ids = {s.parent_id for s in batch.sibling_sets}
        try:
            with transaction.atomic():
                # Lock order: store row, then category rows by id
                if None in parent_ids:
                    self._lock_store(batch.store_id)
                lock_ids = set(batch.row_ids()) | (parent_ids - {None})
                rows = {
                    row.id: row
                    for row in self._queryset(batch.store_id)
                    .select_for_update()
                    .filter(id__in=sorted(lock_ids))
                    .order_by('id')
                }
                self._verify(batch, rows, lambda parent_id: self._locked_child_ids(batch.store_id, parent_id))

                for update in batch.updates:
                    row = rows[update.category_id]
                    changes = update.changes()
                    for attr, value in changes.items():
                        setattr(row, attr, value)
                    row.save(update_fields=[
                        'parent' if attr == 'parent_id' else attr for attr in changes
                    ] + ['updated_at'])
        except DatabaseError as e:
            logger.warning(f"Category batch for store {batch.store_id} failed in the database: {e}")
            raise CategoryConflictError(f"Concurrent update of store {batch.store_id} categories") from e

    def _locked_child_ids(self, store_id: str, parent_id: Optional[int]) -> List[int]:
        return list(
            self._queryset(store_id)
            .select_for_update()
            .filter(parent_id=parent_id, deleted_at__isnull=True)
            .order_by('id')
            .values_list('id', flat=True)
        )


class InMemoryTreeStore(TreeStore):
    """
    Arena of CategoryNode keyed by id.

    Used as the test double for the engine and for offline tooling.
    One re-entrant lock guards every read and makes each batch atomic;
    apply_mutations reads children while holding it.
    """

    def __init__(self):
        self._nodes: Dict[int, CategoryNode] = {}
        self._ids = itertools.count(1)
        self._lock = threading.RLock()

    def add(
        self,
        store_id: str,
        parent_id: Optional[int] = None,
        level: int = 0,
        position: int = 0,
        name: str = '',
        deleted_at: Optional[datetime] = None,
    ) -> CategoryNode:
        """Insert a row as given; no invariant is checked."""
        with self._lock:
            node = CategoryNode(
                id=next(self._ids),
                store_id=store_id,
                parent_id=parent_id,
                level=level,
                position=position,
                deleted_at=deleted_at,
                name=name,
            )
            self._nodes[node.id] = node
            return node

    def overwrite(self, node: CategoryNode) -> None:
        """Overwrite a stored row; lets tests simulate writers outside the engine."""
        with self._lock:
            self._nodes[node.id] = node

    def get_by_id(self, store_id: str, category_id: int) -> Optional[CategoryNode]:
        with self._lock:
            node = self._nodes.get(category_id)
        if node is None or node.store_id != store_id:
            return None
        return node

    def list_children(self, store_id: str, parent_id: Optional[int]) -> List[CategoryNode]:
        with self._lock:
            children = [
                node for node in self._nodes.values()
                if node.store_id == store_id and node.parent_id == parent_id and not node.is_deleted
            ]
        return sorted(children, key=lambda n: (n.position, n.id))

    def list_nodes(self, store_id: str, include_deleted: bool = False) -> List[CategoryNode]:
        with self._lock:
            nodes = [
                node for node in self._nodes.values()
                if node.store_id == store_id and (include_deleted or not node.is_deleted)
            ]
        return sorted(nodes, key=lambda n: (n.level, n.position, n.id))

    def count_nodes(self, store_id: str) -> int:
        with self._lock:
            return sum(1 for node in self._nodes.values() if node.store_id == store_id)

    def apply_mutations(self, batch: MutationBatch) -> None:
        with self._lock:
            rows = {
                category_id: self._nodes[category_id]
                for category_id in batch.row_ids()
                if category_id in self._nodes and self._nodes[category_id].store_id == batch.store_id
            }
            self._verify(
                batch,
                rows,
                lambda parent_id: [c.id for c in self.list_children(batch.store_id, parent_id)],
            )

            staged = {}
            for update in batch.updates:
                current = staged.get(update.category_id, rows[update.category_id])
                staged[update.category_id] = replace(current, **update.changes())
            self._nodes.update(staged)
