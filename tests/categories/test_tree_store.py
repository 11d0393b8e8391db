"""
Tests for the tree store boundary: mutation batches and both stores.
"""
import threading

import pytest
from django.db import OperationalError

from conftest import FIXED_NOW, OTHER_STORE, STORE
from modules.categories.exceptions import CategoryConflictError, InvalidMutationError
from modules.categories.models import CategoryModel, CategoryStoreLockModel
from modules.categories.tree_store import (
    UNCHANGED,
    CategoryUpdate,
    DjangoTreeStore,
    MutationBatch,
    RowExpectation,
    SiblingExpectation,
)


class TestCategoryUpdate:

    def test_negative_level(self):
        with pytest.raises(InvalidMutationError):
            CategoryUpdate(category_id=1, level=-1)

    def test_negative_position(self):
        with pytest.raises(InvalidMutationError) as exc_info:
            CategoryUpdate(category_id=1, position=-1)
        assert exc_info.value.field == 'position'

    def test_changes_only_lists_written_fields(self):
        assert CategoryUpdate(category_id=1, position=2).changes() == {'position': 2}

    def test_parent_none_means_root(self):
        update = CategoryUpdate(category_id=1, parent_id=None, level=0)
        assert update.changes() == {'parent_id': None, 'level': 0}

    def test_parent_unchanged_by_default(self):
        assert CategoryUpdate(category_id=1).parent_id is UNCHANGED


class TestInMemoryTreeStore:

    def test_batch_is_all_or_nothing(self, memory_store):
        a = memory_store.add(STORE, position=0)
        b = memory_store.add(STORE, position=1)
        batch = MutationBatch(
            store_id=STORE,
            updates=[
                CategoryUpdate(category_id=a.id, position=1),
                CategoryUpdate(category_id=b.id, position=0),
            ],
            sibling_sets=[SiblingExpectation(parent_id=None, child_ids=frozenset([a.id]))],
        )

        with pytest.raises(CategoryConflictError):
            memory_store.apply_mutations(batch)

        assert memory_store.get_by_id(STORE, a.id).position == 0
        assert memory_store.get_by_id(STORE, b.id).position == 1

    def test_update_of_other_store_row(self, memory_store):
        foreign = memory_store.add(OTHER_STORE)
        batch = MutationBatch(store_id=STORE, updates=[CategoryUpdate(category_id=foreign.id, position=3)])

        with pytest.raises(CategoryConflictError):
            memory_store.apply_mutations(batch)

    def test_moved_row(self, memory_store):
        a = memory_store.add(STORE)
        b = memory_store.add(STORE, parent_id=a.id, level=1)
        batch = MutationBatch(
            store_id=STORE,
            updates=[CategoryUpdate(category_id=b.id, position=4)],
            rows=[RowExpectation(category_id=b.id, parent_id=None, level=0)],
        )

        with pytest.raises(CategoryConflictError):
            memory_store.apply_mutations(batch)

    def test_count_includes_deleted(self, memory_store):
        memory_store.add(STORE)
        memory_store.add(STORE, deleted_at=FIXED_NOW)
        memory_store.add(OTHER_STORE)

        assert memory_store.count_nodes(STORE) == 2
        assert len(memory_store.list_nodes(STORE)) == 1
        assert len(memory_store.list_nodes(STORE, include_deleted=True)) == 2

    def test_reads_while_another_thread_writes(self, memory_store):
        errors = []

        def writer():
            for position in range(2000):
                memory_store.add(STORE, position=position)

        thread = threading.Thread(target=writer)
        thread.start()
        try:
            while thread.is_alive():
                memory_store.list_nodes(STORE)
                memory_store.list_children(STORE, None)
                memory_store.count_nodes(STORE)
        except RuntimeError as e:
            errors.append(e)
        thread.join()

        assert errors == []
        assert memory_store.count_nodes(STORE) == 2000


@pytest.mark.django_db
class TestDjangoTreeStore:

    @pytest.fixture
    def store(self):
        return DjangoTreeStore()

    @pytest.fixture
    def row(self):
        def _row(name, parent=None, position=0, store_id=STORE, **kwargs):
            return CategoryModel.objects.create(
                store_id=store_id,
                name=name,
                slug=name.lower(),
                parent=parent,
                level=parent.level + 1 if parent is not None else 0,
                position=position,
                **kwargs
            )
        return _row

    def test_get_by_id(self, store, row):
        shoes = row('Shoes')

        node = store.get_by_id(STORE, shoes.id)

        assert node.id == shoes.id
        assert node.name == 'Shoes'
        assert store.get_by_id(OTHER_STORE, shoes.id) is None

    def test_list_children_order_and_filter(self, store, row):
        parent = row('Parent')
        second = row('Second', parent=parent, position=1)
        first = row('First', parent=parent, position=0)
        row('Gone', parent=parent, position=2, deleted_at=FIXED_NOW)

        children = store.list_children(STORE, parent.id)

        assert [c.id for c in children] == [first.id, second.id]

    def test_count_nodes(self, store, row):
        row('A')
        row('B', deleted_at=FIXED_NOW)
        row('C', store_id=OTHER_STORE)

        assert store.count_nodes(STORE) == 2

    def test_apply_mutations_writes_fields(self, store, row):
        parent = row('Parent')
        child = row('Child', position=1)
        batch = MutationBatch(
            store_id=STORE,
            updates=[CategoryUpdate(category_id=child.id, parent_id=parent.id, level=1, position=0)],
            rows=[RowExpectation(category_id=child.id, parent_id=None, level=0)],
            sibling_sets=[SiblingExpectation(parent_id=parent.id, child_ids=frozenset())],
        )

        store.apply_mutations(batch)

        child.refresh_from_db()
        assert child.parent_id == parent.id
        assert child.level == 1
        assert child.position == 0

    def test_apply_mutations_soft_delete(self, store, row):
        leaf = row('Leaf')
        batch = MutationBatch(store_id=STORE, updates=[CategoryUpdate(category_id=leaf.id, deleted_at=FIXED_NOW)])

        store.apply_mutations(batch)

        leaf.refresh_from_db()
        assert leaf.deleted_at == FIXED_NOW

    def test_conflict_on_deleted_row(self, store, row):
        gone = row('Gone', deleted_at=FIXED_NOW)
        batch = MutationBatch(
            store_id=STORE,
            updates=[CategoryUpdate(category_id=gone.id, position=3)],
            rows=[RowExpectation(category_id=gone.id, parent_id=None, level=0)],
        )

        with pytest.raises(CategoryConflictError):
            store.apply_mutations(batch)

        gone.refresh_from_db()
        assert gone.position == 0

    def test_database_error_becomes_conflict(self, store, row, monkeypatch):
        shoes = row('Shoes')

        def locked(self, *args, **kwargs):
            raise OperationalError('could not obtain lock')
        monkeypatch.setattr(CategoryModel, 'save', locked)

        with pytest.raises(CategoryConflictError) as exc_info:
            store.apply_mutations(
                MutationBatch(store_id=STORE, updates=[CategoryUpdate(category_id=shoes.id, position=5)])
            )

        assert isinstance(exc_info.value.__cause__, OperationalError)

    def test_conflict_on_child_added_to_expected_set(self, store, row):
        parent = row('Parent')
        first = row('First', parent=parent, position=0)
        second = row('Second', parent=parent, position=1)
        batch = MutationBatch(
            store_id=STORE,
            updates=[
                CategoryUpdate(category_id=first.id, position=1),
                CategoryUpdate(category_id=second.id, position=0),
            ],
            sibling_sets=[SiblingExpectation(parent_id=parent.id, child_ids=frozenset([first.id, second.id]))],
        )
        row('Late', parent=parent, position=2)

        with pytest.raises(CategoryConflictError):
            store.apply_mutations(batch)

        first.refresh_from_db()
        second.refresh_from_db()
        assert (first.position, second.position) == (0, 1)

    def test_conflict_on_root_added_to_expected_set(self, store, row):
        a = row('A')
        b = row('B', position=1)
        batch = MutationBatch(
            store_id=STORE,
            updates=[CategoryUpdate(category_id=b.id, position=0), CategoryUpdate(category_id=a.id, position=1)],
            sibling_sets=[SiblingExpectation(parent_id=None, child_ids=frozenset([a.id, b.id]))],
        )
        row('Late', position=2)

        with pytest.raises(CategoryConflictError):
            store.apply_mutations(batch)

        b.refresh_from_db()
        assert b.position == 1

    def test_root_batch_takes_store_lock(self, store, row):
        a = row('A')
        batch = MutationBatch(
            store_id=STORE,
            updates=[CategoryUpdate(category_id=a.id, position=0)],
            sibling_sets=[SiblingExpectation(parent_id=None, child_ids=frozenset([a.id]))],
        )

        store.apply_mutations(batch)

        assert CategoryStoreLockModel.objects.filter(store_id=STORE).exists()
        assert not CategoryStoreLockModel.objects.filter(store_id=OTHER_STORE).exists()

    def test_child_batch_leaves_store_lock_alone(self, store, row):
        parent = row('Parent')
        child = row('Child', parent=parent)
        batch = MutationBatch(
            store_id=STORE,
            updates=[CategoryUpdate(category_id=child.id, position=0)],
            sibling_sets=[SiblingExpectation(parent_id=parent.id, child_ids=frozenset([child.id]))],
        )

        store.apply_mutations(batch)

        assert not CategoryStoreLockModel.objects.exists()

    def test_lock_sibling_set(self, store, row):
        parent = row('Parent')

        store.lock_sibling_set(STORE, parent.id)
        assert not CategoryStoreLockModel.objects.exists()

        store.lock_sibling_set(STORE, None)
        store.lock_sibling_set(STORE, None)
        assert CategoryStoreLockModel.objects.filter(store_id=STORE).count() == 1
