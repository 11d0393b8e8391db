"""
Tests for the deletion guard, soft deletion and tree audit.
"""
from dataclasses import replace

import pytest

from conftest import FIXED_NOW, STORE
from modules.categories.exceptions import (
    CategoryHasAttachedProductsError,
    CategoryHasChildrenError,
    CategoryNotFoundError,
)
from modules.categories.hierarchy import DeletionBlockReason, DeletionCheck


class TestCanDelete:

    def test_leaf_without_products(self, hierarchy, add_category):
        leaf = add_category('Leaf')
        assert hierarchy.can_delete(STORE, leaf.id) == DeletionCheck(allowed=True)

    def test_blocked_by_children(self, hierarchy, add_category):
        parent = add_category('Parent')
        add_category('Child', parent=parent)

        check = hierarchy.can_delete(STORE, parent.id)

        assert not check.allowed
        assert check.reason is DeletionBlockReason.HAS_ACTIVE_CHILDREN

    def test_blocked_by_products(self, hierarchy, add_category, attached_products):
        leaf = add_category('Leaf')
        attached_products.add(leaf.id)

        check = hierarchy.can_delete(STORE, leaf.id)

        assert check.reason is DeletionBlockReason.HAS_ATTACHED_ENTITIES

    def test_children_reported_before_products(self, hierarchy, add_category, attached_products):
        parent = add_category('Parent')
        add_category('Child', parent=parent)
        attached_products.add(parent.id)

        assert hierarchy.can_delete(STORE, parent.id).reason is DeletionBlockReason.HAS_ACTIVE_CHILDREN

    def test_deleted_children_do_not_block(self, hierarchy, add_category):
        parent = add_category('Parent')
        child = add_category('Child', parent=parent)
        hierarchy.soft_delete(STORE, child.id)

        assert hierarchy.can_delete(STORE, parent.id).allowed

    def test_missing_category(self, hierarchy):
        with pytest.raises(CategoryNotFoundError):
            hierarchy.can_delete(STORE, 999)


class TestSoftDelete:

    def test_stamps_deleted_at(self, hierarchy, add_category, node):
        leaf = add_category('Leaf')

        deleted_at = hierarchy.soft_delete(STORE, leaf.id)

        assert deleted_at == FIXED_NOW
        assert node(leaf).deleted_at == FIXED_NOW

    def test_siblings_keep_positions(self, hierarchy, memory_store, add_category, node):
        a = add_category('A')
        b = add_category('B')
        c = add_category('C')

        hierarchy.soft_delete(STORE, b.id)

        assert node(a).position == 0
        assert node(c).position == 2
        assert [n.id for n in memory_store.list_children(STORE, None)] == [a.id, c.id]

    def test_new_category_goes_after_gap(self, hierarchy, add_category):
        add_category('A')
        b = add_category('B')
        add_category('C')
        hierarchy.soft_delete(STORE, b.id)

        assert hierarchy.placement_for(STORE, None).position == 3

    def test_with_children(self, hierarchy, add_category, node):
        parent = add_category('Parent')
        add_category('Child', parent=parent)

        with pytest.raises(CategoryHasChildrenError):
            hierarchy.soft_delete(STORE, parent.id)

        assert not node(parent).is_deleted

    def test_with_products(self, hierarchy, add_category, attached_products, node):
        leaf = add_category('Leaf')
        attached_products.add(leaf.id)

        with pytest.raises(CategoryHasAttachedProductsError):
            hierarchy.soft_delete(STORE, leaf.id)

        assert not node(leaf).is_deleted

    def test_already_deleted(self, hierarchy, add_category):
        leaf = add_category('Leaf')
        hierarchy.soft_delete(STORE, leaf.id)

        with pytest.raises(CategoryNotFoundError):
            hierarchy.soft_delete(STORE, leaf.id)


class TestAudit:

    def test_healthy_tree(self, hierarchy, add_category):
        a = add_category('A')
        b = add_category('B', parent=a)
        add_category('C', parent=b)
        hierarchy.soft_delete(STORE, add_category('D', parent=a).id)

        assert hierarchy.audit(STORE) == []

    def test_orphans_are_tolerated(self, hierarchy, memory_store, add_category, node):
        a = add_category('A')
        b = add_category('B', parent=a)
        add_category('C', parent=b)
        memory_store.overwrite(replace(node(b), deleted_at=FIXED_NOW))

        assert hierarchy.audit(STORE) == []

    def test_level_mismatch(self, hierarchy, memory_store, add_category):
        a = add_category('A')
        b = add_category('B', parent=a)
        memory_store.overwrite(replace(b, level=3))

        assert hierarchy.audit(STORE) == [f'category {b.id}: level 3, expected 1']

    def test_duplicate_position(self, hierarchy, memory_store, add_category):
        a = add_category('A')
        b = add_category('B')
        memory_store.overwrite(replace(b, position=a.position))

        assert hierarchy.audit(STORE) == ['children of root: position 0 used 2 times']

    def test_dangling_parent(self, hierarchy, memory_store):
        stray = memory_store.add(STORE, parent_id=404, level=1)

        problems = hierarchy.audit(STORE)

        assert problems == [f'category {stray.id}: parent 404 is not a category of this store']

    def test_cycle(self, hierarchy, memory_store, add_category):
        a = add_category('A')
        b = add_category('B', parent=a)
        memory_store.overwrite(replace(a, parent_id=b.id, level=2))

        problems = hierarchy.audit(STORE)

        assert f'category {a.id}: parent chain never reaches a root' in problems
        assert f'category {b.id}: parent chain never reaches a root' in problems
