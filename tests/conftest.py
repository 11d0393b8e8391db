"""
Pytest configuration and fixtures.
"""
from collections import defaultdict
from datetime import datetime, timezone

import pytest


STORE = 'store-a'
OTHER_STORE = 'store-b'
FIXED_NOW = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def api_client():
    """Create an API client for testing."""
    from rest_framework.test import APIClient
    return APIClient()


@pytest.fixture
def create_user(db):
    """Factory fixture to create users."""
    from django.contrib.auth import get_user_model

    def _create_user(username='testuser', password='testpass123', **kwargs):
        return get_user_model().objects.create_user(
            username=username,
            password=password,
            **kwargs
        )
    return _create_user


@pytest.fixture
def authenticated_client(api_client, create_user):
    """Create an authenticated, non-staff API client."""
    user = create_user()
    api_client.force_authenticate(user=user)
    return api_client


@pytest.fixture
def admin_client(api_client, create_user):
    """Create an authenticated staff API client."""
    admin_user = create_user(username='admin', is_staff=True)
    api_client.force_authenticate(user=admin_user)
    return api_client


# In-memory engine fixtures

@pytest.fixture
def memory_store():
    """Empty in-memory tree store."""
    from modules.categories.tree_store import InMemoryTreeStore
    return InMemoryTreeStore()


@pytest.fixture
def attached_products():
    """Category ids the fake catalog reports as having products."""
    return set()


@pytest.fixture
def hierarchy(memory_store, attached_products):
    """Hierarchy service over the in-memory store with a fixed clock."""
    from modules.categories.hierarchy import HierarchyService
    return HierarchyService(
        memory_store,
        has_attached_products=lambda store_id, category_id: category_id in attached_products,
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def add_category(memory_store, hierarchy):
    """Factory placing a new category the way creation does."""
    def _add(name, parent=None, store_id=STORE):
        parent_id = parent.id if parent is not None else None
        placement = hierarchy.placement_for(store_id, parent_id)
        return memory_store.add(
            store_id,
            parent_id=placement.parent_id,
            level=placement.level,
            position=placement.position,
            name=name,
        )
    return _add


@pytest.fixture
def node(memory_store):
    """Fetch the current state of a category from the in-memory store."""
    def _node(category, store_id=STORE):
        return memory_store.get_by_id(store_id, category.id)
    return _node


@pytest.fixture
def assert_tree_consistent(memory_store, hierarchy):
    """Assert every tree invariant, with contiguous positions, for a store."""
    def _check(store_id=STORE):
        assert hierarchy.audit(store_id) == []
        siblings = defaultdict(list)
        for category in memory_store.list_nodes(store_id):
            siblings[category.parent_id].append(category.position)
        for parent_id, positions in siblings.items():
            assert sorted(positions) == list(range(len(positions))), parent_id
    return _check


# Django service fixtures

@pytest.fixture
def category_service(db):
    """Get category service instance."""
    from modules.categories.services import CategoryService
    return CategoryService()


@pytest.fixture
def create_category(category_service):
    """Factory fixture to create categories through the service."""
    def _create(name, parent=None, store_id=STORE, **kwargs):
        return category_service.create_category(
            store_id,
            name,
            parent_id=parent.id if parent is not None else None,
            **kwargs
        )
    return _create


@pytest.fixture
def create_product(db):
    """Factory fixture to create products referencing a category."""
    from modules.products.models import ProductModel

    def _create(category, name='Test Product', store_id=STORE):
        return ProductModel.objects.create(store_id=store_id, name=name, category=category)
    return _create
