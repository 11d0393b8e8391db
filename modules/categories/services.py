"""
Categories business logic services.
"""
import logging
from typing import List, Optional, Dict, Any

from django.db import transaction
from django.db.models import Count, Q

from shared.utils import unique_slug
from .models import CategoryModel
from .exceptions import (
    CategoryNotFoundError,
    CategoryAlreadyExistsError,
)
from .hierarchy import DeletionCheck, HierarchyService, MovedCategory
from .tree_store import DjangoTreeStore

logger = logging.getLogger(__name__)


class CategoryService:
    """Service for category operations."""

    def __init__(self, hierarchy: HierarchyService = None):
        if hierarchy is None:
            from modules.products.services import ProductService
            hierarchy = HierarchyService(
                DjangoTreeStore(),
                has_attached_products=ProductService().has_products_in_category,
            )
        self.hierarchy = hierarchy

    def _live(self, store_id: str):
        return CategoryModel.objects.filter(store_id=store_id, deleted_at__isnull=True)

    def get_category_by_id(self, store_id: str, category_id: int) -> Optional[CategoryModel]:
        """Get category by ID."""
        try:
            return self._live(store_id).get(id=category_id)
        except CategoryModel.DoesNotExist:
            return None

    def get_all_categories(self, store_id: str, search: Optional[str] = None) -> List[CategoryModel]:
        """Get all active categories, optionally matching search in name or description."""
        categories = self._live(store_id)
        if search:
            categories = categories.filter(
                Q(name__icontains=search) | Q(description__icontains=search)
            )
        return list(categories.order_by('level', 'position', 'id'))

    def get_root_categories(self, store_id: str) -> List[CategoryModel]:
        """Get top-level categories (no parent)."""
        return list(
            self._live(store_id).filter(parent__isnull=True).order_by('position', 'id')
        )

    def get_subcategories(self, store_id: str, parent_id: int) -> List[CategoryModel]:
        """Get direct children of a category."""
        if self.get_category_by_id(store_id, parent_id) is None:
            raise CategoryNotFoundError(category_id=parent_id, store_id=store_id)
        return list(
            self._live(store_id).filter(parent_id=parent_id).order_by('position', 'id')
        )

    def get_ancestors(self, store_id: str, category_id: int) -> List[CategoryModel]:
        """Get the live ancestors of a category, root first."""
        chain = self.hierarchy.walker.get_ancestors(store_id, category_id)
        rows = self._live(store_id).in_bulk([node.id for node in chain])
        return [rows[node.id] for node in reversed(chain)]

    def get_category_by_slug(self, store_id: str, slug: str) -> Optional[CategoryModel]:
        """Get category by slug."""
        return self._live(store_id).filter(slug=slug).order_by('id').first()

    def get_category_tree(self, store_id: str, include_counts: bool = True) -> List[Dict[str, Any]]:
        """
        Get full category tree structure.

        Built from a single query and linked without recursion, so depth is
        unbounded. Categories below a soft-deleted parent are not reachable
        from a root and are left out. With include_counts every node also
        carries its live product and child counts.
        """
        categories = self._live(store_id).order_by('position', 'id')
        if include_counts:
            categories = categories.annotate(
                product_count=Count('products', filter=Q(products__deleted_at__isnull=True))
            )

        nodes: Dict[int, Dict[str, Any]] = {}
        for category in categories:
            nodes[category.id] = self._build_tree_node(category, include_counts)

        roots = []
        for node in list(nodes.values()):
            parent_id = node.pop('parent_id')
            if parent_id is None:
                roots.append(node)
            elif parent_id in nodes:
                nodes[parent_id]['children'].append(node)

        if include_counts:
            for node in nodes.values():
                node['children_count'] = len(node['children'])
        return roots

    @transaction.atomic
    def create_category(
        self,
        store_id: str,
        name: str,
        parent_id: Optional[int] = None,
        description: str = '',
        slug: Optional[str] = None,
    ) -> CategoryModel:
        """Create a new category as the last child of its parent."""
        # Serialize with other writers of the same sibling set
        self.hierarchy.tree_store.lock_sibling_set(store_id, parent_id)
        placement = self.hierarchy.placement_for(store_id, parent_id)

        category = CategoryModel.objects.create(
            store_id=store_id,
            name=name,
            slug=self._resolve_slug(store_id, name, slug),
            description=description or '',
            parent_id=placement.parent_id,
            level=placement.level,
            position=placement.position,
        )

        logger.info(f"Created category: {category.name} ({category.id}) in store {store_id}")
        return category

    @transaction.atomic
    def update_category(
        self,
        store_id: str,
        category_id: int,
        name: str = None,
        description: str = None,
        slug: str = None,
    ) -> CategoryModel:
        """Update descriptive fields. Parentage changes go through move_category."""
        category = self.get_category_by_id(store_id, category_id)
        if not category:
            raise CategoryNotFoundError(category_id=category_id, store_id=store_id)

        if slug is not None and slug != category.slug:
            category.slug = self._resolve_slug(store_id, category.name, slug, exclude_id=category.id)
        if name is not None and name != category.name:
            category.name = name
            if slug is None:
                category.slug = self._resolve_slug(store_id, name, None, exclude_id=category.id)
        if description is not None:
            category.description = description

        category.save(update_fields=['name', 'slug', 'description', 'updated_at'])
        logger.info(f"Updated category: {category.name} ({category.id})")
        return category

    def move_category(
        self,
        store_id: str,
        category_id: int,
        parent_id: Optional[int] = None,
    ) -> MovedCategory:
        """Move a category (with its subtree) under another parent or to root."""
        return self.hierarchy.move(store_id, category_id, parent_id)

    def reorder_categories(
        self,
        store_id: str,
        parent_id: Optional[int],
        ordered_ids: List[int],
    ) -> List[CategoryModel]:
        """Reorder the children of parent_id and return them in their new order."""
        self.hierarchy.reorder(store_id, parent_id, ordered_ids)
        return list(
            self._live(store_id).filter(parent_id=parent_id).order_by('position', 'id')
        )

    def check_deletable(self, store_id: str, category_id: int) -> DeletionCheck:
        """Tell whether a category can be deleted right now."""
        return self.hierarchy.can_delete(store_id, category_id)

    def delete_category(self, store_id: str, category_id: int) -> bool:
        """Soft delete a category."""
        self.hierarchy.soft_delete(store_id, category_id)
        logger.info(f"Deleted category: {category_id}")
        return True

    def audit_tree(self, store_id: str) -> List[str]:
        """Report invariant violations of the store's category tree."""
        return self.hierarchy.audit(store_id)

    def _resolve_slug(
        self,
        store_id: str,
        name: str,
        slug: Optional[str],
        exclude_id: Optional[int] = None,
    ) -> str:
        """Validate an explicit slug or derive a free one from the name."""
        taken = self._live(store_id)
        if exclude_id is not None:
            taken = taken.exclude(id=exclude_id)

        if slug:
            if taken.filter(slug=slug).exists():
                raise CategoryAlreadyExistsError(slug=slug)
            return slug

        return unique_slug(
            name,
            is_taken=lambda candidate: taken.filter(slug=candidate).exists(),
            fallback='category',
        )

    def _build_tree_node(self, category: CategoryModel, include_counts: bool) -> Dict[str, Any]:
        """Build a tree node for category; children are linked by the caller."""
        node = {
            'id': category.id,
            'parent_id': category.parent_id,
            'name': category.name,
            'slug': category.slug,
            'level': category.level,
            'position': category.position,
            'children': [],
        }
        if include_counts:
            node['product_count'] = category.product_count
        return node
