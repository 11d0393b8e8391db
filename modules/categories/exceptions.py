"""
Categories module exceptions.
"""
from typing import Iterable

from shared.exceptions import (
    AppException,
    BusinessRuleError,
    ConflictError,
    IntegrityViolationError,
    NotFoundError,
    ValidationError,
)


class CategoryError(AppException):
    """Base exception for categories module."""
    pass


class CategoryNotFoundError(CategoryError, NotFoundError):
    """Raised when a category does not resolve to a live row of the store."""

    def __init__(self, category_id=None, store_id=None):
        super().__init__(
            entity_name='Category',
            entity_id=category_id,
            code='CATEGORY_NOT_FOUND',
        )
        self.category_id = category_id
        self.store_id = store_id


class CategoryAlreadyExistsError(CategoryError):
    """Raised when an explicit slug is already used in the store."""

    def __init__(self, slug: str):
        self.slug = slug
        super().__init__(f"Category already exists: {slug}", code='CATEGORY_ALREADY_EXISTS')


class InvalidCategoryHierarchyError(CategoryError):
    """Raised when category hierarchy is invalid."""

    def __init__(self, message: str):
        super().__init__(message, code='INVALID_CATEGORY_HIERARCHY')


class CircularReferenceError(InvalidCategoryHierarchyError):
    """Raised when a move would make a category its own ancestor."""

    def __init__(self, category_id, new_parent_id):
        self.category_id = category_id
        self.new_parent_id = new_parent_id
        if category_id == new_parent_id:
            message = f"Category {category_id} cannot be its own parent"
        else:
            message = f"Cannot move category {category_id} under its own descendant {new_parent_id}"
        super().__init__(message)
        self.code = 'CIRCULAR_REFERENCE'


class ReorderSetMismatchError(CategoryError, BusinessRuleError):
    """Raised when a reorder request is not exactly the current sibling set."""

    def __init__(self, parent_id, missing: Iterable = (), unexpected: Iterable = ()):
        self.parent_id = parent_id
        self.missing = sorted(missing)
        self.unexpected = sorted(unexpected)
        super().__init__(
            message=(
                f"Reorder of children of {parent_id if parent_id is not None else 'root'} "
                f"must list every sibling exactly once "
                f"(missing: {self.missing}, not siblings: {self.unexpected})"
            ),
            rule='REORDER_COMPLETE_SIBLING_SET',
        )


class CategoryHasChildrenError(CategoryError, BusinessRuleError):
    """Raised when deleting a category that still has live subcategories."""

    def __init__(self, category_id):
        self.category_id = category_id
        super().__init__(
            message=(
                f"Cannot delete category {category_id} with subcategories. "
                f"Delete or move the subcategories first."
            ),
            rule='HAS_ACTIVE_CHILDREN',
        )


class CategoryHasAttachedProductsError(CategoryError, BusinessRuleError):
    """Raised when deleting a category that products still reference."""

    def __init__(self, category_id):
        self.category_id = category_id
        super().__init__(
            message=(
                f"Cannot delete category {category_id} with products. "
                f"Move the products to another category first."
            ),
            rule='HAS_ATTACHED_ENTITIES',
        )


class DuplicateCategoryIdsError(CategoryError, ValidationError):
    """Raised when the same id appears more than once in a reorder request."""

    def __init__(self, duplicates: Iterable):
        self.duplicates = sorted(duplicates)
        super().__init__(
            message=f"Duplicate category ids: {self.duplicates}",
            field='ordered_ids',
            code='DUPLICATE_CATEGORY_IDS',
        )


class InvalidMutationError(CategoryError, ValidationError):
    """Raised when a row mutation carries a negative level or position."""

    def __init__(self, message: str, field: str = None):
        super().__init__(message=message, field=field, code='INVALID_CATEGORY_MUTATION')


class CategoryConflictError(CategoryError, ConflictError):
    """Raised when a concurrent writer invalidated a precondition before commit."""

    def __init__(self, message: str):
        super().__init__(message=message, code='CATEGORY_CONFLICT')


class TreeIntegrityError(CategoryError, IntegrityViolationError):
    """Raised when the stored tree is already corrupt (cycle, dangling link)."""

    def __init__(self, message: str, store_id=None):
        self.store_id = store_id
        super().__init__(message=message, code='CATEGORY_TREE_CORRUPT')
