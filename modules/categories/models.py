"""
Categories models.
"""
from django.db import models


class CategoryModel(models.Model):
    """
    Store-scoped product category stored as a parent-pointer tree.

    level and position are maintained by the hierarchy engine
    (modules.categories.hierarchy); do not write them directly.
    """

    store_id = models.CharField(
        max_length=64,
        db_index=True,
        verbose_name='Store',
        help_text='Owning store (tenant) identifier'
    )
    name = models.CharField(
        max_length=50,
        db_index=True,
        verbose_name='Name'
    )
    slug = models.SlugField(
        max_length=80,
        allow_unicode=True,
        verbose_name='Slug'
    )
    description = models.CharField(
        max_length=500,
        blank=True,
        default='',
        verbose_name='Description'
    )
    parent = models.ForeignKey(
        'self',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='children',
        verbose_name='Parent category',
        help_text='Self reference, same store only'
    )
    level = models.PositiveSmallIntegerField(
        default=0,
        db_index=True,
        verbose_name='Depth',
        help_text='0 for root categories, parent level + 1 otherwise'
    )
    position = models.PositiveIntegerField(
        default=0,
        verbose_name='Sibling position'
    )
    created_at = models.DateTimeField(
        auto_now_add=True,
        verbose_name='Created at'
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        verbose_name='Updated at'
    )
    deleted_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name='Soft delete timestamp'
    )

    class Meta:
        db_table = 'categories'
        verbose_name = 'Category'
        verbose_name_plural = 'Categories'
        ordering = ['store_id', 'level', 'position', 'id']
        indexes = [
            models.Index(fields=['store_id', 'parent', 'position'], name='categories_sibling_idx'),
            models.Index(fields=['store_id', 'slug'], name='categories_slug_idx'),
        ]

    def __str__(self):
        return f"{self.name} ({self.store_id})"

    @property
    def is_deleted(self) -> bool:
        """Check if category is soft deleted."""
        return self.deleted_at is not None


class CategoryStoreLockModel(models.Model):
    """
    One row per store, locked while the store's root categories are written.

    Child sibling sets are serialized by locking their parent row; root
    categories have no parent row, so this row stands in for it.
    """

    store_id = models.CharField(
        max_length=64,
        primary_key=True,
        verbose_name='Store'
    )

    class Meta:
        db_table = 'category_store_locks'
        verbose_name = 'Category store lock'
        verbose_name_plural = 'Category store locks'

    def __str__(self):
        return self.store_id
