"""
Products module Django ORM models.
"""
from django.db import models


class ProductModel(models.Model):
    """Store product; only the category reference matters to the category tree."""

    store_id = models.CharField(
        max_length=64,
        db_index=True,
        verbose_name='Store'
    )
    name = models.CharField(
        max_length=200,
        db_index=True,
        verbose_name='Name'
    )
    category = models.ForeignKey(
        'categories.CategoryModel',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='products',
        verbose_name='Category'
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
        db_table = 'products'
        verbose_name = 'Product'
        verbose_name_plural = 'Products'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['store_id', 'category'], name='products_store_category_idx'),
        ]

    def __str__(self):
        return f"{self.name} ({self.store_id})"

    @property
    def is_deleted(self) -> bool:
        """Check if product is soft deleted."""
        return self.deleted_at is not None
