"""
Products module admin configuration.
"""
from django.contrib import admin

from .models import ProductModel


@admin.register(ProductModel)
class ProductAdmin(admin.ModelAdmin):
    """Admin configuration for Product model."""
    list_display = ('name', 'store_id', 'category', 'created_at', 'deleted_at')
    list_filter = ('store_id', 'created_at')
    search_fields = ('name',)
    ordering = ('-created_at',)
    readonly_fields = ('created_at', 'updated_at')

    fieldsets = (
        (None, {'fields': ('store_id', 'name', 'category')}),
        ('Soft Delete', {'fields': ('deleted_at',)}),
        ('Info', {'fields': ('created_at', 'updated_at'), 'classes': ('collapse',)}),
    )
