"""
Categories admin configuration.
"""
from django.contrib import admin

from .models import CategoryModel


@admin.register(CategoryModel)
class CategoryAdmin(admin.ModelAdmin):
    """
    Admin for categories.

    Tree fields are read-only here; moves and reorders must go through the
    API so that levels and sibling positions stay consistent.
    """

    list_display = [
        'id',
        'store_id',
        'name',
        'parent',
        'level',
        'position',
        'deleted_at',
    ]
    list_filter = ['store_id', 'level', 'created_at']
    search_fields = ['name', 'slug']
    readonly_fields = ['id', 'parent', 'level', 'position', 'deleted_at', 'created_at', 'updated_at']
    ordering = ['store_id', 'level', 'position']

    fieldsets = (
        (None, {
            'fields': ('store_id', 'name', 'slug', 'description')
        }),
        ('Tree', {
            'fields': ('parent', 'level', 'position')
        }),
        ('Soft Delete', {
            'fields': ('deleted_at',)
        }),
        ('Info', {
            'fields': ('id', 'created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def has_delete_permission(self, request, obj=None):
        return False
