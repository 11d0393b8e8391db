"""
Categories URL configuration.

Mounted under /api/v1/stores/<store_id>/categories/.
"""
from django.urls import path

from .views import (
    CategoryListCreateView,
    CategoryDetailView,
    CategoryTreeView,
    CategoryBySlugView,
    CategorySubcategoriesView,
    CategoryAncestorsView,
    CategoryMoveView,
    CategoryReorderView,
    CategoryDeletableView,
)

app_name = 'categories'

urlpatterns = [
    path('', CategoryListCreateView.as_view(), name='category-list-create'),
    path('tree/', CategoryTreeView.as_view(), name='category-tree'),
    path('slug/<str:slug>/', CategoryBySlugView.as_view(), name='category-by-slug'),
    path('reorder/', CategoryReorderView.as_view(), name='category-reorder'),
    path('<int:category_id>/', CategoryDetailView.as_view(), name='category-detail'),
    path('<int:category_id>/subcategories/', CategorySubcategoriesView.as_view(), name='category-subcategories'),
    path('<int:category_id>/ancestors/', CategoryAncestorsView.as_view(), name='category-ancestors'),
    path('<int:category_id>/move/', CategoryMoveView.as_view(), name='category-move'),
    path('<int:category_id>/deletable/', CategoryDeletableView.as_view(), name='category-deletable'),
]
