"""
Categories API views.

Every route is nested under a store; the store id in the URL is the tenant
the engine operates on. Resolving which stores a user may act on belongs
to the authentication layer in front of these views.
"""
from drf_spectacular.utils import extend_schema, OpenApiParameter
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from shared.permissions import IsAdminOrReadOnly
from .services import CategoryService
from .serializers import (
    CategorySerializer,
    CategoryCreateSerializer,
    CategoryUpdateSerializer,
    CategoryMoveSerializer,
    CategoryReorderSerializer,
    CategoryTreeSerializer,
    DeletionCheckSerializer,
    MovedCategorySerializer,
)
from .exceptions import CategoryNotFoundError


class CategoryBaseView(APIView):
    """Shared setup for category views."""

    permission_classes = [IsAdminOrReadOnly]

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.category_service = CategoryService()


class CategoryListCreateView(CategoryBaseView):
    """List and create categories."""

    @extend_schema(
        tags=['Categories'],
        summary='List categories',
        parameters=[
            OpenApiParameter(
                name='root_only',
                type=bool,
                required=False,
                description='Return only root categories'
            ),
            OpenApiParameter(
                name='search',
                type=str,
                required=False,
                description='Case-insensitive match on name or description'
            ),
        ],
        responses={200: CategorySerializer(many=True)},
    )
    def get(self, request, store_id):
        """Get all categories of the store."""
        root_only = request.query_params.get('root_only', '').lower() == 'true'
        search = request.query_params.get('search', '').strip()

        if root_only:
            categories = self.category_service.get_root_categories(store_id)
        else:
            categories = self.category_service.get_all_categories(store_id, search=search or None)

        serializer = CategorySerializer(categories, many=True)
        return Response(serializer.data)

    @extend_schema(
        tags=['Categories'],
        summary='Create category',
        request=CategoryCreateSerializer,
        responses={201: CategorySerializer},
    )
    def post(self, request, store_id):
        """Create a new category as the last child of its parent."""
        serializer = CategoryCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        category = self.category_service.create_category(store_id, **serializer.validated_data)

        result_serializer = CategorySerializer(category)
        return Response(result_serializer.data, status=status.HTTP_201_CREATED)


class CategoryDetailView(CategoryBaseView):
    """Category detail operations."""

    @extend_schema(
        tags=['Categories'],
        summary='Get category',
        responses={200: CategorySerializer},
    )
    def get(self, request, store_id, category_id):
        """Get category by ID."""
        category = self.category_service.get_category_by_id(store_id, category_id)
        if not category:
            raise CategoryNotFoundError(category_id=category_id, store_id=store_id)

        serializer = CategorySerializer(category)
        return Response(serializer.data)

    @extend_schema(
        tags=['Categories'],
        summary='Update category',
        request=CategoryUpdateSerializer,
        responses={200: CategorySerializer},
    )
    def patch(self, request, store_id, category_id):
        """Update a category's name, slug or description."""
        serializer = CategoryUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        category = self.category_service.update_category(
            store_id=store_id,
            category_id=category_id,
            **serializer.validated_data
        )

        result_serializer = CategorySerializer(category)
        return Response(result_serializer.data)

    @extend_schema(
        tags=['Categories'],
        summary='Delete category',
        description='Soft delete. Fails while the category has subcategories or products.',
    )
    def delete(self, request, store_id, category_id):
        """Delete a category (soft delete)."""
        self.category_service.delete_category(store_id=store_id, category_id=category_id)
        return Response(status=status.HTTP_204_NO_CONTENT)


class CategoryTreeView(CategoryBaseView):
    """Get category tree structure."""

    @extend_schema(
        tags=['Categories'],
        summary='Get category tree',
        parameters=[
            OpenApiParameter(
                name='include_counts',
                type=bool,
                required=False,
                description='Add live product and child counts to every node (default true)'
            ),
        ],
        responses={200: CategoryTreeSerializer(many=True)},
    )
    def get(self, request, store_id):
        """Get full category tree."""
        include_counts = request.query_params.get('include_counts', 'true').lower() != 'false'
        tree = self.category_service.get_category_tree(store_id, include_counts=include_counts)
        return Response(tree)


class CategoryBySlugView(CategoryBaseView):
    """Get a category by its slug."""

    @extend_schema(
        tags=['Categories'],
        summary='Get category by slug',
        responses={200: CategorySerializer},
    )
    def get(self, request, store_id, slug):
        category = self.category_service.get_category_by_slug(store_id, slug)
        if not category:
            raise CategoryNotFoundError(category_id=slug, store_id=store_id)

        serializer = CategorySerializer(category)
        return Response(serializer.data)


class CategorySubcategoriesView(CategoryBaseView):
    """Get subcategories of a category."""

    @extend_schema(
        tags=['Categories'],
        summary='Get subcategories',
        responses={200: CategorySerializer(many=True)},
    )
    def get(self, request, store_id, category_id):
        """Get direct children of a category in position order."""
        subcategories = self.category_service.get_subcategories(store_id, category_id)
        serializer = CategorySerializer(subcategories, many=True)
        return Response(serializer.data)


class CategoryAncestorsView(CategoryBaseView):
    """Get the ancestor chain of a category."""

    @extend_schema(
        tags=['Categories'],
        summary='Get ancestors',
        responses={200: CategorySerializer(many=True)},
    )
    def get(self, request, store_id, category_id):
        """Get ancestors, root first."""
        ancestors = self.category_service.get_ancestors(store_id, category_id)
        serializer = CategorySerializer(ancestors, many=True)
        return Response(serializer.data)


class CategoryMoveView(CategoryBaseView):
    """Move a category under another parent."""

    @extend_schema(
        tags=['Categories'],
        summary='Move category',
        description='Moves the category and its subtree; it is appended after the new siblings.',
        request=CategoryMoveSerializer,
        responses={200: MovedCategorySerializer},
    )
    def post(self, request, store_id, category_id):
        serializer = CategoryMoveSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        moved = self.category_service.move_category(
            store_id,
            category_id,
            serializer.validated_data['parent_id'],
        )

        result_serializer = MovedCategorySerializer(
            {'id': moved.id, 'level': moved.level, 'position': moved.position}
        )
        return Response(result_serializer.data)


class CategoryReorderView(CategoryBaseView):
    """Reorder the children of one parent."""

    @extend_schema(
        tags=['Categories'],
        summary='Reorder categories',
        description='ordered_ids must list every current child of parent_id exactly once.',
        request=CategoryReorderSerializer,
        responses={200: CategorySerializer(many=True)},
    )
    def post(self, request, store_id):
        serializer = CategoryReorderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        categories = self.category_service.reorder_categories(
            store_id,
            serializer.validated_data['parent_id'],
            serializer.validated_data['ordered_ids'],
        )

        result_serializer = CategorySerializer(categories, many=True)
        return Response(result_serializer.data)


class CategoryDeletableView(CategoryBaseView):
    """Check whether a category can be deleted."""

    @extend_schema(
        tags=['Categories'],
        summary='Check category deletion',
        responses={200: DeletionCheckSerializer},
    )
    def get(self, request, store_id, category_id):
        check = self.category_service.check_deletable(store_id, category_id)
        serializer = DeletionCheckSerializer({
            'allowed': check.allowed,
            'reason': check.reason.value if check.reason else None,
        })
        return Response(serializer.data)
