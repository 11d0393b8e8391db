"""
Categories serializers.
"""
from rest_framework import serializers

from .models import CategoryModel


class CategorySerializer(serializers.ModelSerializer):
    """Serializer for categories."""

    parent_id = serializers.IntegerField(read_only=True, allow_null=True)
    children_count = serializers.SerializerMethodField()

    class Meta:
        model = CategoryModel
        fields = [
            'id',
            'store_id',
            'name',
            'slug',
            'description',
            'parent_id',
            'level',
            'position',
            'children_count',
            'created_at',
            'updated_at',
            'deleted_at',
        ]
        read_only_fields = fields

    def get_children_count(self, obj) -> int:
        """Get number of direct children."""
        return obj.children.filter(deleted_at__isnull=True).count()


class CategoryCreateSerializer(serializers.Serializer):
    """Serializer for creating category."""

    name = serializers.CharField(max_length=50)
    slug = serializers.SlugField(max_length=80, allow_unicode=True, required=False)
    description = serializers.CharField(max_length=500, required=False, allow_blank=True)
    parent_id = serializers.IntegerField(required=False, allow_null=True, min_value=1)


class CategoryUpdateSerializer(serializers.Serializer):
    """Serializer for updating category. Parent changes use the move endpoint."""

    name = serializers.CharField(max_length=50, required=False)
    slug = serializers.SlugField(max_length=80, allow_unicode=True, required=False)
    description = serializers.CharField(max_length=500, required=False, allow_blank=True)


class CategoryMoveSerializer(serializers.Serializer):
    """Serializer for moving a category; null parent_id moves it to root."""

    parent_id = serializers.IntegerField(allow_null=True, min_value=1)


class CategoryReorderSerializer(serializers.Serializer):
    """Serializer for reordering the children of one parent."""

    parent_id = serializers.IntegerField(required=False, allow_null=True, default=None, min_value=1)
    ordered_ids = serializers.ListField(
        child=serializers.IntegerField(min_value=1),
        allow_empty=True,
    )


class MovedCategorySerializer(serializers.Serializer):
    """Serializer for the result of a move."""

    id = serializers.IntegerField()
    level = serializers.IntegerField()
    position = serializers.IntegerField()


class DeletionCheckSerializer(serializers.Serializer):
    """Serializer for a deletion check."""

    allowed = serializers.BooleanField()
    reason = serializers.CharField(allow_null=True)


class CategoryTreeSerializer(serializers.Serializer):
    """Serializer for category tree structure."""

    id = serializers.IntegerField()
    name = serializers.CharField()
    slug = serializers.CharField()
    level = serializers.IntegerField()
    position = serializers.IntegerField()
    children = serializers.ListField(
        child=serializers.DictField(),
        required=False
    )
    product_count = serializers.IntegerField(required=False)
    children_count = serializers.IntegerField(required=False)
