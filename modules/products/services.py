"""
Products module service layer.
"""
from .models import ProductModel


class ProductService:
    """
    Product queries other modules depend on.
    """

    def has_products_in_category(self, store_id: str, category_id: int) -> bool:
        """Check whether any live product of the store references the category."""
        return ProductModel.objects.filter(
            store_id=store_id,
            category_id=category_id,
            deleted_at__isnull=True,
        ).exists()
