from storefront.models.categories import Category
from storefront.models.products import Product

__all__ = ["Category", "Product"]
