#import wszystkich modeli zeby SQLAlchemy je zarejestrowal w base metadata

from storefront.data.models.product_variation import ProductVariationModel, ProductImageModel
from storefront.data.models.cart import CartModel
from storefront.data.models.cart_item import CartItemModel

__all__ = ["ProductVariationModel", "ProductImageModel", "CartModel", "CartItemModel"]
