"""Repository for the Product aggregate."""

from wholesale.catalogue.product import Product
from wholesale.domain import wholesale


@wholesale.repository(part_of=Product)
class ProductRepository:
    def find_by_sku(self, sku: str) -> Product | None:
        items = self._dao.query.filter(sku=sku).all().items
        return items[0] if items else None

    def find_many(self, product_ids) -> dict[str, Product]:
        """Load the listed products that still exist, keyed by id."""
        ids = {str(product_id) for product_id in product_ids}
        if not ids:
            return {}
        products = self._dao.query.filter(id__in=list(ids)).limit(len(ids)).all().items
        return {str(product.id): product for product in products}
