# FILE: grantplan/services/catalog.py
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional

from grantplan.core.config import get_product_config
from grantplan.services.errors import InvalidProductError


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    credits: int
    price: int


class ProductCatalog:
    """Resolves product ids to price + credit grant."""

    def __init__(self, products: Mapping[str, Mapping]):
        self._products: Dict[str, Product] = {}
        for pid, p in products.items():
            credits = int(p["credits"])
            price = int(p["price"])
            if credits <= 0 or price < 0:
                raise ValueError(f"Invalid product definition for {pid!r}")
            self._products[pid] = Product(id=pid, name=str(p.get("name") or pid), credits=credits, price=price)

    @classmethod
    def from_config(cls) -> "ProductCatalog":
        return cls(get_product_config())

    def get(self, product_id: Optional[str]) -> Product:
        product = self._products.get(str(product_id or ""))
        if not product:
            raise InvalidProductError(f"Invalid product: {product_id}")
        return product

    def list(self) -> List[Product]:
        return list(self._products.values())


_catalog: Optional[ProductCatalog] = None


def get_catalog() -> ProductCatalog:
    global _catalog
    if _catalog is None:
        _catalog = ProductCatalog.from_config()
    return _catalog
