from .customers_repo import CustomersRepo
from .products_repo import ProductsRepo

__all__ = ["CustomersRepo", "ProductsRepo"]
