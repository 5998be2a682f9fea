# sdk/pycatalog.py
from decimal import Decimal
from typing import Any, Dict, Optional, Union

import httpx
import requests


class CatalogClient:
    def __init__(self, base_url: str = "http://localhost:8085", api_key: Optional[str] = None,
                 timeout: int = 10, session: Optional[Any] = None):
        self.base_url = base_url.rstrip("/")
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout
        if api_key:
            self.session.headers.update({"Authorization": f"Bearer {api_key}"})

    @staticmethod
    def _product_payload(name: str, price: Union[Decimal, float, str], stock_available: int,
                         description: Optional[str]) -> Dict[str, Any]:
        return {
            "name": name,
            "description": description,
            "price": str(price),
            "stock_available": stock_available,
        }

    # Products
    def list_products(self):
        r = self.session.get(f"{self.base_url}/products", timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def get_product(self, product_id: str):
        r = self.session.get(f"{self.base_url}/products/{product_id}", timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def create_product(self, name: str, price: Union[Decimal, float, str], stock_available: int = 0,
                       description: Optional[str] = None):
        r = self.session.post(f"{self.base_url}/products",
                              json=self._product_payload(name, price, stock_available, description),
                              timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def update_product(self, product_id: str, name: str, price: Union[Decimal, float, str],
                       stock_available: int, description: Optional[str] = None):
        r = self.session.put(f"{self.base_url}/products/{product_id}",
                             json=self._product_payload(name, price, stock_available, description),
                             timeout=self.timeout)
        r.raise_for_status()
        return None

    def delete_product(self, product_id: str):
        r = self.session.delete(f"{self.base_url}/products/{product_id}", timeout=self.timeout)
        r.raise_for_status()
        return None

    # Stock
    def decrement_stock(self, product_id: str, quantity: int):
        r = self.session.put(f"{self.base_url}/products/decrement-stock/{product_id}/{quantity}",
                             timeout=self.timeout)
        # do not r.raise_for_status() — callers may want to inspect 400/404
        return r

    def add_stock(self, product_id: str, quantity: int):
        r = self.session.put(f"{self.base_url}/products/add-to-stock/{product_id}/{quantity}",
                             timeout=self.timeout)
        return r

    async def decrement_stock_async(self, product_id: str, quantity: int):
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            r = await client.put(f"{self.base_url}/products/decrement-stock/{product_id}/{quantity}")
            return r


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Product catalog CLI")
    parser.add_argument("--base-url", default="http://127.0.0.1:8085", help="Catalog API base URL")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("list-products", help="List all products")

    gp = subparsers.add_parser("get-product", help="Get a product by its ID")
    gp.add_argument("--product-id", required=True, help="ID of the product")

    cp = subparsers.add_parser("create-product", help="Create a new product")
    cp.add_argument("--name", required=True, help="Product name")
    cp.add_argument("--price", required=True, help="Unit price, e.g. 19.99")
    cp.add_argument("--stock", type=int, default=0, help="Units available")
    cp.add_argument("--description", help="Product description")

    up = subparsers.add_parser("update-product", help="Replace every field of a product")
    up.add_argument("--product-id", required=True, help="ID of the product")
    up.add_argument("--name", required=True, help="Product name")
    up.add_argument("--price", required=True, help="Unit price, e.g. 19.99")
    up.add_argument("--stock", type=int, required=True, help="Units available")
    up.add_argument("--description", help="Product description")

    dp = subparsers.add_parser("delete-product", help="Delete a product")
    dp.add_argument("--product-id", required=True, help="ID of the product")

    ds = subparsers.add_parser("decrement-stock", help="Take units out of stock")
    ds.add_argument("--product-id", required=True, help="ID of the product")
    ds.add_argument("--qty", type=int, required=True, help="Units to remove")

    ad = subparsers.add_parser("add-stock", help="Put units into stock")
    ad.add_argument("--product-id", required=True, help="ID of the product")
    ad.add_argument("--qty", type=int, required=True, help="Units to add")

    args = parser.parse_args()
    c = CatalogClient(base_url=args.base_url)

    if args.command == "list-products":
        print(c.list_products())
    elif args.command == "get-product":
        print(c.get_product(args.product_id))
    elif args.command == "create-product":
        print(c.create_product(args.name, args.price, args.stock, args.description))
    elif args.command == "update-product":
        c.update_product(args.product_id, args.name, args.price, args.stock, args.description)
        print(c.get_product(args.product_id))
    elif args.command == "delete-product":
        c.delete_product(args.product_id)
        print(f"deleted {args.product_id}")
    elif args.command == "decrement-stock":
        print(c.decrement_stock(args.product_id, args.qty).json())
    elif args.command == "add-stock":
        print(c.add_stock(args.product_id, args.qty).json())
