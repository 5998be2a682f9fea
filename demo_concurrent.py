import asyncio
import os

from sdk.pycatalog import CatalogClient


async def simulate_checkout(client, label, product_id, qty):
    r = await client.decrement_stock_async(product_id, qty)
    if r.status_code == 200:
        print(f"✅ {label} took {qty} units ({r.json()['message']})")
    elif r.status_code == 400:
        print(f"❌ {label} rejected: {r.json()['detail']}")
    elif r.status_code == 404:
        print(f"❌ {label} rejected: product not found.")
    else:
        print(f"⚠️  {label} unexpected response {r.status_code}: {r.text}")


async def main():
    c = CatalogClient(base_url=os.getenv("CATALOG_API_URL", "http://127.0.0.1:8085"))

    product = c.create_product("Gaming Laptop", "1499.99", stock_available=2,
                               description="Two units, five buyers")
    product_id = product["id"]
    print(f"\n🖥️  Created product: {product}")

    print("\n⚡ Simulating concurrent stock decrements...")
    await asyncio.gather(*[
        simulate_checkout(c, f"buyer-{i}", product_id, 1) for i in range(5)
    ])

    final = c.get_product(product_id)
    print("\n📦 Final product state:", final)
    assert final["stock_available"] >= 0

    c.delete_product(product_id)


if __name__ == "__main__":
    asyncio.run(main())
