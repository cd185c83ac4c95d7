"""Wholesale database management CLI.

Creates and drops the database schema, checks connectivity and seeds a
sample catalogue. Reuses the setup_db/drop_db/check_db utilities defined
alongside the domain.

Usage:
    python src/manage.py setup-db    # Create all tables
    python src/manage.py drop-db     # Drop all tables
    python src/manage.py check-db    # Probe every configured database
    python src/manage.py seed        # Load the sample catalogue and customers
"""

import argparse
import sys

SAMPLE_PRODUCTS = [
    {
        "name": "Basmati Rice 25kg",
        "sku": "RICE-BAS-25",
        "category": "Grains",
        "brand": "Harvest Gold",
        "unit": "bag",
        "price": 2150.0,
        "original_price": 2400.0,
        "stock_quantity": 400,
        "min_order_quantity": 5,
        "max_order_quantity": 100,
    },
    {
        "name": "Sunflower Oil 15L",
        "sku": "OIL-SUN-15",
        "category": "Edible Oils",
        "brand": "Sunpure",
        "unit": "tin",
        "price": 1890.0,
        "stock_quantity": 250,
        "min_order_quantity": 2,
        "max_order_quantity": 50,
    },
    {
        "name": "Toor Dal 30kg",
        "sku": "DAL-TOOR-30",
        "category": "Pulses",
        "brand": "Harvest Gold",
        "unit": "bag",
        "price": 3600.0,
        "original_price": 3750.0,
        "stock_quantity": 120,
        "min_order_quantity": 1,
        "max_order_quantity": 40,
    },
    {
        "name": "Refined Sugar 50kg",
        "sku": "SUG-REF-50",
        "category": "Sweeteners",
        "unit": "bag",
        "price": 2250.0,
        "stock_quantity": 0,
        "min_order_quantity": 2,
        "max_order_quantity": 30,
    },
]

SAMPLE_CUSTOMERS = [
    {"customer_id": "cust-demo-001", "business_name": "Sharma Kirana Stores", "email": "orders@sharmakirana.in"},
    {"customer_id": "cust-demo-002", "business_name": "Metro Fresh Mart", "email": "purchase@metrofresh.in"},
]


def setup_databases():
    from wholesale.domain import wholesale
    from wholesale.utils.db import setup_db

    print("Initializing wholesale domain...")
    wholesale.init()
    print("Creating wholesale database schema...")
    setup_db(wholesale)
    print("Done.")


def drop_databases():
    from wholesale.domain import wholesale
    from wholesale.utils.db import drop_db

    print("Initializing wholesale domain...")
    wholesale.init()
    print("Dropping wholesale database schema...")
    drop_db(wholesale)
    print("Done.")


def check_databases() -> bool:
    from wholesale.domain import wholesale
    from wholesale.utils.db import check_db

    wholesale.init()
    status = check_db(wholesale)
    for name, state in status.items():
        print(f"  {name}: {state}")
    return all(state == "ok" for state in status.values())


def seed():
    """Load the sample catalogue and customer records, skipping SKUs already present."""
    from wholesale.catalogue.management import AddProduct
    from wholesale.catalogue.product import Product
    from wholesale.customer.registration import RegisterCustomer
    from wholesale.domain import wholesale

    wholesale.init()
    with wholesale.domain_context():
        repo = wholesale.repository_for(Product)
        for attributes in SAMPLE_PRODUCTS:
            if repo.find_by_sku(attributes["sku"]) is not None:
                print(f"  {attributes['sku']} already present, skipped.")
                continue
            product_id = wholesale.process(AddProduct(**attributes), asynchronous=False)
            print(f"  {attributes['sku']} -> {product_id}")

        for attributes in SAMPLE_CUSTOMERS:
            wholesale.process(RegisterCustomer(**attributes), asynchronous=False)
            print(f"  customer {attributes['customer_id']} registered.")

    print("Done.")


def main():
    parser = argparse.ArgumentParser(description="Wholesale database management")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")
    subparsers.add_parser("check-db", help="Check connectivity to every configured database")
    subparsers.add_parser("seed", help="Load the sample catalogue and customers")

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_databases()
    elif args.command == "drop-db":
        drop_databases()
    elif args.command == "check-db":
        if not check_databases():
            sys.exit(1)
    elif args.command == "seed":
        seed()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
