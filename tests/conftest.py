import os
from pathlib import Path

import pytest
from protean.integrations.pytest import DomainFixture


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Select the config overlay before any test module imports the domain."""
    os.environ["PROTEAN_ENV"] = session.config.option.env
    # Log to stdout only; no rotating files under the working directory
    os.environ.setdefault("LOG_DIR", "")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = str(Path(item.fspath))

        if "/domain/" in test_path:
            item.add_marker(pytest.mark.domain)
        elif "/application/" in test_path:
            item.add_marker(pytest.mark.application)
        elif "/bdd/" in test_path:
            item.add_marker(pytest.mark.bdd)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)
            # Integration tests are often slower
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


@pytest.fixture(scope="session")
def wholesale_bed():
    from wholesale.domain import wholesale

    bed = DomainFixture(wholesale)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(wholesale_bed):
    with wholesale_bed.domain_context():
        yield


# ---------------------------------------------------------------------------
# Catalogue and checkout fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def customer_id():
    return "cust-001"


@pytest.fixture()
def make_product():
    """Add a product to the catalogue and return it as persisted."""
    from protean import current_domain
    from wholesale.catalogue.management import AddProduct
    from wholesale.catalogue.product import Product

    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        attributes = {
            "name": f"Product {counter['n']}",
            "sku": f"SKU-{counter['n']:03d}",
            "price": 100.0,
            "stock_quantity": 50,
            "min_order_quantity": 1,
            "max_order_quantity": 100,
        }
        attributes.update(overrides)
        product_id = current_domain.process(AddProduct(**attributes), asynchronous=False)
        return current_domain.repository_for(Product).get(product_id)

    return _make


@pytest.fixture()
def shipping_address():
    return {
        "street": "14 MG Road",
        "city": "Bengaluru",
        "state": "Karnataka",
        "pincode": "560001",
        "phone": "9876543210",
    }
