"""Customer statistics interface used by order placement and cancellation."""

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from wholesale.customer.customer import Customer


def customer_stats(customer_id) -> Customer:
    """Load the statistics record for ``customer_id``, opening one if needed."""
    repo = current_domain.repository_for(Customer)
    try:
        return repo.get(customer_id)
    except ObjectNotFoundError:
        return Customer.register(customer_id)


def increment_order_stats(customer_id, amount, placed_at=None) -> Customer:
    customer = customer_stats(customer_id)
    customer.record_order(amount, placed_at=placed_at)
    current_domain.repository_for(Customer).add(customer)
    return customer


def decrement_order_stats(customer_id, amount) -> Customer:
    customer = customer_stats(customer_id)
    customer.reverse_order(amount)
    current_domain.repository_for(Customer).add(customer)
    return customer
