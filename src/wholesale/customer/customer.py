"""Customer aggregate: the order statistics kept against each buyer account.

Only the slice of the customer record that order placement and cancellation
touch lives here. Accounts themselves are issued by the identity provider;
a statistics record is opened the first time a customer places an order.
"""

from datetime import UTC, datetime

from protean import atomic_change
from protean.fields import DateTime, Float, Integer, String

from wholesale.domain import wholesale
from wholesale.pricing import money


@wholesale.aggregate
class Customer:
    business_name: String(max_length=200)
    email: String(max_length=254)
    total_orders: Integer(default=0)
    total_spent: Float(default=0.0)
    last_order_date: DateTime()
    registered_at: DateTime()

    @classmethod
    def register(cls, customer_id, business_name=None, email=None):
        return cls(
            id=customer_id,
            business_name=business_name,
            email=email,
            total_orders=0,
            total_spent=0.0,
            registered_at=datetime.now(UTC),
        )

    def record_order(self, amount, placed_at=None):
        with atomic_change(self):
            self.total_orders += 1
            self.total_spent = money(self.total_spent + amount)
            self.last_order_date = placed_at or datetime.now(UTC)

    def reverse_order(self, amount):
        """Undo ``record_order`` for a cancelled order: exactly one order and its total."""
        with atomic_change(self):
            self.total_orders -= 1
            self.total_spent = money(self.total_spent - amount)
