"""Repository for the Order aggregate, with the paginated reads the API serves."""

import math

from protean.exceptions import ObjectNotFoundError

from wholesale.domain import wholesale
from wholesale.errors import OrderNotFound
from wholesale.order.order import Order

MAX_PAGE_SIZE = 50


class OrderPage:
    """One page of orders, newest first."""

    def __init__(self, orders, page, limit, total):
        self.orders = orders
        self.page = page
        self.limit = limit
        self.total = total

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.total else 0

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    def pagination(self) -> dict:
        return {
            "current_page": self.page,
            "total_pages": self.total_pages,
            "total_orders": self.total,
            "has_next": self.has_next,
            "has_prev": self.has_prev,
        }


@wholesale.repository(part_of=Order)
class OrderRepository:
    def count_placed_in(self, year: int) -> int:
        return self._dao.query.filter(placed_year=year).count()

    def find_for_customer(self, order_id, customer_id) -> Order:
        """The order, only if it belongs to ``customer_id``; ``OrderNotFound`` otherwise."""
        try:
            order = self.get(order_id)
        except ObjectNotFoundError:
            order = None

        if order is None or str(order.customer_id) != str(customer_id):
            raise OrderNotFound(f"Order {order_id} not found", order_id=str(order_id))
        return order

    def find_by_id(self, order_id) -> Order:
        try:
            return self.get(order_id)
        except ObjectNotFoundError:
            raise OrderNotFound(f"Order {order_id} not found", order_id=str(order_id)) from None

    def list_for_customer(self, customer_id, page=1, limit=10, status=None) -> OrderPage:
        criteria = {"customer_id": str(customer_id)}
        if status:
            criteria["status"] = status
        return self._page(criteria, page, limit)

    def list_all(self, page=1, limit=20, status=None, payment_status=None) -> OrderPage:
        criteria = {}
        if status:
            criteria["status"] = status
        if payment_status:
            criteria["payment_status"] = payment_status
        return self._page(criteria, page, limit)

    def _page(self, criteria, page, limit) -> OrderPage:
        page = max(int(page), 1)
        limit = min(max(int(limit), 1), MAX_PAGE_SIZE)

        query = self._dao.query.filter(**criteria) if criteria else self._dao.query
        results = query.order_by("-order_date").offset((page - 1) * limit).limit(limit).all()
        return OrderPage(results.items, page, limit, results.total)
