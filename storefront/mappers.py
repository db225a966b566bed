"""Mapping between order transfer objects and ORM rows."""

from .models import Order
from .schemas import CreateOrderDTO


class OrderMapper:
    """Build unsaved ``Order`` rows from create-order requests.

    Only the fields carried verbatim by the request are copied. Payment
    method, addresses and order date are resolved by ``OrderService``.
    """

    def order_dto_to_order(self, dto: CreateOrderDTO) -> Order:
        return Order(
            user_id=dto.user_id,
            cart_id=dto.cart_id,
            total_price=dto.total_price,
        )
