"""Order service: checkout orchestration and order CRUD.

``OrderService.create_order`` turns a cart into an order inside one unit of
work: it saves the order, decrements stock for every cart entry, copies the
cart into a fresh cart for the same user and empties the original. Any
failure rolls all of it back and is re-raised unchanged.

Concurrent checkouts are not serialized. Two requests for the same cart or
product can read the same quantities and both decrement them.
"""

import datetime as dt
import logging
from decimal import Decimal
from typing import Optional

from .domain import (
    EmailNotifierPort,
    EntityNotFoundError,
    OrderMapperPort,
    OrderRepositoryPort,
    PaymentMethod,
    Repository,
    UnitOfWork,
    UserRepositoryPort,
)
from .models import Cart, CartEntry, Order, Product, User
from .schemas import CreateOrderDTO, UpdateOrderDTO

logger = logging.getLogger("storefront.orders")


class OrderService:
    """Service responsible for placing and maintaining orders.

    All collaborators are passed in explicitly. Repositories are expected to
    share the session driven by ``uow`` so that everything written inside
    ``uow.transaction()`` commits or rolls back together.
    """

    def __init__(
        self,
        uow: UnitOfWork,
        users: UserRepositoryPort,
        orders: OrderRepositoryPort,
        carts: Repository[Cart],
        cart_entries: Repository[CartEntry],
        products: Repository[Product],
        mapper: OrderMapperPort,
        notifier: Optional[EmailNotifierPort] = None,
    ):
        """Initialize the service with required dependencies.

        Args:
            uow: Transaction boundary shared by the repositories.
            users: User lookups.
            orders: Order persistence.
            carts: Cart persistence.
            cart_entries: Cart entry persistence.
            products: Product persistence.
            mapper: Converts ``CreateOrderDTO`` into an unsaved ``Order``.
            notifier: Optional email sender for order confirmations. When
                None no confirmation is sent.
        """
        self.uow = uow
        self.users = users
        self.orders = orders
        self.carts = carts
        self.cart_entries = cart_entries
        self.products = products
        self.mapper = mapper
        self.notifier = notifier

    # ---- checkout ----

    def create_order(self, dto: CreateOrderDTO) -> Order:
        """Place an order for ``dto.cart_id`` and roll the cart over.

        Steps, all in one transaction: resolve the user, parse the payment
        method, fill missing addresses from the user's defaults, save the
        order, decrement stock per cart entry, duplicate the cart and clear
        the original.

        Args:
            dto: Validated create-order request.

        Returns:
            The saved order.

        Raises:
            EntityNotFoundError: If the user or the cart does not exist.
            InvalidArgumentError: If the payment method is missing or not a
                ``PaymentMethod`` name.
        """
        logger.info("Attempting to create order", extra={"order_request": dto.model_dump(mode="json")})
        try:
            with self.uow.transaction():
                user = self._get_user(dto.user_id)
                payment_method = PaymentMethod.parse(dto.payment_method)

                order = self.mapper.order_dto_to_order(dto)
                order.order_date = dt.date.today()
                order.total_price = dto.total_price
                order.payment_method = payment_method
                order.delivery_address = (
                    dto.delivery_address if dto.delivery_address is not None else user.default_delivery_address
                )
                order.invoice_address = (
                    dto.invoice_address if dto.invoice_address is not None else user.default_billing_address
                )

                saved = self.orders.save(order)
                logger.info("Order saved with ID: %s", saved.id)

                cart = self._get_cart(dto.cart_id)
                self.update_product_quantities(cart)
                new_cart = self.create_new_cart_from_old_cart(cart)
                logger.info("Cart %s duplicated into cart %s", cart.id, new_cart.id)
                self.clear_cart(cart)
                logger.info("Cart cleared for Cart ID: %s", cart.id)
        except Exception as e:
            logger.error("Error creating order: %s", e, exc_info=True)
            raise

        self._send_confirmation(user, saved)
        return saved

    def update_product_quantities(self, cart: Cart) -> None:
        """Decrement each entry's product stock by the entry quantity.

        Stock is not checked and may go negative; that case is logged.
        """
        for entry in cart.entries:
            product = entry.product
            product.available_quantity = product.available_quantity - entry.quantity
            if product.available_quantity < 0:
                logger.warning(
                    "Product %s oversold, available quantity is now %s",
                    product.id,
                    product.available_quantity,
                )
            self.products.save(product)
        logger.info("Product quantities updated for Cart ID: %s", cart.id)

    def create_new_cart_from_old_cart(self, old_cart: Cart) -> Cart:
        """Save a copy of ``old_cart`` (same user, total and entries)."""
        new_cart = self.carts.save(Cart(user_id=old_cart.user_id, total_price=old_cart.total_price))
        for entry in old_cart.entries:
            self.cart_entries.save(
                CartEntry(
                    cart_id=new_cart.id,
                    product_id=entry.product_id,
                    quantity=entry.quantity,
                    price_per_piece=entry.price_per_piece,
                    total_price_per_entry=entry.total_price_per_entry,
                )
            )
        return new_cart

    def clear_cart(self, cart: Cart) -> Cart:
        """Remove every entry from ``cart`` and reset its total to zero."""
        logger.info("Clearing cart with ID: %s", cart.id)
        cart.entries.clear()
        cart.total_price = Decimal("0")
        return self.carts.save(cart)

    # ---- reads / maintenance ----

    def get_order_by_id(self, order_id: int) -> Optional[Order]:
        return self.orders.find_by_id(order_id)

    def list_orders(self, page: int = 1, page_size: int = 20) -> tuple[int, list[Order]]:
        """Return ``(total_count, orders)`` for a 1-based page, newest first."""
        page = max(1, page)
        page_size = max(1, page_size)
        return self.orders.count(), self.orders.page((page - 1) * page_size, page_size)

    def update_order(self, details: UpdateOrderDTO, order_id: int) -> Order:
        """Overwrite every editable field of order ``order_id``.

        Raises:
            EntityNotFoundError: If the order, or the user or cart it is
                being pointed at, does not exist.
        """
        with self.uow.transaction():
            order = self.orders.find_by_id(order_id)
            if order is None:
                raise self._not_found("Order", order_id)
            self._get_user(details.user_id)
            self._get_cart(details.cart_id)
            order.user_id = details.user_id
            order.cart_id = details.cart_id
            order.payment_method = details.payment_method
            order.delivery_address = details.delivery_address
            order.invoice_address = details.invoice_address
            order.total_price = details.total_price
            order.order_date = details.order_date
            saved = self.orders.save(order)
        logger.info("Order %s updated", order_id)
        return saved

    def delete_order(self, order_id: int) -> None:
        """Delete order ``order_id``.

        Raises:
            EntityNotFoundError: If the order does not exist.
        """
        with self.uow.transaction():
            if not self.orders.exists_by_id(order_id):
                raise self._not_found("Order", order_id)
            self.orders.delete_by_id(order_id)
        logger.info("Order %s deleted", order_id)

    # ---- helpers ----

    def _get_user(self, user_id: int) -> User:
        user = self.users.find_by_id(user_id)
        if user is None:
            raise self._not_found("User", user_id)
        return user

    def _get_cart(self, cart_id: int) -> Cart:
        cart = self.carts.find_by_id(cart_id)
        if cart is None:
            raise self._not_found("Cart", cart_id)
        return cart

    @staticmethod
    def _not_found(kind: str, id: int) -> EntityNotFoundError:
        logger.warning("%s not found with id: %s", kind, id)
        return EntityNotFoundError(f"{kind} not found with id: {id}")

    def _send_confirmation(self, user: User, order: Order) -> None:
        # Runs after commit; a failed email does not undo the order.
        if self.notifier is None:
            return
        try:
            self.notifier.send_order_confirmation(
                user.email,
                "Order confirmation",
                f"Your order number {order.id} has been placed successfully.",
            )
        except Exception:
            logger.exception("Order confirmation email failed for order %s", order.id)
