"""SQLAlchemy models for users, products, carts, cart entries and orders.

Money is stored as ``NUMERIC(10, 2)`` and handled as ``Decimal``. Address
columns hold address identifiers; ``NULL`` means no address is known.
"""

from decimal import Decimal

from sqlalchemy import (
    JSON,
    Date,
    Enum as SAEnum,
    ForeignKey,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.orm import mapped_column, relationship

from .db import Base
from .domain import PaymentMethod

Money = Numeric(10, 2)


class User(Base):
    """Customer account.

    Attributes:
        id: Integer primary key.
        email: Unique login/contact email.
        default_delivery_address: Address id used when an order omits a
            delivery address.
        default_billing_address: Address id used when an order omits an
            invoice address.
    """
    __tablename__ = "users"

    id = mapped_column(Integer, primary_key=True)
    email = mapped_column(String(255), unique=True, nullable=False)
    default_delivery_address = mapped_column(Integer, nullable=True)
    default_billing_address = mapped_column(Integer, nullable=True)

    def __repr__(self) -> str:
        return f"User(id={self.id!r}, email={self.email!r})"


class Product(Base):
    __tablename__ = "products"

    id = mapped_column(Integer, primary_key=True)
    name = mapped_column(String(200), nullable=False, default="")
    price = mapped_column(Money, nullable=False, default=Decimal("0"))
    # Not constrained to >= 0: checkout decrements without a stock check.
    available_quantity = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"Product(id={self.id!r}, available_quantity={self.available_quantity!r})"


class Cart(Base):
    """Shopping cart owned by a user.

    Removing an entry from ``entries`` deletes its row (delete-orphan), which
    is how a cart is cleared after checkout.
    """
    __tablename__ = "carts"

    id = mapped_column(Integer, primary_key=True)
    user_id = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    total_price = mapped_column(Money, nullable=False, default=Decimal("0"))

    user = relationship("User")
    entries = relationship(
        "CartEntry",
        back_populates="cart",
        cascade="all, delete-orphan",
        order_by="CartEntry.id",
    )

    def __repr__(self) -> str:
        return f"Cart(id={self.id!r}, user_id={self.user_id!r}, total_price={self.total_price!r})"


class CartEntry(Base):
    __tablename__ = "cart_entries"

    id = mapped_column(Integer, primary_key=True)
    cart_id = mapped_column(Integer, ForeignKey("carts.id"), nullable=False)
    product_id = mapped_column(Integer, ForeignKey("products.id"), nullable=False)
    quantity = mapped_column(Integer, nullable=False, default=1)
    price_per_piece = mapped_column(Money, nullable=False, default=Decimal("0"))
    total_price_per_entry = mapped_column(Money, nullable=False, default=Decimal("0"))

    cart = relationship("Cart", back_populates="entries")
    product = relationship("Product")


class Order(Base):
    """Placed order.

    Attributes:
        id: Integer primary key.
        user_id: Owning user.
        cart_id: Cart the order was placed from.
        payment_method: One of ``PaymentMethod``.
        delivery_address: Delivery address id.
        invoice_address: Invoice address id.
        total_price: Order total as submitted at checkout.
        order_date: Date the order was placed.
    """
    __tablename__ = "orders"

    id = mapped_column(Integer, primary_key=True)
    user_id = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    cart_id = mapped_column(Integer, ForeignKey("carts.id"), nullable=False)
    payment_method = mapped_column(
        SAEnum(PaymentMethod, name="payment_method", native_enum=False, length=32),
        nullable=False,
    )
    delivery_address = mapped_column(Integer, nullable=True)
    invoice_address = mapped_column(Integer, nullable=True)
    total_price = mapped_column(Money, nullable=False, default=Decimal("0"))
    order_date = mapped_column(Date, nullable=False)

    def __repr__(self) -> str:
        return f"Order(id={self.id!r}, user_id={self.user_id!r}, cart_id={self.cart_id!r})"


class IdempotencyKey(Base):
    """Persisted idempotency records to deduplicate order creation requests.

    Attributes:
        key: Unique idempotency key provided by the client.
        request_hash: Canonical SHA-256 hex digest of the original request.
        response_status: HTTP status stored once the request finished
            (0 while in progress).
        response_body: JSON body stored once the request finished.
        order_id: Created order, if any.
    """
    __tablename__ = "idempotency_keys"

    key = mapped_column(String(200), primary_key=True)
    request_hash = mapped_column(String(64), nullable=False)
    response_status = mapped_column(Integer, nullable=False, default=0)
    response_body = mapped_column(JSON, nullable=False, default=dict)
    order_id = mapped_column(Integer, nullable=True)
