"""Domain enums, errors and ports for the checkout workflow.

This module holds the payment method enumeration, the two error kinds the
service raises, and protocol definitions (ports) for the collaborators the
order service depends on: repositories, the unit of work, the order mapper
and the email notifier. Concrete implementations live in ``repository``,
``mappers``, ``adapters`` and ``http_adapters``.
"""

from contextlib import AbstractContextManager
from enum import Enum
from typing import TYPE_CHECKING, List, Optional, Protocol, TypeVar

if TYPE_CHECKING:
    from .models import Order, User
    from .schemas import CreateOrderDTO


T = TypeVar("T")


# ---- Enums ----
class PaymentMethod(str, Enum):
    """Payment methods accepted at checkout.

    Values equal member names so ``PaymentMethod[name]`` and
    ``PaymentMethod(name)`` agree.
    """

    CARD = "CARD"
    CASH_ON_DELIVERY = "CASH_ON_DELIVERY"
    BANK_TRANSFER = "BANK_TRANSFER"
    PAYPAL = "PAYPAL"

    @classmethod
    def parse(cls, name: Optional[str]) -> "PaymentMethod":
        """Parse a payment method by exact member name.

        Raises:
            InvalidArgumentError: If ``name`` is None or not a member name.
        """
        if name is None:
            raise InvalidArgumentError("Invalid or missing payment method.")
        try:
            return cls[name]
        except KeyError:
            raise InvalidArgumentError(f"Invalid or missing payment method: {name!r}.") from None


# ---- Errors ----
class EntityNotFoundError(LookupError):
    """A user, cart or order referenced by id does not exist."""

    code = "NOT_FOUND"


class InvalidArgumentError(ValueError):
    """A request field is missing or cannot be parsed."""

    code = "INVALID_ARGUMENT"


# ---- Ports (DIP) ----
class Repository(Protocol[T]):
    """Port describing the basic persistence operations for one entity type."""

    def find_by_id(self, id: int) -> Optional[T]:
        raise NotImplementedError()

    def find_all(self) -> List[T]:
        raise NotImplementedError()

    def save(self, entity: T) -> T:
        """Persist ``entity`` and return it with its identifier assigned."""
        raise NotImplementedError()

    def exists_by_id(self, id: int) -> bool:
        raise NotImplementedError()

    def delete_by_id(self, id: int) -> None:
        raise NotImplementedError()


class UserRepositoryPort(Repository["User"], Protocol):
    """User persistence with lookups by email."""

    def find_by_email(self, email: str) -> Optional["User"]:
        raise NotImplementedError()

    def exists_by_email(self, email: str) -> bool:
        raise NotImplementedError()


class OrderRepositoryPort(Repository["Order"], Protocol):
    """Order persistence with newest-first paging."""

    def count(self) -> int:
        raise NotImplementedError()

    def page(self, offset: int, limit: int) -> List["Order"]:
        raise NotImplementedError()


class UnitOfWork(Protocol):
    """Port describing a transaction boundary.

    ``transaction()`` returns a context manager that commits every write
    made through the repositories on normal exit and rolls all of them back
    when the block raises.
    """

    def transaction(self) -> AbstractContextManager:
        raise NotImplementedError()


class OrderMapperPort(Protocol):
    """Port converting a create-order request into an unsaved order."""

    def order_dto_to_order(self, dto: "CreateOrderDTO") -> "Order":
        raise NotImplementedError()


class EmailNotifierPort(Protocol):
    """Port describing outbound email used for order confirmations."""

    def send_order_confirmation(self, to: str, subject: str, body: str) -> None:
        """Send a confirmation message.

        Args:
            to: Recipient email address.
            subject: Message subject.
            body: Plain-text message body.

        Raises:
            NotImplementedError: If the method is not implemented by the
                concrete class.
        """
        raise NotImplementedError()
