"""SQLAlchemy repositories and the unit of work that commits them.

Every repository wraps the same ``Session`` so the writes of one checkout
share a single database transaction. Repositories only ``flush`` (so new
rows get their ids); committing or rolling back is the unit of work's job.
"""

import logging
from contextlib import contextmanager
from typing import Generic, Optional, Type, TypeVar

from sqlalchemy import exists, func, select
from sqlalchemy.orm import Session

from .models import Cart, CartEntry, Order, Product, User

logger = logging.getLogger("storefront.repository")

T = TypeVar("T")


class SqlAlchemyRepository(Generic[T]):
    """Generic find/save/exists/delete operations for one mapped class."""

    model: Type[T]

    def __init__(self, session: Session):
        self.session = session

    def find_by_id(self, id: int) -> Optional[T]:
        return self.session.get(self.model, id)

    def find_all(self) -> list[T]:
        return list(self.session.scalars(select(self.model).order_by(self.model.id)))

    def save(self, entity: T) -> T:
        """Add ``entity`` to the session and flush it.

        Returns:
            The same instance, with its primary key populated.
        """
        self.session.add(entity)
        self.session.flush()
        return entity

    def exists_by_id(self, id: int) -> bool:
        return bool(self.session.scalar(select(exists().where(self.model.id == id))))

    def delete_by_id(self, id: int) -> None:
        obj = self.session.get(self.model, id)
        if obj is not None:
            self.session.delete(obj)
            self.session.flush()


class UserRepository(SqlAlchemyRepository[User]):
    model = User

    def find_by_email(self, email: str) -> Optional[User]:
        return self.session.scalars(select(User).where(User.email == email)).first()

    def exists_by_email(self, email: str) -> bool:
        return bool(self.session.scalar(select(exists().where(User.email == email))))


class OrderRepository(SqlAlchemyRepository[Order]):
    model = Order

    def count(self) -> int:
        return self.session.scalar(select(func.count()).select_from(Order)) or 0

    def page(self, offset: int, limit: int) -> list[Order]:
        """Return orders newest first (by order date, then id)."""
        stmt = (
            select(Order)
            .order_by(Order.order_date.desc(), Order.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(self.session.scalars(stmt))


class CartRepository(SqlAlchemyRepository[Cart]):
    model = Cart


class CartEntryRepository(SqlAlchemyRepository[CartEntry]):
    model = CartEntry


class ProductRepository(SqlAlchemyRepository[Product]):
    model = Product


class SqlAlchemyUnitOfWork:
    """Transaction boundary over one ``Session``.

    Use ``with uow.transaction():`` around a sequence of repository calls.
    On normal exit the session is committed; on any exception it is rolled
    back and the exception propagates unchanged.
    """

    def __init__(self, session: Session):
        self.session = session

    @contextmanager
    def transaction(self):
        try:
            yield self
            self.session.commit()
        except Exception:
            logger.warning("rolling back transaction")
            self.session.rollback()
            raise
