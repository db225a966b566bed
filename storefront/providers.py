"""Service provider helpers for wiring OrderService with its collaborators.

``get_order_service`` builds an ``OrderService`` whose repositories and
unit of work share one session. The email notifier is chosen from
settings: none unless ``SEND_ORDER_CONFIRMATION`` is on, then the HTTP
client when ``USE_HTTP_ADAPTERS`` is on and the in-process stub otherwise.
"""

from typing import Optional

from fastapi import Depends
from sqlalchemy.orm import Session

from . import settings
from .adapters import EmailNotifierStub
from .db import get_db
from .domain import EmailNotifierPort
from .http_adapters import HttpEmailClient
from .mappers import OrderMapper
from .repository import (
    CartEntryRepository,
    CartRepository,
    OrderRepository,
    ProductRepository,
    SqlAlchemyUnitOfWork,
    UserRepository,
)
from .services import OrderService


def get_email_notifier() -> Optional[EmailNotifierPort]:
    if not getattr(settings, "SEND_ORDER_CONFIRMATION", False):
        return None
    if getattr(settings, "USE_HTTP_ADAPTERS", True):
        return HttpEmailClient()
    return EmailNotifierStub()


def build_order_service(session: Session, notifier: Optional[EmailNotifierPort] = None) -> OrderService:
    """Return an OrderService whose collaborators all use ``session``."""
    return OrderService(
        uow=SqlAlchemyUnitOfWork(session),
        users=UserRepository(session),
        orders=OrderRepository(session),
        carts=CartRepository(session),
        cart_entries=CartEntryRepository(session),
        products=ProductRepository(session),
        mapper=OrderMapper(),
        notifier=notifier,
    )


def get_order_service(session: Session = Depends(get_db)) -> OrderService:
    """FastAPI dependency returning a per-request OrderService."""
    return build_order_service(session, notifier=get_email_notifier())
