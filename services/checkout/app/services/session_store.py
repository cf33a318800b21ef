from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from threading import Lock
from uuid import uuid4

from packages.shared.schemas.catalog_v1 import ProductV1, StoreV1
from services.checkout.app.services.checkout_base import (
    CartLine,
    ProductNotFoundError,
    SessionNotFoundError,
)
from services.checkout.app.services.stock import StockManager

logger = logging.getLogger(__name__)

DEFAULT_SESSION_TTL = timedelta(hours=2)


@dataclass
class CheckoutSession:
    """Everything one shopper's checkout owns: the cart and its private stock cache."""

    store: StoreV1
    products: dict[str, ProductV1]
    stock: StockManager
    lines: list[CartLine] = field(default_factory=list)
    id: str = field(default_factory=lambda: uuid4().hex)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    # Held while the cart or the stock cache is read-modified-written.
    lock: Lock = field(default_factory=Lock, repr=False, compare=False)

    @classmethod
    def start(cls, store: StoreV1, products: list[ProductV1]) -> CheckoutSession:
        return cls(
            store=store,
            products={p.id: p for p in products},
            stock=StockManager.from_products(products),
        )

    def product(self, product_id: str) -> ProductV1:
        product = self.products.get(product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        return product


class InMemorySessionStore:
    """Process-local session registry.

    Sessions expire `ttl` after they were started; expired entries are swept on every
    save and lookup.
    """

    def __init__(
        self,
        ttl: timedelta = DEFAULT_SESSION_TTL,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._sessions: dict[str, CheckoutSession] = {}
        self._lock = Lock()
        self.ttl = ttl
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def _sweep(self) -> None:
        cutoff = self._clock() - self.ttl
        expired = [sid for sid, s in self._sessions.items() if s.created_at <= cutoff]
        for sid in expired:
            del self._sessions[sid]
        if expired:
            logger.info("Expired %d checkout session(s)", len(expired))

    def save(self, session: CheckoutSession) -> None:
        with self._lock:
            self._sweep()
            self._sessions[session.id] = session

    def get(self, session_id: str) -> CheckoutSession:
        with self._lock:
            self._sweep()
            session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def discard(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)


sessions = InMemorySessionStore()
