from __future__ import annotations

import os

from services.checkout.app.config import parse_bool
from services.checkout.app.db.database import get_engine
from services.checkout.app.db.models import Base


def init_db() -> None:
    if not parse_bool(os.getenv("STOREFRONT_DB_AUTO_CREATE", "true")):
        return

    engine = get_engine()
    Base.metadata.create_all(bind=engine)
