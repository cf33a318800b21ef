from __future__ import annotations

import argparse

from services.checkout.app.db.database import db_session
from services.checkout.app.db.init_db import init_db
from services.checkout.app.db.models import Product
from services.checkout.app.db.seed import seed_demo_store


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed a demo storefront catalog")
    parser.add_argument("--store-id", default="demo-store")
    parser.add_argument(
        "--restock",
        action="store_true",
        help="Refill every limited product to its daily quota",
    )
    args = parser.parse_args()

    init_db()

    db = db_session()
    try:
        store = seed_demo_store(db, store_id=args.store_id)

        if args.restock:
            rows = (
                db.query(Product)
                .filter(Product.store_id == store.id, Product.daily_stock.is_not(None))
                .all()
            )
            for row in rows:
                row.current_stock = row.daily_stock
                row.stock_last_reset = None
            db.commit()
            print(f"Restocked {len(rows)} product(s)")

        print(f"Seeded store={store.id}")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    raise SystemExit(main())
