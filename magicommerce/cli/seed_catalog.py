# =============================================
# File: magicommerce/cli/seed_catalog.py
# Purpose: Create the schema and load products from a JSON file.
# Usage:
#   python -m magicommerce.cli.seed_catalog --file products.json [--db sqlite:///./magicommerce.db]
#   products.json: [{"id": 1, "title": "...", "description": "...", "price_cents": 1999, "image_url": "..."}]
# =============================================
from __future__ import annotations
import argparse
import json
import sys
from typing import Any, Dict, List

from magicommerce.db.models import Product
from magicommerce.db.repo import SqlProductStore, init_db, make_engine
from magicommerce.utils.config import Settings


def load_products(rows: List[Dict[str, Any]]) -> List[Product]:
    products: List[Product] = []
    for row in rows:
        title = str(row.get("title") or "").strip()
        if not title:
            continue
        products.append(
            Product(
                id=row.get("id"),
                title=title,
                description=str(row.get("description") or ""),
                # accept the storefront's camelCase export too
                price_cents=int(row.get("price_cents", row.get("priceCents", 0)) or 0),
                image_url=row.get("image_url") or row.get("imageUrl"),
            )
        )
    return products


def main(argv=None):
    ap = argparse.ArgumentParser(description="Create tables and seed the product catalog.")
    ap.add_argument("--file", required=True, help="JSON array of products")
    ap.add_argument("--db", default=None, help="Database URL (default: DB_URL env or sqlite:///./magicommerce.db)")
    args = ap.parse_args(argv)

    with open(args.file, "r", encoding="utf-8") as f:
        rows = json.load(f)
    if not isinstance(rows, list):
        print("[ERR] Expected a JSON array of products.", file=sys.stderr)
        sys.exit(1)

    engine = make_engine(args.db or Settings.from_env().db_url)
    init_db(engine)
    n = SqlProductStore(engine).add_products(load_products(rows))
    if n == 0:
        print("[WARN] No products with a title found.", file=sys.stderr)
        sys.exit(1)
    print(f"[OK] Seeded {n} products.")

if __name__ == "__main__":
    main()
