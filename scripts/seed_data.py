#!/usr/bin/env python3
"""Load the demo canteen menu, users and a few sample orders."""
from __future__ import annotations

import argparse
import sys
from decimal import Decimal
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT))

from canteen.core.database import Base, SessionLocal, engine  # noqa: E402
import canteen.models  # noqa: E402,F401
from canteen.models.menu_item import MenuItem  # noqa: E402
from canteen.services.orders import place_order, update_order_status  # noqa: E402
from canteen.services.users import create_user, get_user_by_email, upsert_admin  # noqa: E402

DEMO_MENU = [
    ("Masala Dosa", "Crispy rice crepe with potato masala, sambar and chutney", "60.00", "meals"),
    ("Samosa", "Two fried pastries stuffed with spiced potato and peas", "35.00", "snacks"),
    ("Vada Pav", "Spiced potato fritter in a soft bun with garlic chutney", "40.00", "snacks"),
    ("Veg Thali", "Rice, two chapatis, dal, two sabzis, curd and pickle", "120.00", "meals"),
    ("Chicken Biryani", "Dum-cooked basmati rice with chicken, served with raita", "140.00", "meals"),
    ("Masala Chai", "Milk tea brewed with ginger and cardamom", "25.00", "beverages"),
    ("Cold Coffee", "Chilled blended coffee with milk", "30.00", "beverages"),
    ("Filter Coffee", "South Indian decoction coffee", "25.00", "beverages"),
    ("Fresh Lime Soda", "Sweet or salted lime soda", "30.00", "beverages"),
    ("Gulab Jamun", "Two milk dumplings soaked in rose syrup", "50.00", "desserts"),
    ("Kulfi", "Traditional pistachio frozen dessert", "45.00", "desserts"),
    ("Paneer Roll", "Grilled paneer tikka wrapped in a paratha", "70.00", "snacks"),
]

DEMO_STUDENT = {"name": "Raj Kumar", "email": "student@mec.edu"}
DEMO_ADMIN = {"name": "Canteen Manager", "email": "admin@mec.edu"}

# (pickup location, final status, [(menu position, quantity), ...])
DEMO_ORDERS = [
    ("Main Canteen", "completed", [(1, 1), (6, 1)]),
    ("Library Cafe", "ready", [(4, 1), (9, 1)]),
    ("Hostel Canteen", "preparing", [(5, 1), (7, 1), (10, 1)]),
    ("Main Canteen", "pending", [(2, 2), (8, 1)]),
]


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed demo data for local development.")
    parser.add_argument("--password", default="canteen123", help="Password for both demo users")
    parser.add_argument("--reset", action="store_true", help="Drop and recreate every table first")
    parser.add_argument("--with-orders", action="store_true", help="Also place the sample orders")
    return parser.parse_args()


def seed_menu(db) -> list[MenuItem]:
    existing = db.query(MenuItem).order_by(MenuItem.id.asc()).all()
    if existing:
        print(f"Menu already has {len(existing)} items; skipping")
        return existing

    items = [
        MenuItem(name=name, description=description, price=Decimal(price), category=category, available=True)
        for name, description, price, category in DEMO_MENU
    ]
    db.add_all(items)
    db.commit()
    print(f"Menu seeded: {len(items)} items")
    return items


def seed_users(db, password: str):
    student = get_user_by_email(db, DEMO_STUDENT["email"])
    if student is None:
        student = create_user(db, password=password, **DEMO_STUDENT)
    admin, _created = upsert_admin(db, password=password, **DEMO_ADMIN)
    print(f"Users ready: student id={student.id} admin id={admin.id}")
    return student, admin


def seed_orders(db, student, menu: list[MenuItem]) -> None:
    for pickup_location, final_status, lines in DEMO_ORDERS:
        order = place_order(
            db,
            user_id=student.id,
            pickup_location=pickup_location,
            items=[{"menuItemId": menu[position - 1].id, "quantity": qty} for position, qty in lines],
        )
        if final_status != order.status:
            update_order_status(db, order.id, final_status)
        print(f"Order {order.id}: {pickup_location} total={order.total_amount} status={final_status}")


def main() -> int:
    args = parse_args()

    if args.reset:
        Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        menu = seed_menu(db)
        student, _admin = seed_users(db, args.password)
        if args.with_orders:
            seed_orders(db, student, menu)
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
