"""Order placement and status lifecycle.

An order is created once at checkout from a list of ``{menuItemId, quantity}``
lines. Prices always come from the menu at that moment and are copied into
each order item, so later menu edits never change a past order:

    total_amount == sum(item.price * item.quantity)

Status moves through ``pending -> preparing -> ready -> completed`` (or
``cancelled``); every transition is admin-initiated and unconditional.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session, joinedload, selectinload

from canteen.core.constants import ORDER_STATUS_PENDING, ORDER_STATUSES, PICKUP_LOCATIONS
from canteen.core.errors import InvalidInput, NotFound, ReferenceNotFound
from canteen.models._time import utcnow
from canteen.models.menu_item import MenuItem
from canteen.models.order import Order
from canteen.models.order_item import OrderItem
from canteen.services.users import ensure_user_exists
from canteen.services.validation import is_missing, parse_choice, parse_id, parse_pagination, parse_quantity

logger = logging.getLogger(__name__)

DEFAULT_ORDERS_PAGE_SIZE = 50


def _order_query(db: Session):
    return db.query(Order).options(selectinload(Order.order_items).selectinload(OrderItem.menu_item))


def _validate_pickup_location(pickup_location: Any) -> str:
    if is_missing(pickup_location) or not isinstance(pickup_location, str):
        raise InvalidInput("pickupLocation is required", "MISSING_PICKUP_LOCATION")
    return parse_choice(
        pickup_location.strip(),
        PICKUP_LOCATIONS,
        field="pickupLocation",
        code="INVALID_PICKUP_LOCATION",
    )


def _normalize_lines(items: Any) -> list[dict[str, int]]:
    if not isinstance(items, list) or not items:
        raise InvalidInput("items array is required and must not be empty", "EMPTY_CART")

    lines: list[dict[str, int]] = []
    for entry in items:
        if not isinstance(entry, dict):
            raise InvalidInput("Each item must have a valid menuItemId", "INVALID_MENU_ITEM_ID")
        menu_item_id = parse_id(
            entry.get("menuItemId", entry.get("menu_item_id")),
            field="menuItemId",
            invalid_code="INVALID_MENU_ITEM_ID",
        )
        try:
            quantity = parse_quantity(entry.get("quantity"))
        except InvalidInput as exc:
            raise InvalidInput("Each item must have a valid quantity greater than 0", exc.code) from exc
        lines.append({"menu_item_id": menu_item_id, "quantity": quantity})
    return lines


def _price_lines(lines: list[dict[str, int]], menu_items: dict[int, MenuItem]) -> tuple[list[dict], Decimal]:
    priced: list[dict] = []
    total_amount = Decimal("0")
    for line in lines:
        menu_item = menu_items[line["menu_item_id"]]
        price = Decimal(menu_item.price)
        total_amount += price * line["quantity"]
        priced.append(
            {
                "menu_item_id": menu_item.id,
                "name": menu_item.name,
                "price": price,
                "quantity": line["quantity"],
            }
        )
    return priced, total_amount


def place_order(db: Session, *, user_id: Any, pickup_location: Any, items: Any) -> Order:
    """Validate, price and persist an order with its items in one transaction.

    Client-supplied prices are ignored. The cart is not touched here; the
    caller clears it after a successful checkout.
    """
    parsed_user_id = parse_id(user_id, field="userId", invalid_code="INVALID_USER_ID")
    location = _validate_pickup_location(pickup_location)
    lines = _normalize_lines(items)

    ensure_user_exists(db, parsed_user_id)
    requested_ids = {line["menu_item_id"] for line in lines}
    rows = db.query(MenuItem).filter(MenuItem.id.in_(requested_ids)).all()
    menu_items = {row.id: row for row in rows}
    if len(menu_items) != len(requested_ids):
        missing = sorted(requested_ids - set(menu_items))
        logger.warning("Order rejected user_id=%s missing_menu_items=%s", parsed_user_id, missing)
        raise ReferenceNotFound("One or more menu items not found", "MENU_ITEMS_NOT_FOUND")

    priced_lines, total_amount = _price_lines(lines, menu_items)

    now = utcnow()
    order = Order(
        user_id=parsed_user_id,
        total_amount=total_amount,
        status=ORDER_STATUS_PENDING,
        pickup_location=location,
        created_at=now,
        updated_at=now,
    )
    for line in priced_lines:
        order.order_items.append(
            OrderItem(
                menu_item_id=line["menu_item_id"],
                name=line["name"],
                price=line["price"],
                quantity=line["quantity"],
                created_at=now,
            )
        )

    # Order and order items are written in a single transaction
    try:
        db.add(order)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Order creation failed user_id=%s", parsed_user_id)
        raise

    logger.info(
        "Order created order_id=%s user_id=%s total=%s items=%s",
        order.id,
        parsed_user_id,
        total_amount,
        len(priced_lines),
    )
    return get_order(db, order.id)


def get_order(db: Session, order_id: int) -> Order:
    order = _order_query(db).populate_existing().filter(Order.id == order_id).first()
    if not order:
        raise NotFound("Order not found", "ORDER_NOT_FOUND")
    return order


def update_order_status(db: Session, order_id: int, status: Any) -> Order:
    if is_missing(status):
        raise InvalidInput("Status is required", "MISSING_STATUS")
    new_status = parse_choice(status, ORDER_STATUSES, field="Status", code="INVALID_STATUS")

    order = db.query(Order).filter(Order.id == order_id).first()
    if not order:
        raise NotFound("Order not found", "ORDER_NOT_FOUND")

    previous_status = order.status
    order.status = new_status
    order.updated_at = utcnow()
    db.commit()
    db.refresh(order)
    logger.info("Order status changed order_id=%s from=%s to=%s", order.id, previous_status, new_status)
    return order


def list_orders_for_user(db: Session, user_id: Any) -> list[Order]:
    parsed_user_id = parse_id(user_id, field="userId", invalid_code="INVALID_USER_ID")
    return (
        _order_query(db)
        .filter(Order.user_id == parsed_user_id)
        .order_by(desc(Order.created_at), desc(Order.id))
        .all()
    )


def list_all_orders(
    db: Session,
    *,
    status: Optional[str] = None,
    limit: Any = None,
    offset: Any = None,
) -> list[Order]:
    page_size, page_offset = parse_pagination(limit, offset, default_limit=DEFAULT_ORDERS_PAGE_SIZE)

    query = _order_query(db).options(joinedload(Order.user))
    if status:
        query = query.filter(Order.status == parse_choice(status, ORDER_STATUSES, field="Status", code="INVALID_STATUS"))
    return query.order_by(desc(Order.created_at), desc(Order.id)).limit(page_size).offset(page_offset).all()
