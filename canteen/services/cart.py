from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

from sqlalchemy.orm import Session, contains_eager

from canteen.core.errors import NotFound, ReferenceNotFound
from canteen.models.cart_item import CartItem
from canteen.models.menu_item import MenuItem
from canteen.services.users import ensure_user_exists
from canteen.services.validation import parse_id, parse_quantity

logger = logging.getLogger(__name__)


def _get_cart_item(db: Session, cart_item_id: int) -> CartItem:
    cart_item = db.query(CartItem).filter(CartItem.id == cart_item_id).first()
    if not cart_item:
        raise NotFound("Cart item not found", "CART_ITEM_NOT_FOUND")
    return cart_item


def add_to_cart(db: Session, *, user_id: Any, menu_item_id: Any, quantity: Any = 1) -> CartItem:
    """Add ``quantity`` of a menu item to the user's cart.

    Adding an item that is already in the cart increments the existing row
    instead of creating a second one.
    """
    parsed_user_id = parse_id(user_id, field="userId", invalid_code="INVALID_USER_ID", missing_code="MISSING_USER_ID")
    parsed_menu_item_id = parse_id(
        menu_item_id,
        field="menuItemId",
        invalid_code="INVALID_MENU_ITEM_ID",
        missing_code="MISSING_MENU_ITEM_ID",
    )
    parsed_quantity = parse_quantity(1 if quantity is None else quantity)

    ensure_user_exists(db, parsed_user_id)
    menu_item_exists = db.query(MenuItem.id).filter(MenuItem.id == parsed_menu_item_id).first()
    if not menu_item_exists:
        raise ReferenceNotFound("Menu item not found", "MENU_ITEM_NOT_FOUND")

    cart_item = (
        db.query(CartItem)
        .filter(CartItem.user_id == parsed_user_id, CartItem.menu_item_id == parsed_menu_item_id)
        .first()
    )
    try:
        if cart_item:
            cart_item.quantity = int(cart_item.quantity) + parsed_quantity
        else:
            cart_item = CartItem(
                user_id=parsed_user_id,
                menu_item_id=parsed_menu_item_id,
                quantity=parsed_quantity,
            )
            db.add(cart_item)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(cart_item)
    logger.info(
        "Cart item saved id=%s user_id=%s menu_item_id=%s quantity=%s",
        cart_item.id,
        cart_item.user_id,
        cart_item.menu_item_id,
        cart_item.quantity,
    )
    return cart_item


def update_quantity(db: Session, cart_item_id: int, quantity: Any) -> CartItem:
    parsed_quantity = parse_quantity(quantity, missing_code="MISSING_REQUIRED_FIELD")
    cart_item = _get_cart_item(db, cart_item_id)
    cart_item.quantity = parsed_quantity
    db.commit()
    db.refresh(cart_item)
    return cart_item


def remove_from_cart(db: Session, cart_item_id: int) -> dict[str, Any]:
    cart_item = _get_cart_item(db, cart_item_id)
    db.delete(cart_item)
    db.commit()
    logger.info("Cart item removed id=%s", cart_item_id)
    return {"message": "Cart item removed successfully", "id": cart_item_id}


def list_cart(db: Session, user_id: Any) -> list[CartItem]:
    """Cart rows with the *current* menu data (live price, not a snapshot)."""
    parsed_user_id = parse_id(user_id, field="userId", invalid_code="INVALID_USER_ID")
    return (
        db.query(CartItem)
        .join(CartItem.menu_item)
        .options(contains_eager(CartItem.menu_item))
        .filter(CartItem.user_id == parsed_user_id)
        .order_by(CartItem.id.asc())
        .all()
    )


def clear_cart(db: Session, user_id: Any, cart_item_ids: Optional[Iterable[int]] = None) -> dict[str, Any]:
    parsed_user_id = parse_id(user_id, field="userId", invalid_code="INVALID_USER_ID")
    query = db.query(CartItem).filter(CartItem.user_id == parsed_user_id)
    if cart_item_ids is not None:
        query = query.filter(CartItem.id.in_(list(cart_item_ids)))
    removed = query.delete(synchronize_session=False)
    db.commit()
    logger.info("Cart cleared user_id=%s removed=%s", parsed_user_id, removed)
    return {"message": "Cart cleared successfully", "removed": removed}
