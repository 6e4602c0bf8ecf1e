from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from canteen.core.constants import MENU_CATEGORIES
from canteen.core.errors import InvalidInput, NotFound
from canteen.models._time import utcnow
from canteen.models.menu_item import MenuItem
from canteen.services.validation import (
    clean_optional_text,
    is_missing,
    parse_choice,
    parse_pagination,
    parse_price,
)

logger = logging.getLogger(__name__)

DEFAULT_MENU_PAGE_SIZE = 100
READ_ONLY_FIELDS = ("id", "created_at")


def _parse_category(value: Any) -> str:
    return parse_choice(value, MENU_CATEGORIES, field="Category", code="INVALID_CATEGORY")


def _parse_available(value: Any) -> bool:
    if not isinstance(value, bool):
        raise InvalidInput("available must be a boolean", "INVALID_AVAILABLE")
    return value


def get_menu_item(db: Session, item_id: int) -> MenuItem:
    item = db.query(MenuItem).filter(MenuItem.id == item_id).first()
    if not item:
        raise NotFound("Menu item not found", "NOT_FOUND")
    return item


def list_menu_items(
    db: Session,
    *,
    category: Optional[str] = None,
    search: Optional[str] = None,
    available: Optional[bool] = None,
    limit: Any = None,
    offset: Any = None,
) -> list[MenuItem]:
    page_size, page_offset = parse_pagination(limit, offset, default_limit=DEFAULT_MENU_PAGE_SIZE)

    conditions = []
    if category:
        conditions.append(MenuItem.category == _parse_category(category))
    if search:
        conditions.append(
            or_(
                MenuItem.name.contains(search, autoescape=True),
                MenuItem.description.contains(search, autoescape=True),
            )
        )
    if available is not None:
        conditions.append(MenuItem.available.is_(available))

    query = db.query(MenuItem)
    if conditions:
        query = query.filter(and_(*conditions))
    return query.order_by(MenuItem.id.asc()).limit(page_size).offset(page_offset).all()


def create_menu_item(db: Session, payload: Mapping[str, Any]) -> MenuItem:
    name = payload.get("name")
    if is_missing(name) or not isinstance(name, str):
        raise InvalidInput("Name is required", "MISSING_NAME")
    if payload.get("price") is None:
        raise InvalidInput("Price is required", "MISSING_PRICE")
    category = payload.get("category")
    if is_missing(category):
        raise InvalidInput("Category is required", "MISSING_CATEGORY")

    price = parse_price(payload["price"])
    category = _parse_category(category.strip() if isinstance(category, str) else category)
    available = payload.get("available")

    item = MenuItem(
        name=name.strip(),
        description=clean_optional_text(payload.get("description"), field="description", code="INVALID_DESCRIPTION"),
        price=price,
        category=category,
        image_url=clean_optional_text(payload.get("image_url"), field="imageUrl", code="INVALID_IMAGE_URL"),
        available=True if available is None else _parse_available(available),
    )
    db.add(item)
    db.commit()
    db.refresh(item)
    logger.info("Menu item created id=%s name=%s category=%s", item.id, item.name, item.category)
    return item


def update_menu_item(db: Session, item_id: int, fields: Mapping[str, Any]) -> MenuItem:
    """Apply a partial update; keys absent from ``fields`` are left untouched."""
    if any(key in fields for key in READ_ONLY_FIELDS):
        raise InvalidInput("Cannot update id or createdAt fields", "INVALID_FIELDS")

    changes: dict[str, Any] = {}
    if "name" in fields:
        name = fields["name"]
        if is_missing(name) or not isinstance(name, str):
            raise InvalidInput("Name cannot be empty", "INVALID_NAME")
        changes["name"] = name.strip()
    if "price" in fields:
        changes["price"] = parse_price(fields["price"])
    if "category" in fields:
        changes["category"] = _parse_category(fields["category"])
    if "description" in fields:
        changes["description"] = clean_optional_text(
            fields["description"], field="description", code="INVALID_DESCRIPTION"
        )
    if "image_url" in fields:
        changes["image_url"] = clean_optional_text(fields["image_url"], field="imageUrl", code="INVALID_IMAGE_URL")
    if "available" in fields:
        changes["available"] = _parse_available(fields["available"])

    item = get_menu_item(db, item_id)
    for key, value in changes.items():
        setattr(item, key, value)
    item.updated_at = utcnow()

    db.commit()
    db.refresh(item)
    logger.info("Menu item updated id=%s fields=%s", item.id, sorted(changes))
    return item


def delete_menu_item(db: Session, item_id: int) -> dict[str, Any]:
    item = get_menu_item(db, item_id)
    # Cart rows cascade; order items keep their snapshot with menu_item_id nulled
    db.delete(item)
    db.commit()
    logger.info("Menu item deleted id=%s", item_id)
    return {"message": "Menu item deleted successfully", "id": item_id}
