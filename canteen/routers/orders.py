from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from canteen.core.database import get_db
from canteen.deps import get_optional_user, parse_path_id, require_admin, resolve_acting_user_id
from canteen.models.order import Order
from canteen.models.order_item import OrderItem
from canteen.models.user import User
from canteen.services import orders as order_service

router = APIRouter(prefix="/orders", tags=["orders"])


class OrderCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: Any = Field(default=None, alias="userId")
    pickup_location: Any = Field(default=None, alias="pickupLocation")
    items: Any = None


class OrderStatusUpdate(BaseModel):
    status: Any = None


def _order_item_to_dict(item: OrderItem) -> dict:
    menu_item = item.menu_item
    return {
        "id": item.id,
        "menuItemId": item.menu_item_id,
        "name": item.name,
        "quantity": item.quantity,
        "price": float(item.price),
        "menuItem": {
            "id": menu_item.id,
            "name": menu_item.name,
            "price": float(menu_item.price),
            "imageUrl": menu_item.image_url,
        }
        if menu_item is not None
        else None,
    }


def _order_to_dict(order: Order, *, with_items: bool = True, with_user: bool = False) -> dict:
    data = {
        "id": order.id,
        "userId": order.user_id,
        "totalAmount": float(order.total_amount),
        "status": order.status,
        "pickupLocation": order.pickup_location,
        "createdAt": order.created_at.isoformat() if order.created_at else None,
        "updatedAt": order.updated_at.isoformat() if order.updated_at else None,
    }
    if with_user:
        user = order.user
        data["user"] = {"id": user.id, "name": user.name, "email": user.email} if user else None
    if with_items:
        data["items"] = [_order_item_to_dict(item) for item in order.order_items]
    return data


@router.get("")
def list_orders(
    user_id: Optional[str] = Query(None, alias="userId"),
    db: Session = Depends(get_db),
    session_user: Optional[User] = Depends(get_optional_user),
):
    orders = order_service.list_orders_for_user(db, resolve_acting_user_id(user_id, session_user))
    return [_order_to_dict(order) for order in orders]


@router.post("", status_code=status.HTTP_201_CREATED)
def place_order(
    payload: OrderCreate,
    db: Session = Depends(get_db),
    session_user: Optional[User] = Depends(get_optional_user),
):
    order = order_service.place_order(
        db,
        user_id=resolve_acting_user_id(payload.user_id, session_user),
        pickup_location=payload.pickup_location,
        items=payload.items,
    )
    return _order_to_dict(order)


# Declared before /{order_id} so "all" is not captured as an id
@router.get("/all")
def list_all_orders(
    status_filter: Optional[str] = Query(None, alias="status"),
    limit: Optional[str] = Query(None),
    offset: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    _admin=Depends(require_admin),
):
    orders = order_service.list_all_orders(db, status=status_filter, limit=limit, offset=offset)
    return [_order_to_dict(order, with_user=True) for order in orders]


@router.get("/{order_id}")
def get_order(
    order_id: str,
    db: Session = Depends(get_db),
    session_user: Optional[User] = Depends(get_optional_user),
):
    order = order_service.get_order(db, parse_path_id(order_id))
    if session_user is not None and session_user.role != "admin":
        resolve_acting_user_id(order.user_id, session_user)
    return _order_to_dict(order)


@router.put("/{order_id}")
def update_order_status(
    order_id: str,
    payload: OrderStatusUpdate,
    db: Session = Depends(get_db),
    _admin=Depends(require_admin),
):
    order = order_service.update_order_status(db, parse_path_id(order_id), payload.status)
    return _order_to_dict(order, with_items=False)
