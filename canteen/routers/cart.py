from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from canteen.core.database import get_db
from canteen.deps import get_optional_user, parse_path_id, resolve_acting_user_id
from canteen.models.cart_item import CartItem
from canteen.models.user import User
from canteen.services import cart as cart_service

router = APIRouter(prefix="/cart", tags=["cart"])


class CartItemAdd(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: Any = Field(default=None, alias="userId")
    menu_item_id: Any = Field(default=None, alias="menuItemId")
    quantity: Any = None


class CartItemQuantity(BaseModel):
    quantity: Any = None


def _cart_item_to_dict(cart_item: CartItem, *, with_menu_item: bool = False) -> dict:
    data = {
        "id": cart_item.id,
        "userId": cart_item.user_id,
        "menuItemId": cart_item.menu_item_id,
        "quantity": cart_item.quantity,
        "createdAt": cart_item.created_at.isoformat() if cart_item.created_at else None,
    }
    if with_menu_item:
        menu_item = cart_item.menu_item
        # Live menu data: the price here can still change before checkout
        data["menuItem"] = {
            "id": menu_item.id,
            "name": menu_item.name,
            "description": menu_item.description,
            "price": float(menu_item.price),
            "category": menu_item.category,
            "imageUrl": menu_item.image_url,
            "available": menu_item.available,
        }
    return data


@router.get("")
def list_cart(
    user_id: Optional[str] = Query(None, alias="userId"),
    db: Session = Depends(get_db),
    session_user: Optional[User] = Depends(get_optional_user),
):
    acting_user_id = resolve_acting_user_id(user_id, session_user)
    return [_cart_item_to_dict(row, with_menu_item=True) for row in cart_service.list_cart(db, acting_user_id)]


@router.post("", status_code=status.HTTP_201_CREATED)
def add_to_cart(
    payload: CartItemAdd,
    db: Session = Depends(get_db),
    session_user: Optional[User] = Depends(get_optional_user),
):
    cart_item = cart_service.add_to_cart(
        db,
        user_id=resolve_acting_user_id(payload.user_id, session_user),
        menu_item_id=payload.menu_item_id,
        quantity=payload.quantity,
    )
    return _cart_item_to_dict(cart_item)


@router.delete("")
def clear_cart(
    user_id: Optional[str] = Query(None, alias="userId"),
    db: Session = Depends(get_db),
    session_user: Optional[User] = Depends(get_optional_user),
):
    return cart_service.clear_cart(db, resolve_acting_user_id(user_id, session_user))


@router.put("/{cart_item_id}")
def update_cart_item(
    cart_item_id: str,
    payload: CartItemQuantity,
    db: Session = Depends(get_db),
):
    parsed_id = parse_path_id(cart_item_id)
    return _cart_item_to_dict(cart_service.update_quantity(db, parsed_id, payload.quantity))


@router.delete("/{cart_item_id}")
def remove_cart_item(cart_item_id: str, db: Session = Depends(get_db)):
    return cart_service.remove_from_cart(db, parse_path_id(cart_item_id))
