from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from canteen.core.database import get_db
from canteen.deps import parse_path_id, require_admin
from canteen.models.menu_item import MenuItem
from canteen.services import menu as menu_service

router = APIRouter(prefix="/menu", tags=["menu"])


# Field types stay loose; menu_service owns validation and error codes.
class MenuItemCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: Any = None
    description: Any = None
    price: Any = None
    category: Any = None
    image_url: Any = Field(default=None, alias="imageUrl")
    available: Any = None


class MenuItemUpdate(MenuItemCreate):
    id: Any = None
    created_at: Any = Field(default=None, alias="createdAt")


def _price(value) -> Optional[float]:
    return float(value) if value is not None else None


def _menu_item_to_dict(item: MenuItem) -> dict:
    return {
        "id": item.id,
        "name": item.name,
        "description": item.description,
        "price": _price(item.price),
        "category": item.category,
        "imageUrl": item.image_url,
        "available": item.available,
        "createdAt": item.created_at.isoformat() if item.created_at else None,
        "updatedAt": item.updated_at.isoformat() if item.updated_at else None,
    }


@router.get("")
def list_menu_items(
    id: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    available: Optional[bool] = Query(None),
    limit: Optional[str] = Query(None),
    offset: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    if id:
        return _menu_item_to_dict(menu_service.get_menu_item(db, parse_path_id(id)))

    items = menu_service.list_menu_items(
        db,
        category=category,
        search=search,
        available=available,
        limit=limit,
        offset=offset,
    )
    return [_menu_item_to_dict(item) for item in items]


@router.get("/{item_id}")
def get_menu_item(item_id: str, db: Session = Depends(get_db)):
    return _menu_item_to_dict(menu_service.get_menu_item(db, parse_path_id(item_id)))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_menu_item(
    payload: MenuItemCreate,
    db: Session = Depends(get_db),
    _admin=Depends(require_admin),
):
    item = menu_service.create_menu_item(db, payload.model_dump())
    return _menu_item_to_dict(item)


@router.put("/{item_id}")
def update_menu_item(
    item_id: str,
    payload: MenuItemUpdate,
    db: Session = Depends(get_db),
    _admin=Depends(require_admin),
):
    parsed_id = parse_path_id(item_id)
    item = menu_service.update_menu_item(db, parsed_id, payload.model_dump(exclude_unset=True))
    return _menu_item_to_dict(item)


@router.delete("/{item_id}")
def delete_menu_item(
    item_id: str,
    db: Session = Depends(get_db),
    _admin=Depends(require_admin),
):
    return menu_service.delete_menu_item(db, parse_path_id(item_id))
