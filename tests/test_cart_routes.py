from decimal import Decimal

from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from canteen.core.database import Base, build_engine, get_db
from canteen.core.errors import register_exception_handlers
import canteen.models  # noqa: F401
from canteen.models.cart_item import CartItem
from canteen.models.menu_item import MenuItem
from canteen.models.user import User
from canteen.routers.cart import router as cart_router
from canteen.routers.menu import router as menu_router
from tests.fixtures_data import MENU_ITEMS, OTHER_STUDENT, STUDENT


def _build_client() -> TestClient:
    engine = build_engine("sqlite+pysqlite:///:memory:", poolclass=StaticPool)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    db.add_all([User(**STUDENT), User(**OTHER_STUDENT)])
    for item in MENU_ITEMS:
        db.add(MenuItem(**{**item, "price": Decimal(item["price"])}))
    db.commit()

    app = FastAPI()
    register_exception_handlers(app)
    app.include_router(cart_router)
    app.include_router(menu_router)
    app.dependency_overrides[get_db] = lambda: db
    return TestClient(app)


def _db(client: TestClient):
    return client.app.dependency_overrides[get_db]()


def test_add_to_cart_creates_row_with_default_quantity():
    client = _build_client()

    response = client.post("/cart", json={"userId": 1, "menuItemId": 6})

    assert response.status_code == 201
    body = response.json()
    assert body["userId"] == 1
    assert body["menuItemId"] == 6
    assert body["quantity"] == 1


def test_adding_same_item_twice_increments_quantity():
    client = _build_client()

    first = client.post("/cart", json={"userId": 1, "menuItemId": 1, "quantity": 2})
    second = client.post("/cart", json={"userId": "1", "menuItemId": "1", "quantity": 3})

    assert first.status_code == 201
    assert second.status_code == 201
    assert second.json()["id"] == first.json()["id"]
    assert second.json()["quantity"] == 5
    assert _db(client).query(CartItem).filter(CartItem.user_id == 1).count() == 1


def test_add_to_cart_validation_codes():
    client = _build_client()

    missing_user = client.post("/cart", json={"menuItemId": 1})
    bad_user = client.post("/cart", json={"userId": "abc", "menuItemId": 1})
    missing_item = client.post("/cart", json={"userId": 1})
    bad_item = client.post("/cart", json={"userId": 1, "menuItemId": "x"})
    zero_qty = client.post("/cart", json={"userId": 1, "menuItemId": 1, "quantity": 0})
    fraction_qty = client.post("/cart", json={"userId": 1, "menuItemId": 1, "quantity": 1.5})

    assert missing_user.json()["code"] == "MISSING_USER_ID"
    assert bad_user.json()["code"] == "INVALID_USER_ID"
    assert missing_item.json()["code"] == "MISSING_MENU_ITEM_ID"
    assert bad_item.json()["code"] == "INVALID_MENU_ITEM_ID"
    assert zero_qty.json()["code"] == "INVALID_QUANTITY"
    assert fraction_qty.json()["code"] == "INVALID_QUANTITY"
    assert _db(client).query(CartItem).count() == 0


def test_add_unknown_menu_item_is_not_found():
    client = _build_client()

    response = client.post("/cart", json={"userId": 1, "menuItemId": 999})

    assert response.status_code == 404
    assert response.json()["code"] == "MENU_ITEM_NOT_FOUND"


def test_add_to_cart_for_unknown_user_is_not_found():
    client = _build_client()

    response = client.post("/cart", json={"userId": 999, "menuItemId": 1})

    assert response.status_code == 404
    assert response.json() == {"error": "User not found", "code": "USER_NOT_FOUND"}
    assert _db(client).query(CartItem).count() == 0


def test_list_cart_joins_current_menu_data():
    client = _build_client()
    client.post("/cart", json={"userId": 1, "menuItemId": 1, "quantity": 2})
    client.post("/cart", json={"userId": 1, "menuItemId": 6})
    client.post("/cart", json={"userId": 3, "menuItemId": 9})

    client.put("/menu/1", json={"price": 70})
    response = client.get("/cart", params={"userId": 1})

    assert response.status_code == 200
    rows = response.json()
    assert [row["menuItemId"] for row in rows] == [1, 6]
    assert rows[0]["menuItem"]["name"] == "Masala Dosa"
    # Cart shows live prices, not a snapshot
    assert rows[0]["menuItem"]["price"] == 70.0
    assert rows[0]["menuItem"]["category"] == "meals"


def test_list_cart_requires_valid_user_id():
    client = _build_client()

    missing = client.get("/cart")
    invalid = client.get("/cart", params={"userId": "abc"})

    assert missing.status_code == 400
    assert missing.json()["code"] == "INVALID_USER_ID"
    assert invalid.json()["code"] == "INVALID_USER_ID"


def test_update_cart_item_quantity():
    client = _build_client()
    cart_item_id = client.post("/cart", json={"userId": 1, "menuItemId": 2}).json()["id"]

    updated = client.put(f"/cart/{cart_item_id}", json={"quantity": 4})
    missing_qty = client.put(f"/cart/{cart_item_id}", json={})
    zero_qty = client.put(f"/cart/{cart_item_id}", json={"quantity": 0})
    unknown = client.put("/cart/999", json={"quantity": 1})
    bad_id = client.put("/cart/abc", json={"quantity": 1})

    assert updated.status_code == 200
    assert updated.json()["quantity"] == 4
    assert missing_qty.json()["code"] == "MISSING_REQUIRED_FIELD"
    assert zero_qty.json()["code"] == "INVALID_QUANTITY"
    assert unknown.status_code == 404
    assert unknown.json()["code"] == "CART_ITEM_NOT_FOUND"
    assert bad_id.json()["code"] == "INVALID_ID"


def test_remove_cart_item():
    client = _build_client()
    cart_item_id = client.post("/cart", json={"userId": 1, "menuItemId": 2}).json()["id"]

    removed = client.delete(f"/cart/{cart_item_id}")
    again = client.delete(f"/cart/{cart_item_id}")

    assert removed.status_code == 200
    assert removed.json() == {"message": "Cart item removed successfully", "id": cart_item_id}
    assert again.status_code == 404
    assert again.json()["code"] == "CART_ITEM_NOT_FOUND"


def test_clear_cart_only_touches_that_user():
    client = _build_client()
    client.post("/cart", json={"userId": 1, "menuItemId": 1})
    client.post("/cart", json={"userId": 1, "menuItemId": 6})
    client.post("/cart", json={"userId": 3, "menuItemId": 9})

    response = client.delete("/cart", params={"userId": 1})

    assert response.status_code == 200
    assert response.json()["removed"] == 2
    assert client.get("/cart", params={"userId": 1}).json() == []
    assert len(client.get("/cart", params={"userId": 3}).json()) == 1


def test_deleting_menu_item_removes_it_from_carts():
    client = _build_client()
    client.post("/cart", json={"userId": 1, "menuItemId": 10})
    client.post("/cart", json={"userId": 1, "menuItemId": 6})

    client.delete("/menu/10")

    rows = client.get("/cart", params={"userId": 1}).json()
    assert [row["menuItemId"] for row in rows] == [6]
