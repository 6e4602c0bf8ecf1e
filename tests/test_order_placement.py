from decimal import Decimal

from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from canteen.core.database import Base, build_engine, get_db
from canteen.core.errors import register_exception_handlers
import canteen.models  # noqa: F401
from canteen.models.menu_item import MenuItem
from canteen.models.order import Order
from canteen.models.order_item import OrderItem
from canteen.models.user import User
from canteen.routers.cart import router as cart_router
from canteen.routers.menu import router as menu_router
from canteen.routers.orders import router as orders_router
from tests.fixtures_data import (
    HAPPY_PATH_ORDER_PAYLOAD,
    HAPPY_PATH_ORDER_TOTAL,
    MENU_ITEMS,
    OTHER_STUDENT,
    STUDENT,
)


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
    app.include_router(menu_router)
    app.include_router(cart_router)
    app.include_router(orders_router)
    app.dependency_overrides[get_db] = lambda: db
    return TestClient(app)


def _db(client: TestClient):
    return client.app.dependency_overrides[get_db]()


def test_place_order_prices_from_menu_and_sums_total():
    client = _build_client()

    response = client.post("/orders", json=HAPPY_PATH_ORDER_PAYLOAD)

    assert response.status_code == 201
    order = response.json()
    assert order["totalAmount"] == HAPPY_PATH_ORDER_TOTAL
    assert order["status"] == "pending"
    assert order["pickupLocation"] == "Main Canteen"
    assert order["userId"] == 1
    assert [(item["menuItemId"], item["quantity"], item["price"]) for item in order["items"]] == [
        (1, 2, 60.0),
        (6, 1, 25.0),
    ]
    assert order["items"][0]["menuItem"] == {"id": 1, "name": "Masala Dosa", "price": 60.0, "imageUrl": None}


def test_client_supplied_prices_are_ignored():
    client = _build_client()
    payload = {
        **HAPPY_PATH_ORDER_PAYLOAD,
        "totalAmount": 1,
        "items": [{"menuItemId": 1, "quantity": 1, "price": 0.01}],
    }

    response = client.post("/orders", json=payload)

    assert response.status_code == 201
    assert response.json()["totalAmount"] == 60.0
    assert response.json()["items"][0]["price"] == 60.0


def test_total_matches_sum_of_line_items():
    client = _build_client()
    payload = {
        "userId": 3,
        "pickupLocation": "Hostel Canteen",
        "items": [
            {"menuItemId": 4, "quantity": 1},
            {"menuItemId": 9, "quantity": 3},
            {"menuItemId": 10, "quantity": "2"},
        ],
    }

    order = client.post("/orders", json=payload).json()

    line_sum = sum(item["price"] * item["quantity"] for item in order["items"])
    assert order["totalAmount"] == line_sum == 310.0


def test_later_price_change_does_not_alter_past_order():
    client = _build_client()
    order_id = client.post("/orders", json=HAPPY_PATH_ORDER_PAYLOAD).json()["id"]

    client.put("/menu/1", json={"price": 99})
    order = client.get(f"/orders/{order_id}").json()

    assert order["totalAmount"] == HAPPY_PATH_ORDER_TOTAL
    assert order["items"][0]["price"] == 60.0
    # The nested menu item reflects the live catalog
    assert order["items"][0]["menuItem"]["price"] == 99.0


def test_deleting_menu_item_keeps_order_snapshot():
    client = _build_client()
    order_id = client.post("/orders", json=HAPPY_PATH_ORDER_PAYLOAD).json()["id"]

    assert client.delete("/menu/6").status_code == 200
    order = client.get(f"/orders/{order_id}").json()

    assert order["totalAmount"] == HAPPY_PATH_ORDER_TOTAL
    chai = order["items"][1]
    assert chai["menuItemId"] is None
    assert chai["menuItem"] is None
    assert chai["name"] == "Masala Chai"
    assert chai["price"] == 25.0


def test_empty_items_rejected_without_writes():
    client = _build_client()

    empty = client.post("/orders", json={**HAPPY_PATH_ORDER_PAYLOAD, "items": []})
    missing = client.post("/orders", json={"userId": 1, "pickupLocation": "Main Canteen"})
    not_a_list = client.post("/orders", json={**HAPPY_PATH_ORDER_PAYLOAD, "items": {"menuItemId": 1}})

    assert empty.status_code == 400
    assert {empty.json()["code"], missing.json()["code"], not_a_list.json()["code"]} == {"EMPTY_CART"}
    assert _db(client).query(Order).count() == 0
    assert _db(client).query(OrderItem).count() == 0


def test_unknown_menu_item_rejected_without_writes():
    client = _build_client()
    payload = {**HAPPY_PATH_ORDER_PAYLOAD, "items": [{"menuItemId": 1, "quantity": 1}, {"menuItemId": 999, "quantity": 1}]}

    response = client.post("/orders", json=payload)

    assert response.status_code == 404
    assert response.json()["code"] == "MENU_ITEMS_NOT_FOUND"
    assert _db(client).query(Order).count() == 0
    assert _db(client).query(OrderItem).count() == 0


def test_unknown_user_rejected_without_writes():
    client = _build_client()

    response = client.post("/orders", json={**HAPPY_PATH_ORDER_PAYLOAD, "userId": 999})

    assert response.status_code == 404
    assert response.json() == {"error": "User not found", "code": "USER_NOT_FOUND"}
    assert _db(client).query(Order).count() == 0


def test_failed_order_item_insert_rolls_back_the_order():
    client = TestClient(_build_client().app, raise_server_exceptions=False)

    def _fail_insert(mapper, connection, target):
        raise SQLAlchemyError("order item insert failed")

    event.listen(OrderItem, "before_insert", _fail_insert)
    try:
        response = client.post("/orders", json=HAPPY_PATH_ORDER_PAYLOAD)
    finally:
        event.remove(OrderItem, "before_insert", _fail_insert)

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error", "code": "INTERNAL_ERROR"}
    assert _db(client).query(Order).count() == 0
    assert _db(client).query(OrderItem).count() == 0


def test_order_input_validation_codes():
    client = _build_client()

    bad_user = client.post("/orders", json={**HAPPY_PATH_ORDER_PAYLOAD, "userId": "abc"})
    no_location = client.post("/orders", json={**HAPPY_PATH_ORDER_PAYLOAD, "pickupLocation": "  "})
    bad_location = client.post("/orders", json={**HAPPY_PATH_ORDER_PAYLOAD, "pickupLocation": "Rooftop"})
    bad_item = client.post("/orders", json={**HAPPY_PATH_ORDER_PAYLOAD, "items": [{"menuItemId": "x", "quantity": 1}]})
    bad_qty = client.post("/orders", json={**HAPPY_PATH_ORDER_PAYLOAD, "items": [{"menuItemId": 1, "quantity": -1}]})

    assert bad_user.json()["code"] == "INVALID_USER_ID"
    assert no_location.json()["code"] == "MISSING_PICKUP_LOCATION"
    assert bad_location.json()["code"] == "INVALID_PICKUP_LOCATION"
    assert bad_item.json()["code"] == "INVALID_MENU_ITEM_ID"
    assert bad_qty.json()["code"] == "INVALID_QUANTITY"
    assert _db(client).query(Order).count() == 0


def test_pickup_location_is_trimmed():
    client = _build_client()

    response = client.post("/orders", json={**HAPPY_PATH_ORDER_PAYLOAD, "pickupLocation": " Library Cafe "})

    assert response.status_code == 201
    assert response.json()["pickupLocation"] == "Library Cafe"


def test_checkout_then_clear_cart():
    client = _build_client()
    client.post("/cart", json={"userId": 1, "menuItemId": 1, "quantity": 2})
    client.post("/cart", json={"userId": 1, "menuItemId": 6})

    cart = client.get("/cart", params={"userId": 1}).json()
    order = client.post(
        "/orders",
        json={
            "userId": 1,
            "pickupLocation": "Main Canteen",
            "items": [{"menuItemId": row["menuItemId"], "quantity": row["quantity"]} for row in cart],
        },
    )
    # Placing the order leaves the cart alone; the client clears it
    assert len(client.get("/cart", params={"userId": 1}).json()) == 2
    cleared = client.delete("/cart", params={"userId": 1})

    assert order.status_code == 201
    assert order.json()["totalAmount"] == HAPPY_PATH_ORDER_TOTAL
    assert cleared.json()["removed"] == 2


def test_user_order_history_newest_first():
    client = _build_client()
    first = client.post("/orders", json=HAPPY_PATH_ORDER_PAYLOAD).json()
    second = client.post(
        "/orders",
        json={"userId": 1, "pickupLocation": "Library Cafe", "items": [{"menuItemId": 4, "quantity": 1}]},
    ).json()
    client.post(
        "/orders",
        json={"userId": 3, "pickupLocation": "Main Canteen", "items": [{"menuItemId": 2, "quantity": 1}]},
    )

    response = client.get("/orders", params={"userId": 1})

    assert response.status_code == 200
    assert [order["id"] for order in response.json()] == [second["id"], first["id"]]
    assert len(response.json()[1]["items"]) == 2


def test_get_order_not_found_and_invalid_id():
    client = _build_client()

    missing = client.get("/orders/404")
    invalid = client.get("/orders/abc")

    assert missing.status_code == 404
    assert missing.json()["code"] == "ORDER_NOT_FOUND"
    assert invalid.status_code == 400
    assert invalid.json()["code"] == "INVALID_ID"
