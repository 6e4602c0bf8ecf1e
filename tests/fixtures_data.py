"""Reusable records and payloads for the backend test scenarios."""

STUDENT = {
    "id": 1,
    "name": "Raj Kumar",
    "email": "student@mec.edu",
    "role": "student",
    "active": True,
    "password_hash": "hashed",
}

ADMIN = {
    "id": 2,
    "name": "Canteen Manager",
    "email": "admin@mec.edu",
    "role": "admin",
    "active": True,
    "password_hash": "hashed",
}

OTHER_STUDENT = {
    "id": 3,
    "name": "Ananya Nair",
    "email": "ananya@mec.edu",
    "role": "student",
    "active": True,
    "password_hash": "hashed",
}

# Ids and prices line up with the demo menu in scripts/seed_data.py
MENU_ITEMS = [
    {"id": 1, "name": "Masala Dosa", "description": "Crispy rice crepe with potato masala", "price": "60.00", "category": "meals"},
    {"id": 2, "name": "Samosa", "description": "Two fried pastries with spiced potato", "price": "35.00", "category": "snacks"},
    {"id": 4, "name": "Veg Thali", "description": "Rice, chapati, dal and two sabzis", "price": "120.00", "category": "meals"},
    {"id": 6, "name": "Masala Chai", "description": "Milk tea with ginger and cardamom", "price": "25.00", "category": "beverages"},
    {"id": 9, "name": "Fresh Lime Soda", "description": "Sweet or salted lime soda", "price": "30.00", "category": "beverages"},
    {"id": 10, "name": "Gulab Jamun", "description": "Milk dumplings in rose syrup", "price": "50.00", "category": "desserts"},
]

HAPPY_PATH_ORDER_PAYLOAD = {
    "userId": 1,
    "pickupLocation": "Main Canteen",
    "items": [
        {"menuItemId": 1, "quantity": 2},
        {"menuItemId": 6, "quantity": 1},
    ],
}
HAPPY_PATH_ORDER_TOTAL = 145.0

NEW_MENU_ITEM_PAYLOAD = {
    "name": "  Paneer Roll ",
    "description": "Grilled paneer tikka wrapped in a paratha",
    "price": 70,
    "category": "snacks",
    "imageUrl": "   ",
}
