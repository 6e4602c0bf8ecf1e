from __future__ import annotations

MENU_CATEGORIES = ("snacks", "meals", "beverages", "desserts")

PICKUP_LOCATIONS = ("Main Canteen", "Library Cafe", "Hostel Canteen")

ORDER_STATUS_PENDING = "pending"
ORDER_STATUSES = ("pending", "preparing", "ready", "completed", "cancelled")

USER_ROLES = ("student", "admin")

MAX_PAGE_SIZE = 100
