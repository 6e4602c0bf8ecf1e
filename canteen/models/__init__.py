from canteen.models.user import User
from canteen.models.menu_item import MenuItem
from canteen.models.cart_item import CartItem
from canteen.models.order import Order
from canteen.models.order_item import OrderItem
