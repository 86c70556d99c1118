from floorline.models.staff_user import StaffUser
from floorline.models.dining_table import DiningTable
from floorline.models.menu_item import MenuItem
from floorline.models.modifier import Modifier
from floorline.models.order import Order
from floorline.models.order_item import OrderItem, OrderItemModifier
from floorline.models.discount import Discount, OrderDiscount
from floorline.models.payment import Payment
from floorline.models.daily_close import DailyClose
from floorline.models.audit_log import AuditLog
from floorline.models.push_subscription import PushSubscription
