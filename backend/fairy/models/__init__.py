from .catalog import Store, FloorTable, Product
from .staff import CastMember, StaffMember
from .billing import Bill, Order, BillDesignation, PriceAdjustment, CastTableAssignment
from .timekeeping import CastShift
from .settings import StoreSetting, DailyReport
from .activity import ActivityEvent

__all__ = [
    'Store', 'FloorTable', 'Product',
    'CastMember', 'StaffMember',
    'Bill', 'Order', 'BillDesignation', 'PriceAdjustment', 'CastTableAssignment',
    'CastShift',
    'StoreSetting', 'DailyReport',
    'ActivityEvent',
]
