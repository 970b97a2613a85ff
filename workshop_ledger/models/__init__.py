from workshop_ledger.models.user import User
from workshop_ledger.models.product import Product
from workshop_ledger.models.inventory import ProductStock, StockMovement
from workshop_ledger.models.workshop_order import WorkshopOrder
from workshop_ledger.models.cashflow import Cashflow
from workshop_ledger.models.setting import Setting
from workshop_ledger.models.audit_log import AuditLog
