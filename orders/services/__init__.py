from .order_service import OrderService
from .stock_ledger import StockLedger

__all__ = ['OrderService', 'StockLedger']
