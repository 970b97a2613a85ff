from pydantic import BaseModel


class DashboardStatsOut(BaseModel):
    total_products: int
    total_stock: int
    total_stock_value: float
    low_stock_count: int
    low_stock_threshold: int
    total_income: float
    total_expense: float
    net_balance: float
    initial_capital: float
    current_capital: float
