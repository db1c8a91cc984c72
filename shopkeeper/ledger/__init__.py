"""Ledger, stock reconciliation and summaries."""

from shopkeeper.ledger.aggregator import (
    category_breakdown,
    gross_margin,
    ice_balance,
    low_stock_products,
    summarize,
    week_start_date,
)
from shopkeeper.ledger.ledger import TransactionLedger
from shopkeeper.ledger.reconciler import CartLine, StockAdjustment, StockReconciler

__all__ = [
    "TransactionLedger",
    "StockReconciler",
    "StockAdjustment",
    "CartLine",
    "summarize",
    "ice_balance",
    "low_stock_products",
    "week_start_date",
    "category_breakdown",
    "gross_margin",
]
