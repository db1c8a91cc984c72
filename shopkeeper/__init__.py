"""
Shopkeeper - Source Package

A receipt-to-ledger assistant for a small retail shop. Photographed
delivery receipts become intake records, point-of-sale scans become sale
records, and stock levels and running totals follow from the ledger.

DESIGN PRINCIPLES:
1. AI suggests → Shopkeeper edits → Ledger records
2. Aggregates are derived from the ledger, never stored
3. Collaborator failures fall back to manual entry
4. Rejected operations leave state unchanged
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Shopkeeper Team"
