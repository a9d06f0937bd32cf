"""
Ledger Kernel

Double-entry ledger and bank-reconciliation core for the ERP:
- Balanced, append-only journal posting
- Reversal instead of deletion
- Running account balances kept inside the posting transaction
- Confidence-scored matching of bank statement lines to customers/invoices
- Atomic reconciliation of matched lines into payments
"""

__version__ = "0.1.0"
