"""
Orders services package.

- OrderLedgerService: session orders and items (add, edit-in-place, cancel, serve)
  and the kitchen/bar queue
- CartLine / EditPlan: inputs and output of the diff-and-apply edit flow
- DestinationTicket: one order's open items for a single station
"""

from .ledger_service import CartLine, DestinationTicket, EditPlan, OrderLedgerService

__all__ = [
    'OrderLedgerService',
    'CartLine',
    'DestinationTicket',
    'EditPlan',
]
