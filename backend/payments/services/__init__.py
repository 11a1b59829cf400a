"""
Billing services for table sessions.

    from payments.services import InvoiceService, PaymentService
"""

from .deposit_service import DepositService
from .email_service import InvoiceEmailService
from .invoice_service import InvoiceService
from .payment_service import PaymentService
from .split_service import BillingContext, BillingMode, SplitCoordinator

__all__ = [
    "DepositService",
    "InvoiceEmailService",
    "InvoiceService",
    "PaymentService",
    "BillingContext",
    "BillingMode",
    "SplitCoordinator",
]
