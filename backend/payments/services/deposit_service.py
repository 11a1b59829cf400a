from decimal import Decimal
import logging

from django.db import DatabaseError, transaction
from django.db.models import Sum

from payments.models import BookingDeposit
from payments.money import money

logger = logging.getLogger(__name__)


class DepositService:
    """Looks up pre-paid deposit credit for a table session."""

    @staticmethod
    def paid_deposit_total(booking_id=None, package_purchase_ref=None) -> Decimal:
        deposits = BookingDeposit.objects.filter(status=BookingDeposit.DepositStatus.PAID)
        if booking_id is not None:
            deposits = deposits.filter(booking_id=booking_id)
        elif package_purchase_ref:
            deposits = deposits.filter(package_purchase_ref=package_purchase_ref)
        else:
            return Decimal("0")
        return money(deposits.aggregate(total=Sum("amount"))["total"] or 0)

    @staticmethod
    def credit_for_session(session) -> Decimal:
        """
        Paid deposit from the session's booking, falling back to its package
        purchase. Best-effort: a failed lookup is logged and yields no credit
        rather than blocking the bill.
        """
        try:
            with transaction.atomic():
                credit = Decimal("0")
                if session.booking_id:
                    credit = DepositService.paid_deposit_total(booking_id=session.booking_id)
                if not credit and session.package_purchase_ref:
                    credit = DepositService.paid_deposit_total(package_purchase_ref=session.package_purchase_ref)
        except DatabaseError as e:
            logger.warning(f"Deposit lookup failed for session {session.id} (non-fatal): {e}")
            return Decimal("0")

        if credit:
            logger.info(f"Session {session.id}: deposit credit {credit}")
        return credit
