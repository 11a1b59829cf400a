from django.db.models.signals import post_save
from django.dispatch import receiver

from tables.signals import emit_session_changed
from .models import SessionInvoice, SessionPayment


@receiver(post_save, sender=SessionInvoice)
def session_invoice_saved(sender, instance, **kwargs):
    emit_session_changed(sender, instance.session_id, "invoice")


@receiver(post_save, sender=SessionPayment)
def session_payment_saved(sender, instance, created, **kwargs):
    if created:
        emit_session_changed(sender, instance.invoice.session_id, "payment")
