import uuid
from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils.translation import gettext_lazy as _


class OrderStatus(models.TextChoices):
    PENDING = "pending", _("Pending")
    PREPARING = "preparing", _("Preparing")
    READY = "ready", _("Ready")
    SERVED = "served", _("Served")
    CANCELLED = "cancelled", _("Cancelled")


class SessionOrder(models.Model):
    """
    A single submission of items to the kitchen or bar, numbered sequentially
    within its table session. Cancelled orders are excluded from billing.
    """

    Status = OrderStatus

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    session = models.ForeignKey(
        "tables.TableSession",
        on_delete=models.CASCADE,
        related_name="orders",
    )
    order_number = models.PositiveIntegerField(
        help_text=_("1-based sequence number within the session."),
    )
    status = models.CharField(max_length=20, choices=OrderStatus.choices, default=OrderStatus.PENDING)
    notes = models.TextField(blank=True, default="")
    ordered_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="session_orders",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["session", "order_number"]
        verbose_name = _("Session Order")
        verbose_name_plural = _("Session Orders")
        constraints = [
            models.UniqueConstraint(fields=["session", "order_number"], name="unique_order_number_per_session"),
        ]

    def __str__(self):
        return f"Order #{self.order_number} ({self.status})"


class SessionOrderItem(models.Model):
    """
    One line within a session order. Cancelled lines stay on record but never
    contribute to the bill.
    """

    Status = OrderStatus

    class Destination(models.TextChoices):
        KITCHEN = "kitchen", _("Kitchen")
        BAR = "bar", _("Bar")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(SessionOrder, on_delete=models.CASCADE, related_name="items")
    menu_item_ref = models.CharField(
        max_length=100,
        null=True,
        blank=True,
        help_text=_("Catalog reference; empty for custom items."),
    )
    item_name = models.CharField(max_length=200)
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    unit_price = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0"))],
        help_text=_("Price snapshot at the time of ordering."),
    )
    destination = models.CharField(max_length=10, choices=Destination.choices, default=Destination.KITCHEN)
    status = models.CharField(max_length=20, choices=OrderStatus.choices, default=OrderStatus.PENDING)
    notes = models.TextField(blank=True, default="")
    served_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["created_at"]
        verbose_name = _("Session Order Item")
        verbose_name_plural = _("Session Order Items")
        indexes = [
            models.Index(fields=["order", "status"], name="order_item_status_idx"),
        ]

    def __str__(self):
        return f"{self.quantity} x {self.item_name}"

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity

    @property
    def is_billable(self) -> bool:
        return self.status != OrderStatus.CANCELLED and self.order.status != OrderStatus.CANCELLED
