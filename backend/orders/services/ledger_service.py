from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Iterable, List, Optional, Tuple

from django.db import transaction
from django.db.models import Max
from django.utils import timezone
import logging

from core_backend.exceptions import (
    InvalidQuantity,
    InvalidTransition,
    NotFoundError,
    StateError,
    ValidationError,
)
from orders.models import OrderStatus, SessionOrder, SessionOrderItem
from tables.models import TableSession
from tables.services import SessionService

logger = logging.getLogger(__name__)


def _parse_quantity(quantity) -> int:
    try:
        value = int(quantity)
    except (TypeError, ValueError):
        raise InvalidQuantity(quantity)
    if value != quantity and str(value) != str(quantity).strip():
        raise InvalidQuantity(quantity)
    if value < 1:
        raise InvalidQuantity(quantity)
    return value


@dataclass(frozen=True)
class CartLine:
    """
    One line of a desired cart. ``existing_item_id`` ties it to an item already
    on the order; lines without one are new.
    """

    item_name: str
    quantity: int
    unit_price: Decimal
    destination: str = SessionOrderItem.Destination.KITCHEN
    menu_item_ref: Optional[str] = None
    notes: str = ""
    existing_item_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "CartLine":
        try:
            unit_price = Decimal(str(data.get("unit_price", "")))
        except (InvalidOperation, ValueError):
            raise ValidationError("InvalidItem", f"Invalid unit price for '{data.get('item_name', '')}'")
        existing = data.get("existing_item_id")
        return cls(
            item_name=(data.get("item_name") or "").strip(),
            quantity=data.get("quantity"),
            unit_price=unit_price,
            destination=data.get("destination") or SessionOrderItem.Destination.KITCHEN,
            menu_item_ref=data.get("menu_item_ref"),
            notes=data.get("notes") or "",
            existing_item_id=str(existing) if existing else None,
        )

    @classmethod
    def from_item(cls, item: SessionOrderItem) -> "CartLine":
        return cls(
            item_name=item.item_name,
            quantity=item.quantity,
            unit_price=item.unit_price,
            destination=item.destination,
            menu_item_ref=item.menu_item_ref,
            notes=item.notes,
            existing_item_id=str(item.id),
        )

    def validate(self) -> "CartLine":
        if not self.item_name:
            raise ValidationError("InvalidItem", "Every item needs a name")
        _parse_quantity(self.quantity)
        if self.unit_price < 0:
            raise ValidationError("InvalidItem", f"Unit price for '{self.item_name}' cannot be negative")
        if self.destination not in SessionOrderItem.Destination.values:
            raise ValidationError("InvalidItem", f"Unknown destination '{self.destination}'")
        return self


@dataclass
class EditPlan:
    """Minimal set of operations turning an order's items into a desired cart."""

    deletes: List[str] = field(default_factory=list)
    updates: List[Tuple[str, int]] = field(default_factory=list)
    creates: List[CartLine] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.deletes or self.updates or self.creates)

    @property
    def operation_count(self) -> int:
        return len(self.deletes) + len(self.updates) + len(self.creates)


@dataclass
class DestinationTicket:
    """One order as the kitchen or bar sees it: only its open items for that station."""

    order_id: str
    order_number: int
    session_id: str
    table_number: Optional[str]
    guest_name: Optional[str]
    created_at: datetime
    items: List[SessionOrderItem] = field(default_factory=list)

    @property
    def is_walk_in(self) -> bool:
        return self.table_number is None

    @property
    def pending_count(self) -> int:
        return sum(1 for item in self.items if item.status == OrderStatus.PENDING)


class OrderLedgerService:
    """Service for session orders and their items: add, edit, cancel."""

    ITEM_TRANSITIONS = {
        OrderStatus.PENDING: [OrderStatus.PREPARING, OrderStatus.READY, OrderStatus.SERVED, OrderStatus.CANCELLED],
        OrderStatus.PREPARING: [OrderStatus.READY, OrderStatus.SERVED, OrderStatus.CANCELLED],
        OrderStatus.READY: [OrderStatus.SERVED, OrderStatus.CANCELLED],
        OrderStatus.SERVED: [],
        OrderStatus.CANCELLED: [],
    }

    @staticmethod
    def _coerce_lines(items: Iterable) -> List[CartLine]:
        lines = []
        for item in items:
            line = item if isinstance(item, CartLine) else CartLine.from_dict(item)
            lines.append(line.validate())
        return lines

    @staticmethod
    def _locked_session(session_id) -> TableSession:
        try:
            return TableSession.objects.select_for_update().get(pk=session_id)
        except TableSession.DoesNotExist:
            raise NotFoundError("SessionNotFound", f"Table session {session_id} not found")

    @staticmethod
    def _ensure_item_editable(item: SessionOrderItem) -> None:
        if item.status != OrderStatus.PENDING:
            raise StateError(
                "ItemLocked",
                f"'{item.item_name}' is {item.status} and can no longer be changed",
                item_id=item.id,
            )

    # --- Orders --------------------------------------------------------

    @staticmethod
    @transaction.atomic
    def create_order(session: TableSession, items: Iterable, notes: str = "", ordered_by=None) -> SessionOrder:
        """
        Submits a new order with the next sequential number in the session.

        Raises:
            ValidationError: EmptyOrder, InvalidItem, InvalidQuantity
            StateError: SessionLocked when the session is paid or closed
        """
        lines = OrderLedgerService._coerce_lines(items)
        if not lines:
            raise ValidationError("EmptyOrder", "An order needs at least one item")

        session = OrderLedgerService._locked_session(session.pk)
        SessionService.ensure_mutable(session)

        last_number = session.orders.aggregate(last=Max("order_number"))["last"] or 0
        order = SessionOrder.objects.create(
            session=session,
            order_number=last_number + 1,
            notes=notes or "",
            ordered_by=ordered_by,
        )
        OrderLedgerService._create_items(order, lines)

        logger.info(f"Session {session.id}: order #{order.order_number} created with {len(lines)} line(s)")
        return order

    @staticmethod
    def _create_items(order: SessionOrder, lines: List[CartLine]) -> List[SessionOrderItem]:
        created = []
        for line in lines:
            created.append(
                SessionOrderItem.objects.create(
                    order=order,
                    menu_item_ref=line.menu_item_ref,
                    item_name=line.item_name,
                    quantity=_parse_quantity(line.quantity),
                    unit_price=line.unit_price,
                    destination=line.destination,
                    notes=line.notes,
                )
            )
        return created

    @staticmethod
    @transaction.atomic
    def add_items(order: SessionOrder, items: Iterable) -> List[SessionOrderItem]:
        """
        Appends item lines to an existing order and returns the order's items.

        Raises:
            ValidationError: InvalidItem, InvalidQuantity
            StateError: SessionLocked, OrderCancelled
        """
        lines = OrderLedgerService._coerce_lines(items)
        session = OrderLedgerService._locked_session(order.session_id)
        SessionService.ensure_mutable(session)
        if order.status == OrderStatus.CANCELLED:
            raise StateError("OrderCancelled", f"Order #{order.order_number} is cancelled")

        OrderLedgerService._create_items(order, lines)
        logger.info(f"Order #{order.order_number}: {len(lines)} line(s) added")
        return list(order.items.order_by("created_at"))

    @staticmethod
    @transaction.atomic
    def update_order_status(order: SessionOrder, status: str) -> SessionOrder:
        if status not in OrderStatus.values:
            raise ValidationError("InvalidStatus", f"Unknown order status '{status}'")
        if status == OrderStatus.CANCELLED:
            return OrderLedgerService.cancel_order(order)

        SessionService.ensure_mutable(order.session)
        if order.status == OrderStatus.CANCELLED:
            raise InvalidTransition("order", order.status, status)

        old_status = order.status
        order.status = status
        order.save(update_fields=["status", "updated_at"])
        logger.info(f"Order #{order.order_number}: Status transition {old_status} -> {status}")
        return order

    @staticmethod
    @transaction.atomic
    def cancel_order(order: SessionOrder) -> SessionOrder:
        """
        Cancels an order and every item on it. Orders with served items keep
        them on the bill and cannot be cancelled.
        """
        SessionService.ensure_mutable(order.session)
        if order.status == OrderStatus.CANCELLED:
            return order

        items = list(order.items.select_for_update())
        served = [item.item_name for item in items if item.status == OrderStatus.SERVED]
        if served:
            raise StateError(
                "ItemLocked",
                f"Order #{order.order_number} has served items ({', '.join(served)}) and cannot be cancelled",
            )

        for item in items:
            if item.status != OrderStatus.CANCELLED:
                item.status = OrderStatus.CANCELLED
                item.save(update_fields=["status", "updated_at"])

        order.status = OrderStatus.CANCELLED
        order.save(update_fields=["status", "updated_at"])
        logger.info(f"Order #{order.order_number} cancelled with {len(items)} item(s)")
        return order

    # --- Items ---------------------------------------------------------

    @staticmethod
    @transaction.atomic
    def update_item_quantity(item: SessionOrderItem, quantity) -> SessionOrderItem:
        """
        Replaces a pending item's quantity in place.

        Raises:
            InvalidQuantity: If quantity < 1 (delete the item instead)
            StateError: ItemLocked once the item is past pending
        """
        quantity = _parse_quantity(quantity)
        SessionService.ensure_mutable(item.order.session)
        OrderLedgerService._ensure_item_editable(item)

        if item.quantity == quantity:
            return item

        old_quantity = item.quantity
        item.quantity = quantity
        item.save(update_fields=["quantity", "updated_at"])
        logger.info(f"Item {item.id} ({item.item_name}): quantity {old_quantity} -> {quantity}")
        return item

    @staticmethod
    @transaction.atomic
    def delete_item(item: SessionOrderItem) -> SessionOrderItem:
        """
        Soft-removes an item by cancelling it; the row stays for the audit trail.
        """
        SessionService.ensure_mutable(item.order.session)
        if item.status == OrderStatus.CANCELLED:
            return item
        if item.status == OrderStatus.SERVED:
            raise StateError(
                "ItemLocked",
                f"'{item.item_name}' has been served and cannot be removed",
                item_id=item.id,
            )

        item.status = OrderStatus.CANCELLED
        item.save(update_fields=["status", "updated_at"])
        logger.info(f"Item {item.id} ({item.item_name}) cancelled")
        return item

    @staticmethod
    @transaction.atomic
    def update_item_status(item: SessionOrderItem, status: str) -> SessionOrderItem:
        """
        Kitchen/bar progress for a single item. Marking it served stamps served_at
        and, once every live item on the order is served, the order follows.
        """
        if status not in OrderStatus.values:
            raise ValidationError("InvalidStatus", f"Unknown item status '{status}'")
        if status == OrderStatus.CANCELLED:
            return OrderLedgerService.delete_item(item)

        SessionService.ensure_mutable(item.order.session)
        if item.status == status:
            return item
        if status not in OrderLedgerService.ITEM_TRANSITIONS.get(item.status, []):
            raise InvalidTransition("item", item.status, status)

        old_status = item.status
        item.status = status
        update_fields = ["status", "updated_at"]
        if status == OrderStatus.SERVED:
            item.served_at = timezone.now()
            update_fields.append("served_at")
        item.save(update_fields=update_fields)
        logger.info(f"Item {item.id} ({item.item_name}): Status transition {old_status} -> {status}")

        if status == OrderStatus.SERVED:
            OrderLedgerService._roll_up_served(item.order)
        return item

    @staticmethod
    def _roll_up_served(order: SessionOrder) -> None:
        live = order.items.exclude(status=OrderStatus.CANCELLED)
        if live.exists() and not live.exclude(status=OrderStatus.SERVED).exists():
            if order.status != OrderStatus.SERVED:
                order.status = OrderStatus.SERVED
                order.save(update_fields=["status", "updated_at"])
                logger.info(f"Order #{order.order_number}: all items served")

    # --- Kitchen / bar display -------------------------------------------

    QUEUE_STATUSES = [OrderStatus.PENDING, OrderStatus.PREPARING, OrderStatus.READY]

    @staticmethod
    def destination_queue(venue_id, destination: str) -> List[DestinationTicket]:
        """
        Open work for one station: pending, preparing and ready items routed to
        ``destination``, grouped by order, oldest order first.
        """
        if destination not in SessionOrderItem.Destination.values:
            raise ValidationError("InvalidDestination", f"Unknown destination '{destination}'")

        items = (
            SessionOrderItem.objects.filter(
                destination=destination,
                status__in=OrderLedgerService.QUEUE_STATUSES,
                order__session__venue_id=venue_id,
            )
            .exclude(order__status=OrderStatus.CANCELLED)
            .select_related("order", "order__session", "order__session__table")
            .order_by("created_at")
        )

        tickets = {}
        for item in items:
            ticket = tickets.get(item.order_id)
            if ticket is None:
                order = item.order
                session = order.session
                ticket = DestinationTicket(
                    order_id=order.id,
                    order_number=order.order_number,
                    session_id=session.id,
                    table_number=session.table.table_number if session.table_id else None,
                    guest_name=session.guest_name or None,
                    created_at=item.created_at,
                    items=[],
                )
                tickets[item.order_id] = ticket
            ticket.items.append(item)

        return sorted(tickets.values(), key=lambda ticket: ticket.created_at)

    # --- Edit flow -----------------------------------------------------

    @staticmethod
    def plan_edit(original_items: Iterable[SessionOrderItem], desired_cart: Iterable) -> EditPlan:
        """
        Diffs an order's items against the cart the user wants to end up with.

        - deletes: items present originally, absent from the cart
        - updates: items present in both whose quantity changed
        - creates: cart lines not tied to an existing item

        Cancelled items are ignored. Pure: nothing is written.
        """
        originals = {
            str(item.id): item for item in original_items if item.status != OrderStatus.CANCELLED
        }
        lines = OrderLedgerService._coerce_lines(desired_cart)

        plan = EditPlan()
        kept = set()
        for line in lines:
            if line.existing_item_id is None:
                plan.creates.append(line)
                continue

            item = originals.get(line.existing_item_id)
            if item is None:
                raise ValidationError(
                    "UnknownItem",
                    f"Item {line.existing_item_id} is not on this order",
                    item_id=line.existing_item_id,
                )
            if line.existing_item_id in kept:
                raise ValidationError("DuplicateItem", f"Item {line.existing_item_id} appears twice in the cart")
            kept.add(line.existing_item_id)

            quantity = _parse_quantity(line.quantity)
            if quantity != item.quantity:
                plan.updates.append((line.existing_item_id, quantity))

        plan.deletes = [item_id for item_id in originals if item_id not in kept]
        return plan

    @staticmethod
    @transaction.atomic
    def reconcile_edit(order: SessionOrder, desired_cart: Iterable) -> EditPlan:
        """
        Applies the diff between an order and a desired cart. Running it again
        with the same cart performs no operations, and items whose quantity is
        unchanged are never written.
        """
        session = OrderLedgerService._locked_session(order.session_id)
        SessionService.ensure_mutable(session)
        if order.status == OrderStatus.CANCELLED:
            raise StateError("OrderCancelled", f"Order #{order.order_number} is cancelled")

        items = {str(item.id): item for item in order.items.select_for_update()}
        plan = OrderLedgerService.plan_edit(items.values(), desired_cart)
        if plan.is_empty:
            logger.debug(f"Order #{order.order_number}: edit produced no changes")
            return plan

        # Validate the whole plan before writing anything
        for item_id in plan.deletes:
            if items[item_id].status == OrderStatus.SERVED:
                raise StateError("ItemLocked", f"'{items[item_id].item_name}' has been served and cannot be removed")
        for item_id, _ in plan.updates:
            OrderLedgerService._ensure_item_editable(items[item_id])

        for item_id in plan.deletes:
            OrderLedgerService.delete_item(items[item_id])
        for item_id, quantity in plan.updates:
            OrderLedgerService.update_item_quantity(items[item_id], quantity)
        if plan.creates:
            OrderLedgerService._create_items(order, plan.creates)

        logger.info(
            f"Order #{order.order_number} edited: {len(plan.deletes)} removed, "
            f"{len(plan.updates)} updated, {len(plan.creates)} added"
        )
        return plan
