"""
Guest lookup and manual guest entry for split-invoice assignment.
"""
from dataclasses import dataclass, asdict
from typing import List, Optional
import logging

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import validate_email
from django.db import IntegrityError, transaction
from django.db.models import Q

from core_backend.exceptions import ConflictError, ValidationError
from core_backend.utils.pii import PIIProtection
from .models import GuestProfile, GuestProfileManager

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SplitGuest:
    """
    A guest assigned to one split-invoice slot. Only its fields are copied onto
    the invoice; the assignment itself is never stored.
    """

    name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    user_id: Optional[int] = None
    guest_profile_id: Optional[str] = None

    @classmethod
    def from_profile(cls, profile: GuestProfile) -> "SplitGuest":
        return cls(
            name=profile.guest_name,
            phone=profile.guest_phone,
            email=profile.guest_email,
            user_id=profile.user_id,
            guest_profile_id=str(profile.id),
        )

    @classmethod
    def from_user(cls, user) -> "SplitGuest":
        name = user.get_full_name() or user.get_username()
        return cls(name=name, email=user.email or None, user_id=user.pk)

    @classmethod
    def from_dict(cls, data: dict) -> "SplitGuest":
        return cls(
            name=data.get("name", ""),
            phone=data.get("phone") or None,
            email=data.get("email") or None,
            user_id=data.get("user_id"),
            guest_profile_id=data.get("guest_profile_id"),
        )

    def to_dict(self) -> dict:
        return asdict(self)

    def invoice_fields(self) -> dict:
        return {
            "guest_name": self.name,
            "guest_phone": self.phone,
            "guest_email": self.email,
            "guest_user_id": self.user_id,
        }


class GuestProfileService:
    """
    Resolves guests for split invoices either by lookup (existing venue guest or
    linked account) or by manual entry.
    """

    SEARCH_LIMIT = 10

    @staticmethod
    def search(venue_id, query: str, limit: int = SEARCH_LIMIT) -> List[SplitGuest]:
        """
        Finds venue guests and accounts matching a name, phone or email fragment.
        Venue guests come first; accounts already linked to a listed guest are
        not repeated.
        """
        query = (query or "").strip()
        if len(query) < 2:
            return []

        profiles = list(
            GuestProfile.objects.filter(venue_id=venue_id)
            .filter(
                Q(guest_name__icontains=query)
                | Q(guest_phone__icontains=query)
                | Q(guest_email__icontains=query)
            )
            .order_by("guest_name")[:limit]
        )
        results = [SplitGuest.from_profile(p) for p in profiles]

        remaining = limit - len(results)
        if remaining > 0:
            linked_user_ids = {p.user_id for p in profiles if p.user_id}
            User = get_user_model()
            users = (
                User.objects.filter(is_active=True)
                .filter(
                    Q(email__icontains=query)
                    | Q(first_name__icontains=query)
                    | Q(last_name__icontains=query)
                )
                .exclude(pk__in=linked_user_ids)
                .order_by("pk")[:remaining]
            )
            results.extend(SplitGuest.from_user(u) for u in users)

        return results

    @staticmethod
    def create_manual_guest(venue_id, name: str, phone: str, email: str) -> SplitGuest:
        """
        Registers a walk-in guest typed in by staff.

        Raises:
            ValidationError: If any of name, phone or email is missing or malformed
            ConflictError: If the phone or email already belongs to a venue guest.
                Recoverable: the caller should offer a search instead.
        """
        name = (name or "").strip()
        phone = GuestProfileManager.normalize_phone(phone or "")
        email = GuestProfileManager.normalize_email(email or "")

        missing = [label for label, value in (("name", name), ("phone", phone), ("email", email)) if not value]
        if missing:
            raise ValidationError(
                "MissingGuestFields",
                f"Guest {', '.join(missing)} required",
                missing=missing,
            )
        try:
            validate_email(email)
        except DjangoValidationError as e:
            raise ValidationError("InvalidEmail", f"'{email}' is not a valid email address") from e

        if GuestProfile.objects.filter(venue_id=venue_id).filter(
            Q(guest_phone=phone) | Q(guest_email=email)
        ).exists():
            raise GuestProfileService._duplicate(phone, email)

        try:
            with transaction.atomic():
                profile = GuestProfile.objects.create(
                    venue_id=venue_id,
                    guest_name=name,
                    guest_phone=phone,
                    guest_email=email,
                )
        except IntegrityError as e:
            raise GuestProfileService._duplicate(phone, email) from e

        logger.info(
            f"Guest profile {profile.id} created for venue {venue_id} "
            f"({PIIProtection.mask_phone(phone)}, {PIIProtection.mask_email(email)})"
        )
        return SplitGuest.from_profile(profile)

    @staticmethod
    def _duplicate(phone, email) -> ConflictError:
        logger.info(
            f"Duplicate guest rejected ({PIIProtection.mask_phone(phone)}, {PIIProtection.mask_email(email)})"
        )
        return ConflictError(
            "DuplicateGuest",
            "A guest with this phone or email already exists. Search for the guest instead.",
        )
