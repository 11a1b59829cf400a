"""
Masking helpers so guest contact details never reach the logs in clear text.
"""
import re
from typing import Optional


class PIIProtection:
    """Utilities for protecting personally identifiable information."""

    @staticmethod
    def mask_email(email: Optional[str]) -> str:
        """
        Example: john.doe@example.com -> jo******@example.com
        """
        if not email or "@" not in email:
            return email or ""

        local, domain = email.split("@", 1)
        if len(local) <= 2:
            masked_local = local[0] + "*"
        else:
            masked_local = local[:2] + "*" * (len(local) - 2)
        return f"{masked_local}@{domain}"

    @staticmethod
    def mask_phone(phone: Optional[str]) -> str:
        """
        Keeps the last four digits.
        Example: +62 812-3456-7890 -> +** ***-****-7890
        """
        if not phone:
            return phone or ""

        digits = re.sub(r"\D", "", phone)
        if len(digits) < 4:
            return "*" * len(phone)

        keep_from = len(digits) - 4
        seen = 0
        masked = []
        for char in phone:
            if char.isdigit():
                masked.append(char if seen >= keep_from else "*")
                seen += 1
            else:
                masked.append(char)
        return "".join(masked)
