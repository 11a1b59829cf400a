"""
Primary/advisory outcome reporting for multi-step operations.

Opening a session, closing it and generating invoices each have one primary
outcome (the record of truth) plus auxiliary writes such as table status
bookkeeping. Auxiliary steps run through ``run_best_effort`` so their failure is
logged and reported on the ``ServiceResult`` instead of failing the primary
operation.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

from django.db import DatabaseError, transaction

from .exceptions import UpstreamError

logger = logging.getLogger(__name__)


@dataclass
class AdvisoryOutcome:
    name: str
    ok: bool
    error: Optional[str] = None


@dataclass
class ServiceResult:
    value: Any
    advisories: List[AdvisoryOutcome] = field(default_factory=list)

    @property
    def fully_succeeded(self) -> bool:
        return all(a.ok for a in self.advisories)

    @property
    def failed_advisories(self) -> List[AdvisoryOutcome]:
        return [a for a in self.advisories if not a.ok]

    def advisory(self, name: str) -> Optional[AdvisoryOutcome]:
        for outcome in self.advisories:
            if outcome.name == name:
                return outcome
        return None


def run_best_effort(name: str, step: Callable[[], Any], result: Optional[ServiceResult] = None) -> AdvisoryOutcome:
    """
    Runs an advisory step. Upstream and database failures are logged and
    recorded, never raised. Each step gets its own savepoint so a failed write
    cannot poison an enclosing transaction.
    """
    try:
        with transaction.atomic():
            step()
        outcome = AdvisoryOutcome(name=name, ok=True)
    except (UpstreamError, DatabaseError) as e:
        logger.warning(f"Advisory step '{name}' failed (non-fatal): {e}")
        outcome = AdvisoryOutcome(name=name, ok=False, error=str(e))

    if result is not None:
        result.advisories.append(outcome)
    return outcome
