"""
Reload-on-notify subscriptions.

A subscriber registers a callback for a session id. Whenever the session
changes, the callback receives a freshly loaded session (orders, items,
invoices and payments) instead of a diff.

    subscription = subscribe(session.id, lambda s: render(s))
    ...
    subscription.close()
"""

import threading
from collections import defaultdict
from typing import Callable, Optional
import logging

from core_backend.exceptions import NotFoundError

logger = logging.getLogger(__name__)

_lock = threading.Lock()
_subscriptions = defaultdict(list)


class SessionSubscription:
    def __init__(self, session_id, callback: Callable, loader: Optional[Callable] = None):
        self.session_id = str(session_id)
        self.callback = callback
        self.loader = loader
        self.active = True
        self.reload_count = 0

    def reload(self):
        """Fetches the full session and hands it to the callback."""
        if not self.active:
            return None

        if self.loader is None:
            from .services import SessionService

            loader = SessionService.load_session
        else:
            loader = self.loader

        try:
            session = loader(self.session_id)
        except NotFoundError:
            logger.warning(f"Subscription for session {self.session_id}: session no longer exists")
            return None

        self.reload_count += 1
        self.callback(session)
        return session

    def close(self):
        self.active = False
        with _lock:
            subscribers = _subscriptions.get(self.session_id, [])
            if self in subscribers:
                subscribers.remove(self)
            if not subscribers:
                _subscriptions.pop(self.session_id, None)


def subscribe(session_id, callback: Callable, loader: Optional[Callable] = None) -> SessionSubscription:
    subscription = SessionSubscription(session_id, callback, loader)
    with _lock:
        _subscriptions[subscription.session_id].append(subscription)
    return subscription


def dispatch(session_id, source: str = "") -> int:
    """
    Reloads every subscription for a session. A failing subscriber is logged
    and skipped so it cannot affect the write that triggered it.
    """
    with _lock:
        subscribers = list(_subscriptions.get(str(session_id), []))

    reloaded = 0
    for subscription in subscribers:
        try:
            if subscription.reload() is not None:
                reloaded += 1
        except Exception:
            logger.exception(f"Subscriber for session {session_id} failed while reloading after {source} change")
    return reloaded


def clear() -> None:
    """Drops every subscription, e.g. between tests or on worker shutdown."""
    with _lock:
        for subscribers in _subscriptions.values():
            for subscription in subscribers:
                subscription.active = False
        _subscriptions.clear()
