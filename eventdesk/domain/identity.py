"""
Identity session - Explicit, observable identity context.

The registration workflow receives the current identity through this
object instead of reading ambient global state. Listeners are notified
whenever the identity changes (sign in, sign out, account switch).
"""

import logging
from collections.abc import Callable

from .ports import Identity

logger = logging.getLogger(__name__)

IdentityListener = Callable[[Identity | None], None]


class IdentitySession:
    """
    Holds the current identity and notifies subscribers of changes.

    Satisfies the IdentityProvider port.
    """

    def __init__(self, identity: Identity | None = None) -> None:
        self._identity = identity
        self._listeners: list[IdentityListener] = []

    def current_user(self) -> Identity | None:
        return self._identity

    def subscribe(self, listener: IdentityListener) -> Callable[[], None]:
        """
        Register a listener for identity changes.

        Returns:
            A callable that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def set_identity(self, identity: Identity | None) -> None:
        """Replace the identity; listeners run only when it actually changed."""
        if identity == self._identity:
            return
        self._identity = identity
        logger.debug("Identity changed: %s", identity.id if identity else None)
        for listener in list(self._listeners):
            listener(identity)
