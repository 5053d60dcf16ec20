"""Authenticated session state consumed by the catalog viewer."""

from __future__ import annotations

import logging
from typing import Callable

logger = logging.getLogger(__name__)

SessionListener = Callable[[bool], None]


class SessionState:
    """Holds the current auth token and whether catalog reads are allowed.

    Sign-in itself happens elsewhere; this object only records its outcome and
    tells listeners when the read permission flips.
    """

    def __init__(self, *, id_token: str | None = None, public_read: bool = False):
        self._id_token = id_token or None
        self._public_read = public_read
        self._listeners: list[SessionListener] = []

    @property
    def catalog_read_authorized(self) -> bool:
        return self._public_read or self._id_token is not None

    def current_token(self) -> str | None:
        return self._id_token

    def add_listener(self, listener: SessionListener) -> Callable[[], None]:
        """Register ``listener`` and return a callable that removes it."""

        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def sign_in(self, id_token: str) -> None:
        token = (id_token or "").strip()
        if not token:
            raise ValueError("An id token is required to sign in")
        was_authorized = self.catalog_read_authorized
        self._id_token = token
        if not was_authorized:
            self._notify()

    def sign_out(self) -> None:
        was_authorized = self.catalog_read_authorized
        self._id_token = None
        if was_authorized != self.catalog_read_authorized:
            self._notify()

    def _notify(self) -> None:
        authorized = self.catalog_read_authorized
        logger.info("Catalog read authorization changed: %s", authorized)
        for listener in list(self._listeners):
            listener(authorized)
