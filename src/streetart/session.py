"""The "entered" session flag.

A plain boolean kept in local storage. It gates initialization of the
core and carries no security meaning.
"""

from __future__ import annotations

from streetart._constants import SESSION_KEY
from streetart.storage.local import LocalStorage

_ENTERED_VALUE = "true"


class SessionFlag:
    """Whether the user has passed the welcome screen on this device."""

    def __init__(self, local: LocalStorage, *, key: str = SESSION_KEY) -> None:
        self._local = local
        self._key = key

    @property
    def is_entered(self) -> bool:
        # Absence means "not yet entered"; any stored value counts as entered.
        return self._local.get_item(self._key) is not None

    def enter(self) -> None:
        self._local.set_item(self._key, _ENTERED_VALUE)

    def leave(self) -> None:
        self._local.remove_item(self._key)
