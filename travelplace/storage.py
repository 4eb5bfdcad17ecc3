from typing import Dict, Optional, Protocol

from flask import session


class KeyValueStorage(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class CookieSessionStorage:
    """
    Keeps values in Flask's signed cookie session, so booking data lives in the
    browser and every tab of the origin sees the same copy (last write wins).
    """

    def get(self, key: str) -> Optional[str]:
        return session.get(key)

    def set(self, key: str, value: str) -> None:
        session[key] = value
        session.modified = True

    def remove(self, key: str) -> None:
        session.pop(key, None)


class MemoryStorage:
    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self.items: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.items.get(key)

    def set(self, key: str, value: str) -> None:
        self.items[key] = value

    def remove(self, key: str) -> None:
        self.items.pop(key, None)
