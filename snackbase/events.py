"""Auth lifecycle events."""

from typing import Any, Callable, Literal

AuthEvent = Literal["auth:login", "auth:logout", "auth:refresh", "auth:error"]
AUTH_EVENTS: tuple[AuthEvent, ...] = ("auth:login", "auth:logout", "auth:refresh", "auth:error")

Listener = Callable[..., Any]


class AuthEvents:
    """Synchronous listeners keyed by event name.

    ``auth:login`` and ``auth:refresh`` receive the new ``TokenState``,
    ``auth:error`` the failure, ``auth:logout`` nothing.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = {}

    def on(self, event: AuthEvent, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; the returned callable unregisters it."""
        if event not in AUTH_EVENTS:
            raise ValueError(f"Unknown auth event {event!r}")
        listeners = self._listeners.setdefault(event, [])
        if listener not in listeners:
            listeners.append(listener)
        return lambda: self.off(event, listener)

    def off(self, event: AuthEvent, listener: Listener) -> None:
        listeners = self._listeners.get(event, [])
        if listener in listeners:
            listeners.remove(listener)

    def emit(self, event: AuthEvent, *args: Any) -> None:
        # copy so a listener may unsubscribe itself
        for listener in list(self._listeners.get(event, [])):
            listener(*args)
