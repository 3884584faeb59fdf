"""Platform alert queue abstraction.

A ``NotificationCenter`` is the thing that actually fires alerts: it holds
pending requests keyed by identifier and remembers which ones were
delivered.  ``NotificationScheduler`` only ever talks to this interface,
so tests and headless runs use ``InMemoryNotificationCenter`` while the
desktop app uses the Qt implementation in ``qt_center``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class AuthorizationStatus(Enum):
    NOT_DETERMINED = "not_determined"
    DENIED = "denied"
    AUTHORIZED = "authorized"
    PROVISIONAL = "provisional"

    @property
    def allows_alerts(self) -> bool:
        return self in (AuthorizationStatus.AUTHORIZED, AuthorizationStatus.PROVISIONAL)


class NotificationError(Exception):
    """The platform refused or failed to queue an alert."""


@dataclass(frozen=True)
class NotificationRequest:
    identifier: str
    title: str
    body: str
    fire_in_seconds: int
    sound: bool = True


class NotificationCenter:
    """Interface every alert backend implements."""

    def authorization_status(self) -> AuthorizationStatus:
        raise NotImplementedError

    def request_authorization(self) -> None:
        raise NotImplementedError

    def add(self, request: NotificationRequest) -> None:
        raise NotImplementedError

    def remove_pending(self, identifiers: list[str]) -> None:
        raise NotImplementedError

    def remove_delivered(self, identifiers: list[str]) -> None:
        raise NotImplementedError

    def pending_identifiers(self) -> list[str]:
        raise NotImplementedError


class InMemoryNotificationCenter(NotificationCenter):
    """Queue kept in dictionaries.

    ``deliver_due(elapsed)`` moves requests whose delay has run out into
    ``delivered``, which is enough to simulate the platform in tests.
    Set ``fail_with`` to make the next ``add`` calls raise.
    """

    def __init__(
        self,
        status: AuthorizationStatus = AuthorizationStatus.AUTHORIZED,
        *,
        grant_on_request: bool = True,
    ) -> None:
        self.status = status
        self.grant_on_request = grant_on_request
        self.pending: dict[str, NotificationRequest] = {}
        self.delivered: dict[str, NotificationRequest] = {}
        self.fail_with: Exception | None = None
        self.added: list[NotificationRequest] = []

    def authorization_status(self) -> AuthorizationStatus:
        return self.status

    def request_authorization(self) -> None:
        if self.status is AuthorizationStatus.NOT_DETERMINED:
            self.status = (
                AuthorizationStatus.AUTHORIZED
                if self.grant_on_request
                else AuthorizationStatus.DENIED
            )

    def add(self, request: NotificationRequest) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.pending[request.identifier] = request
        self.added.append(request)

    def remove_pending(self, identifiers: list[str]) -> None:
        for identifier in identifiers:
            self.pending.pop(identifier, None)

    def remove_delivered(self, identifiers: list[str]) -> None:
        for identifier in identifiers:
            self.delivered.pop(identifier, None)

    def pending_identifiers(self) -> list[str]:
        return list(self.pending)

    def deliver_due(self, elapsed_seconds: int) -> list[NotificationRequest]:
        due = [r for r in self.pending.values() if r.fire_in_seconds <= elapsed_seconds]
        for request in due:
            del self.pending[request.identifier]
            self.delivered[request.identifier] = request
        return due
