"""
Domain events published to live stream subscribers.

Events are not persisted. Each one serializes to the envelope
{"type": <event name>, "data": <payload>} sent over /stream.
"""

from dataclasses import dataclass
from typing import Any, Dict, Union

from .entities import User
from .value_objects import Username


@dataclass(frozen=True)
class NewLogin:
    """An existing user authenticated"""
    user: User

    def payload(self) -> Dict[str, Any]:
        return self.user.to_dict()


@dataclass(frozen=True)
class NewRegister:
    """A new user account was created"""
    user: User

    def payload(self) -> Dict[str, Any]:
        return self.user.to_dict()


@dataclass(frozen=True)
class NewReferral:
    """A new user registered with someone else's invite code"""
    referrer: Username
    referred_user: Username

    def payload(self) -> Dict[str, Any]:
        return {
            "referrer": self.referrer.value,
            "referredUser": self.referred_user.value,
        }


DomainEvent = Union[NewLogin, NewRegister, NewReferral]


def to_envelope(event: DomainEvent) -> Dict[str, Any]:
    """Serialize an event to its tagged wire envelope"""
    return {"type": type(event).__name__, "data": event.payload()}
