"""User identity keys.

An identity is a ``(source, value)`` pair. Users that signed in with an
e-mail address are keyed by that address (``email:alice@example.com``);
users from a platform login without an e-mail are keyed by their user id
(``wechat:7f3a...``). The string form is what travels over the wire.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from gomoku_hub.store import Profile

EMAIL = "email"
WECHAT = "wechat"
SOURCES = (EMAIL, WECHAT)


@dataclass(frozen=True)
class Identity:
    source: str
    value: str

    def __post_init__(self):
        if self.source not in SOURCES:
            raise ValueError(f"Unknown identity source: {self.source!r}")
        if not self.value:
            raise ValueError("Identity value must not be empty")

    @classmethod
    def email(cls, address: str) -> Identity:
        return cls(EMAIL, address.strip())

    @classmethod
    def platform(cls, user_id: str) -> Identity:
        return cls(WECHAT, user_id)

    @classmethod
    def for_profile(cls, profile: Profile) -> Identity:
        if profile.email:
            return cls.email(profile.email)
        return cls.platform(profile.id)

    @classmethod
    def parse(cls, key: str) -> Identity:
        source, sep, value = key.partition(":")
        if not sep:
            raise ValueError(f"Malformed identity key: {key!r}")
        return cls(source, value)

    @property
    def key(self) -> str:
        return f"{self.source}:{self.value}"

    def __str__(self) -> str:
        return self.key
