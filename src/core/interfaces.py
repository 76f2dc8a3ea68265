"""Collaborators consumed by the core.

The core never hashes passwords, stores files or reads the system clock on its
own; it is handed implementations of the protocols below.
"""

from datetime import datetime
from typing import Callable, Protocol

import pytz

# Zero-argument callable returning an aware datetime
Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(pytz.utc)


class CredentialVerifier(Protocol):
    """Opaque one-way credential verifier."""

    def hash(self, password: str) -> str:
        ...

    def verify(self, password: str, hashed: str) -> bool:
        ...


class BlobResolver(Protocol):
    """Resolves an opaque uploaded-file reference into a retrievable URL."""

    def resolve(self, reference: str) -> str:
        ...
