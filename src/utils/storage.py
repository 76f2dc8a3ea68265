"""Resolution of uploaded proof-file references.

Submissions only ever store an opaque reference; the bytes live in whatever
blob store the deployment uses.
"""

from typing import Optional

from config import UPLOADS_BASE_URL


class PrefixBlobResolver:
    """Resolves a reference by joining it onto a base URL."""

    def __init__(self, base_url: str = UPLOADS_BASE_URL):
        self.base_url = base_url.rstrip("/")

    def resolve(self, reference: str) -> str:
        if reference.startswith(("http://", "https://")):
            return reference
        return f"{self.base_url}/{reference.lstrip('/')}"


def resolve_optional(resolver, reference: Optional[str]) -> Optional[str]:
    """Resolve ``reference`` when present."""
    if not reference:
        return None
    return resolver.resolve(reference)
