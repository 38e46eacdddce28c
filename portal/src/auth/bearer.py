"""
Admin authentication for the portal API.

ADMIN_TOKENS lists ``token:username`` pairs. Only SHA-256 digests of the
tokens are kept in memory. A presented bearer token is hashed and compared
against every registered digest with ``hmac.compare_digest``; the loop never
exits early, so the lookup time does not reveal which entry matched.

A successful match yields an :class:`AdminPrincipal`. Routes use it to stamp
the acting administrator on the records they write (``grantedBy`` on access
grants) and on their log lines.

CHANGELOG:
- 2026-10-12: Keep token digests only, return AdminPrincipal (STORY-113)
- 2026-10-08: Initial creation (STORY-111)

TODO:
- None
"""

import hashlib
import hmac
import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)


class AdminTokenError(ValueError):
    """ADMIN_TOKENS yields no usable ``token:username`` entry."""


@dataclass(frozen=True)
class AdminPrincipal:
    """An authenticated portal administrator."""

    username: str

    def __str__(self) -> str:
        return self.username


def _digest(token: str) -> bytes:
    return hashlib.sha256(token.encode("utf-8")).digest()


class AdminTokens:
    """Registry of admin bearer tokens, held as digests.

    Args:
        entries: Mapping of plaintext token -> admin username.

    Raises:
        AdminTokenError: If *entries* is empty.
    """

    def __init__(self, entries: dict[str, str]) -> None:
        if not entries:
            raise AdminTokenError(
                "ADMIN_TOKENS contains no valid token:username entries"
            )
        self._digests = tuple((_digest(token), user) for token, user in entries.items())

    @classmethod
    def parse(cls, raw: str) -> "AdminTokens":
        """Build the registry from the ADMIN_TOKENS value.

        Format: ``"token1:alice,token2:bob"``. Whitespace around tokens and
        usernames is ignored; usernames may contain further colons. Entries
        missing either side are skipped with a warning that names only their
        position, never their content.
        """
        entries: dict[str, str] = {}
        for position, entry in enumerate(raw.split(",")):
            if not entry.strip():
                continue
            token, sep, username = entry.partition(":")
            token, username = token.strip(), username.strip()
            if not sep or not token or not username:
                logger.warning(
                    "Ignoring malformed ADMIN_TOKENS entry at position %d", position
                )
                continue
            entries[token] = username
        return cls(entries)

    def __len__(self) -> int:
        return len(self._digests)

    @property
    def usernames(self) -> frozenset[str]:
        return frozenset(user for _, user in self._digests)

    def authenticate(self, token: str | None) -> AdminPrincipal | None:
        """Return the principal owning *token*, or None if it is unknown."""
        if not token:
            return None
        presented = _digest(token)
        matched: str | None = None
        for digest, username in self._digests:
            if hmac.compare_digest(presented, digest) and matched is None:
                matched = username
        return AdminPrincipal(matched) if matched is not None else None
