"""
Guest resolution: raw guest tokens -> addressable email identities.

Tokens that already look like an email are accepted without a lookup.
Everything else is looked up by name in the contact directory; misses
are reported back, in input order, instead of failing the turn.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable

from agenda_assistant.tools.contacts import ContactDirectory
from agenda_assistant.utils import looks_like_email, normalize_email

logger = logging.getLogger(__name__)


@dataclass
class ResolutionResult:
    """Resolved emails (set semantics, first-seen order) and unresolved tokens."""

    resolved: list[str] = field(default_factory=list)
    unresolved: list[str] = field(default_factory=list)


class GuestResolver:
    """Read-only resolver over a ContactDirectory."""

    def __init__(self, directory: ContactDirectory) -> None:
        self._directory = directory

    async def resolve(self, tokens: Iterable[str]) -> ResolutionResult:
        """
        Resolve each token independently.

        Raises:
            DirectoryError: If a lookup fails. Nothing is partially applied.
        """
        result = ResolutionResult()
        for raw in tokens:
            token = raw.strip()
            if not token:
                continue
            if looks_like_email(token):
                email = normalize_email(token)
            else:
                email = await self._directory.lookup(token)
                if email is None:
                    logger.info("Guest '%s' not found in directory", token)
                    result.unresolved.append(token)
                    continue
                email = normalize_email(email)
            if email not in result.resolved:
                result.resolved.append(email)
        return result
