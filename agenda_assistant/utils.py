"""Shared utilities used across the scheduling assistant."""

import re

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)


def looks_like_email(value: str) -> bool:
    """Return True when a guest token should be taken as an address as-is.

    Examples:
        >>> looks_like_email("vini@x.com")
        True
        >>> looks_like_email("Vini")
        False
    """
    return "@" in value


def normalize_email(value: str) -> str:
    """Trim and lower-case an email address.

    Examples:
        >>> normalize_email("  Vini@X.com ")
        'vini@x.com'
    """
    return value.strip().lower()


def strip_json_decoration(text: str) -> str:
    """Remove code fences and surrounding prose from a model reply.

    Returns the substring from the first ``{`` to the last ``}``, or the
    fence-stripped text when no braces are present.

    Examples:
        >>> strip_json_decoration('```json\\n{"intent": "greeting"}\\n```')
        '{"intent": "greeting"}'
        >>> strip_json_decoration('Claro! {"a": 1} Espero ter ajudado.')
        '{"a": 1}'
    """
    cleaned = _FENCE_RE.sub("", text).strip()
    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start == -1 or end < start:
        return cleaned
    return cleaned[start:end + 1]
