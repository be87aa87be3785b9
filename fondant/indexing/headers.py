from __future__ import annotations

import re
from collections.abc import Iterable

"""Header normalization.

Raw column labels become field keys: hyphens dropped, whitespace folded into
camel case, `#` spelled out as `Number`.

    >>> normalize_header("camel case")
    'camelCase'
    >>> normalize_header("RHEL Relateds")
    'RHELRelateds'
    >>> normalize_header("# of hosts")
    'NumberOfHosts'
"""

__all__ = [
    "normalize_header",
    "normalize_headers",
]

_WHITESPACE_THEN_CHAR = re.compile(r"\s+(.)")
_WHITESPACE = re.compile(r"\s+")


def normalize_header(raw: str | None) -> str:
    """Normalize one raw header. Pure and deterministic; None/empty -> ""."""
    if not raw:
        return ""
    text = str(raw).replace("-", "")
    text = _WHITESPACE_THEN_CHAR.sub(lambda m: m.group(1).upper(), text)
    text = _WHITESPACE.sub("", text)
    return text.replace("#", "Number")


def normalize_headers(raws: Iterable[str | None]) -> tuple[str, ...]:
    return tuple(normalize_header(r) for r in raws)
