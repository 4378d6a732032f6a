# farmfence/naming.py
from __future__ import annotations

import logging
from typing import Callable, Optional

from farmfence.config import NAME_SUFFIX_LIMIT
from farmfence.errors import Conflict, NameExhausted

logger = logging.getLogger(__name__)

NameExists = Callable[[str], bool]


def default_name(prefix: str, sequence_count: int) -> str:
    return f"{prefix}{(sequence_count or 0) + 1}"


def suffixed_name(
    base: str,
    exists: NameExists,
    *,
    limit: int = NAME_SUFFIX_LIMIT,
) -> str:
    """First free `base` + two-digit counter ("01", "02", ...) below `limit`."""
    for counter in range(1, limit):
        candidate = f"{base}{counter:02d}"
        if not exists(candidate):
            return candidate
        logger.debug("Name %r taken, trying next suffix", candidate)
    raise NameExhausted(base)


def allocate_name(
    desired: Optional[str],
    exists: NameExists,
    *,
    default_prefix: str,
    sequence_count: int,
    allow_rename: bool = False,
    limit: int = NAME_SUFFIX_LIMIT,
) -> str:
    """
    Returns a name that `exists` reports free.

    - empty/whitespace `desired` -> "{default_prefix}{sequence_count + 1}"
    - free name -> returned unchanged
    - taken name, allow_rename -> first free suffixed name
    - taken name, no allow_rename -> Conflict carrying the suggested name
    """
    name = desired if desired and desired.strip() else default_name(default_prefix, sequence_count)

    if not exists(name):
        return name

    proposed = suffixed_name(name, exists, limit=limit)
    if allow_rename:
        logger.info("Name %r taken, renamed to %r", name, proposed)
        return proposed
    raise Conflict(name, proposed)
