"""Deterministic cache key construction.

Keys have the shape ``<entity>|<scope>|actors=<sel>|from=<date>|to=<date>``
(``names=<sel>`` for case-sensitive selections).
Actor names are whitespace-collapsed, case-folded and percent-encoded, and
multi-actor selections are de-duplicated and sorted, so the same logical
query always lands on the same slot. ``*`` marks "all actors" or an open date
bound; it cannot be produced by an encoded name.
"""

from __future__ import annotations

from enum import Enum
from typing import NewType, Optional, Sequence
from urllib.parse import quote

from freight_analytics.domain.exceptions import ValidationError
from freight_analytics.domain.models import DateRange

CacheKey = NewType("CacheKey", str)

KEY_SEPARATOR = "|"
WILDCARD = "*"


class CacheScope(str, Enum):
    """Kind of payload a key addresses."""

    RECORDS = "records"
    POOL = "pool"
    COMPARISON = "comparison"
    STATS = "stats"


def normalize_name(name: str, *, case_sensitive: bool = False) -> str:
    """Return the identity a name is cached under.

    ``case_sensitive`` keeps the trimmed spelling, for selections that are
    later matched against records by exact name.
    """

    if case_sensitive:
        normalized = str(name).strip()
    else:
        normalized = " ".join(str(name).split()).casefold()
    if not normalized:
        raise ValidationError("Actor name must be non-empty")
    return normalized


def _actor_selection(
    actors: str | Sequence[str] | None, case_sensitive: bool
) -> str:
    if actors is None:
        return WILDCARD
    if isinstance(actors, str):
        actors = [actors]
    names = sorted(
        {normalize_name(actor, case_sensitive=case_sensitive) for actor in actors}
    )
    if not names:
        raise ValidationError("Actor selection must name at least one actor")
    return ",".join(quote(name, safe="") for name in names)


def _date_bound(value) -> str:
    return value.isoformat() if value is not None else WILDCARD


def entity_prefix(entity: str) -> str:
    return f"{normalize_name(entity)}{KEY_SEPARATOR}"


def scope_prefix(entity: str, scope: CacheScope) -> str:
    return f"{entity_prefix(entity)}{CacheScope(scope).value}{KEY_SEPARATOR}"


def build_cache_key(
    entity: str,
    actors: str | Sequence[str] | None = None,
    date_range: Optional[DateRange] = None,
    *,
    scope: CacheScope = CacheScope.RECORDS,
    case_sensitive: bool = False,
) -> CacheKey:
    """Return the cache key for ``entity`` filtered by actors and dates.

    ``actors`` may be a single name, a sequence of names (order irrelevant)
    or ``None`` for every actor. ``case_sensitive`` keeps the spelling of each
    name instead of case-folding it.
    """

    window = date_range or DateRange()
    label = "names" if case_sensitive else "actors"
    parts = [
        scope_prefix(entity, scope).rstrip(KEY_SEPARATOR),
        f"{label}={_actor_selection(actors, case_sensitive)}",
        f"from={_date_bound(window.start)}",
        f"to={_date_bound(window.end)}",
    ]
    return CacheKey(KEY_SEPARATOR.join(parts))
