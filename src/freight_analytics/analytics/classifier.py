"""Transport mode classification shared by every aggregation."""

from __future__ import annotations

from typing import Mapping, Tuple

from freight_analytics.domain.models import TransportMode

# Checked in insertion order; the first matching code wins.
KNOWN_MODE_CODES: Mapping[TransportMode, Tuple[str, ...]] = {
    TransportMode.AIR: ("40 - air",),
    TransportMode.SEA: ("10 - vessel", "11 - vessel"),
    TransportMode.TRUCK: ("30 - truck",),
}


def classify_mode(text: str | None) -> TransportMode:
    """Map a free-text transport code such as ``"40 - Air"`` to a mode."""

    if not text:
        return TransportMode.OTHER
    lowered = text.strip().lower()
    for mode, codes in KNOWN_MODE_CODES.items():
        if any(code in lowered for code in codes):
            return mode
    return TransportMode.OTHER
