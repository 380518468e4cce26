"""Shared vessel classification utilities.

Ensures the ingest path and the cluster engine agree on ship type and
render priority.
"""
from __future__ import annotations

from typing import Optional

from darkwatch.schemas.vessel import ShipTypeEnum

# Hull-prefix conventions for naval vessels (first token of the name)
_NAVAL_PREFIXES = frozenset({"HTMS", "HMS", "USS", "INS", "KRI", "RSS"})
_NAVAL_KEYWORDS = ("naval",)


def classify_ship_type(name: Optional[str]) -> ShipTypeEnum:
    """Derive ship type from the broadcast name.

    A naming-convention match, not an authoritative registry lookup:
      contains "naval" or starts with a navy prefix  → Military
      any other name                                 → Commercial
      no name                                        → Unknown
    """
    if not name or not name.strip():
        return ShipTypeEnum.UNKNOWN
    lowered = name.lower()
    if any(kw in lowered for kw in _NAVAL_KEYWORDS):
        return ShipTypeEnum.MILITARY
    if name.split()[0].upper() in _NAVAL_PREFIXES:
        return ShipTypeEnum.MILITARY
    return ShipTypeEnum.COMMERCIAL


def priority_score(ship_type: ShipTypeEnum | str | None, is_dark: bool) -> int:
    """Render priority: Military +100, dark +50."""
    score = 0
    if ship_type == ShipTypeEnum.MILITARY:
        score += 100
    if is_dark:
        score += 50
    return score
