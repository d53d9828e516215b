"""Weighted-evidence aggregation shared by the site and plugin detectors."""

from __future__ import annotations

from typing import Iterable, Mapping

from .models import CONFIDENCE_RANK, Evidence, Verdict

# Weights for site-level WordPress fingerprints.
SITE_WEIGHTS: dict[str, int] = {
    'meta_generator': 30,
    'admin_bar': 25,
    'script_tags': 20,
    'css_files': 15,
    'rest_api': 15,
    'path_indicator': 5,
    'css_class': 5,
}

DEFAULT_WEIGHT = 1


def aggregate(evidence: Iterable[Evidence], weights: Mapping[str, int] | None = None) -> Verdict:
    """Fold evidence into a verdict.

    Tier: ``high`` if any item is high, else ``medium`` if any item is
    medium, else ``low``. Score: each distinct evidence type adds its weight
    once (unknown types add 1), clamped to 0..100.
    """
    items = [e for e in evidence if e is not None]
    if not items:
        return Verdict(False, 'low', 0, [])
    table = SITE_WEIGHTS if weights is None else weights
    tier = 'low'
    seen_types: set[str] = set()
    score = 0
    for ev in items:
        if CONFIDENCE_RANK.get(ev.confidence, 0) > CONFIDENCE_RANK[tier]:
            tier = ev.confidence
        if ev.type in seen_types:
            continue
        seen_types.add(ev.type)
        score += table.get(ev.type, DEFAULT_WEIGHT)
    score = max(0, min(100, score))
    return Verdict(True, tier, score, items)


def merge_evidence(*sources: Iterable[Evidence], per_type: bool = False) -> list[Evidence]:
    """Concatenate evidence lists, dropping repeats of the same (type, value).

    With ``per_type`` only the first item of each type is kept, so every
    extractor type contributes exactly one entry.
    """
    merged: list[Evidence] = []
    seen: set = set()
    for source in sources:
        if not source:
            continue
        for ev in source:
            key = ev.type if per_type else (ev.type, ev.value)
            if key in seen:
                continue
            seen.add(key)
            merged.append(ev)
    return merged
