from typing import Any, Dict, Optional

from .versioning.validator import compare_versions, parse_version


def is_outdated(installed: Optional[str], latest: Optional[str]) -> Optional[bool]:
    """True when ``installed`` is older than ``latest``.

    Unknown or unparseable on either side yields None rather than a guess,
    so a plugin without a detected version is never reported as current.
    """
    if not installed or not latest:
        return None
    cmp = compare_versions(installed, latest)
    if cmp is None:
        return None
    return cmp < 0


def _triple(v: str) -> Optional[tuple]:
    parts = parse_version(v)
    if parts is None:
        return None
    parts = tuple(parts[:3])
    return parts + (0,) * (3 - len(parts))


def diff_severity(found: Optional[str], latest: Optional[str]) -> Optional[str]:
    """Classify how far behind 'found' is vs 'latest'.
    Returns one of: 'major','minor','patch' or None if not outdated / incomparable.
    """
    if not found or not latest:
        return None
    ft = _triple(found)
    lt = _triple(latest)
    if not ft or not lt or ft >= lt:
        return None
    if ft[0] != lt[0]:
        return 'major'
    if ft[1] != lt[1]:
        return 'minor'
    if ft[2] != lt[2]:
        return 'patch'
    return None


def audit_core(version: Optional[str], minimum: str) -> Dict[str, Any]:
    """Compare the detected core version against the configured minimum."""
    status = is_outdated(version, minimum)
    return {
        'version': version,
        'minimum': minimum,
        'outdated': status,
        'difference': diff_severity(version, minimum) if status else None,
    }
