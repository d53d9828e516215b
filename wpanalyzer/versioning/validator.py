"""Version validation utilities.

Validates and compares dotted version strings found in markup, feeds,
readme files and registry responses.
"""

import re
from typing import Optional, Tuple

# Strict form accepted from page artifacts: 6.4, 6.4.2, 1.2.3.4
VERSION_PATTERN = re.compile(r'^\d+\.\d+(?:\.\d+)*$')

# Loose form used for comparisons: leading numeric part, optional suffix (6.5-RC1)
_COMPARABLE = re.compile(r'^v?(\d+(?:\.\d+)*)(?:[-+~ ].*)?$', re.I)


def normalize_version(version: Optional[str]) -> str:
    """Strip whitespace, a leading ``v`` and stray trailing dots.

    Examples:
        " v6.4. " -> "6.4"
    """
    if not version:
        return ''
    return version.strip().lstrip('vV').strip('.')


def is_valid_version(version: Optional[str]) -> bool:
    """True for ``major.minor[.patch...]`` strings that look like real releases.

    Filters out:
    - timestamps used as cache busters (``?ver=1700000000``)
    - implausible majors (> 50)
    """
    if not version:
        return False
    if not VERSION_PATTERN.match(version):
        return False
    major = int(version.split('.', 1)[0])
    return major <= 50


def parse_version(version: Optional[str]) -> Optional[Tuple[int, ...]]:
    """Numeric components of ``version``; None when it is not comparable."""
    if not version:
        return None
    match = _COMPARABLE.match(version.strip())
    if not match:
        return None
    return tuple(int(p) for p in match.group(1).split('.'))


def compare_versions(v1: Optional[str], v2: Optional[str]) -> Optional[int]:
    """Compare two version strings.

    Missing trailing components count as zero, so ``6.4 == 6.4.0``.

    Returns:
        -1 if v1 < v2, 0 if equal, 1 if v1 > v2, None if either is unparseable
    """
    p1 = parse_version(v1)
    p2 = parse_version(v2)
    if p1 is None or p2 is None:
        return None
    width = max(len(p1), len(p2))
    p1 = p1 + (0,) * (width - len(p1))
    p2 = p2 + (0,) * (width - len(p2))
    if p1 < p2:
        return -1
    if p1 > p2:
        return 1
    return 0


def specificity(version: str) -> int:
    """Number of dotted components; ``6.4.2`` is more specific than ``6.4``."""
    return len(version.split('.')) if version else 0
