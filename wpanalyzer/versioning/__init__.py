"""WordPress core version detection.

Architecture:
- patterns.py: detection methods, tiers and regexes
- extractor.py: the async detector and candidate ranking
- validator.py: version format validation and comparison
"""

from .extractor import VersionDetector, rank
from .validator import compare_versions, is_valid_version, normalize_version

__all__ = ['VersionDetector', 'rank', 'compare_versions', 'is_valid_version', 'normalize_version']
