"""Value objects shared by the detectors, analyzers and the orchestrator.

Everything here is created per analysis run; ``to_dict`` produces the JSON
shape returned by the HTTP API and the CLI.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Mapping, Optional

from . import config

CONFIDENCE_LEVELS = ('low', 'medium', 'high')
CONFIDENCE_RANK = {name: idx for idx, name in enumerate(CONFIDENCE_LEVELS)}
PRIORITY_RANK = {'high': 0, 'medium': 1, 'low': 2}


@dataclass(frozen=True)
class Evidence:
    type: str
    value: str
    confidence: str = 'medium'

    def to_dict(self) -> Dict[str, Any]:
        return {'type': self.type, 'value': self.value, 'confidence': self.confidence}


@dataclass(frozen=True)
class Verdict:
    is_positive: bool
    confidence: str
    score: int
    evidence: List[Evidence] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'is_wordpress': self.is_positive,
            'confidence': self.confidence,
            'score': self.score,
            'evidence': [e.to_dict() for e in self.evidence],
        }


@dataclass(frozen=True)
class VersionFinding:
    version: str
    method: str
    confidence: str
    source: str
    tier: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ThemeFinding:
    slug: Optional[str] = None
    display_name: Optional[str] = None
    version: Optional[str] = None
    author: Optional[str] = None
    author_uri: Optional[str] = None
    description: Optional[str] = None
    path: Optional[str] = None
    method: Optional[str] = None
    stylesheet: Optional[str] = None
    uri: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    header: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.slug,
            'display_name': self.display_name,
            'version': self.version,
            'author': self.author,
            'author_uri': self.author_uri,
            'description': self.description,
            'path': self.path,
            'detection_method': self.method,
            'stylesheet': self.stylesheet,
            'theme_uri': self.uri,
            'tags': list(self.tags),
            'header': dict(self.header),
        }


@dataclass
class PluginFinding:
    slug: str
    display_name: Optional[str] = None
    version: Optional[str] = None
    is_outdated: Optional[bool] = None
    detection_methods: List[str] = field(default_factory=list)
    confidence: str = 'low'
    score: int = 0
    evidence: List[Evidence] = field(default_factory=list)
    version_candidates: Dict[str, List[str]] = field(default_factory=dict)
    resource_urls: List[str] = field(default_factory=list)
    latest_version: Optional[str] = None
    registry: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.slug,
            'display_name': self.display_name or self.slug,
            'version': self.version,
            'latest_version': self.latest_version,
            'is_outdated': self.is_outdated,
            'detection_methods': list(self.detection_methods),
            'confidence': self.confidence,
            'score': self.score,
            'evidence': [e.to_dict() for e in self.evidence],
            'resource_urls': list(self.resource_urls),
            'registry': self.registry,
        }


@dataclass(frozen=True)
class ResourceMeasurement:
    url: str
    filename: str
    kind: str  # 'css' | 'js'
    size: int
    load_time: float
    blocking: bool
    status: Optional[int] = None

    @property
    def size_kb(self) -> float:
        return round(self.size / 1024, 2)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'url': self.url,
            'filename': self.filename,
            'type': self.kind,
            'size': self.size,
            'size_kb': self.size_kb,
            'load_time': round(self.load_time, 4),
            'blocking': self.blocking,
            'status': self.status,
        }


@dataclass
class PluginPerformanceRecord:
    """Per-plugin asset totals; grows through ``add_resource`` then is scored once."""

    slug: str
    css_files: List[ResourceMeasurement] = field(default_factory=list)
    js_files: List[ResourceMeasurement] = field(default_factory=list)
    css_bytes: int = 0
    js_bytes: int = 0
    css_load_time: float = 0.0
    js_load_time: float = 0.0
    blocking_count: int = 0
    score: Optional[int] = None

    @property
    def total_bytes(self) -> int:
        return self.css_bytes + self.js_bytes

    @property
    def request_count(self) -> int:
        return len(self.css_files) + len(self.js_files)

    def add_resource(self, m: ResourceMeasurement) -> None:
        if m.kind == 'css':
            self.css_files.append(m)
            self.css_bytes += m.size
            self.css_load_time += m.load_time
        else:
            self.js_files.append(m)
            self.js_bytes += m.size
            self.js_load_time += m.load_time
        if m.blocking:
            self.blocking_count += 1

    def finalize(self) -> int:
        self.score = impact_score(self.total_bytes, self.request_count, self.blocking_count)
        return self.score

    def to_dict(self) -> Dict[str, Any]:
        return {
            'plugin': self.slug,
            'css_files': [m.to_dict() for m in self.css_files],
            'js_files': [m.to_dict() for m in self.js_files],
            'css_size': self.css_bytes,
            'js_size': self.js_bytes,
            'total_size': self.total_bytes,
            'css_load_time': round(self.css_load_time, 4),
            'js_load_time': round(self.js_load_time, 4),
            'total_requests': self.request_count,
            'blocking_resources': self.blocking_count,
            'performance_score': self.score,
        }


def impact_score(total_bytes: int, requests: int, blocking: int) -> int:
    """Cost of one plugin on a 0..100 scale (higher is worse)."""
    mb = max(total_bytes, 0) / (1024 * 1024)
    size_pts = min(mb * config.SIZE_POINTS_PER_MB, config.SIZE_POINTS_CAP)
    req_pts = min(max(requests, 0) * config.REQUEST_POINTS_EACH, config.REQUEST_POINTS_CAP)
    block_pts = min(max(blocking, 0) * config.BLOCKING_POINTS_EACH, config.BLOCKING_POINTS_CAP)
    return min(int(math.floor(size_pts + req_pts + block_pts)), 100)


@dataclass(frozen=True)
class OptimizationOpportunity:
    category: str  # high_impact | render_blocking | large_files
    plugin: str
    magnitude: float
    details: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Recommendation:
    id: str
    category: str
    priority: str
    title: str
    rationale: str
    estimated_effort: str
    estimated_impact: str
    action: str
    plugin: Optional[str] = None
    source: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        out['description'] = out.pop('rationale')
        return out


@dataclass
class PerformanceReport:
    main_page: Dict[str, Any] = field(default_factory=dict)
    pagespeed: Optional[Dict[str, Any]] = None
    plugins: List[PluginPerformanceRecord] = field(default_factory=list)
    usage_analysis: Dict[str, Any] = field(default_factory=dict)
    opportunities: List[OptimizationOpportunity] = field(default_factory=list)
    recommendations: List[Recommendation] = field(default_factory=list)
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            'main_page': dict(self.main_page),
            'pagespeed': self.pagespeed,
            'plugin_performance': {p.slug: p.to_dict() for p in self.plugins},
            'usage_analysis': dict(self.usage_analysis),
            'optimization_opportunities': [o.to_dict() for o in self.opportunities],
            'recommendations': [r.to_dict() for r in self.recommendations],
        }
        if self.error:
            out['error'] = self.error
        return out


_OPTION_ALIASES = {
    'includePlugins': 'include_plugins',
    'includeTheme': 'include_theme',
    'includeVersion': 'include_version',
    'includePerformance': 'include_performance',
    'includeRecommendations': 'include_recommendations',
    'includePagespeed': 'include_pagespeed',
    'includePageSpeed': 'include_pagespeed',
    'maxConcurrentRequests': 'max_concurrent_requests',
    'useRegistry': 'use_registry',
    'probePluginReadmes': 'probe_plugin_readmes',
    'exhaustiveVersion': 'exhaustive_version',
}


@dataclass
class AnalysisOptions:
    include_plugins: bool = True
    include_theme: bool = True
    include_version: bool = True
    include_performance: bool = True
    include_recommendations: bool = True
    max_concurrent_requests: int = 5
    include_pagespeed: Optional[bool] = None  # None follows settings
    use_registry: bool = True
    probe_plugin_readmes: bool = True
    exhaustive_version: bool = True

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> 'AnalysisOptions':
        opts = cls()
        if not data:
            return opts
        known = set(cls.__dataclass_fields__)
        for key, value in data.items():
            name = _OPTION_ALIASES.get(key, key)
            if name not in known:
                continue
            if name == 'max_concurrent_requests':
                try:
                    value = max(1, int(value))
                except (TypeError, ValueError):
                    continue
            elif value is not None:
                value = bool(value)
            setattr(opts, name, value)
        return opts


@dataclass
class AnalysisResult:
    url: str
    timestamp: str
    wordpress: Optional[Verdict] = None
    version: Optional[VersionFinding] = None
    theme: Optional[ThemeFinding] = None
    plugins: List[PluginFinding] = field(default_factory=list)
    performance: Optional[PerformanceReport] = None
    recommendations: Optional[Dict[str, Any]] = None
    duration: Optional[int] = None
    error: Optional[str] = None

    @property
    def is_wordpress(self) -> bool:
        return bool(self.wordpress and self.wordpress.is_positive)

    def to_dict(self) -> Dict[str, Any]:
        out = {
            'url': self.url,
            'timestamp': self.timestamp,
            'wordpress': self.wordpress.to_dict() if self.wordpress else None,
            'version': self.version.to_dict() if self.version else None,
            'theme': self.theme.to_dict() if self.theme else None,
            'plugins': [p.to_dict() for p in self.plugins],
            'performance': self.performance.to_dict() if self.performance else None,
            'recommendations': self.recommendations,
            'duration': self.duration,
        }
        if self.error:
            out['error'] = self.error
        return out


@dataclass(frozen=True)
class FetchResponse:
    url: str
    status: int
    text: str
    headers: Mapping[str, str] = field(default_factory=dict)
    elapsed: float = 0.0
    size: Optional[int] = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 400

    @property
    def content_length(self) -> int:
        raw = self.headers.get('content-length') if self.headers else None
        if raw is not None:
            try:
                return int(raw)
            except ValueError:
                pass
        if self.size is not None:
            return self.size
        return len(self.text.encode('utf-8'))


@dataclass(frozen=True)
class Probe:
    """Outcome of an optional fetch: ``found``, ``missing`` (4xx/5xx) or ``failed`` (transport)."""

    url: str
    state: str
    response: Optional[FetchResponse] = None
    error: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.state == 'found'

    @property
    def text(self) -> str:
        return self.response.text if self.response is not None else ''
