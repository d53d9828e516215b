"""Recommendation engine.

Turns detection and performance results into categorized, deduplicated
recommendations plus the derived views callers show first: a
priority-sorted top list, a summary, a phased implementation guide and
sub-scores.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from . import config
from . import signatures as sig
from .config import Settings
from .models import (
    PRIORITY_RANK, PerformanceReport, PluginFinding, Recommendation,
    ThemeFinding, VersionFinding,
)
from .version_audit import audit_core, diff_severity, is_outdated

logger = logging.getLogger('wpanalyzer.recommendations')

CATEGORIES = ('performance', 'functionality', 'compatibility', 'optimization')

# Groups a typical site is expected to cover, with the plugin suggested when missing.
EXPECTED_GROUPS = [
    ('seo', 'wordpress-seo', 'medium', 'No SEO plugin detected',
     'Install an SEO plugin to manage titles, meta descriptions and XML sitemaps'),
    ('security', 'wordfence', 'medium', 'No security plugin detected',
     'Install a security plugin with a firewall and login protection'),
    ('backup', 'updraftplus', 'low', 'No backup plugin detected',
     'Install a backup plugin and schedule off-site backups'),
]

CONSOLIDATE_GROUPS = ('seo', 'caching', 'forms', 'page_builder', 'slider', 'security')

BASE_TIPS = [
    'Always backup your site before installing new plugins',
    'Test plugins on a staging site first if possible',
    'Install and configure one plugin at a time',
    'Monitor site performance after each plugin installation',
    'Keep plugins updated regularly for security and compatibility',
]


def dedupe(recs: Iterable[Recommendation]) -> List[Recommendation]:
    seen = set()
    out = []
    for rec in recs:
        if rec.id in seen:
            continue
        seen.add(rec.id)
        out.append(rec)
    return out


def top_recommendations(by_category: Dict[str, List[Recommendation]], limit: int = config.TOP_RECOMMENDATIONS) -> List[Recommendation]:
    """Flatten in category order and stable-sort by priority."""
    flat = [r for cat in CATEGORIES for r in by_category.get(cat, [])]
    return sorted(flat, key=lambda r: PRIORITY_RANK.get(r.priority, 3))[:limit]


def _ratio_level(count: int, total: int) -> str:
    if not total:
        return 'low'
    ratio = count / total
    if ratio > 0.5:
        return 'high'
    if ratio > 0.2:
        return 'medium'
    return 'low'


def summarize(recs: List[Recommendation]) -> Dict[str, Any]:
    breakdown = {p: sum(1 for r in recs if r.priority == p) for p in ('high', 'medium', 'low')}
    return {
        'total_recommendations': len(recs),
        'priority_breakdown': breakdown,
        'estimated_impact': _ratio_level(breakdown['high'], len(recs)),
        'implementation_effort': _ratio_level(sum(1 for r in recs if r.estimated_effort == 'high'), len(recs)),
    }


def total_effort(recs: List[Recommendation]) -> str:
    hours = sum({'high': 1.5, 'medium': 1.0, 'low': 0.5}.get(r.priority, 0.5) for r in recs)
    if hours <= 2:
        return '2-4 hours'
    if hours <= 6:
        return '4-8 hours'
    if hours <= 12:
        return '1-2 days'
    return '2-3 days'


def implementation_guide(recs: List[Recommendation]) -> Dict[str, Any]:
    phases = {
        'immediate': ('low', 'Quick wins that need little effort'),
        'near_term': ('medium', 'Changes that need configuration or testing'),
        'long_term': ('high', 'Larger changes to plan and stage carefully'),
    }
    guide = {}
    for phase, (effort, description) in phases.items():
        items = sorted((r for r in recs if r.estimated_effort == effort),
                       key=lambda r: PRIORITY_RANK.get(r.priority, 3))
        guide[phase] = {
            'description': description,
            'recommendations': [
                {'id': r.id, 'title': r.title, 'priority': r.priority, 'plugin': r.plugin, 'action': r.action}
                for r in items
            ],
        }
    tips = list(BASE_TIPS)
    if any(r.id.startswith('func-security') for r in recs):
        tips.append('Security plugins should be configured immediately after installation')
    if any(r.category == 'performance' for r in recs):
        tips.append('Performance plugins may require server-level configuration')
    return {'phases': guide, 'estimated_total_effort': total_effort(recs), 'implementation_tips': tips}


class RecommendationEngine:
    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or Settings.from_env()

    # ---- categories ------------------------------------------------------

    def performance(self, report: Optional[PerformanceReport]) -> List[Recommendation]:
        if report is None:
            return []
        recs = list(report.recommendations)
        mobile = (report.pagespeed or {}).get('mobile') or {}
        score = (mobile.get('summary') or {}).get('overall_score')
        if score is not None and score < 0.5:
            recs.append(Recommendation(
                id='perf-pagespeed-mobile',
                category='performance',
                priority='high',
                title='Improve Mobile PageSpeed Score',
                rationale=f'Mobile PageSpeed performance score is {round(score * 100)}/100',
                estimated_effort='medium',
                estimated_impact='high',
                action='Address the PageSpeed opportunities listed for the mobile strategy',
                source='pagespeed',
            ))
        return recs

    def compatibility(self, plugins: List[PluginFinding], theme: Optional[ThemeFinding],
                      version: Optional[VersionFinding]) -> List[Recommendation]:
        recs = []
        core = version.version if version else None
        if core and audit_core(core, self.settings.min_wp_version)['outdated']:
            recs.append(Recommendation(
                id='compat-core-outdated',
                category='compatibility',
                priority='high',
                title='Update WordPress Core',
                rationale=f'WordPress {core} is older than {self.settings.min_wp_version}',
                estimated_effort='medium',
                estimated_impact='high',
                action='Back up the site, then update WordPress core to the latest release',
                source='version',
            ))
        for p in plugins:
            if p.is_outdated:
                severity = diff_severity(p.version, p.latest_version)
                recs.append(Recommendation(
                    id=f'compat-outdated-{p.slug}',
                    category='compatibility',
                    priority='high' if severity == 'major' else 'medium',
                    title=f'Update {p.display_name or p.slug}',
                    rationale=f'Installed {p.version}, latest is {p.latest_version} ({severity or "behind"})',
                    estimated_effort='low',
                    estimated_impact='medium',
                    action=f'Update {p.slug} to {p.latest_version}',
                    plugin=p.slug,
                    source='registry',
                ))
            tested = (p.registry or {}).get('tested')
            if tested and is_outdated(tested, '5.0'):
                recs.append(Recommendation(
                    id=f'compat-untested-{p.slug}',
                    category='compatibility',
                    priority='medium',
                    title=f'Check {p.display_name or p.slug} Compatibility',
                    rationale=f'{p.slug} was last tested with WordPress {tested}',
                    estimated_effort='medium',
                    estimated_impact='medium',
                    action=f'Test {p.slug} on staging or replace it with a maintained alternative',
                    plugin=p.slug,
                    source='registry',
                ))
        requires = theme.header.get('requires_at_least') if theme else None
        if core and requires and is_outdated(core, requires):
            recs.append(Recommendation(
                id='compat-theme-requires',
                category='compatibility',
                priority='high',
                title='Theme Requires a Newer WordPress',
                rationale=f'{theme.display_name or theme.slug} requires WordPress {requires}, site runs {core}',
                estimated_effort='medium',
                estimated_impact='high',
                action='Update WordPress core before updating or keeping this theme',
                source='theme',
            ))
        return recs

    def optimization(self, plugins: List[PluginFinding]) -> List[Recommendation]:
        slugs = {p.slug for p in plugins}
        recs = []
        if not slugs & set(sig.PLUGIN_GROUPS['caching']):
            recs.append(Recommendation(
                id='opt-caching',
                category='optimization',
                priority='high',
                title='Add a Caching Plugin',
                rationale='No caching plugin detected; every page view is rendered by PHP',
                estimated_effort='low',
                estimated_impact='high',
                action='Install and configure WP Super Cache',
                plugin='wp-super-cache',
                source='plugins',
            ))
        for group in CONSOLIDATE_GROUPS:
            members = [s for s in sig.PLUGIN_GROUPS[group] if s in slugs]
            if len(members) > 1:
                recs.append(Recommendation(
                    id=f'opt-consolidate-{group}',
                    category='optimization',
                    priority='medium',
                    title=f'Consolidate {group.replace("_", " ")} plugins',
                    rationale=f'Several plugins cover the same role: {", ".join(members)}',
                    estimated_effort='medium',
                    estimated_impact='medium',
                    action=f'Keep one of {", ".join(members)} and remove the others',
                    source='plugins',
                ))
        return recs

    def functionality(self, plugins: List[PluginFinding]) -> List[Recommendation]:
        slugs = {p.slug for p in plugins}
        recs = []
        for group, suggested, priority, title, action in EXPECTED_GROUPS:
            if slugs & set(sig.PLUGIN_GROUPS[group]):
                continue
            recs.append(Recommendation(
                id=f'func-{group}',
                category='functionality',
                priority=priority,
                title=title,
                rationale=f'None of the detected plugins provides {group} features',
                estimated_effort='low',
                estimated_impact='medium',
                action=f'{action} (for example {sig.display_name(suggested)})',
                plugin=suggested,
                source='plugins',
            ))
        return recs

    # ---- scores ----------------------------------------------------------

    def analysis(self, plugins: List[PluginFinding], report: Optional[PerformanceReport]) -> Dict[str, Any]:
        records = report.plugins if report else []
        scored = [r.score for r in records if r.score is not None]
        asset_score = 100 - round(sum(scored) / len(scored)) if scored else 100
        mobile = ((report.pagespeed or {}).get('mobile') or {}) if report else {}
        psi = (mobile.get('summary') or {}).get('overall_score')
        slugs = {p.slug for p in plugins}
        expected = ['seo', 'security', 'backup', 'caching']
        covered = [g for g in expected if slugs & set(sig.PLUGIN_GROUPS[g])]
        return {
            'asset_score': asset_score,
            'performance_score': round(psi * 100) if psi is not None else asset_score,
            'functionality_score': round(len(covered) / len(expected) * 100),
            'plugins_measured': len(records),
            'functional_groups_covered': covered,
        }

    # ---- entry point -----------------------------------------------------

    def build(self, plugins: Optional[List[PluginFinding]], theme: Optional[ThemeFinding],
              version: Optional[VersionFinding], performance: Optional[PerformanceReport]) -> Dict[str, Any]:
        plugins = plugins or []
        by_category = {
            'performance': dedupe(self.performance(performance)),
            'functionality': dedupe(self.functionality(plugins)),
            'compatibility': dedupe(self.compatibility(plugins, theme, version)),
            'optimization': dedupe(self.optimization(plugins)),
        }
        flat = dedupe(r for cat in CATEGORIES for r in by_category[cat])
        top = top_recommendations(by_category)
        logger.debug('recommendations total=%d top=%d', len(flat), len(top))
        return {
            'recommendations': {cat: [r.to_dict() for r in recs] for cat, recs in by_category.items()},
            'top_recommendations': [r.to_dict() for r in top],
            'summary': summarize(flat),
            'implementation_guide': implementation_guide(flat),
            'analysis': self.analysis(plugins, performance),
        }
