from wpanalyzer.config import Settings
from wpanalyzer.models import (
    PerformanceReport, PluginFinding, PluginPerformanceRecord, Recommendation,
    ThemeFinding, VersionFinding,
)
from wpanalyzer.recommendations import (
    RecommendationEngine, dedupe, implementation_guide, summarize, top_recommendations,
)


def _rec(id_, priority, category='performance', effort='low'):
    return Recommendation(id_, category, priority, id_, 'why', effort, 'medium', 'do it')


def _engine():
    return RecommendationEngine(Settings(min_wp_version='6.3'))


def test_empty_site_gets_gap_recommendations():
    out = _engine().build([], None, None, None)
    func = [r['id'] for r in out['recommendations']['functionality']]
    assert func == ['func-seo', 'func-security', 'func-backup']
    opt = [r['id'] for r in out['recommendations']['optimization']]
    assert opt == ['opt-caching']
    assert out['recommendations']['performance'] == []
    assert out['recommendations']['compatibility'] == []
    caching = out['recommendations']['optimization'][0]
    assert caching['plugin'] == 'wp-super-cache'
    assert caching['priority'] == 'high'
    assert 'description' in caching and 'rationale' not in caching


def test_covered_groups_suppress_gaps():
    plugins = [PluginFinding('wordpress-seo'), PluginFinding('wordfence'), PluginFinding('wp-rocket'),
               PluginFinding('updraftplus')]
    out = _engine().build(plugins, None, None, None)
    assert out['recommendations']['functionality'] == []
    assert out['recommendations']['optimization'] == []
    assert out['analysis']['functionality_score'] == 100


def test_overlapping_plugins_consolidate():
    plugins = [PluginFinding('wordpress-seo'), PluginFinding('seo-by-rank-math'), PluginFinding('wp-rocket')]
    opt = _engine().optimization(plugins)
    assert [r.id for r in opt] == ['opt-consolidate-seo']
    assert 'wordpress-seo' in opt[0].rationale and 'seo-by-rank-math' in opt[0].rationale


def test_compatibility():
    plugins = [
        PluginFinding('contact-form-7', display_name='Contact Form 7', version='4.9', latest_version='5.9.3',
                      is_outdated=True),
        PluginFinding('old-gallery', version='1.0', latest_version='1.0.1', is_outdated=True,
                      registry={'tested': '4.7'}),
    ]
    theme = ThemeFinding(slug='twentytwentyfour', display_name='Twenty Twenty-Four',
                         header={'requires_at_least': '6.4'})
    version = VersionFinding('6.1.1', 'meta_generator', 'high', 'meta', 1)
    recs = {r.id: r for r in _engine().compatibility(plugins, theme, version)}
    assert set(recs) == {
        'compat-core-outdated', 'compat-outdated-contact-form-7', 'compat-outdated-old-gallery',
        'compat-untested-old-gallery', 'compat-theme-requires',
    }
    assert recs['compat-outdated-contact-form-7'].priority == 'high'
    assert recs['compat-outdated-old-gallery'].priority == 'medium'


def test_performance_includes_report_and_pagespeed():
    report = PerformanceReport(
        pagespeed={'mobile': {'summary': {'overall_score': 0.31}}, 'desktop': None},
        recommendations=[_rec('perf-render-blocking-x', 'medium')],
    )
    ids = [r.id for r in _engine().performance(report)]
    assert ids == ['perf-render-blocking-x', 'perf-pagespeed-mobile']


def test_top_is_stable_priority_sort_and_capped():
    by_cat = {
        'performance': [_rec('p-low', 'low'), _rec('p-high', 'high')],
        'functionality': [_rec('f-med', 'medium', 'functionality'), _rec('f-high', 'high', 'functionality')],
        'compatibility': [_rec(f'c-{i}', 'medium', 'compatibility') for i in range(10)],
    }
    top = top_recommendations(by_cat)
    assert len(top) == 10
    assert [r.id for r in top[:3]] == ['p-high', 'f-high', 'f-med']


def test_dedupe_keeps_first():
    recs = dedupe([_rec('a', 'high'), _rec('a', 'low'), _rec('b', 'low')])
    assert [(r.id, r.priority) for r in recs] == [('a', 'high'), ('b', 'low')]


def test_summary_and_guide():
    recs = [_rec('a', 'high', effort='low'), _rec('b', 'medium', effort='medium'),
            _rec('c', 'low', effort='high'), _rec('d', 'high', effort='low')]
    s = summarize(recs)
    assert s['total_recommendations'] == 4
    assert s['priority_breakdown'] == {'high': 2, 'medium': 1, 'low': 1}
    assert s['estimated_impact'] == 'medium'
    guide = implementation_guide(recs)
    assert [r['id'] for r in guide['phases']['immediate']['recommendations']] == ['a', 'd']
    assert [r['id'] for r in guide['phases']['long_term']['recommendations']] == ['c']
    assert guide['estimated_total_effort'] == '4-8 hours'
    assert 'Performance plugins may require server-level configuration' in guide['implementation_tips']


def test_analysis_scores():
    rec = PluginPerformanceRecord('x', score=40)
    report = PerformanceReport(plugins=[rec])
    out = _engine().analysis([PluginFinding('wordpress-seo')], report)
    assert out['asset_score'] == 60
    assert out['performance_score'] == 60
    assert out['plugins_measured'] == 1
    assert out['functional_groups_covered'] == ['seo']
    assert out['functionality_score'] == 25
