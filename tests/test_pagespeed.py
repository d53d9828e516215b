import asyncio
import json

import httpx
import pytest

from wpanalyzer.exceptions import PageSpeedError
from wpanalyzer.integrations.pagespeed import PageSpeedClient, metric_status, parse_report

LIGHTHOUSE = {
    'lighthouseResult': {
        'fetchTime': '2024-03-01T10:00:00.000Z',
        'categories': {
            'performance': {'title': 'Performance', 'score': 0.42},
            'seo': {'title': 'SEO', 'score': 0.91},
        },
        'audits': {
            'largest-contentful-paint': {'numericValue': 3100, 'score': 0.5, 'displayValue': '3.1 s'},
            'cumulative-layout-shift': {'numericValue': 0.05, 'score': 0.98, 'displayValue': '0.05'},
            'interactive': {'numericValue': 650, 'score': 0.3, 'displayValue': '0.7 s'},
            'unused-javascript': {
                'title': 'Reduce unused JavaScript', 'score': 0.2,
                'details': {'overallSavingsMs': 900, 'overallSavingsBytes': 120000},
            },
            'uses-text-compression': {'title': 'Enable text compression', 'score': 1},
        },
    },
}


def test_parse_report():
    report = parse_report('mobile', LIGHTHOUSE)
    assert report['metrics']['lcp']['status'] == 'needs-improvement'
    assert report['metrics']['cls']['status'] == 'good'
    assert report['metrics']['inp']['status'] == 'poor'
    assert list(report['opportunities']) == ['unused-javascript']
    assert report['opportunities']['unused-javascript']['impact'] == 'high'
    assert report['opportunities']['unused-javascript']['savings'] == {'time': 900, 'bytes': 120000}
    summary = report['summary']
    assert summary['overall_score'] == 0.42
    assert summary['categories_scores']['seo'] == 0.91
    assert summary['categories_scores']['accessibility'] is None
    assert summary['high_impact_opportunities'] == 1


def test_metric_status_unknown():
    assert metric_status(None, (1, 2)) == 'unknown'


def test_mobile_fails_desktop_succeeds():
    attempts = {'mobile': 0, 'desktop': 0}

    def handler(request):
        strategy = request.url.params['strategy']
        attempts[strategy] += 1
        if strategy == 'mobile':
            return httpx.Response(500, text='backend error')
        return httpx.Response(200, text=json.dumps(LIGHTHOUSE))

    psi = PageSpeedClient('key', max_retries=3, backoff=0, transport=httpx.MockTransport(handler))
    out = asyncio.run(psi.fetch_both('https://example.com/'))
    assert out['mobile'] is None
    assert out['desktop']['strategy'] == 'desktop'
    assert out['desktop']['summary']['overall_score'] == 0.42
    assert attempts == {'mobile': 3, 'desktop': 1}


def test_client_errors_are_not_retried():
    calls = []

    def handler(request):
        calls.append(request.url.params['strategy'])
        assert request.url.params['key'] == 'secret'
        return httpx.Response(400, text='{}')

    psi = PageSpeedClient('secret', max_retries=3, backoff=0, transport=httpx.MockTransport(handler))

    async def go():
        async with httpx.AsyncClient(transport=psi._transport) as client:
            return await psi.fetch(client, 'https://example.com/', 'mobile')

    with pytest.raises(PageSpeedError) as exc:
        asyncio.run(go())
    assert exc.value.status == 400
    assert not exc.value.retryable
    assert calls == ['mobile']


def test_timeout_then_success():
    calls = []

    def handler(request):
        calls.append(1)
        if len(calls) == 1:
            raise httpx.ReadTimeout('slow', request=request)
        return httpx.Response(200, text=json.dumps(LIGHTHOUSE))

    psi = PageSpeedClient(max_retries=2, backoff=0, transport=httpx.MockTransport(handler))

    async def go():
        async with httpx.AsyncClient(transport=psi._transport) as client:
            return await psi.fetch(client, 'https://example.com/', 'desktop')

    assert asyncio.run(go())['strategy'] == 'desktop'
    assert len(calls) == 2
