"""Async HTTP access for every detector and analyzer.

One ``HttpClient`` wraps one ``httpx.AsyncClient`` for the duration of an
analysis run. ``fetch`` raises ``FetchError`` on transport problems and
returns any HTTP status as-is; ``probe`` never raises and reports a tagged
``Probe`` instead, for the optional endpoints the detectors try.
"""

from __future__ import annotations

import logging
import os
import time
from typing import Optional, Tuple
from urllib.parse import parse_qs, urljoin, urlsplit

import httpx

from .config import Settings
from .exceptions import FetchError, InvalidUrlError
from .logging_utils import log_suppressed
from .metrics import record_fetch_error
from .models import FetchResponse, Probe

logger = logging.getLogger('wpanalyzer.http')


def normalize_url(url) -> str:
    """Return an absolute http(s) URL, adding ``https://`` when no scheme is given."""
    if not isinstance(url, str) or not url.strip():
        raise InvalidUrlError(url, 'URL is required')
    raw = url.strip()
    if not raw.lower().startswith(('http://', 'https://')):
        if '://' in raw:
            raise InvalidUrlError(url, 'Unsupported URL scheme')
        raw = 'https://' + raw.lstrip('/')
    parts = urlsplit(raw)
    host = parts.hostname or ''
    if not host or ' ' in raw or ('.' not in host and host != 'localhost'):
        raise InvalidUrlError(url, 'Invalid URL')
    path = parts.path or '/'
    out = f'{parts.scheme.lower()}://{parts.netloc.lower()}{path}'
    if parts.query:
        out += '?' + parts.query
    return out


def site_root(url: str) -> str:
    parts = urlsplit(url)
    return f'{parts.scheme}://{parts.netloc}/'


def join_path(base: str, path: str) -> str:
    """Append ``path`` to ``base`` with exactly one slash between them."""
    clean = base.split('#', 1)[0].split('?', 1)[0]
    return clean.rstrip('/') + '/' + path.lstrip('/')


def resolve(page_url: str, ref: str) -> str:
    return urljoin(page_url, ref.strip())


def filename_of(url: str) -> str:
    path = urlsplit(url).path
    return path.rsplit('/', 1)[-1] or path


def query_version(url: str) -> Optional[str]:
    """Value of ``ver`` or ``version`` in the URL's query string."""
    try:
        query = parse_qs(urlsplit(url).query)
    except ValueError:
        return None
    for key in ('ver', 'version'):
        values = query.get(key)
        if values and values[0]:
            return values[0]
    return None


class HttpClient:
    """Async context manager around ``httpx.AsyncClient``.

    Tests pass ``transport=httpx.MockTransport(handler)``.
    """

    def __init__(self, settings: Optional[Settings] = None, *, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings or Settings.from_env()
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self.verify_tls = os.environ.get('WPANALYZER_VERIFY_TLS', '1') == '1'

    async def __aenter__(self) -> 'HttpClient':
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(self.settings.timeout),
            follow_redirects=True,
            max_redirects=self.settings.max_redirects,
            headers={
                'User-Agent': self.settings.user_agent,
                'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
            },
            transport=self._transport,
            verify=self.verify_tls,
        )
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()
        return False

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError('HttpClient used outside of "async with"')
        return self._client

    async def fetch(self, url: str, *, timeout: Optional[float] = None, method: str = 'GET',
                    params: Optional[dict] = None) -> FetchResponse:
        kwargs = {}
        if timeout is not None:
            kwargs['timeout'] = httpx.Timeout(timeout)
        if params:
            kwargs['params'] = params
        started = time.perf_counter()
        try:
            resp = await self.client.request(method, url, **kwargs)
        except httpx.TimeoutException as exc:
            record_fetch_error('timeout')
            raise FetchError(url, f'timed out ({exc.__class__.__name__})', kind='timeout') from exc
        except httpx.TooManyRedirects as exc:
            record_fetch_error('redirects')
            raise FetchError(url, 'too many redirects', kind='redirects') from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            record_fetch_error('transport')
            raise FetchError(url, str(exc) or exc.__class__.__name__) from exc
        elapsed = time.perf_counter() - started
        headers = {k.lower(): v for k, v in resp.headers.items()}
        text = '' if method == 'HEAD' else resp.text
        return FetchResponse(url=str(resp.url), status=resp.status_code, text=text, headers=headers,
                             elapsed=elapsed, size=len(resp.content))

    async def probe(self, url: str, *, timeout: Optional[float] = None) -> Probe:
        try:
            resp = await self.fetch(url, timeout=timeout)
        except FetchError as exc:
            log_suppressed(logger, exc, f'probe failed {urlsplit(url).path}')
            return Probe(url, 'failed', error=str(exc))
        if not resp.ok:
            return Probe(url, 'missing', response=resp)
        return Probe(url, 'found', response=resp)

    async def measure(self, url: str) -> Tuple[int, float, Optional[int]]:
        """Size in bytes, elapsed seconds and status of a resource.

        Tries HEAD first and falls back to GET when HEAD fails or carries no
        ``Content-Length``. Raises ``FetchError`` if the GET fails too.
        """
        started = time.perf_counter()
        try:
            head = await self.fetch(url, method='HEAD')
            length = head.headers.get('content-length')
            if head.ok and length is not None and length.isdigit():
                return int(length), time.perf_counter() - started, head.status
        except FetchError as exc:
            log_suppressed(logger, exc, 'HEAD failed, falling back to GET')
        resp = await self.fetch(url)
        if not resp.ok:
            record_fetch_error('status')
            raise FetchError(url, f'status {resp.status}', kind='status')
        return resp.size, time.perf_counter() - started, resp.status
