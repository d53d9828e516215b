"""wordpress.org plugin directory client.

Lookups from every caller in the process go through one FIFO queue drained
by a single worker, one request at a time with a fixed pause between
requests. Every answer is cached for the life of the process in a bounded
LRU: found, not found and failed lookups alike, the last two as None.
"""

import asyncio
import logging
import threading
from collections import OrderedDict, deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Deque, Dict, Iterable, Optional, Tuple

import httpx

from ..config import REGISTRY_API_URL, Settings
from ..exceptions import RegistryError
from ..metrics import record_registry_cache

logger = logging.getLogger('wpanalyzer.integrations.wordpress_org')

_FIELDS = {
    'active_installs': 1,
    'downloaded': 1,
    'sections': 0,
    'short_description': 1,
    'ratings': 0,
    'rating': 1,
    'last_updated': 1,
    'homepage': 1,
    'tags': 1,
}


def _parse_updated(raw: Optional[str]) -> Optional[datetime]:
    if not raw:
        return None
    for fmt, text in (('%Y-%m-%d %I:%M%p GMT', raw), ('%Y-%m-%d', raw[:10])):
        try:
            return datetime.strptime(text, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            continue
    return None


def _leading_float(raw: Any) -> Optional[float]:
    try:
        parts = str(raw).split('.')
        return float('.'.join(parts[:2]))
    except (TypeError, ValueError):
        return None


def health_score(info: Dict[str, Any], now: Optional[datetime] = None) -> int:
    """0..100 from rating (40), installs (20), update recency (20), tested WP (10), PHP floor (10)."""
    score = 0.0
    if info.get('rating') and info.get('num_ratings'):
        score += float(info['rating']) / 100 * 40

    installs = info.get('downloaded') or info.get('active_installs') or 0
    if installs >= 1_000_000:
        score += 20
    elif installs >= 100_000:
        score += 15
    elif installs >= 10_000:
        score += 10
    elif installs >= 1_000:
        score += 5

    updated = _parse_updated(info.get('last_updated'))
    if updated:
        days = ((now or datetime.now(timezone.utc)) - updated).days
        if days <= 30:
            score += 20
        elif days <= 90:
            score += 15
        elif days <= 180:
            score += 10
        elif days <= 365:
            score += 5

    tested = _leading_float(info.get('tested')) if info.get('tested') else None
    if tested is not None:
        if tested >= 6.0:
            score += 10
        elif tested >= 5.0:
            score += 7
        elif tested >= 4.0:
            score += 5

    php = _leading_float(info.get('requires_php')) if info.get('requires_php') else None
    if php is not None:
        if php >= 8.0:
            score += 10
        elif php >= 7.4:
            score += 8
        elif php >= 7.0:
            score += 5
    return int(round(score))


def popularity(info: Dict[str, Any]) -> Optional[str]:
    installs = info.get('downloaded') or info.get('active_installs')
    if not installs:
        return None
    if installs >= 1_000_000:
        return 'very_popular'
    if installs >= 100_000:
        return 'popular'
    if installs >= 10_000:
        return 'moderate'
    return 'niche'


def _shape(slug: str, data: Dict[str, Any]) -> Dict[str, Any]:
    return {
        'slug': slug,
        'name': data.get('name') or slug,
        'version': data.get('version') or None,
        'rating': data.get('rating') or 0,
        'num_ratings': data.get('num_ratings') or 0,
        'active_installs': data.get('active_installs') or 0,
        'downloaded': data.get('downloaded') or 0,
        'last_updated': data.get('last_updated') or None,
        'short_description': data.get('short_description') or '',
        'homepage': data.get('homepage') or None,
        'tags': data.get('tags') or {},
        'requires': data.get('requires') or None,
        'tested': data.get('tested') or None,
        'requires_php': data.get('requires_php') or None,
    }


@dataclass
class _Lane:
    """FIFO queue, in-flight futures and worker task of the registry loop."""

    queue: Deque[Tuple[str, asyncio.Future]] = field(default_factory=deque)
    inflight: Dict[str, asyncio.Future] = field(default_factory=dict)
    worker: Optional[asyncio.Task] = None


class PluginRegistry:
    """Rate-limited, cached access to ``plugins/info/1.2``.

    Callers may sit on any event loop (every ``asyncio.run`` in a request
    thread has its own). Lookups are handed to one background loop owned by
    the registry, so a single worker serves the whole process.
    """

    def __init__(self, settings: Optional[Settings] = None, *,
                 transport: Optional[httpx.AsyncBaseTransport] = None,
                 delay: Optional[float] = None, cache_size: Optional[int] = None):
        self.settings = settings or Settings.from_env()
        self.delay = self.settings.registry_delay if delay is None else delay
        self.cache_size = cache_size or self.settings.registry_cache_size
        self._transport = transport
        self._cache: 'OrderedDict[str, Optional[Dict[str, Any]]]' = OrderedDict()
        self._cache_lock = threading.Lock()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._loop_lock = threading.Lock()
        self._lane = _Lane()
        self.requests_made = 0

    # ---- cache ---------------------------------------------------------

    def cached(self, slug: str) -> bool:
        return slug in self._cache

    def _lookup(self, slug: str):
        with self._cache_lock:
            if slug not in self._cache:
                return False, None
            self._cache.move_to_end(slug)
            return True, self._cache[slug]

    def _store(self, slug: str, info: Optional[Dict[str, Any]]) -> None:
        with self._cache_lock:
            self._cache[slug] = info
            self._cache.move_to_end(slug)
            while len(self._cache) > self.cache_size:
                self._cache.popitem(last=False)

    def clear(self) -> None:
        with self._cache_lock:
            self._cache.clear()

    # ---- public --------------------------------------------------------

    async def get_plugin_info(self, slug: str) -> Optional[Dict[str, Any]]:
        if not slug:
            return None
        slug = slug.strip().lower()
        hit, info = self._lookup(slug)
        record_registry_cache(hit)
        if hit:
            return info
        pending = asyncio.run_coroutine_threadsafe(self._enqueue(slug), self._registry_loop())
        return await asyncio.wrap_future(pending)

    async def get_many(self, slugs: Iterable[str]) -> Dict[str, Dict[str, Any]]:
        unique = list(dict.fromkeys(s for s in slugs if s))
        infos = await asyncio.gather(*(self.get_plugin_info(s) for s in unique))
        return {slug: info for slug, info in zip(unique, infos) if info}

    def close(self) -> None:
        with self._loop_lock:
            loop, self._loop = self._loop, None
        if loop is not None:
            loop.call_soon_threadsafe(loop.stop)

    # ---- worker --------------------------------------------------------

    def _registry_loop(self) -> asyncio.AbstractEventLoop:
        with self._loop_lock:
            if self._loop is None:
                loop = asyncio.new_event_loop()
                threading.Thread(target=loop.run_forever, name='wpanalyzer-registry', daemon=True).start()
                self._loop = loop
            return self._loop

    async def _enqueue(self, slug: str) -> Optional[Dict[str, Any]]:
        # runs on the registry loop only
        hit, info = self._lookup(slug)
        if hit:
            return info
        lane = self._lane
        fut = lane.inflight.get(slug)
        if fut is None:
            fut = asyncio.get_running_loop().create_future()
            lane.inflight[slug] = fut
            lane.queue.append((slug, fut))
            if lane.worker is None or lane.worker.done():
                lane.worker = asyncio.get_running_loop().create_task(self._drain(lane))
        return await asyncio.shield(fut)

    async def _drain(self, lane: '_Lane') -> None:
        while lane.queue:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self.settings.timeout),
                headers={'User-Agent': 'wpanalyzer/1.0'},
                transport=self._transport,
            ) as client:
                while lane.queue:
                    slug, fut = lane.queue.popleft()
                    try:
                        info = await self._fetch(client, slug)
                    except RegistryError as exc:
                        logger.warning('%s', exc.message)
                        info = None
                    except Exception:
                        logger.exception('registry lookup crashed slug=%s', slug)
                        info = None
                    self._store(slug, info)
                    lane.inflight.pop(slug, None)
                    if not fut.done():
                        fut.set_result(info)
                    if self.delay and lane.queue:
                        await asyncio.sleep(self.delay)

    async def _fetch(self, client: httpx.AsyncClient, slug: str) -> Optional[Dict[str, Any]]:
        """Registry record for ``slug``; None when the directory has no such plugin.

        Raises ``RegistryError`` when the request or its payload fails.
        """
        params = {'action': 'plugin_information', 'request[slug]': slug}
        for key, flag in _FIELDS.items():
            params[f'request[fields][{key}]'] = flag
        self.requests_made += 1
        try:
            resp = await client.get(REGISTRY_API_URL, params=params)
        except httpx.HTTPError as exc:
            raise RegistryError(slug, str(exc) or exc.__class__.__name__) from exc
        if resp.status_code == 404:
            logger.info('plugin not in registry slug=%s', slug)
            return None
        if resp.status_code != 200:
            raise RegistryError(slug, f'HTTP {resp.status_code}')
        try:
            data = resp.json()
        except ValueError as exc:
            raise RegistryError(slug, 'invalid JSON') from exc
        if not isinstance(data, dict) or data.get('error'):
            logger.info('registry error slug=%s detail=%s', slug, data.get('error') if isinstance(data, dict) else data)
            return None
        return _shape(slug, data)


_DEFAULT: Optional[PluginRegistry] = None
_DEFAULT_LOCK = threading.Lock()


def default_registry() -> PluginRegistry:
    """Process-wide registry so the cache outlives individual analyses."""
    global _DEFAULT
    with _DEFAULT_LOCK:
        if _DEFAULT is None:
            _DEFAULT = PluginRegistry()
        return _DEFAULT
