#!/usr/bin/env python
"""WordPress site analyzer CLI.
Analyzes one or more sites and prints one JSON document per site (JSONL).
Usage:
  python scripts/analyze_sites.py example.com blog.example.org --no-performance > results.jsonl
  python scripts/analyze_sites.py --file sites.txt --concurrency 3 --pretty
Options:
  --file / -f            Text file with one URL per line ('-' reads stdin)
  --no-plugins           Skip plugin detection
  --no-theme             Skip theme detection
  --no-version           Skip core version detection
  --no-performance       Skip per-plugin performance measurement
  --no-recommendations   Skip recommendations
  --concurrency / -c     Sites analyzed in parallel per batch (default 5)
  --pretty               Pretty print (multi-line) instead of JSONL
"""
from __future__ import annotations
import os, sys, json, argparse, asyncio, logging
from typing import List

# Allow running without installation
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
from wpanalyzer import LOG_FORMAT  # noqa: E402
from wpanalyzer.analyzer import analyze_many  # noqa: E402
from wpanalyzer.models import AnalysisOptions  # noqa: E402


def read_urls(path: str) -> List[str]:
    out: List[str] = []
    source = sys.stdin if path == '-' else open(path, 'r', encoding='utf-8')
    try:
        for line in source:
            line = line.strip()
            if not line or line.startswith('#'):
                continue
            out.append(line)
    finally:
        if path != '-':
            source.close()
    return out


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description='Analyze WordPress sites')
    ap.add_argument('urls', nargs='*', help='Site URLs (scheme optional)')
    ap.add_argument('-f', '--file', help='File with one URL per line')
    ap.add_argument('--no-plugins', action='store_true')
    ap.add_argument('--no-theme', action='store_true')
    ap.add_argument('--no-version', action='store_true')
    ap.add_argument('--no-performance', action='store_true')
    ap.add_argument('--no-recommendations', action='store_true')
    ap.add_argument('-c', '--concurrency', type=int, default=5)
    ap.add_argument('--pretty', action='store_true', help='Output pretty JSON (not JSONL)')
    return ap


def options_from_args(args) -> AnalysisOptions:
    return AnalysisOptions(
        include_plugins=not args.no_plugins,
        include_theme=not args.no_theme,
        include_version=not args.no_version,
        include_performance=not args.no_performance,
        include_recommendations=not args.no_recommendations,
        max_concurrent_requests=max(1, args.concurrency),
    )


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=os.environ.get('WPANALYZER_LOG_LEVEL', 'WARNING').upper(),
                        format=LOG_FORMAT, stream=sys.stderr)
    urls = list(args.urls)
    if args.file:
        try:
            urls.extend(read_urls(args.file))
        except OSError as e:
            print(f'Cannot read {args.file}: {e}', file=sys.stderr)
            return 2
    if not urls:
        print('No URLs given', file=sys.stderr)
        return 2

    results = asyncio.run(analyze_many(urls, options_from_args(args), concurrency=args.concurrency))
    for res in results:
        if args.pretty:
            print(json.dumps(res, indent=2, ensure_ascii=False))
        else:
            print(json.dumps(res, ensure_ascii=False))
    return 1 if all(r.get('error') for r in results) else 0


if __name__ == '__main__':
    sys.exit(main())
