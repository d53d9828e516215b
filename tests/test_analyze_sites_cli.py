import importlib.util
import json
import subprocess
import sys
import tempfile
import unittest
from pathlib import Path

SCRIPT = Path(__file__).resolve().parent.parent / 'scripts' / 'analyze_sites.py'
PYTHON = sys.executable


def _load():
    spec = importlib.util.spec_from_file_location('analyze_sites', SCRIPT)
    mod = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(mod)
    return mod


class TestAnalyzeSitesCli(unittest.TestCase):
    def setUp(self):
        self.cli = _load()

    def test_no_urls_exits_2(self):
        result = subprocess.run([PYTHON, str(SCRIPT)], text=True, capture_output=True)
        self.assertEqual(result.returncode, 2)
        self.assertIn('No URLs given', result.stderr)

    def test_read_urls_skips_comments(self):
        with tempfile.TemporaryDirectory() as td:
            p = Path(td) / 'sites.txt'
            p.write_text('# list\nexample.com\n\n  blog.example.org  \n')
            self.assertEqual(self.cli.read_urls(str(p)), ['example.com', 'blog.example.org'])

    def test_options_from_flags(self):
        args = self.cli.build_parser().parse_args(['a.com', '--no-performance', '--no-theme', '-c', '0'])
        opts = self.cli.options_from_args(args)
        self.assertFalse(opts.include_performance)
        self.assertFalse(opts.include_theme)
        self.assertTrue(opts.include_plugins)
        self.assertEqual(opts.max_concurrent_requests, 1)

    def test_main_prints_jsonl(self):
        captured = {}

        async def fake_many(urls, options=None, **kwargs):
            captured['urls'] = urls
            captured['concurrency'] = kwargs.get('concurrency')
            return [{'url': 'https://a.com/'}, {'url': 'b.com', 'error': 'Cannot fetch'}]

        self.cli.analyze_many = fake_many
        with tempfile.TemporaryDirectory() as td:
            p = Path(td) / 'sites.txt'
            p.write_text('b.com\n')
            out_path = Path(td) / 'out.txt'
            with open(out_path, 'w', encoding='utf-8') as fh:
                old = sys.stdout
                sys.stdout = fh
                try:
                    code = self.cli.main(['a.com', '--file', str(p), '-c', '2'])
                finally:
                    sys.stdout = old
            lines = [json.loads(l) for l in out_path.read_text().splitlines() if l.strip()]
        self.assertEqual(code, 0)
        self.assertEqual(captured['urls'], ['a.com', 'b.com'])
        self.assertEqual(captured['concurrency'], 2)
        self.assertEqual(lines[1]['error'], 'Cannot fetch')

    def test_main_all_failed_exits_1(self):
        async def fake_many(urls, options=None, **kwargs):
            return [{'url': u, 'error': 'x'} for u in urls]

        self.cli.analyze_many = fake_many
        with tempfile.TemporaryDirectory() as td:
            with open(Path(td) / 'out.txt', 'w', encoding='utf-8') as fh:
                old = sys.stdout
                sys.stdout = fh
                try:
                    code = self.cli.main(['a.com'])
                finally:
                    sys.stdout = old
        self.assertEqual(code, 1)


if __name__ == '__main__':
    unittest.main()
