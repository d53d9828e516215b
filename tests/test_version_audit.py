import unittest, pathlib, sys
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from wpanalyzer import version_audit


class TestVersionAudit(unittest.TestCase):
    def test_is_outdated(self):
        self.assertFalse(version_audit.is_outdated('5.8.4', '5.8.4'))
        self.assertFalse(version_audit.is_outdated('5.8', '5.8.0'))
        self.assertTrue(version_audit.is_outdated('5.8.4', '5.9'))
        self.assertFalse(version_audit.is_outdated('6.0', '5.9'))

    def test_unknown_is_none(self):
        # Missing or non-numeric versions are never reported as current
        self.assertIsNone(version_audit.is_outdated(None, '5.9'))
        self.assertIsNone(version_audit.is_outdated('5.9', None))
        self.assertIsNone(version_audit.is_outdated('dev-build', '5.9'))

    def test_diff_severity(self):
        self.assertEqual(version_audit.diff_severity('4.9.8', '6.4.2'), 'major')
        self.assertEqual(version_audit.diff_severity('6.2', '6.4.2'), 'minor')
        self.assertEqual(version_audit.diff_severity('6.4.1', '6.4.2'), 'patch')
        self.assertIsNone(version_audit.diff_severity('6.4.2', '6.4.2'))
        self.assertIsNone(version_audit.diff_severity('6.5', '6.4.2'))

    def test_audit_core(self):
        out = version_audit.audit_core('6.1.1', '6.3')
        self.assertTrue(out['outdated'])
        self.assertEqual(out['difference'], 'minor')
        current = version_audit.audit_core('6.4', '6.3')
        self.assertFalse(current['outdated'])
        self.assertIsNone(current['difference'])
        self.assertIsNone(version_audit.audit_core(None, '6.3')['outdated'])


if __name__ == '__main__':
    unittest.main()
