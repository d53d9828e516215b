import unittest, pathlib, sys
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from wpanalyzer.evidence_utils import SITE_WEIGHTS, aggregate, merge_evidence
from wpanalyzer.models import Evidence


class TestAggregate(unittest.TestCase):
    def test_empty_is_negative(self):
        v = aggregate([])
        self.assertFalse(v.is_positive)
        self.assertEqual(v.score, 0)
        self.assertEqual(v.confidence, 'low')
        self.assertEqual(v.evidence, [])

    def test_none_items_ignored(self):
        self.assertFalse(aggregate([None]).is_positive)

    def test_any_high_wins_regardless_of_order(self):
        items = [Evidence('path_indicator', '/wp-content/', 'medium'),
                 Evidence('meta_generator', 'WordPress 6.4', 'high'),
                 Evidence('css_class', 'body.wp-', 'low')]
        self.assertEqual(aggregate(items).confidence, 'high')
        self.assertEqual(aggregate(list(reversed(items))).confidence, 'high')

    def test_medium_without_high(self):
        v = aggregate([Evidence('css_class', 'x', 'low'), Evidence('path_indicator', 'y', 'medium')])
        self.assertEqual(v.confidence, 'medium')

    def test_duplicate_types_count_once(self):
        one = aggregate([Evidence('path_indicator', '/wp-content/', 'medium')])
        many = aggregate([Evidence('path_indicator', p, 'medium')
                          for p in ('/wp-content/', '/wp-includes/', '/wp-admin/')])
        self.assertEqual(one.score, many.score)
        self.assertEqual(many.score, SITE_WEIGHTS['path_indicator'])
        self.assertEqual(len(many.evidence), 3)

    def test_score_is_sum_of_distinct_weights(self):
        v = aggregate([Evidence('meta_generator', 'a', 'high'), Evidence('admin_bar', 'b', 'high')])
        self.assertEqual(v.score, 55)

    def test_unknown_type_adds_default_weight(self):
        v = aggregate([Evidence('mystery', 'x', 'low')], {'known': 50})
        self.assertEqual(v.score, 1)

    def test_score_clamped(self):
        weights = {'a': 80, 'b': 80}
        v = aggregate([Evidence('a', '1', 'high'), Evidence('b', '2', 'high')], weights)
        self.assertEqual(v.score, 100)


class TestMergeEvidence(unittest.TestCase):
    def test_dedupes_by_type_and_value(self):
        a = [Evidence('asset_path', 'u1', 'high'), Evidence('asset_path', 'u2', 'high')]
        b = [Evidence('asset_path', 'u1', 'medium'), Evidence('meta_tag', 'u1', 'high')]
        merged = merge_evidence(a, b, None)
        self.assertEqual([(e.type, e.value) for e in merged],
                         [('asset_path', 'u1'), ('asset_path', 'u2'), ('meta_tag', 'u1')])
        # first occurrence wins
        self.assertEqual(merged[0].confidence, 'high')

    def test_per_type_keeps_first_of_each_type(self):
        a = [Evidence('asset_path', 'u1', 'high'), Evidence('asset_path', 'u2', 'high')]
        b = [Evidence('html_reference', 'u1', 'medium'), Evidence('html_reference', 'u3', 'medium')]
        merged = merge_evidence(a, b, per_type=True)
        self.assertEqual([(e.type, e.value) for e in merged],
                         [('asset_path', 'u1'), ('html_reference', 'u1')])


if __name__ == '__main__':
    unittest.main()
