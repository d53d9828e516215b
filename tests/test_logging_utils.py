import logging

from wpanalyzer.logging_utils import log_suppressed, reset_suppressed_state, suppressed_counts


def test_first_samples_then_throttled(caplog):
    logger = logging.getLogger('wpanalyzer.test.throttle')
    with caplog.at_level(logging.DEBUG, logger='wpanalyzer.test.throttle'):
        for _ in range(8):
            log_suppressed(logger, RuntimeError('boom'), 'probe failed', sample=3, cooldown=3600)
    lines = [r for r in caplog.records if r.name == 'wpanalyzer.test.throttle']
    assert len(lines) == 3
    assert 'seen=3' in lines[-1].getMessage()
    assert suppressed_counts()['wpanalyzer.test.throttle:probe failed'] == 8


def test_contexts_are_independent(caplog):
    logger = logging.getLogger('wpanalyzer.test.ctx')
    with caplog.at_level(logging.WARNING, logger='wpanalyzer.test.ctx'):
        assert log_suppressed(logger, ValueError('a'), 'one', level=logging.WARNING, sample=1) == 1
        assert log_suppressed(logger, ValueError('b'), 'one', level=logging.WARNING, sample=1) == 2
        assert log_suppressed(logger, ValueError('c'), 'two', level=logging.WARNING, sample=1) == 1
    assert len([r for r in caplog.records if r.name == 'wpanalyzer.test.ctx']) == 2


def test_cooldown_zero_always_emits(caplog):
    logger = logging.getLogger('wpanalyzer.test.cool')
    with caplog.at_level(logging.DEBUG, logger='wpanalyzer.test.cool'):
        for _ in range(4):
            log_suppressed(logger, OSError('x'), 'ctx', sample=1, cooldown=0)
    assert len([r for r in caplog.records if r.name == 'wpanalyzer.test.cool']) == 4


def test_reset():
    logger = logging.getLogger('wpanalyzer.test.reset')
    log_suppressed(logger, OSError('x'), 'ctx')
    reset_suppressed_state()
    assert suppressed_counts() == {}
