# -*- coding: utf-8 -*-
"""
Unit tests for the logging package.

Covers:
    - Console stage banners, progress lines, failure reporting
    - Best-effort writes on closed streams
    - Debug logger capture of the ``multivar`` stdlib logger
    - Context tagging and timed operations

Run with:
    pytest tests/test_loggers.py -v
"""

import io
import json
import logging

import pytest


class TestConsoleLogger:
    def test_stage_ok(self):
        from multivar.loggers import ConsoleLogger

        buf = io.StringIO()
        console = ConsoleLogger(stream=buf, use_color=False)
        with console.stage('Currently generating univariate estimates...', total_items=2):
            console.progress(1, 2)
            console.progress(2, 2)

        text = buf.getvalue()
        assert 'Currently generating univariate estimates...' in text
        assert 'Variable 2 of 2' in text
        assert 'OK' in text
        assert console.stages[0].status == 'completed'
        assert console.stages[0].progress == pytest.approx(100.0)

    def test_stage_failure_reraised(self):
        from multivar.loggers import ConsoleLogger

        buf = io.StringIO()
        console = ConsoleLogger(stream=buf, use_color=False)
        with pytest.raises(RuntimeError):
            with console.stage('stage'):
                raise RuntimeError('bad')
        assert 'FAIL' in buf.getvalue()
        assert console.stages[0].status == 'failed'

    def test_closed_stream_ignored(self):
        from multivar.loggers import ConsoleLogger

        buf = io.StringIO()
        buf.close()
        console = ConsoleLogger(stream=buf, use_color=False)
        console.banner('title', 'subtitle')
        console.progress(1, 3)
        console.metric('elapsed', 1.5, 's')

    def test_color_codes(self):
        from multivar.loggers import Colors, ConsoleLogger

        buf = io.StringIO()
        ConsoleLogger(stream=buf, use_color=True).info('hello')
        assert Colors.RESET in buf.getvalue()
        assert Colors.strip(buf.getvalue()).strip() == 'i hello'

    def test_no_color_env(self, monkeypatch):
        from multivar.loggers import Colors

        monkeypatch.setenv('NO_COLOR', '1')
        assert Colors.supports_color(io.StringIO()) is False


class TestDebugLogger:
    def test_captures_stdlib_records(self, tmp_path):
        from multivar.loggers import DebugLogger, log_context

        debug = DebugLogger(output_dir=str(tmp_path))
        with log_context(stage='univariate', target='x'):
            logging.getLogger('multivar.var').debug('chosen periods [4]')
        debug.log_data('weights', {'x.tau.1': 0.5})
        path = debug.close()

        with open(path, encoding='utf-8') as fh:
            entries = json.load(fh)
        record = next(e for e in entries if e['message'] == 'chosen periods [4]')
        assert record['stage'] == 'univariate'
        assert record['target'] == 'x'
        assert entries[-1]['data'] == {'x.tau.1': 0.5}

    def test_close_detaches_handler(self, tmp_path):
        from multivar.loggers import DebugLogger

        debug = DebugLogger(output_dir=str(tmp_path))
        debug.close()
        logging.getLogger('multivar').debug('after close')
        assert debug.entry_count == 0

    def test_numpy_payload(self, tmp_path):
        import numpy as np
        import pandas as pd
        from multivar.loggers import DebugLogger

        debug = DebugLogger(output_dir=str(tmp_path))
        debug.log_data('frame', pd.DataFrame({'x': np.arange(3.0)}))
        debug.log_data('value', np.float64(1.5))
        with open(debug.close(), encoding='utf-8') as fh:
            entries = json.load(fh)
        assert entries[0]['data'] == {'x': [0.0, 1.0, 2.0]}
        assert entries[1]['data'] == 1.5

    def test_setup_logging(self, tmp_path):
        from multivar.loggers import ConsoleLogger, DebugLogger, setup_logging

        console, debug = setup_logging(str(tmp_path))
        try:
            assert isinstance(console, ConsoleLogger)
            assert isinstance(debug, DebugLogger)
            assert (tmp_path / 'logs').is_dir()
        finally:
            debug.close()


class TestDecorators:
    def test_timed_operation_records(self):
        from multivar.loggers import timed_operation

        timings = {}
        with timed_operation(logging.getLogger('multivar.test'), 'work', timings=timings):
            pass
        assert timings['work'] >= 0.0

    def test_log_context_cleared(self):
        from multivar.loggers import LogContext, log_context

        with log_context(target='y'):
            assert LogContext.get()['target'] == 'y'
        assert 'target' not in LogContext.get()

    def test_log_execution_reraises(self, caplog):
        from multivar.loggers import log_execution

        @log_execution()
        def broken():
            raise ValueError('nope')

        with caplog.at_level(logging.DEBUG, logger='multivar'):
            with pytest.raises(ValueError):
                broken()
        assert any('failed' in r.getMessage() for r in caplog.records)
