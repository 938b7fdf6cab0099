"""Tests for the CLI worker loop helper."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from xmarks.worker import run_loop


class TestRunLoop:
    def test_single_successful_cycle(self, log):
        fn = MagicMock(return_value=3)

        assert run_loop(fn, loop=False, interval=10, log=log, name="sync") is True

        fn.assert_called_once()
        log.info.assert_called_with("sync.cycle_complete", result=3)

    def test_single_failed_cycle_is_logged(self, log):
        fn = MagicMock(side_effect=RuntimeError("boom"))

        assert run_loop(fn, loop=False, interval=10, log=log, name="sync") is False

        log.exception.assert_called_once_with("sync.error")

    def test_loop_keeps_going_after_errors(self, log):
        fn = MagicMock(side_effect=[RuntimeError("boom"), 1])
        # Second sleep stops the loop
        sleep = MagicMock(side_effect=[None, KeyboardInterrupt])

        with pytest.raises(KeyboardInterrupt):
            run_loop(fn, loop=True, interval=30, log=log, name="sync", sleep=sleep)

        assert fn.call_count == 2
        sleep.assert_called_with(30)
