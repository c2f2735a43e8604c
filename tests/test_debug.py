from __future__ import annotations

import logging

from padelmotion.tools.debug import debug_enabled, time_block


def test_time_block_is_silent_when_disabled(monkeypatch, caplog) -> None:
    monkeypatch.delenv("PADELMOTION_DEBUG", raising=False)
    caplog.set_level(logging.DEBUG, logger="padelmotion.tools.debug")
    assert not debug_enabled()
    with time_block("quiet"):
        pass
    assert "quiet" not in caplog.text


def test_time_block_logs_elapsed_time(monkeypatch, caplog) -> None:
    monkeypatch.setenv("PADELMOTION_DEBUG", "yes")
    log = logging.getLogger("padelmotion.test.timing")
    caplog.set_level(logging.DEBUG, logger="padelmotion.test.timing")
    assert debug_enabled()
    with time_block("reconstruct", log=log):
        pass
    assert "reconstruct took" in caplog.text
    assert caplog.records[-1].name == "padelmotion.test.timing"
