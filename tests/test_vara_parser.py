from __future__ import annotations

import logging

import pytest

from modems.vara import VaraParser


class Recorder:
    def __init__(self) -> None:
        self.events: list = []

    def parser(self) -> VaraParser:
        return VaraParser(
            on_ptt=lambda on: self.events.append(("ptt", on)),
            on_busy=lambda busy: self.events.append(("busy", busy)),
            on_connected=lambda tokens: self.events.append(("connected", tokens)),
            on_disconnected=lambda: self.events.append(("disconnected",)),
        )


@pytest.mark.parametrize(
    "line, expected",
    [
        ("PTT ON", ("ptt", True)),
        ("PTT OFF", ("ptt", False)),
        ("BUSY ON", ("busy", True)),
        ("BUSY OFF", ("busy", False)),
        ("CONNECTED N0CALL", ("connected", ["N0CALL"])),
        ("CONNECTED ME N0CALL 2300", ("connected", ["ME", "N0CALL", "2300"])),
    ],
)
def test_dispatch(line, expected):
    rec = Recorder()
    assert rec.parser().feed(line) is True
    assert rec.events == [expected]


@pytest.mark.parametrize("line", ["OK", "IAMALIVE", "PENDING", "BUFFER 1024", "", "   "])
def test_lines_without_state_effect(line):
    rec = Recorder()
    assert rec.parser().feed(line) is True
    assert rec.events == []


def test_disconnected_stops_reader_and_is_not_a_connect():
    rec = Recorder()
    assert rec.parser().feed("DISCONNECTED") is False
    assert rec.events == [("disconnected",)]


def test_registered_is_logged(caplog):
    rec = Recorder()
    with caplog.at_level(logging.INFO):
        assert rec.parser().feed("REGISTERED N0CALL") is True
    assert rec.events == []
    assert "registered to N0CALL" in caplog.text


def test_unexpected_line_is_logged_and_ignored(caplog):
    rec = Recorder()
    parser = rec.parser()
    with caplog.at_level(logging.WARNING):
        assert parser.feed("FOO BAR") is True
    assert "FOO BAR" in caplog.text
    assert parser.feed("CONNECTED REMOTE1") is True
    assert rec.events == [("connected", ["REMOTE1"])]


def test_missing_callbacks_are_tolerated():
    parser = VaraParser()
    for line in ("PTT ON", "BUSY ON", "CONNECTED X"):
        assert parser.feed(line) is True
    assert parser.feed("DISCONNECTED") is False
