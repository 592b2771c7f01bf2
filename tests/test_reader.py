from __future__ import annotations

from pathlib import Path
import logging
import struct
import sys

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from smf.errors import (  # noqa: E402
    MalformedEvent,
    MalformedHeader,
    RunningStatusMisuse,
    SMFError,
    UnexpectedEof,
    UnsupportedVLV,
)
from smf.reader import SMFHeader, read_tracks  # noqa: E402
from smf.byteorder import ByteCursor  # noqa: E402


def _header(fmt: int = 1, tracks: int = 1, division: int = 480) -> bytes:
    return b"MThd" + struct.pack(">IHHH", 6, fmt, tracks, division)


def _track(body: bytes, declared: int | None = None) -> bytes:
    length = len(body) if declared is None else declared
    return b"MTrk" + struct.pack(">I", length) + body


EOT = b"\x00\xff\x2f\x00"


class TestHeader:
    def test_ppq_division(self) -> None:
        header = SMFHeader.from_cursor(ByteCursor(_header(0, 1, 96)))
        assert header.format == 0
        assert header.track_count == 1
        assert header.ticks_per_quarter_note == 96
        assert not header.is_smpte

    def test_smpte_division(self) -> None:
        header = SMFHeader.from_cursor(ByteCursor(_header(1, 1, 0xE728)))
        assert header.is_smpte
        assert header.frames_per_second == 25
        assert header.subframes == 40
        assert header.ticks_per_quarter_note == 1000

    def test_unknown_smpte_rate_is_logged(self, caplog) -> None:
        with caplog.at_level(logging.WARNING, logger="smf.reader"):
            header = SMFHeader.from_cursor(ByteCursor(_header(1, 1, 0xEC04)))
        assert header.frames_per_second == 20
        assert "unknown SMPTE frame rate" in caplog.text

    @pytest.mark.parametrize(
        "data",
        [
            b"RIFF" + struct.pack(">IHHH", 6, 1, 1, 480),
            b"MThd" + struct.pack(">IHHHH", 8, 1, 1, 480, 0),
            _header(2, 1),
            _header(0, 2),
            _header(1, 1, 0x0000),
            _header(1, 1, 0xE700),
            b"MTh",
        ],
    )
    def test_rejected_headers(self, data: bytes) -> None:
        with pytest.raises(MalformedHeader):
            SMFHeader.from_cursor(ByteCursor(data))


def test_reads_absolute_ticks_and_track_index() -> None:
    track0 = b"\x00\xff\x51\x03\x07\xa1\x20" + b"\x83\x60\xff\x2f\x00"
    track1 = b"\x00\x90\x3c\x64" + b"\x81\x70\x80\x3c\x00" + EOT
    header, tracks = read_tracks(_header(1, 2) + _track(track0) + _track(track1))
    assert header.track_count == 2
    assert [event.tick for event in tracks[0]] == [0, 480]
    assert tracks[0][0].is_tempo()
    assert [event.tick for event in tracks[1]] == [0, 240, 240]
    assert all(event.track == 1 for event in tracks[1])


def test_running_status_is_expanded() -> None:
    body = b"\x00\x90\x3c\x64" + b"\x10\x3e\x64" + b"\x10\x3c\x00" + EOT
    _, tracks = read_tracks(_header(0) + _track(body))
    events = tracks[0]
    assert [bytes(event.data) for event in events[:3]] == [
        b"\x90\x3c\x64",
        b"\x90\x3e\x64",
        b"\x90\x3c\x00",
    ]
    assert [event.tick for event in events] == [0, 16, 32, 32]


def test_meta_keeps_length_and_sysex_drops_it() -> None:
    body = (
        b"\x00\xff\x03\x05Piano"
        + b"\x00\xf0\x05\x7e\x7f\x09\x01\xf7"
        + b"\x00\xf7\x02\x43\xf7"
        + EOT
    )
    _, tracks = read_tracks(_header(0) + _track(body))
    name, sysex, continuation, _ = tracks[0]
    assert bytes(name.data) == b"\xff\x03\x05Piano"
    assert name.meta_content == b"Piano"
    assert bytes(sysex.data) == b"\xf0\x7e\x7f\x09\x01\xf7"
    assert bytes(continuation.data) == b"\xf7\x43\xf7"


class TestRunningStatusMisuse:
    def test_data_byte_without_command(self) -> None:
        body = b"\x00\x3c\x64" + EOT
        with pytest.raises(RunningStatusMisuse):
            read_tracks(_header(0) + _track(body))

    def test_data_byte_after_meta(self) -> None:
        body = b"\x00\xff\x01\x00" + b"\x00\x3c\x64" + EOT
        with pytest.raises(RunningStatusMisuse):
            read_tracks(_header(0) + _track(body))


def test_data_byte_with_high_bit_is_malformed() -> None:
    body = b"\x00\x90\x3c\xe4" + EOT
    with pytest.raises(MalformedEvent):
        read_tracks(_header(0) + _track(body))


def test_truncated_event_aborts_the_read() -> None:
    with pytest.raises(UnexpectedEof):
        read_tracks(_header(0) + _track(b"\x00\x90\x3c"))


def test_missing_track_chunk() -> None:
    with pytest.raises(MalformedHeader):
        read_tracks(_header(1, 2) + _track(EOT))


def test_bad_track_magic() -> None:
    with pytest.raises(SMFError):
        read_tracks(_header(0) + b"MTrx" + struct.pack(">I", 4) + EOT)


def test_wrong_declared_length_is_tolerated() -> None:
    body = b"\x00\x90\x3c\x64" + b"\x60\x80\x3c\x00" + EOT
    _, tracks = read_tracks(_header(0) + _track(body, declared=3))
    assert len(tracks[0]) == 3


def test_missing_end_of_track_is_tolerated(caplog) -> None:
    body = b"\x00\x90\x3c\x64" + b"\x60\x80\x3c\x00"
    with caplog.at_level(logging.WARNING, logger="smf.reader"):
        _, tracks = read_tracks(_header(0) + _track(body))
    assert len(tracks[0]) == 2
    assert "without an end-of-track" in caplog.text


def test_oversized_meta_length_is_an_unsupported_vlv() -> None:
    body = b"\x00\xff\x01\x81\x81\x81\x81\x00" + EOT
    with pytest.raises(UnsupportedVLV):
        read_tracks(_header(0) + _track(body))


def test_truncated_meta_length() -> None:
    with pytest.raises(UnexpectedEof):
        read_tracks(_header(0) + _track(b"\x00\xff\x01\x81"))


def test_multibyte_meta_length_is_kept_in_the_buffer() -> None:
    text = b"x" * 130
    body = b"\x00\xff\x01\x81\x02" + text + EOT
    _, tracks = read_tracks(_header(0) + _track(body))
    assert bytes(tracks[0][0].data[:5]) == b"\xff\x01\x81\x02x"
    assert tracks[0][0].meta_content == text
