from pathlib import Path
import sys

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from smf.message import (  # noqa: E402
    META_END_OF_TRACK,
    META_TEMPO,
    META_TRACK_NAME,
    Message,
)


class TestParameters:
    def test_absent_parameters_read_as_minus_one(self) -> None:
        message = Message(b"\xc0\x05")
        assert message.p0 == 0xC0
        assert message.p1 == 5
        assert message.p2 == -1
        assert message.p3 == -1
        assert Message().command_byte == -1

    def test_setting_a_parameter_grows_the_buffer(self) -> None:
        message = Message(b"\x90")
        message.p2 = 100
        assert bytes(message.data) == b"\x90\x00\x64"

    def test_set_parameters(self) -> None:
        message = Message(b"\xb0")
        message.set_parameters(7, 100)
        assert bytes(message.data) == b"\xb0\x07\x64"

    def test_channel_and_nibble_setters_keep_the_other_half(self) -> None:
        message = Message(b"\x93\x3c\x40")
        assert message.channel == 3
        message.channel = 9
        assert message.command_byte == 0x99
        message.command_nibble = 0x80
        assert message.command_byte == 0x89

    @pytest.mark.parametrize(
        "data, expected",
        [
            (b"\x90\x3c", b"\x90\x3c\x00"),
            (b"\xc0\x05\x07", b"\xc0\x05"),
            (b"\xe0\x00\x40", b"\xe0\x00\x40"),
            (b"\xff\x01\x00", b"\xff\x01\x00"),
        ],
    )
    def test_resize_to_command(self, data: bytes, expected: bytes) -> None:
        message = Message(data)
        assert message.resize_to_command() == len(expected)
        assert bytes(message.data) == expected


class TestNotes:
    def test_note_on_requires_positive_velocity(self) -> None:
        assert Message(b"\x90\x3c\x40").is_note_on()
        assert not Message(b"\x90\x3c\x00").is_note_on()
        assert not Message(b"\x90\x3c").is_note_on()

    def test_only_explicit_note_off_is_a_note_off(self) -> None:
        assert Message(b"\x80\x3c\x00").is_note_off()
        assert not Message(b"\x90\x3c\x00").is_note_off()
        assert Message(b"\x90\x3c\x00").is_note()

    def test_key_and_velocity(self) -> None:
        message = Message(b"\x91\x3c\x40")
        assert message.key_number == 60
        assert message.velocity == 64
        message.key_number = 62
        message.velocity = 200
        assert bytes(message.data) == b"\x91\x3e\x48"

    def test_key_number_only_for_note_messages(self) -> None:
        assert Message(b"\xb0\x07\x64").key_number == -1
        assert Message(b"\xa0\x3c\x10").key_number == 60


class TestControllers:
    def test_controller_fields(self) -> None:
        message = Message(b"\xb2\x07\x64")
        assert message.is_controller()
        assert message.controller_number == 7
        assert message.controller_value == 100
        assert Message(b"\x90\x3c\x40").controller_number == -1

    @pytest.mark.parametrize(
        "data, on, off",
        [
            (b"\xb0\x40\x7f", True, False),
            (b"\xb0\x40\x40", True, False),
            (b"\xb0\x40\x3f", False, True),
        ],
    )
    def test_sustain(self, data: bytes, on: bool, off: bool) -> None:
        message = Message(data)
        assert message.is_sustain()
        assert message.is_sustain_on() is on
        assert message.is_sustain_off() is off

    def test_soft_pedal(self) -> None:
        assert Message(b"\xb0\x43\x7f").is_soft_on()
        assert Message(b"\xb0\x43\x00").is_soft_off()
        assert not Message(b"\xb0\x40\x00").is_soft()

    def test_other_channel_messages(self) -> None:
        assert Message(b"\xc0\x05").is_patch_change()
        assert Message(b"\xc0\x05").is_timbre()
        assert Message(b"\xd0\x20").is_pressure()
        assert Message(b"\xe0\x00\x40").is_pitchbend()
        assert Message(b"\xf0\x7e\xf7").is_sysex()


class TestMeta:
    def test_meta_constructor_stores_vlv_length(self) -> None:
        message = Message.meta(META_TRACK_NAME, "Piano")
        assert bytes(message.data) == b"\xff\x03\x05Piano"
        assert message.is_meta()
        assert message.is_track_name()
        assert message.meta_type == META_TRACK_NAME
        assert message.meta_content == b"Piano"

    def test_long_payload_uses_multibyte_length(self) -> None:
        message = Message.meta(0x01, b"x" * 200)
        assert bytes(message.data[:4]) == b"\xff\x01\x81\x48"
        assert message.meta_content == b"x" * 200

    def test_set_meta_content_keeps_type(self) -> None:
        message = Message.meta(0x06, "A")
        message.set_meta_content("Verse")
        assert message.is_marker_text()
        assert message.meta_content == b"Verse"

    def test_end_of_track(self) -> None:
        assert Message.meta(META_END_OF_TRACK).is_end_of_track()
        assert not Message(b"\xff\x01\x00").is_end_of_track()

    def test_non_meta_has_no_content(self) -> None:
        assert Message(b"\x90\x3c\x40").meta_content == b""
        assert Message(b"\x90\x3c\x40").meta_type == -1

    def test_signature_predicates_check_length(self) -> None:
        assert Message(b"\xff\x58\x04\x04\x02\x18\x08").is_time_signature()
        assert not Message(b"\xff\x58\x03\x04\x02\x18").is_time_signature()
        assert Message(b"\xff\x59\x02\x00\x00").is_key_signature()


class TestTempo:
    def test_tempo_accessors(self) -> None:
        message = Message(b"\xff\x51\x03\x07\xa1\x20")
        assert message.is_tempo()
        assert message.tempo_microseconds == 500000
        assert message.tempo_seconds == pytest.approx(0.5)
        assert message.tempo_bpm == pytest.approx(120.0)
        assert message.tempo_tps(480) == pytest.approx(960.0)
        assert message.tempo_spt(480) == pytest.approx(0.5 / 480)

    def test_set_tempo_from_bpm(self) -> None:
        message = Message()
        message.set_tempo(60.0)
        assert bytes(message.data) == b"\xff\x51\x03\x0f\x42\x40"
        assert message.meta_type == META_TEMPO

    def test_tempo_with_wrong_length_is_not_a_tempo(self) -> None:
        message = Message(b"\xff\x51\x02\x07\xa1")
        assert not message.is_tempo()
        assert message.tempo_microseconds == -1
        assert message.tempo_bpm == -1.0

    def test_non_positive_bpm_rejected(self) -> None:
        with pytest.raises(ValueError):
            Message().set_tempo(0)


def test_equality_and_copy() -> None:
    original = Message(b"\x90\x3c\x40")
    duplicate = original.copy()
    assert duplicate == original
    duplicate.velocity = 10
    assert duplicate != original
    assert original.hex() == "90 3c 40"


def test_clear_marks_empty() -> None:
    message = Message(b"\x90\x3c\x40")
    message.clear()
    assert message.is_empty()
    assert len(message) == 0
