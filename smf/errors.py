"""Error taxonomy for Standard MIDI File decoding and manipulation."""

from __future__ import annotations


class SMFError(ValueError):
    """Base class for every error raised by the ``smf`` package."""


class MalformedHeader(SMFError):
    """Bad chunk magic, header length, format type or type-0 track count."""


class UnexpectedEof(SMFError, EOFError):
    """The byte stream ended in the middle of a structure."""


class TruncatedInput(UnexpectedEof):
    """A variable-length value was cut off before its final byte."""


class UnsupportedVLV(SMFError):
    """A variable-length value does not fit in 28 bits."""


class VLVTooLarge(UnsupportedVLV):
    """More than four 7-bit groups were needed to hold a value."""


class RunningStatusMisuse(SMFError):
    """A data byte appeared where no usable running command exists."""


class MalformedEvent(SMFError):
    """A channel message carried a data byte with the high bit set."""


class NegativeDeltaTick(SMFError):
    """Absolute ticks decreased between two adjacent events of a track."""


class IndexOutOfRange(SMFError, IndexError):
    """A track or event index does not exist."""


__all__ = [
    "IndexOutOfRange",
    "MalformedEvent",
    "MalformedHeader",
    "NegativeDeltaTick",
    "RunningStatusMisuse",
    "SMFError",
    "TruncatedInput",
    "UnexpectedEof",
    "UnsupportedVLV",
    "VLVTooLarge",
]
