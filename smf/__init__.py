"""Read, edit and write Standard MIDI Files (types 0 and 1)."""

from .errors import (  # noqa: F401
    IndexOutOfRange,
    MalformedEvent,
    MalformedHeader,
    NegativeDeltaTick,
    RunningStatusMisuse,
    SMFError,
    TruncatedInput,
    UnexpectedEof,
    UnsupportedVLV,
    VLVTooLarge,
)
from .vlv import MAX_VLV_BYTES, MAX_VLV_VALUE, decode_vlv, encode_vlv, vlv_size  # noqa: F401
from .byteorder import BIG, LITTLE, ByteCursor  # noqa: F401
from .message import (  # noqa: F401
    META,
    META_END_OF_TRACK,
    META_TEMPO,
    NOTE_OFF,
    NOTE_ON,
    SYSEX,
    Message,
    MessageView,
)
from .event import Event  # noqa: F401
from .event_list import (  # noqa: F401
    SWITCH_CONTROLLERS,
    event_compare,
    link_note_pairs,
    sort_events,
)
from .timemap import OUT_OF_RANGE, TimeMap, TimeMapSample  # noqa: F401
from .reader import SMFHeader, read_tracks  # noqa: F401
from .writer import encode_file, encode_track  # noqa: F401
from .midifile import (  # noqa: F401
    DEFAULT_TICKS_PER_QUARTER_NOTE,
    MILLISECOND_DIVISION,
    MidiFile,
    TickState,
    TrackState,
    read,
    write,
)
