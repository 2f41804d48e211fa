"""General MIDI Level 1 drum note map.

Standard MIDI percussion assignments for channel 10 (0-indexed channel 9).
Only the notes the drum machine's tracks are recorded as are listed, plus
the closest alternates for each voice.

``TRACK_NOTE_MAP`` is what ``beatmaker.recording.MidiRecorder`` uses to turn
a fired track into a note::

    import beatmaker.constants.gm_drums

    note = beatmaker.constants.gm_drums.TRACK_NOTE_MAP["kick"]  # 36
"""

import typing


GM_DRUM_CHANNEL = 9

KICK_2 = 35
KICK_1 = 36
SNARE_1 = 38
HAND_CLAP = 39
SNARE_2 = 40
HI_HAT_CLOSED = 42
HI_HAT_PEDAL = 44
HI_HAT_OPEN = 46
CRASH_1 = 49
CRASH_2 = 57


TRACK_NOTE_MAP: typing.Dict[str, int] = {
	"kick": KICK_1,
	"snare": SNARE_1,
	"hihat": HI_HAT_CLOSED,
	"crash": CRASH_1,
}
