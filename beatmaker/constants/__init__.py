"""Constants for Beatmaker.

This package contains:

- Session shape: the fixed track order and the number of steps in a loop.
- Tempo: the default BPM and the range a control surface should clamp to.
- Synthesis: sample rate and the amplitude envelope used by every voice.
- Event names emitted by the engine.
- ``beatmaker.constants.gm_drums`` - General MIDI note numbers used when
  recording to a MIDI file.

One step is a sixteenth note, so a tick lasts ``60000 / bpm / STEPS_PER_BEAT``
milliseconds - 125 ms at the default 120 BPM.
"""

import typing


TRACKS: typing.Tuple[str, ...] = ("kick", "snare", "hihat", "crash")

STEPS_PER_LOOP = 16
STEPS_PER_BEAT = 4

DEFAULT_BPM = 120
MIN_BPM = 60
MAX_BPM = 240

SAMPLE_RATE = 44100

# Amplitude envelope: linear attack to the peak, exponential decay to the floor.
ATTACK_SECONDS = 0.01
PEAK_GAIN = 0.3
FLOOR_GAIN = 0.001

WAVEFORMS: typing.Tuple[str, ...] = ("sine", "square", "sawtooth", "triangle")

# Event names

EVENT_CELL_CHANGED = "cell_changed"
EVENT_STEP_ADVANCED = "step_advanced"
EVENT_TRACK_FIRED = "track_fired"
EVENT_HIGHLIGHT_CLEARED = "highlight_cleared"
EVENT_MUTE_CHANGED = "mute_changed"
EVENT_START = "start"
EVENT_PAUSE = "pause"
EVENT_STOP = "stop"
EVENT_TEMPO_CHANGED = "tempo_changed"
EVENT_SOUND_CHANGED = "sound_changed"
EVENT_PATTERN_CLEARED = "pattern_cleared"
