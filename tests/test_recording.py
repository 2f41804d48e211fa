import pathlib

import mido
import pytest

import beatmaker.constants
import beatmaker.constants.gm_drums
import beatmaker.event_emitter
import beatmaker.recording


@pytest.fixture
def events () -> beatmaker.event_emitter.EventEmitter:

	"""A bare event channel to drive the recorder with."""

	return beatmaker.event_emitter.EventEmitter()


def _play_step (events: beatmaker.event_emitter.EventEmitter, *tracks: str, next_step: int = 0) -> None:

	"""Emit what one transport tick emits: the fired tracks, then the step advance."""

	for track in tracks:
		events.emit_sync(beatmaker.constants.EVENT_TRACK_FIRED, track)

	events.emit_sync(beatmaker.constants.EVENT_STEP_ADVANCED, next_step)


# ---------------------------------------------------------------------------
# Event capture
# ---------------------------------------------------------------------------

def test_initial_tempo_recorded (events: beatmaker.event_emitter.EventEmitter) -> None:

	"""The starting tempo is written at tick 0."""

	recorder = beatmaker.recording.MidiRecorder(events, bpm=100)

	assert len(recorder.recorded_events) == 1

	tick, msg = recorder.recorded_events[0]

	assert tick == 0
	assert msg.type == 'set_tempo'
	assert msg.tempo == mido.bpm2tempo(100)


def test_fired_tracks_become_gm_notes (events: beatmaker.event_emitter.EventEmitter) -> None:

	"""Each hit is a channel-10 drum note one sixteenth long, placed on its step."""

	recorder = beatmaker.recording.MidiRecorder(events)
	recorder.recorded_events.clear()

	_play_step(events, "kick", "hihat")
	_play_step(events)
	_play_step(events, "snare")

	notes = [(tick, msg.type, msg.note) for tick, msg in recorder.recorded_events]

	assert notes == [
		(0, 'note_on', beatmaker.constants.gm_drums.TRACK_NOTE_MAP["kick"]),
		(120, 'note_off', 36),
		(0, 'note_on', 42),
		(120, 'note_off', 42),
		(240, 'note_on', 38),
		(360, 'note_off', 38),
	]
	assert all(msg.channel == beatmaker.constants.gm_drums.GM_DRUM_CHANNEL for _, msg in recorder.recorded_events)
	assert recorder.note_count == 3


def test_tempo_change_recorded_at_current_step (events: beatmaker.event_emitter.EventEmitter) -> None:

	"""A tempo change is stamped at the step where it happened."""

	recorder = beatmaker.recording.MidiRecorder(events)

	_play_step(events)
	_play_step(events)
	events.emit_sync(beatmaker.constants.EVENT_TEMPO_CHANGED, 150)

	tick, msg = recorder.recorded_events[-1]

	assert tick == 240
	assert msg.tempo == mido.bpm2tempo(150)


def test_unmapped_track_ignored (events: beatmaker.event_emitter.EventEmitter) -> None:

	"""Tracks with no MIDI note are skipped."""

	recorder = beatmaker.recording.MidiRecorder(events, note_map={"kick": 36})

	_play_step(events, "snare")

	assert recorder.note_count == 0


def test_detach_stops_recording (events: beatmaker.event_emitter.EventEmitter) -> None:

	"""After detach() further hits are not recorded."""

	recorder = beatmaker.recording.MidiRecorder(events)
	recorder.detach()

	_play_step(events, "kick")

	assert recorder.note_count == 0
	assert events.listener_count(beatmaker.constants.EVENT_TRACK_FIRED) == 0


# ---------------------------------------------------------------------------
# Saving
# ---------------------------------------------------------------------------

def test_save_and_read_back (events: beatmaker.event_emitter.EventEmitter, tmp_path: pathlib.Path) -> None:

	"""The saved file is a type 0 MIDI file with consistent delta times."""

	recorder = beatmaker.recording.MidiRecorder(events, bpm=90)

	for step in range(1, 17):
		_play_step(events, "kick" if step % 4 == 1 else "hihat", next_step=step % 16)

	filename = str(tmp_path / "beat.mid")

	assert recorder.save(filename) == filename

	mid = mido.MidiFile(filename)

	assert mid.type == 0
	assert mid.ticks_per_beat == beatmaker.recording.TICKS_PER_BEAT

	messages = [msg for msg in mid.tracks[0] if not msg.is_meta or msg.type == 'set_tempo']

	assert messages[0].type == 'set_tempo'
	assert messages[0].tempo == mido.bpm2tempo(90)
	assert sum(1 for msg in messages if msg.type == 'note_on') == 16

	# 16 sixteenth notes at 90 BPM last four beats.
	assert mid.length == pytest.approx(4 * 60 / 90)


def test_note_off_sorted_before_note_on (events: beatmaker.event_emitter.EventEmitter) -> None:

	"""Back-to-back hits on the same note end the first before starting the second."""

	recorder = beatmaker.recording.MidiRecorder(events)

	_play_step(events, "kick")
	_play_step(events, "kick")

	track = recorder.to_midi_file().tracks[0]
	kinds = [msg.type for msg in track if msg.type in ('note_on', 'note_off')]

	assert kinds == ['note_on', 'note_off', 'note_on', 'note_off']


def test_nothing_saved_without_notes (events: beatmaker.event_emitter.EventEmitter, tmp_path: pathlib.Path) -> None:

	"""An empty recording writes no file."""

	recorder = beatmaker.recording.MidiRecorder(events)
	filename = tmp_path / "empty.mid"

	assert recorder.save(str(filename)) is None
	assert not filename.exists()


def test_default_filename_is_timestamped (events: beatmaker.event_emitter.EventEmitter, tmp_path: pathlib.Path, monkeypatch: pytest.MonkeyPatch) -> None:

	"""Without a filename the recording is named after the time it was saved."""

	monkeypatch.chdir(tmp_path)

	recorder = beatmaker.recording.MidiRecorder(events)
	_play_step(events, "crash")

	filename = recorder.save()

	assert filename is not None
	assert filename.startswith("beat_") and filename.endswith(".mid")
	assert (tmp_path / filename).exists()
