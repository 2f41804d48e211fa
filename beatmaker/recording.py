import datetime
import logging
import typing

import mido

import beatmaker.constants
import beatmaker.constants.gm_drums
import beatmaker.event_emitter


logger = logging.getLogger(__name__)

TICKS_PER_BEAT = 480


class MidiRecorder:

	"""
	Records fired tracks to a Standard MIDI File as General MIDI drum notes.

	Time is counted in steps, not wall-clock seconds: each ``step_advanced``
	moves the recording head one sixteenth note. Pauses therefore leave no gap,
	and tempo changes are written as ``set_tempo`` meta messages.
	"""

	def __init__ (
		self,
		events: beatmaker.event_emitter.EventEmitter,
		filename: typing.Optional[str] = None,
		bpm: int = beatmaker.constants.DEFAULT_BPM,
		note_map: typing.Optional[typing.Mapping[str, int]] = None,
		channel: int = beatmaker.constants.gm_drums.GM_DRUM_CHANNEL,
		velocity: int = 100,
		steps_per_beat: int = beatmaker.constants.STEPS_PER_BEAT
	) -> None:

		self.events = events
		self.filename = filename
		self.note_map = beatmaker.constants.gm_drums.TRACK_NOTE_MAP if note_map is None else note_map
		self.channel = channel
		self.velocity = velocity
		self.ticks_per_step = TICKS_PER_BEAT // steps_per_beat

		self.step_count = 0
		self.recorded_events: typing.List[typing.Tuple[int, typing.Union[mido.Message, mido.MetaMessage]]] = []

		self._record_tempo(bpm)

		self.events.on(beatmaker.constants.EVENT_TRACK_FIRED, self._on_track_fired)
		self.events.on(beatmaker.constants.EVENT_STEP_ADVANCED, self._on_step_advanced)
		self.events.on(beatmaker.constants.EVENT_TEMPO_CHANGED, self._record_tempo)


	def detach (self) -> None:

		"""Stop listening for events. Already recorded events are kept."""

		self.events.off(beatmaker.constants.EVENT_TRACK_FIRED, self._on_track_fired)
		self.events.off(beatmaker.constants.EVENT_STEP_ADVANCED, self._on_step_advanced)
		self.events.off(beatmaker.constants.EVENT_TEMPO_CHANGED, self._record_tempo)


	def _tick (self) -> int:

		return self.step_count * self.ticks_per_step


	def _record_tempo (self, bpm: int) -> None:

		self.recorded_events.append((self._tick(), mido.MetaMessage('set_tempo', tempo=mido.bpm2tempo(bpm))))


	def _on_track_fired (self, track: str) -> None:

		note = self.note_map.get(track)

		if note is None:
			logger.debug(f"No MIDI note mapped for {track!r}, not recorded")
			return

		start = self._tick()

		self.recorded_events.append((start, mido.Message('note_on', channel=self.channel, note=note, velocity=self.velocity)))
		self.recorded_events.append((start + self.ticks_per_step, mido.Message('note_off', channel=self.channel, note=note, velocity=0)))


	def _on_step_advanced (self, step: int) -> None:

		self.step_count += 1


	@property
	def note_count (self) -> int:

		return sum(1 for _, message in self.recorded_events if message.type == 'note_on')


	def to_midi_file (self) -> mido.MidiFile:

		"""Build a type 0 MIDI file from everything recorded so far."""

		mid = mido.MidiFile(type=0, ticks_per_beat=TICKS_PER_BEAT)
		track = mido.MidiTrack()
		mid.tracks.append(track)

		# At equal ticks, note_off and tempo changes go before note_on.
		ordered = sorted(
			self.recorded_events,
			key = lambda item: (item[0], 0 if item[1].type in ('note_off', 'set_tempo') else 1)
		)

		last_tick = 0

		for tick, message in ordered:
			track.append(message.copy(time=tick - last_tick))
			last_tick = tick

		return mid


	def save (self, filename: typing.Optional[str] = None) -> typing.Optional[str]:

		"""
		Write the recording to disk and return the filename used.

		Defaults to the recorder's filename, or a timestamped name. Nothing is
		written when no notes were recorded.
		"""

		if self.note_count == 0:
			logger.info("Nothing recorded - no MIDI file written")
			return None

		filename = filename or self.filename

		if not filename:
			now = datetime.datetime.now()
			filename = now.strftime("beat_%Y%m%d_%H%M%S.mid")

		logger.info(f"Saving MIDI recording ({self.note_count} notes) to {filename}...")

		try:
			self.to_midi_file().save(filename)
		except OSError as e:
			logger.error(f"Failed to save MIDI recording: {e}")
			return None

		logger.info(f"Saved {filename}")

		return filename
