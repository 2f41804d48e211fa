import asyncio
import logging
import signal
import typing

import numpy as np
import scipy.io.wavfile

import beatmaker.audio_output
import beatmaker.constants
import beatmaker.event_emitter
import beatmaker.exceptions
import beatmaker.mute
import beatmaker.osc
import beatmaker.pattern
import beatmaker.recording
import beatmaker.sound_bank
import beatmaker.synth
import beatmaker.transport


logger = logging.getLogger(__name__)


class DrumMachine:

	"""
	One drum machine session: the pattern grid, sounds, mutes, transport and output device.

	This is the object a user interface talks to. Commands go in through the
	methods below; everything the interface needs to redraw comes back out as
	events registered with ``on_event()``:

	- ``cell_changed(track, step, active)``
	- ``step_advanced(step)``
	- ``track_fired(track)``
	- ``highlight_cleared()``
	- ``mute_changed(track, muted)``
	- ``start()``, ``pause(step)``, ``stop()``, ``tempo_changed(bpm)``,
	  ``sound_changed(track, params)``, ``pattern_cleared()``

	Example:
		```python
		machine = beatmaker.DrumMachine(bpm=100)
		machine.load_pattern({
			"kick":  "x...x...x...x...",
			"snare": "....x.......x...",
			"hihat": "x.x.x.x.x.x.x.x.",
		})
		machine.play()
		```
	"""

	def __init__ (
		self,
		bpm: int = beatmaker.constants.DEFAULT_BPM,
		tracks: typing.Sequence[str] = beatmaker.constants.TRACKS,
		steps: int = beatmaker.constants.STEPS_PER_LOOP,
		audio: bool = True,
		output_device: typing.Optional[typing.Union[str, int]] = None,
		sample_rate: int = beatmaker.constants.SAMPLE_RATE,
		block_size: int = 256,
		record: bool = False,
		record_filename: typing.Optional[str] = None
	) -> None:

		"""Create a stopped machine with an empty pattern.

		Parameters:
			bpm: Initial tempo (positive integer).
			tracks: Track names, in the order they are processed on each tick.
				Every track needs an entry in ``sound_bank.DEFAULT_SOUNDS``.
			steps: Steps per loop.
			audio: When False, no output device is opened and the machine runs
				silently (events and recording still work).
			output_device: ``sounddevice`` device name or index. When omitted
				the system default output is used.
			sample_rate: Output sample rate in Hz.
			block_size: Frames per audio callback.
			record: When True, fired tracks are recorded and saved as a MIDI
				file on ``close()``.
			record_filename: Optional filename for the recording (defaults to
				a timestamp).
		"""

		beatmaker.transport.Transport._validate_bpm(bpm)

		self.sample_rate = sample_rate
		self.events = beatmaker.event_emitter.EventEmitter()
		self.patterns = beatmaker.pattern.PatternStore(tracks, steps, self.events)
		self.sounds = beatmaker.sound_bank.SoundBank(tracks)
		self.mutes = beatmaker.mute.MuteRegistry(tracks, self.events)

		self.audio_output: typing.Optional[beatmaker.audio_output.AudioOutput] = None

		if audio:
			self.audio_output = beatmaker.audio_output.open_audio_output(output_device, sample_rate, block_size)

		mixer = self.audio_output.mixer if self.audio_output is not None else None

		if audio and mixer is None:
			logger.warning("No audio output - running silently")

		self.synth = beatmaker.synth.Synthesizer(mixer)
		self.transport = beatmaker.transport.Transport(
			patterns = self.patterns,
			sounds = self.sounds,
			mutes = self.mutes,
			synth = self.synth,
			events = self.events,
			bpm = bpm
		)

		self.recorder: typing.Optional[beatmaker.recording.MidiRecorder] = None

		if record:
			self.recorder = beatmaker.recording.MidiRecorder(self.events, filename=record_filename, bpm=bpm)

		self._osc_server: typing.Optional[beatmaker.osc.OscServer] = None
		self._closed = False


	@property
	def tracks (self) -> typing.Tuple[str, ...]:

		return self.patterns.tracks


	@property
	def bpm (self) -> int:

		return self.transport.bpm


	@property
	def running (self) -> bool:

		return self.transport.running


	@property
	def current_step (self) -> int:

		return self.transport.current_step


	def on_event (self, event_name: str, callback: typing.Callable[..., typing.Any]) -> None:

		"""
		Register a callback for a named event.
		"""

		self.events.on(event_name, callback)


	def toggle_step (self, track: str, step: int) -> bool:

		"""
		Toggle one cell of the pattern and return its new state.

		Turning a cell on plays the track's sound straight away so the change
		can be heard, even if the track is muted.
		"""

		active = self.patterns.toggle(track, step)

		if active:
			self.synth.trigger(track, self.sounds.parameters_for(track))

		return active


	def load_pattern (self, rows: typing.Mapping[str, str]) -> None:

		"""
		Set whole rows at once, e.g. ``{"kick": "x...x...x...x..."}``.

		Every row is parsed before anything changes, so a malformed row leaves
		the pattern untouched. Tracks not mentioned keep their current row.
		Cells are changed through ``toggle`` (emitting ``cell_changed``) but are
		not auditioned.
		"""

		parsed: typing.Dict[str, typing.List[bool]] = {}

		for track, text in rows.items():

			if track not in self.patterns.tracks:
				raise beatmaker.exceptions.InvalidArgument(f"Unknown track {track!r}")

			parsed[track] = self.patterns.parse_row(text)

		for track, cells in parsed.items():
			for step, wanted in enumerate(cells):
				if self.patterns.is_active(track, step) != wanted:
					self.patterns.toggle(track, step)


	def start (self) -> None:

		"""Start playback from the current step. Must be called inside a running event loop."""

		self.transport.start()


	def pause (self) -> None:

		"""Pause playback, keeping the current step."""

		self.transport.pause()


	def stop (self) -> None:

		"""Stop playback and rewind to the first step."""

		self.transport.stop()


	def toggle_play (self) -> bool:

		"""Pause if playing, otherwise start. Returns whether the machine is now playing."""

		if self.transport.running:
			self.transport.pause()
		else:
			self.transport.start()

		return self.transport.running


	def set_tempo (self, bpm: int) -> None:

		"""
		Change the tempo, taking effect from the next tick.

		Clamping to a sensible range (``MIN_BPM`` to ``MAX_BPM``) is the
		caller's job; the engine only rejects non-positive values.
		"""

		self.transport.set_tempo(bpm)


	def toggle_mute (self, track: str) -> bool:

		"""Mute or unmute a track during playback. Returns the new muted state."""

		return self.mutes.toggle(track)


	def set_mute (self, track: str, muted: bool) -> bool:

		"""
		Mute or unmute a track explicitly. Does nothing (and emits nothing) if
		the track is already in that state. Returns the muted state.
		"""

		if track not in self.mutes.tracks:
			raise beatmaker.exceptions.InvalidArgument(f"Unknown track {track!r}")

		if self.mutes.is_muted(track) != muted:
			return self.mutes.toggle(track)

		return muted


	def change_sound_variant (self, track: str, variant_id: str) -> bool:

		"""
		Switch a track to a named sound variant (see ``sound_bank.VARIANTS``).

		Unknown variants are ignored. Returns whether the sound changed.
		"""

		applied = self.sounds.apply_variant(track, variant_id)

		if applied:
			self.events.emit_sync(beatmaker.constants.EVENT_SOUND_CHANGED, track, self.sounds.parameters_for(track))

		return applied


	def clear_all (self) -> None:

		"""Clear the whole pattern and stop playback."""

		self.patterns.clear_all()
		self.transport.stop()


	def status (self) -> typing.Dict[str, typing.Any]:

		"""
		Return a dictionary containing the current state of the machine.
		"""

		sounds = {
			track: {"frequency": params.frequency, "waveform": params.waveform, "decay": params.decay}
			for track, params in self.sounds.snapshot().items()
		}

		return {
			"bpm": self.transport.bpm,
			"running": self.transport.running,
			"step": self.transport.current_step,
			"steps": self.patterns.steps,
			"muted": sorted(self.mutes.muted),
			"pattern": {track: self.patterns.row_string(track) for track in self.patterns.tracks},
			"sounds": sounds,
			"audio": self.synth.available,
			"recording": self.recorder is not None
		}


	def render (self, loops: int = 1, filename: typing.Optional[str] = None) -> np.ndarray:

		"""Render the pattern to audio without real-time playback.

		The tick logic runs against simulated time from step 0, using the
		current pattern, sounds, mutes and tempo. Events are not emitted to
		this machine's listeners. The buffer is extended by the longest decay
		so the last voices ring out.

		Parameters:
			loops: Number of times to play the whole loop.
			filename: When given, the result is also written as a float32 WAV file.

		Returns:
			Mono float32 samples at the machine's sample rate.

		Raises:
			RuntimeError: If the transport is playing.
		"""

		if not isinstance(loops, int) or loops <= 0:
			raise beatmaker.exceptions.InvalidArgument(f"Loops must be a positive integer, got {loops!r}")

		if self.transport.running:
			raise RuntimeError("Cannot render while the transport is playing")

		mixer = beatmaker.audio_output.VoiceMixer(self.sample_rate)
		offline = beatmaker.transport.Transport(
			patterns = self.patterns,
			sounds = self.sounds,
			mutes = self.mutes,
			synth = beatmaker.synth.Synthesizer(mixer),
			bpm = self.transport.bpm
		)

		ticks = loops * self.patterns.steps
		interval = offline.tick_interval

		for i in range(ticks):
			offline._on_tick(output_time=i * interval)

		tail = max(params.decay for params in self.sounds.snapshot().values())
		total_frames = int(round((ticks * interval + tail) * self.sample_rate))

		audio = mixer.render(total_frames)

		logger.info(f"Rendered {loops} loop(s) at {offline.bpm} BPM ({total_frames / self.sample_rate:.2f} s)")

		if filename:
			scipy.io.wavfile.write(filename, self.sample_rate, audio)
			logger.info(f"Saved {filename}")

		return audio


	def osc (self, receive_port: int = 9000, send_port: int = 9001, send_host: str = "127.0.0.1") -> None:

		"""
		Enable the OSC control surface for ``play()``.

		See ``beatmaker.osc`` for the addresses it understands and sends.
		"""

		self._osc_server = beatmaker.osc.OscServer(self, receive_port=receive_port, send_port=send_port, send_host=send_host)


	def play (self) -> None:

		"""
		Play until interrupted (Ctrl+C or SIGTERM), then close the machine.
		"""

		try:
			asyncio.run(self._run())

		except KeyboardInterrupt:
			pass

		finally:
			self.close()


	async def _run (self) -> None:

		if self._osc_server is not None:
			await self._osc_server.start()

		stop_event = asyncio.Event()
		loop = asyncio.get_running_loop()

		for sig in (signal.SIGINT, signal.SIGTERM):
			try:
				loop.add_signal_handler(sig, stop_event.set)
			except (NotImplementedError, RuntimeError):
				logger.debug(f"Cannot install handler for {sig!r} on this platform")

		logger.info("Playing. Press Ctrl+C to stop.")

		self.transport.start()

		try:
			await stop_event.wait()

		finally:
			self.transport.stop()

			if self._osc_server is not None:
				await self._osc_server.stop()


	def close (self) -> None:

		"""
		Stop playback, save any recording and release the audio device.

		Closing the device silences any voice still ringing.
		"""

		if self._closed:
			return

		self._closed = True

		if self.transport.running:
			self.transport.stop()

		if self.recorder is not None:
			self.recorder.save()
			self.recorder.detach()

		if self.audio_output is not None:
			self.audio_output.close()
			self.audio_output = None

		self.synth.mixer = None
