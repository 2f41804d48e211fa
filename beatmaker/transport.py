import asyncio
import logging
import time
import typing

import beatmaker.constants
import beatmaker.event_emitter
import beatmaker.exceptions
import beatmaker.mute
import beatmaker.pattern
import beatmaker.sound_bank
import beatmaker.synth


logger = logging.getLogger(__name__)


def tick_interval_ms (bpm: float, steps_per_beat: int = beatmaker.constants.STEPS_PER_BEAT) -> float:

	"""Milliseconds between ticks: one step is one ``1/steps_per_beat`` of a beat."""

	return 60000.0 / bpm / steps_per_beat


class Transport:

	"""
	The step clock: start, pause, stop and tempo, driving one tick per step.

	The transport owns a single repeating timer (an asyncio task). Every
	operation that changes timing cancels the existing timer before it
	installs a new one, so two timers are never live at once. Each tick runs
	synchronously to completion, which means pattern, mute and sound changes
	made between ticks are picked up on the very next tick.

	``start()``, ``pause()``, ``stop()`` and ``set_tempo()`` must be called
	from the thread running the event loop.
	"""

	def __init__ (
		self,
		patterns: beatmaker.pattern.PatternStore,
		sounds: beatmaker.sound_bank.SoundBank,
		mutes: beatmaker.mute.MuteRegistry,
		synth: beatmaker.synth.Synthesizer,
		events: typing.Optional[beatmaker.event_emitter.EventEmitter] = None,
		bpm: int = beatmaker.constants.DEFAULT_BPM
	) -> None:

		"""Create a stopped transport at step 0."""

		self.patterns = patterns
		self.sounds = sounds
		self.mutes = mutes
		self.synth = synth
		self.events = events if events is not None else beatmaker.event_emitter.EventEmitter()

		self.steps = patterns.steps
		self.running = False
		self.current_step = 0
		self.tick_count = 0
		self._halt_count = 0
		self._timer: typing.Optional[asyncio.Task] = None

		self._validate_bpm(bpm)
		self.bpm = bpm


	@staticmethod
	def _validate_bpm (bpm: typing.Any) -> None:

		if not isinstance(bpm, int) or isinstance(bpm, bool):
			raise beatmaker.exceptions.InvalidArgument(f"BPM must be an integer, got {bpm!r}")

		if bpm <= 0:
			raise beatmaker.exceptions.InvalidArgument(f"BPM must be positive, got {bpm}")


	@property
	def tick_interval (self) -> float:

		"""Seconds between ticks at the current tempo."""

		return tick_interval_ms(self.bpm) / 1000.0


	@property
	def tick_interval_ms (self) -> float:

		return tick_interval_ms(self.bpm)


	@property
	def timer_active (self) -> bool:

		"""Whether a repeating timer is currently installed."""

		return self._timer is not None and not self._timer.done()


	def start (self) -> None:

		"""
		Begin ticking from the current step.

		Does nothing if already playing. Raises ``RuntimeError`` when called
		outside a running event loop.
		"""

		if self.running:
			logger.debug("Transport already running - start() ignored")
			return

		self._install_timer()
		self.running = True

		logger.info(f"Transport started at step {self.current_step} ({self.bpm} BPM, {self.tick_interval_ms:.1f} ms per step)")

		self.events.emit_sync(beatmaker.constants.EVENT_START)


	def pause (self) -> None:

		"""
		Stop ticking but keep the current step, so ``start()`` resumes in place.
		"""

		was_running = self._halt()

		if was_running:
			logger.info(f"Transport paused at step {self.current_step}")
			self.events.emit_sync(beatmaker.constants.EVENT_PAUSE, self.current_step)


	def stop (self) -> None:

		"""
		Stop ticking and rewind to step 0.
		"""

		was_running = self._halt()
		self.current_step = 0

		if was_running:
			logger.info("Transport stopped")

		self.events.emit_sync(beatmaker.constants.EVENT_STOP)


	def set_tempo (self, bpm: int) -> None:

		"""
		Change the tempo.

		While playing, the timer is replaced so the next tick arrives one new
		interval after the change: no tick is doubled and none is dropped.
		"""

		self._validate_bpm(bpm)

		self.bpm = bpm

		if self.running:
			self._install_timer()

		logger.info(f"BPM set to {self.bpm}")

		self.events.emit_sync(beatmaker.constants.EVENT_TEMPO_CHANGED, self.bpm)


	def _halt (self) -> bool:

		"""Cancel the timer and clear the step highlight. Returns whether we were playing."""

		self._halt_count += 1
		self._cancel_timer()

		was_running = self.running
		self.running = False

		self.events.emit_sync(beatmaker.constants.EVENT_HIGHLIGHT_CLEARED)

		return was_running


	def _install_timer (self) -> None:

		"""Replace any existing timer with a new one at the current interval."""

		loop = asyncio.get_running_loop()

		self._cancel_timer()
		self._timer = loop.create_task(self._run_timer(self.tick_interval))


	def _cancel_timer (self) -> None:

		if self._timer is not None:
			self._timer.cancel()
			self._timer = None


	async def _run_timer (self, interval: float) -> None:

		"""Repeating timer: one tick every ``interval`` seconds until cancelled.

		Tick times are accumulated from the first deadline rather than measured
		from the previous wakeup, so sleep jitter does not drift the tempo. If
		the loop falls more than a whole interval behind, the late ticks are
		not fired back to back: the schedule is restarted from now and the
		next step simply plays late.
		"""

		next_tick_time = time.perf_counter() + interval

		while True:

			await asyncio.sleep(max(0.0, next_tick_time - time.perf_counter()))

			self._on_tick()

			next_tick_time += interval
			now = time.perf_counter()

			if now - next_tick_time > interval:
				logger.warning(f"Transport fell {(now - next_tick_time) * 1000:.1f} ms behind - resynchronising")
				next_tick_time = now + interval


	def _on_tick (self, output_time: typing.Optional[float] = None) -> None:

		"""
		Play the current step and advance to the next one.

		Every unmuted active track is triggered and reported with
		``track_fired``, in track order. Then ``step_advanced`` is emitted with
		the new step, whether or not anything fired.

		Pattern, mutes and sounds are read once before anything is triggered,
		and the step is advanced before any listener runs. A listener that
		mutes, toggles or stops therefore takes effect from the next tick, and
		a stop made by a listener is not undone by this tick. After such a
		stop ``step_advanced`` is not emitted.
		"""

		step = self.current_step

		firing = [
			(track, self.sounds.parameters_for(track))
			for track in self.patterns.active_tracks(step)
			if not self.mutes.is_muted(track)
		]

		for track, params in firing:
			self.synth.trigger(track, params, output_time)

		self.current_step = (step + 1) % self.steps
		self.tick_count += 1

		logger.debug(f"Tick {self.tick_count}: played step {step}")

		halt_count = self._halt_count

		for track, _ in firing:
			self.events.emit_sync(beatmaker.constants.EVENT_TRACK_FIRED, track)

		if self._halt_count != halt_count:
			logger.debug(f"Transport halted during step {step} - step_advanced not emitted")
			return

		self.events.emit_sync(beatmaker.constants.EVENT_STEP_ADVANCED, self.current_step)
