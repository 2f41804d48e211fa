"""Drum voice synthesis.

Every hit is a single oscillator, optionally filtered, shaped by a short
linear attack and an exponential decay::

	gain
	0.3 |  /\
	    | /  `-._
	    |/       `--.___
	0.0 +----------------`---- t
	    0  10ms          decay

The kick is lowpassed at 100 Hz and the hi-hat highpassed at 5 kHz; other
tracks are left unfiltered. A voice lasts exactly ``decay`` seconds and is
never cut short.
"""

import functools
import logging
import typing

import numpy as np
import scipy.signal

import beatmaker.audio_output
import beatmaker.constants
import beatmaker.exceptions
import beatmaker.sound_bank


logger = logging.getLogger(__name__)


TRACK_FILTERS: typing.Dict[str, typing.Tuple[str, float]] = {
	"kick": ("lowpass", 100.0),
	"hihat": ("highpass", 5000.0),
}


def oscillator (waveform: str, frequency: float, num_samples: int, sample_rate: int) -> np.ndarray:

	"""
	Generate a unit-amplitude waveform starting at phase zero.
	"""

	t = np.arange(num_samples) / sample_rate
	phase = 2 * np.pi * frequency * t

	if waveform == "sine":
		return np.sin(phase)

	if waveform == "square":
		return scipy.signal.square(phase)

	if waveform == "sawtooth":
		return scipy.signal.sawtooth(phase)

	if waveform == "triangle":
		return scipy.signal.sawtooth(phase, width=0.5)

	raise beatmaker.exceptions.InvalidArgument(f"Unknown waveform {waveform!r}")


def apply_track_filter (track: str, signal: np.ndarray, sample_rate: int) -> np.ndarray:

	"""
	Apply the track's fixed filter, if it has one.

	Second-order Butterworth sections, matching a single biquad stage.
	"""

	if track not in TRACK_FILTERS:
		return signal

	btype, cutoff = TRACK_FILTERS[track]

	if cutoff >= sample_rate / 2:
		logger.debug(f"{track} filter cutoff {cutoff} Hz is above Nyquist at {sample_rate} Hz, skipping")
		return signal

	sos = scipy.signal.butter(2, cutoff, btype=btype, fs=sample_rate, output="sos")

	return scipy.signal.sosfilt(sos, signal)


def envelope (decay: float, num_samples: int, sample_rate: int) -> np.ndarray:

	"""
	Gain curve: 0 to ``PEAK_GAIN`` over the attack, then exponentially down to ``FLOOR_GAIN`` at ``decay``.
	"""

	t = np.arange(num_samples) / sample_rate
	attack = min(beatmaker.constants.ATTACK_SECONDS, decay)
	peak = beatmaker.constants.PEAK_GAIN
	floor = beatmaker.constants.FLOOR_GAIN

	rising = peak * t / attack

	if decay > attack:
		progress = np.clip((t - attack) / (decay - attack), 0.0, 1.0)
		falling = peak * (floor / peak) ** progress
	else:
		falling = np.full(num_samples, peak)

	return np.where(t < attack, rising, falling)


@functools.lru_cache (maxsize=128)
def render_voice (track: str, params: beatmaker.sound_bank.SoundParameters, sample_rate: int = beatmaker.constants.SAMPLE_RATE) -> np.ndarray:

	"""
	Render one complete hit for a track.

	The result is cached per ``(track, params, sample_rate)`` and returned
	read-only, so repeated triggers of an unchanged sound cost nothing.
	"""

	num_samples = max(1, int(round(params.decay * sample_rate)))

	signal = oscillator(params.waveform, params.frequency, num_samples, sample_rate)
	signal = apply_track_filter(track, signal, sample_rate)
	signal = signal * envelope(params.decay, num_samples, sample_rate)

	voice = signal.astype(np.float32)
	voice.setflags(write=False)

	return voice


class Synthesizer:

	"""
	Turns a track's sound parameters into a voice on the output device.

	Holds no state beyond the shared mixer. With no mixer (no usable device)
	every trigger is a silent no-op.
	"""

	def __init__ (self, mixer: typing.Optional[beatmaker.audio_output.VoiceMixer] = None) -> None:

		self.mixer = mixer


	@property
	def available (self) -> bool:

		return self.mixer is not None


	def trigger (self, track: str, params: beatmaker.sound_bank.SoundParameters, output_clock_now: typing.Optional[float] = None) -> None:

		"""
		Start a voice at ``output_clock_now`` (default: the mixer's current time).

		The voice ends by itself ``params.decay`` seconds later.
		"""

		if self.mixer is None:
			return

		samples = render_voice(track, params, self.mixer.sample_rate)
		start_time = self.mixer.current_time() if output_clock_now is None else output_clock_now

		self.mixer.add_voice(samples, start_time)
