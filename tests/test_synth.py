import numpy as np
import pytest

import beatmaker.audio_output
import beatmaker.constants
import beatmaker.exceptions
import beatmaker.sound_bank
import beatmaker.synth


SR = beatmaker.constants.SAMPLE_RATE


def _rms (signal: np.ndarray) -> float:

	"""Root mean square level of a signal."""

	return float(np.sqrt(np.mean(np.square(signal))))


# ---------------------------------------------------------------------------
# Oscillators and filters
# ---------------------------------------------------------------------------

def test_oscillator_shapes () -> None:

	"""Each waveform is unit amplitude and starts at phase zero."""

	sine = beatmaker.synth.oscillator("sine", 100, SR, SR)
	square = beatmaker.synth.oscillator("square", 100, SR, SR)
	saw = beatmaker.synth.oscillator("sawtooth", 100, SR, SR)
	triangle = beatmaker.synth.oscillator("triangle", 100, SR, SR)

	assert sine[0] == pytest.approx(0.0)
	assert np.max(np.abs(sine)) == pytest.approx(1.0, abs=1e-3)
	assert set(np.unique(square)) <= {-1.0, 1.0}
	assert np.min(saw) >= -1.0 and np.max(saw) <= 1.0
	assert np.min(triangle) >= -1.0 and np.max(triangle) <= 1.0
	assert _rms(triangle) == pytest.approx(1 / np.sqrt(3), rel=0.01)


def test_oscillator_unknown_waveform () -> None:

	"""An unknown waveform raises InvalidArgument."""

	with pytest.raises(beatmaker.exceptions.InvalidArgument):
		beatmaker.synth.oscillator("noise", 100, 100, SR)


def test_kick_lowpass_and_hihat_highpass () -> None:

	"""The kick filter removes highs, the hi-hat filter removes lows, others pass through."""

	low = beatmaker.synth.oscillator("sine", 50, SR, SR)
	high = beatmaker.synth.oscillator("sine", 12000, SR, SR)

	assert _rms(beatmaker.synth.apply_track_filter("kick", high, SR)) < 0.01 * _rms(high)
	assert _rms(beatmaker.synth.apply_track_filter("kick", low, SR)) > 0.5 * _rms(low)

	assert _rms(beatmaker.synth.apply_track_filter("hihat", low, SR)) < 0.01 * _rms(low)
	assert _rms(beatmaker.synth.apply_track_filter("hihat", high, SR)) > 0.5 * _rms(high)

	assert beatmaker.synth.apply_track_filter("snare", high, SR) is high
	assert beatmaker.synth.apply_track_filter("crash", low, SR) is low


# ---------------------------------------------------------------------------
# Envelope
# ---------------------------------------------------------------------------

def test_envelope_shape () -> None:

	"""0 at the start, linear to 0.3 at 10 ms, exponential down to 0.001 at the decay time."""

	decay = 0.5
	n = int(decay * SR)
	env = beatmaker.synth.envelope(decay, n, SR)
	attack_index = int(beatmaker.constants.ATTACK_SECONDS * SR)

	assert env[0] == 0.0
	assert env[attack_index // 2] == pytest.approx(0.15, rel=0.01)
	assert env[attack_index] == pytest.approx(beatmaker.constants.PEAK_GAIN, rel=0.01)
	assert np.all(np.diff(env[:attack_index]) > 0)
	assert np.all(np.diff(env[attack_index:]) <= 0)
	assert env[-1] == pytest.approx(beatmaker.constants.FLOOR_GAIN, rel=0.01)

	# Halfway through the decay segment the gain is the geometric mean of peak and floor.
	midpoint = attack_index + (n - attack_index) // 2
	assert env[midpoint] == pytest.approx(np.sqrt(0.3 * 0.001), rel=0.02)


def test_envelope_shorter_than_attack () -> None:

	"""A decay shorter than the attack still rises from zero and never exceeds the peak."""

	env = beatmaker.synth.envelope(0.005, 220, SR)

	assert env[0] == 0.0
	assert np.max(env) <= beatmaker.constants.PEAK_GAIN


# ---------------------------------------------------------------------------
# Voices
# ---------------------------------------------------------------------------

def test_render_voice_length_and_level () -> None:

	"""A voice lasts exactly its decay and peaks at the envelope's peak gain."""

	params = beatmaker.sound_bank.DEFAULT_SOUNDS["snare"]
	voice = beatmaker.synth.render_voice("snare", params, SR)

	assert len(voice) == int(round(params.decay * SR))
	assert voice.dtype == np.float32
	assert np.max(np.abs(voice)) <= beatmaker.constants.PEAK_GAIN + 1e-6
	assert np.max(np.abs(voice)) > 0.25
	assert abs(voice[-1]) <= 0.0011


def test_render_voice_is_cached_and_read_only () -> None:

	"""Repeated renders of the same sound share one read-only buffer."""

	params = beatmaker.sound_bank.DEFAULT_SOUNDS["kick"]

	first = beatmaker.synth.render_voice("kick", params, SR)
	second = beatmaker.synth.render_voice("kick", params, SR)

	assert first is second
	assert not first.flags.writeable


def test_trigger_without_device_is_silent_noop () -> None:

	"""With no mixer the synthesizer reports unavailable and triggers do nothing."""

	synth = beatmaker.synth.Synthesizer(None)

	assert synth.available is False

	synth.trigger("kick", beatmaker.sound_bank.DEFAULT_SOUNDS["kick"])


def test_trigger_schedules_voice_on_mixer () -> None:

	"""trigger() places a voice on the mixer at the requested output time."""

	mixer = beatmaker.audio_output.VoiceMixer(SR)
	synth = beatmaker.synth.Synthesizer(mixer)
	params = beatmaker.sound_bank.DEFAULT_SOUNDS["hihat"]

	synth.trigger("hihat", params, output_clock_now=0.05)

	assert mixer.active_voices == 1

	block = mixer.render(int(0.2 * SR))
	start = int(0.05 * SR)

	assert np.all(block[:start] == 0)
	assert np.any(block[start:start + 100] != 0)

	# The voice lasted 0.1 s and has ended by itself.
	assert mixer.active_voices == 0
