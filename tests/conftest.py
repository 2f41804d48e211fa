import typing

import pytest

import beatmaker.audio_output
import beatmaker.constants
import beatmaker.machine


class FakeAudioOutput:

	"""Audio output stub: a real mixer with no device behind it."""

	def __init__ (self, sample_rate: int = beatmaker.constants.SAMPLE_RATE) -> None:

		"""Create the mixer the synthesizer will write into."""

		self.mixer = beatmaker.audio_output.VoiceMixer(sample_rate)
		self.device_name = "Dummy Audio"
		self.closed = False


	def close (self) -> None:

		"""Record that the output was closed."""

		self.closed = True


# Module-level reference so tests can reach the most recently opened fake output.
_current_fake_output: typing.Optional[FakeAudioOutput] = None


def _fake_open_audio_output (
	device: typing.Optional[typing.Union[str, int]] = None,
	sample_rate: int = beatmaker.constants.SAMPLE_RATE,
	block_size: int = 256
) -> FakeAudioOutput:

	"""Return a fake output regardless of the device requested."""

	global _current_fake_output
	_current_fake_output = FakeAudioOutput(sample_rate)
	return _current_fake_output


@pytest.fixture
def patch_audio (monkeypatch: pytest.MonkeyPatch) -> None:

	"""Patch the audio device opener so no sound card is touched."""

	monkeypatch.setattr(beatmaker.audio_output, "open_audio_output", _fake_open_audio_output)


@pytest.fixture
def machine (patch_audio: None) -> typing.Iterator[beatmaker.machine.DrumMachine]:

	"""A stopped machine at 120 BPM writing into a fake output."""

	drum_machine = beatmaker.machine.DrumMachine(bpm=120)
	yield drum_machine
	drum_machine.close()


@pytest.fixture
def recorded_events (machine: beatmaker.machine.DrumMachine) -> typing.List[typing.Tuple[typing.Any, ...]]:

	"""Every event the machine emits, as ``(name, *args)`` tuples."""

	received: typing.List[typing.Tuple[typing.Any, ...]] = []

	for name in (
		beatmaker.constants.EVENT_CELL_CHANGED,
		beatmaker.constants.EVENT_STEP_ADVANCED,
		beatmaker.constants.EVENT_TRACK_FIRED,
		beatmaker.constants.EVENT_HIGHLIGHT_CLEARED,
		beatmaker.constants.EVENT_MUTE_CHANGED,
		beatmaker.constants.EVENT_START,
		beatmaker.constants.EVENT_PAUSE,
		beatmaker.constants.EVENT_STOP,
		beatmaker.constants.EVENT_TEMPO_CHANGED,
		beatmaker.constants.EVENT_SOUND_CHANGED,
		beatmaker.constants.EVENT_PATTERN_CLEARED,
	):
		machine.on_event(name, lambda *args, _name=name: received.append((_name, *args)))

	return received
