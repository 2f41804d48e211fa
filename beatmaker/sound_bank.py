"""Per-track synthesis parameters and the static table of sound variants.

Each track starts from ``DEFAULT_SOUNDS``. Selecting a variant swaps in its
frequency and waveform while the track keeps its current decay, so a long
crash stays long whichever timbre it is given.
"""

import dataclasses
import logging
import typing

import beatmaker.constants
import beatmaker.exceptions


logger = logging.getLogger(__name__)


@dataclasses.dataclass (frozen=True)
class SoundParameters:

	"""
	Everything the synthesizer needs to render one voice.

	``decay`` is the total envelope duration in seconds.
	"""

	frequency: float
	waveform: str
	decay: float

	def __post_init__ (self) -> None:

		if self.frequency <= 0:
			raise beatmaker.exceptions.InvalidArgument(f"Frequency must be positive, got {self.frequency}")

		if self.waveform not in beatmaker.constants.WAVEFORMS:
			raise beatmaker.exceptions.InvalidArgument(
				f"Unknown waveform {self.waveform!r} (expected one of {', '.join(beatmaker.constants.WAVEFORMS)})"
			)

		if self.decay <= 0:
			raise beatmaker.exceptions.InvalidArgument(f"Decay must be positive, got {self.decay}")


@dataclasses.dataclass (frozen=True)
class SoundVariant:

	"""
	A named alternate timbre. Decay is deliberately absent.
	"""

	frequency: float
	waveform: str


DEFAULT_SOUNDS: typing.Dict[str, SoundParameters] = {
	"kick": SoundParameters(frequency=60, waveform="sine", decay=0.5),
	"snare": SoundParameters(frequency=200, waveform="square", decay=0.3),
	"hihat": SoundParameters(frequency=8000, waveform="square", decay=0.1),
	"crash": SoundParameters(frequency=300, waveform="sawtooth", decay=1.0),
}


VARIANTS: typing.Dict[typing.Tuple[str, str], SoundVariant] = {
	("kick", "kick1"): SoundVariant(frequency=60, waveform="sine"),
	("kick", "kick2"): SoundVariant(frequency=40, waveform="triangle"),
	("kick", "kick3"): SoundVariant(frequency=80, waveform="square"),
	("snare", "snare1"): SoundVariant(frequency=200, waveform="square"),
	("snare", "snare2"): SoundVariant(frequency=300, waveform="sawtooth"),
	("snare", "snare3"): SoundVariant(frequency=150, waveform="triangle"),
	("hihat", "hihat1"): SoundVariant(frequency=8000, waveform="square"),
	("hihat", "hihat2"): SoundVariant(frequency=10000, waveform="sawtooth"),
	("hihat", "hihat3"): SoundVariant(frequency=6000, waveform="triangle"),
	("crash", "crash1"): SoundVariant(frequency=300, waveform="sawtooth"),
	("crash", "crash2"): SoundVariant(frequency=400, waveform="square"),
}


def variants_for (track: str) -> typing.List[str]:

	"""Variant ids available for a track, in table order."""

	return [variant_id for (variant_track, variant_id) in VARIANTS if variant_track == track]


class SoundBank:

	"""
	Current sound parameters for every track.
	"""

	def __init__ (
		self,
		tracks: typing.Sequence[str] = beatmaker.constants.TRACKS,
		defaults: typing.Optional[typing.Mapping[str, SoundParameters]] = None,
		variants: typing.Optional[typing.Mapping[typing.Tuple[str, str], SoundVariant]] = None
	) -> None:

		"""
		Initialize every track from the default table.

		Raises ``InvalidArgument`` if a track has no default sound.
		"""

		defaults = DEFAULT_SOUNDS if defaults is None else defaults

		missing = [track for track in tracks if track not in defaults]

		if missing:
			raise beatmaker.exceptions.InvalidArgument(f"No default sound for tracks: {missing}")

		self._params: typing.Dict[str, SoundParameters] = {track: defaults[track] for track in tracks}
		self._variants = VARIANTS if variants is None else variants


	def parameters_for (self, track: str) -> SoundParameters:

		"""The track's current parameters."""

		try:
			return self._params[track]
		except KeyError:
			raise beatmaker.exceptions.InvalidArgument(f"Unknown track {track!r}") from None


	def apply_variant (self, track: str, variant_id: str) -> bool:

		"""
		Merge a variant's frequency and waveform into the track's sound.

		Unknown ``(track, variant_id)`` pairs are ignored so stale ids from a
		control surface never raise. Returns whether anything was applied.
		"""

		variant = self._variants.get((track, variant_id))

		if variant is None or track not in self._params:
			logger.debug(f"Ignoring unknown sound variant {variant_id!r} for {track!r}")
			return False

		self._params[track] = dataclasses.replace(
			self._params[track],
			frequency = variant.frequency,
			waveform = variant.waveform
		)

		logger.info(f"{track} sound set to {variant_id} ({variant.waveform} {variant.frequency:g} Hz)")

		return True


	def snapshot (self) -> typing.Dict[str, SoundParameters]:

		"""A copy of every track's current parameters."""

		return dict(self._params)
