import logging
import typing

import beatmaker.constants
import beatmaker.event_emitter
import beatmaker.exceptions


logger = logging.getLogger(__name__)

ACTIVE_CHARS = "xX"
INACTIVE_CHARS = ".-_~"


def _is_int (value: typing.Any) -> bool:

	"""True for real integers (``bool`` is rejected even though it subclasses ``int``)."""

	return isinstance(value, int) and not isinstance(value, bool)


class PatternStore:

	"""
	The boolean trigger grid: one row of ``steps`` cells per track.

	Every row always holds exactly ``steps`` entries. The only mutations are
	a single-cell toggle and a full clear.
	"""

	def __init__ (
		self,
		tracks: typing.Sequence[str] = beatmaker.constants.TRACKS,
		steps: int = beatmaker.constants.STEPS_PER_LOOP,
		events: typing.Optional[beatmaker.event_emitter.EventEmitter] = None
	) -> None:

		"""
		Initialize an all-off grid for the given tracks.
		"""

		if not tracks:
			raise beatmaker.exceptions.InvalidArgument("At least one track is required")

		if len(set(tracks)) != len(tracks):
			raise beatmaker.exceptions.InvalidArgument(f"Duplicate track names: {list(tracks)}")

		if not _is_int(steps) or steps <= 0:
			raise beatmaker.exceptions.InvalidArgument(f"Steps per loop must be a positive integer, got {steps!r}")

		self.tracks: typing.Tuple[str, ...] = tuple(tracks)
		self.steps = steps
		self.events = events if events is not None else beatmaker.event_emitter.EventEmitter()

		self._grid: typing.Dict[str, typing.List[bool]] = {track: [False] * steps for track in self.tracks}


	def _validate (self, track: str, step: typing.Any) -> None:

		if track not in self._grid:
			raise beatmaker.exceptions.InvalidArgument(f"Unknown track {track!r}")

		if not _is_int(step) or not 0 <= step < self.steps:
			raise beatmaker.exceptions.InvalidArgument(f"Step {step!r} out of range [0, {self.steps})")


	def toggle (self, track: str, step: int) -> bool:

		"""
		Flip one cell and return its new value.

		Emits ``cell_changed(track, step, active)``.
		"""

		self._validate(track, step)

		active = not self._grid[track][step]
		self._grid[track][step] = active

		logger.debug(f"{track} step {step} -> {'on' if active else 'off'}")

		self.events.emit_sync(beatmaker.constants.EVENT_CELL_CHANGED, track, step, active)

		return active


	def clear_all (self) -> None:

		"""
		Turn every cell of every track off.

		Emits ``pattern_cleared()`` once rather than one event per cell.
		"""

		for row in self._grid.values():
			for i in range(self.steps):
				row[i] = False

		self.events.emit_sync(beatmaker.constants.EVENT_PATTERN_CLEARED)


	def is_active (self, track: str, step: int) -> bool:

		"""Whether the track triggers at the step."""

		self._validate(track, step)

		return self._grid[track][step]


	def active_tracks (self, step: int) -> typing.List[str]:

		"""Tracks that trigger at the step, in fixed track order."""

		if not _is_int(step) or not 0 <= step < self.steps:
			raise beatmaker.exceptions.InvalidArgument(f"Step {step!r} out of range [0, {self.steps})")

		return [track for track in self.tracks if self._grid[track][step]]


	def row (self, track: str) -> typing.Tuple[bool, ...]:

		"""An immutable copy of one track's row."""

		if track not in self._grid:
			raise beatmaker.exceptions.InvalidArgument(f"Unknown track {track!r}")

		return tuple(self._grid[track])


	def row_string (self, track: str) -> str:

		"""A track's row in ``x...`` notation, the inverse of ``parse_row()``."""

		return "".join("x" if cell else "." for cell in self.row(track))


	def parse_row (self, text: str) -> typing.List[bool]:

		"""
		Parse a row written as ``x`` (hit) and ``.`` (rest), e.g. ``"x...x...x...x..."``.

		Whitespace and ``|`` separators are ignored so rows can be grouped by beat.
		"""

		cells: typing.List[bool] = []

		for char in text:

			if char.isspace() or char == "|":
				continue

			if char in ACTIVE_CHARS:
				cells.append(True)

			elif char in INACTIVE_CHARS:
				cells.append(False)

			else:
				raise beatmaker.exceptions.InvalidArgument(f"Unexpected character {char!r} in pattern row {text!r}")

		if len(cells) != self.steps:
			raise beatmaker.exceptions.InvalidArgument(f"Pattern row {text!r} has {len(cells)} steps, expected {self.steps}")

		return cells
