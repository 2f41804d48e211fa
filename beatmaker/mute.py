import logging
import typing

import beatmaker.constants
import beatmaker.event_emitter
import beatmaker.exceptions


logger = logging.getLogger(__name__)


class MuteRegistry:

	"""
	The set of muted tracks, consulted by the transport before each trigger.
	"""

	def __init__ (
		self,
		tracks: typing.Sequence[str] = beatmaker.constants.TRACKS,
		events: typing.Optional[beatmaker.event_emitter.EventEmitter] = None
	) -> None:

		self.tracks: typing.Tuple[str, ...] = tuple(tracks)
		self.events = events if events is not None else beatmaker.event_emitter.EventEmitter()
		self._muted: typing.Set[str] = set()


	def toggle (self, track: str) -> bool:

		"""
		Flip a track's mute state and return the new state.

		Emits ``mute_changed(track, muted)``.
		"""

		if track not in self.tracks:
			raise beatmaker.exceptions.InvalidArgument(f"Unknown track {track!r}")

		if track in self._muted:
			self._muted.discard(track)
			muted = False
		else:
			self._muted.add(track)
			muted = True

		logger.info(f"{'Muted' if muted else 'Unmuted'} track: {track}")

		self.events.emit_sync(beatmaker.constants.EVENT_MUTE_CHANGED, track, muted)

		return muted


	def is_muted (self, track: str) -> bool:

		return track in self._muted


	@property
	def muted (self) -> typing.FrozenSet[str]:

		return frozenset(self._muted)
