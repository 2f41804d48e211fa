import asyncio
import inspect
import logging
import typing


logger = logging.getLogger(__name__)

CallbackType = typing.Callable[..., typing.Any]


class EventEmitter:

	"""
	Observer channel between the engine and its collaborators.

	The engine only ever emits structured events; presentation layers,
	recorders and control surfaces subscribe with ``on()``. A listener that
	raises is logged and skipped so the remaining listeners (and the tick
	that emitted the event) always run to completion.
	"""

	def __init__ (self) -> None:

		"""
		Initialize an empty event registry.
		"""

		self._listeners: typing.Dict[str, typing.List[CallbackType]] = {}


	def on (self, event_name: str, callback: CallbackType) -> None:

		"""
		Register a callback for an event name.
		"""

		if event_name not in self._listeners:
			self._listeners[event_name] = []

		self._listeners[event_name].append(callback)


	def off (self, event_name: str, callback: CallbackType) -> None:

		"""
		Unregister a previously registered callback.

		Raises ``ValueError`` if the callback is not registered for the event.
		"""

		if event_name not in self._listeners or callback not in self._listeners[event_name]:
			raise ValueError(f"Callback not registered for event {event_name!r}")

		self._listeners[event_name].remove(callback)


	def listener_count (self, event_name: str) -> int:

		"""Number of callbacks registered for an event."""

		return len(self._listeners.get(event_name, []))


	def emit_sync (self, event_name: str, *args: typing.Any, **kwargs: typing.Any) -> None:

		"""
		Emit an event from synchronous code.

		Plain listeners are called immediately, in registration order. Async
		listeners are scheduled as tasks on the running loop; emitting to an
		async listener with no running loop raises ``ValueError``.
		"""

		if event_name not in self._listeners:
			return

		for callback in list(self._listeners[event_name]):

			if inspect.iscoroutinefunction(callback):

				try:
					loop = asyncio.get_running_loop()
				except RuntimeError:
					raise ValueError(f"Async listener for {event_name!r} needs a running event loop") from None

				loop.create_task(callback(*args, **kwargs))
				continue

			try:
				callback(*args, **kwargs)
			except Exception:
				logger.exception(f"Listener for {event_name!r} failed")


	async def emit_async (self, event_name: str, *args: typing.Any, **kwargs: typing.Any) -> None:

		"""
		Emit an event and await async listeners.
		"""

		if event_name not in self._listeners:
			return

		tasks: typing.List[typing.Awaitable[typing.Any]] = []

		for callback in list(self._listeners[event_name]):

			if inspect.iscoroutinefunction(callback):
				tasks.append(callback(*args, **kwargs))

			else:
				try:
					callback(*args, **kwargs)
				except Exception:
					logger.exception(f"Listener for {event_name!r} failed")

		if tasks:
			await asyncio.gather(*tasks)
