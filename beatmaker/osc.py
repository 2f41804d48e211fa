"""OSC control surface for remote step toggling, transport and mixing.

Enable it by calling ``machine.osc()`` before ``machine.play()``.
The server listens on a UDP port (default 9000) for incoming commands
and sends state updates to a target host/port (default 127.0.0.1:9001).

Built-in Receive Handlers
─────────────────────────
- ``/play``, ``/pause``, ``/stop``, ``/toggle_play``: Transport
- ``/bpm <int>``: Set tempo (clamped to 60-240)
- ``/step/<track> <int>``: Toggle a step
- ``/mute/<track> [0|1]``: Set a track's mute, or toggle it when no argument is given
- ``/sound/<track> <variant>``: Select a sound variant, e.g. ``/sound/kick kick2``
- ``/clear``: Clear the pattern and stop

Built-in Send Events
────────────────────
- ``/step <int>``: On every step advance
- ``/fired <track>``: When a track fires during playback
- ``/cell/<track> <step> <0|1>``: When a step is toggled
- ``/mute/<track> <0|1>``: When a mute changes
- ``/bpm <int>``: On tempo change
"""

import asyncio
import logging
import typing

import pythonosc.dispatcher
import pythonosc.osc_server
import pythonosc.udp_client

import beatmaker.constants

if typing.TYPE_CHECKING:
	from beatmaker.machine import DrumMachine


logger = logging.getLogger(__name__)


class OscServer:

	"""Async OSC server/client for bi-directional communication."""

	def __init__ (
		self,
		machine: "DrumMachine",
		receive_port: int = 9000,
		send_port: int = 9001,
		send_host: str = "127.0.0.1"
	) -> None:

		self._machine = machine
		self._receive_port = receive_port
		self._send_port = send_port
		self._send_host = send_host

		self._server: typing.Optional[typing.Any] = None
		self._transport: typing.Optional[asyncio.BaseTransport] = None
		self._client: typing.Optional[pythonosc.udp_client.SimpleUDPClient] = None
		self._dispatcher = pythonosc.dispatcher.Dispatcher()

		# Register built-in handlers
		self._dispatcher.map("/play", self._handle_play)
		self._dispatcher.map("/pause", self._handle_pause)
		self._dispatcher.map("/stop", self._handle_stop)
		self._dispatcher.map("/toggle_play", self._handle_toggle_play)
		self._dispatcher.map("/clear", self._handle_clear)
		self._dispatcher.map("/bpm", self._handle_bpm)
		self._dispatcher.map("/step/*", self._handle_step)
		self._dispatcher.map("/mute/*", self._handle_mute)
		self._dispatcher.map("/sound/*", self._handle_sound)

		self._broadcasts: typing.List[typing.Tuple[str, typing.Callable[..., None]]] = [
			(beatmaker.constants.EVENT_STEP_ADVANCED, self._send_step),
			(beatmaker.constants.EVENT_TRACK_FIRED, self._send_fired),
			(beatmaker.constants.EVENT_CELL_CHANGED, self._send_cell),
			(beatmaker.constants.EVENT_MUTE_CHANGED, self._send_mute),
			(beatmaker.constants.EVENT_TEMPO_CHANGED, self._send_bpm),
		]


	@property
	def port (self) -> typing.Optional[int]:

		"""The UDP port actually bound (useful when ``receive_port`` was 0)."""

		if self._transport is None:
			return None

		return self._transport.get_extra_info("sockname")[1]


	async def start (self) -> None:

		"""Start the OSC server and client, and begin broadcasting machine events."""

		# client for sending
		self._client = pythonosc.udp_client.SimpleUDPClient(self._send_host, self._send_port)

		# server for receiving
		self._server = pythonosc.osc_server.AsyncIOOSCUDPServer(
			("0.0.0.0", self._receive_port),
			self._dispatcher,
			asyncio.get_running_loop()  # type: ignore[arg-type]
		)

		transport, _ = await self._server.create_serve_endpoint()
		self._transport = transport

		for event_name, callback in self._broadcasts:
			self._machine.on_event(event_name, callback)

		logger.info(f"OSC listening on :{self.port}, sending to {self._send_host}:{self._send_port}")


	async def stop (self) -> None:

		"""Stop the OSC server and stop broadcasting."""

		if self._transport:

			for event_name, callback in self._broadcasts:
				self._machine.events.off(event_name, callback)

			self._transport.close()
			self._transport = None
			logger.info("OSC server stopped")


	def send (self, address: str, *args: typing.Any) -> None:

		"""Send an OSC message."""

		if self._client:
			try:
				self._client.send_message(address, args)
			except OSError as e:
				logger.warning(f"OSC send error: {e}")


	def map (self, address: str, handler: typing.Callable) -> None:

		"""Register a custom OSC handler."""

		self._dispatcher.map(address, handler)


	# Handlers

	def _handle_play (self, address: str, *args: typing.Any) -> None:
		self._machine.start()

	def _handle_pause (self, address: str, *args: typing.Any) -> None:
		self._machine.pause()

	def _handle_stop (self, address: str, *args: typing.Any) -> None:
		self._machine.stop()

	def _handle_toggle_play (self, address: str, *args: typing.Any) -> None:
		self._machine.toggle_play()

	def _handle_clear (self, address: str, *args: typing.Any) -> None:
		self._machine.clear_all()

	def _handle_bpm (self, address: str, *args: typing.Any) -> None:
		if not args:
			return
		try:
			bpm = int(args[0])
		except (ValueError, TypeError):
			logger.warning(f"Invalid OSC BPM argument: {args[0]}")
			return
		bpm = max(beatmaker.constants.MIN_BPM, min(beatmaker.constants.MAX_BPM, bpm))
		self._machine.set_tempo(bpm)

	def _handle_step (self, address: str, *args: typing.Any) -> None:
		# address is like /step/kick
		parts = address.split("/")
		if len(parts) < 3 or not args:
			return
		try:
			self._machine.toggle_step(parts[2], int(args[0]))
		except (ValueError, TypeError) as e:
			logger.warning(f"Invalid OSC step toggle {address} {args}: {e}")

	def _handle_mute (self, address: str, *args: typing.Any) -> None:
		# /mute/<track> toggles; /mute/<track> <0|1> sets, matching what we broadcast
		parts = address.split("/")
		if len(parts) < 3:
			return
		try:
			if args:
				self._machine.set_mute(parts[2], bool(int(args[0])))
			else:
				self._machine.toggle_mute(parts[2])
		except (ValueError, TypeError) as e:
			logger.warning(f"Invalid OSC mute {address} {args}: {e}")

	def _handle_sound (self, address: str, *args: typing.Any) -> None:
		parts = address.split("/")
		if len(parts) < 3 or not args:
			return
		self._machine.change_sound_variant(parts[2], str(args[0]))


	# Broadcasts

	def _send_step (self, step: int) -> None:
		self.send("/step", step)

	def _send_fired (self, track: str) -> None:
		self.send("/fired", track)

	def _send_cell (self, track: str, step: int, active: bool) -> None:
		self.send(f"/cell/{track}", step, int(active))

	def _send_mute (self, track: str, muted: bool) -> None:
		self.send(f"/mute/{track}", int(muted))

	def _send_bpm (self, bpm: int) -> None:
		self.send("/bpm", bpm)
