"""The shared audio output device and the mixer that feeds it.

Voices are fire-and-forget: the synthesizer hands a rendered buffer and a
start time to the ``VoiceMixer``, and the mixer drops the voice by itself
once its last frame has been played. Nothing ever cancels a voice.

The mixer keeps its own frame clock, so it works identically whether it is
pulled by a ``sounddevice`` callback in real time or rendered offline.
"""

import dataclasses
import logging
import threading
import typing

import numpy as np

import beatmaker.constants


logger = logging.getLogger(__name__)


@dataclasses.dataclass
class Voice:

	"""One triggered sound waiting for, or in the middle of, playback."""

	samples: np.ndarray
	start_frame: int

	@property
	def end_frame (self) -> int:
		return self.start_frame + len(self.samples)


class VoiceMixer:

	"""
	Sums independent voices into blocks of output frames.

	``render()`` runs on the audio thread while ``add_voice()`` is called from
	the event loop, so the voice list is guarded by a lock.
	"""

	def __init__ (self, sample_rate: int = beatmaker.constants.SAMPLE_RATE) -> None:

		if sample_rate <= 0:
			raise ValueError(f"Sample rate must be positive, got {sample_rate}")

		self.sample_rate = sample_rate
		self._voices: typing.List[Voice] = []
		self._frame = 0
		self._lock = threading.Lock()


	def current_time (self) -> float:

		"""Seconds of audio rendered so far - the output clock."""

		return self._frame / self.sample_rate


	@property
	def active_voices (self) -> int:

		with self._lock:
			return len(self._voices)


	def add_voice (self, samples: np.ndarray, start_time: float) -> None:

		"""
		Schedule a buffer to start at ``start_time`` on the output clock.

		A start time already in the past is moved to the next rendered frame so
		the voice still plays from its first sample.
		"""

		if len(samples) == 0:
			return

		with self._lock:
			start_frame = max(int(round(start_time * self.sample_rate)), self._frame)
			self._voices.append(Voice(samples=samples, start_frame=start_frame))


	def render (self, frames: int) -> np.ndarray:

		"""
		Mix the next ``frames`` frames and advance the clock.
		"""

		block = np.zeros(frames, dtype=np.float32)

		with self._lock:

			block_start = self._frame
			block_end = block_start + frames
			alive: typing.List[Voice] = []

			for voice in self._voices:

				if voice.start_frame < block_end:

					src_start = max(0, block_start - voice.start_frame)
					dst_start = max(0, voice.start_frame - block_start)
					count = min(len(voice.samples) - src_start, frames - dst_start)

					if count > 0:
						block[dst_start:dst_start + count] += voice.samples[src_start:src_start + count]

				if voice.end_frame > block_end:
					alive.append(voice)

			self._voices = alive
			self._frame = block_end

		return block


class AudioOutput:

	"""
	A running ``sounddevice`` output stream pulling blocks from a ``VoiceMixer``.
	"""

	def __init__ (self, stream: typing.Any, mixer: VoiceMixer, device_name: typing.Optional[str] = None) -> None:

		self.stream = stream
		self.mixer = mixer
		self.device_name = device_name


	def close (self) -> None:

		"""Stop and close the stream. Safe to call more than once."""

		if self.stream is None:
			return

		try:
			self.stream.stop()
			self.stream.close()
		except Exception:
			logger.exception("Failed to close audio output (device may be disconnected)")

		self.stream = None
		logger.info("Audio output closed")


def open_audio_output (
	device: typing.Optional[typing.Union[str, int]] = None,
	sample_rate: int = beatmaker.constants.SAMPLE_RATE,
	block_size: int = 256
) -> typing.Optional[AudioOutput]:

	"""
	Open the audio output device and start streaming the mixer to it.

	If ``device`` is None the system default output is used.

	Returns:
		An ``AudioOutput``, or None when PortAudio or the device is unavailable.
		A missing device is not an error: the engine runs silently without it.
	"""

	try:
		import sounddevice
	except OSError as e:
		logger.warning(f"Audio output unavailable (PortAudio could not be loaded): {e}")
		return None

	mixer = VoiceMixer(sample_rate)

	def callback (outdata: np.ndarray, frames: int, time_info: typing.Any, status: typing.Any) -> None:

		if status:
			logger.debug(f"Audio callback status: {status}")

		block = mixer.render(frames)

		for channel in range(outdata.shape[1]):
			outdata[:, channel] = block

	try:
		stream = sounddevice.OutputStream(
			samplerate = sample_rate,
			blocksize = block_size,
			device = device,
			channels = 1,
			dtype = "float32",
			callback = callback
		)
		stream.start()

	except (sounddevice.PortAudioError, ValueError) as e:
		logger.warning(f"Audio output unavailable: {e}")
		return None

	device_name = device if isinstance(device, str) else None

	try:
		if device_name is None:
			device_name = sounddevice.query_devices(stream.device)["name"]
	except (sounddevice.PortAudioError, ValueError, TypeError):
		device_name = None

	logger.info(f"Opened audio output: {device_name or 'default'} at {sample_rate} Hz")

	return AudioOutput(stream, mixer, device_name)
