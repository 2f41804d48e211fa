import logging
import os
import sys
import typing

import yaml

import beatmaker.constants
import beatmaker.machine


# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


DEMO_PATTERN = {
	"kick": "x...x...x...x...",
	"snare": "....x.......x...",
	"hihat": "x.x.x.x.x.x.x.x.",
	"crash": "x...............",
}


def load_config (config_path: str = 'config.yaml') -> dict:

	"""
	Load configuration from a YAML file.
	"""

	if not os.path.exists(config_path):
		logger.warning(f"Config file {config_path} not found. Using defaults.")
		return {}

	with open(config_path, 'r') as f:
		return yaml.safe_load(f) or {}


def build_machine (config: typing.Dict[str, typing.Any]) -> beatmaker.machine.DrumMachine:

	"""
	Construct a drum machine from a configuration dictionary.
	"""

	audio = config.get('audio') or {}
	recording = config.get('recording') or {}

	machine = beatmaker.machine.DrumMachine(
		bpm = int((config.get('sequencer') or {}).get('bpm', beatmaker.constants.DEFAULT_BPM)),
		audio = audio.get('enabled', True),
		output_device = audio.get('device'),
		sample_rate = audio.get('sample_rate', beatmaker.constants.SAMPLE_RATE),
		block_size = audio.get('block_size', 256),
		record = recording.get('enabled', False),
		record_filename = recording.get('filename')
	)

	machine.load_pattern(config.get('pattern') or DEMO_PATTERN)

	for track, variant_id in (config.get('sounds') or {}).items():
		machine.change_sound_variant(track, variant_id)

	for track in config.get('muted') or []:
		machine.toggle_mute(track)

	osc = config.get('osc') or {}

	if osc.get('enabled', False):
		machine.osc(
			receive_port = osc.get('receive_port', 9000),
			send_port = osc.get('send_port', 9001),
			send_host = osc.get('send_host', "127.0.0.1")
		)

	return machine


def main () -> None:

	"""
	Main entry point: ``python -m beatmaker [config.yaml]``.
	"""

	logger.info("Beatmaker starting...")

	config_path = sys.argv[1] if len(sys.argv) > 1 else 'config.yaml'
	config = load_config(config_path)

	machine = build_machine(config)

	for track in machine.tracks:
		logger.info(f"  {track:<6} |{machine.patterns.row_string(track)}|")

	machine.play()


if __name__ == "__main__":
	main()
