import pathlib

import pytest

import beatmaker.__main__
import beatmaker.constants

import conftest


def test_load_config_missing_file (tmp_path: pathlib.Path) -> None:

	"""A missing config file yields an empty config rather than an error."""

	assert beatmaker.__main__.load_config(str(tmp_path / "nope.yaml")) == {}


def test_load_config_reads_yaml (tmp_path: pathlib.Path) -> None:

	"""The YAML file is parsed into nested dictionaries."""

	path = tmp_path / "config.yaml"
	path.write_text("sequencer:\n  bpm: 96\nmuted: [crash]\n")

	config = beatmaker.__main__.load_config(str(path))

	assert config == {"sequencer": {"bpm": 96}, "muted": ["crash"]}


def test_load_config_empty_file (tmp_path: pathlib.Path) -> None:

	"""An empty file is the same as no settings."""

	path = tmp_path / "config.yaml"
	path.write_text("")

	assert beatmaker.__main__.load_config(str(path)) == {}


def test_build_machine_defaults (patch_audio: None) -> None:

	"""With no settings the demo pattern is loaded at the default tempo."""

	machine = beatmaker.__main__.build_machine({})

	assert machine.bpm == beatmaker.constants.DEFAULT_BPM
	assert machine.status()["pattern"] == beatmaker.__main__.DEMO_PATTERN
	assert machine.recorder is None
	assert machine._osc_server is None

	machine.close()


def test_build_machine_from_config (patch_audio: None) -> None:

	"""Every config section is applied to the new machine."""

	config = {
		"sequencer": {"bpm": 100},
		"audio": {"sample_rate": 22050},
		"pattern": {"kick": "x.......x.......", "snare": "....x.......x..."},
		"sounds": {"kick": "kick3", "hihat": "hihat9"},
		"muted": ["snare"],
		"osc": {"enabled": True, "receive_port": 9100, "send_port": 9101},
	}

	machine = beatmaker.__main__.build_machine(config)

	assert machine.bpm == 100
	assert conftest._current_fake_output.mixer.sample_rate == 22050
	assert machine.patterns.row_string("kick") == "x.......x......."
	assert machine.patterns.row_string("hihat") == "." * 16
	assert machine.sounds.parameters_for("kick").waveform == "square"
	assert machine.sounds.parameters_for("hihat").frequency == 8000
	assert machine.status()["muted"] == ["snare"]
	assert machine._osc_server is not None

	machine.close()


def test_build_machine_rejects_bad_pattern (patch_audio: None) -> None:

	"""A malformed pattern row in the config is reported, not silently skipped."""

	with pytest.raises(ValueError):
		beatmaker.__main__.build_machine({"pattern": {"kick": "x.x"}})
