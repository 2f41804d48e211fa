"""Render four loops of a pattern to a WAV file without opening an audio device."""

import logging

import beatmaker

logging.basicConfig(level=logging.INFO)


machine = beatmaker.DrumMachine(bpm=128, audio=False)

machine.load_pattern({
	"kick":  "x...x...x...x...",
	"snare": "....x.......x..x",
	"hihat": ".x.x.x.x.x.x.x.x",
})

machine.change_sound_variant("snare", "snare3")

if __name__ == "__main__":

	machine.render(loops=4, filename="beat.wav")
	machine.close()
