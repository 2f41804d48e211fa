import logging

import beatmaker

logging.basicConfig(level=logging.INFO)


machine = beatmaker.DrumMachine(bpm=104)

machine.load_pattern({
	"kick":  "x.....x...x.....",
	"snare": "....x.......x...",
	"hihat": "x.x.x.x.x.x.x.xx",
	"crash": "x...............",
})

# A rounder, lower kick and a brighter hat.
machine.change_sound_variant("kick", "kick2")
machine.change_sound_variant("hihat", "hihat2")

def show_step (step: int) -> None:
	logging.debug(f"step {step}")

machine.on_event("step_advanced", show_step)

if __name__ == "__main__":

	machine.play()
