import logging

import beatmaker

logging.basicConfig(level=logging.INFO)


# Play with a recording running, and take commands over OSC, e.g.
#   /step/snare 6    /mute/hihat    /bpm 140    /sound/kick kick3
machine = beatmaker.DrumMachine(bpm=120, record=True, record_filename="session.mid")

machine.load_pattern({
	"kick":  "x...x...x...x...",
	"hihat": "x.x.x.x.x.x.x.x.",
})

machine.osc(receive_port=9000, send_port=9001)

if __name__ == "__main__":

	machine.play()
