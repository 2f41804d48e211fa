"""
Beatmaker - a 16-step drum machine with live synthesis.

Four tracks (kick, snare, hi-hat, crash) each have a row of sixteen steps.
A transport walks the steps at a settable tempo, one sixteenth note per
step, and every active, unmuted step triggers a synthesized voice: a single
oscillator, a fixed per-track filter and a short attack/decay envelope. No
samples are involved.

The engine has no user interface of its own. A front end drives it with
commands (toggle a step, start, pause, stop, set the tempo, mute a track,
pick a sound variant, clear) and redraws itself from the events it emits
(cell changed, step advanced, track fired, highlight cleared, mute changed).

Features:

- **Fire-and-forget voices.** Each hit renders once (cached per sound) and
  plays to completion on a shared ``sounddevice`` stream. With no usable
  audio device the engine keeps running silently.
- **Glitch-free tempo changes.** The transport owns exactly one timer and
  replaces it atomically, so a tempo change never doubles or drops a step.
- **Sound variants.** Each track has a few alternate frequency/waveform
  presets; the track's decay is kept when switching.
- **Offline render.** ``machine.render(loops=4, filename="beat.wav")``.
- **MIDI recording.** ``DrumMachine(record=True)`` writes the session as
  General MIDI drums when the machine is closed.
- **OSC control.** ``machine.osc()`` exposes every command over OSC and
  broadcasts steps, hits and state changes.

Minimal example:

    ```python
    import beatmaker

    machine = beatmaker.DrumMachine(bpm=120)
    machine.load_pattern({
        "kick":  "x...x...x...x...",
        "snare": "....x.......x...",
        "hihat": "x.x.x.x.x.x.x.x.",
    })
    machine.play()
    ```

Package-level exports: ``DrumMachine``, ``InvalidArgument``, ``SoundParameters``.
"""

import beatmaker.exceptions
import beatmaker.machine
import beatmaker.sound_bank


DrumMachine = beatmaker.machine.DrumMachine
InvalidArgument = beatmaker.exceptions.InvalidArgument
SoundParameters = beatmaker.sound_bank.SoundParameters
