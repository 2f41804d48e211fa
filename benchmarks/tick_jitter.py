"""Transport tick jitter benchmark.

Runs the transport's step timer for a configurable number of loops and
measures how late each tick arrives relative to its ideal time. No audio
device is opened; only the timer and tick logic are exercised.

Usage:
    python benchmarks/tick_jitter.py [--bpm BPM] [--loops N] [--busy]

Options:
    --bpm BPM       Tempo in BPM (default: 120)
    --loops N       Number of 16-step loops to measure (default: 8)
    --busy          Fill every cell so each tick renders and mixes four voices
"""

import argparse
import asyncio
import logging
import statistics
import time

# Suppress transport logging during benchmark - we want clean output.
logging.basicConfig(level=logging.ERROR)

import beatmaker.audio_output
import beatmaker.constants
import beatmaker.machine
import beatmaker.transport


def _run_benchmark (bpm: int, loops: int, busy: bool) -> list[float]:

	"""Run the transport for *loops* loops and return per-tick lateness (seconds)."""

	jitter_log: list[float] = []

	machine = beatmaker.machine.DrumMachine(bpm=bpm, audio=False)

	if busy:
		# Give the synthesizer a mixer with no device so triggers do real work.
		machine.synth.mixer = beatmaker.audio_output.VoiceMixer()
		machine.load_pattern({track: "x" * machine.patterns.steps for track in machine.tracks})

	ticks = loops * machine.patterns.steps
	interval = machine.transport.tick_interval

	async def _run () -> None:

		done = asyncio.Event()
		started_at = 0.0

		def on_step (step: int) -> None:

			n = machine.transport.tick_count
			jitter_log.append(time.perf_counter() - (started_at + n * interval))

			if n >= ticks:
				done.set()

		machine.on_event(beatmaker.constants.EVENT_STEP_ADVANCED, on_step)

		started_at = time.perf_counter()
		machine.start()

		try:
			await asyncio.wait_for(done.wait(), timeout=ticks * interval + 2.0)
		except asyncio.TimeoutError:
			pass

		machine.stop()

	asyncio.run(_run())
	machine.close()

	return jitter_log[:ticks]


def _print_report (jitter: list[float], bpm: int, loops: int, busy: bool) -> None:

	if not jitter:
		print("No jitter data collected.")
		return

	ms = [j * 1000 for j in jitter]

	mean_ms   = statistics.mean(ms)
	median_ms = statistics.median(ms)
	stdev_ms  = statistics.stdev(ms) if len(ms) > 1 else 0.0
	p95_ms    = sorted(ms)[int(len(ms) * 0.95)]
	max_ms    = max(ms)

	# Difference between first and last samples: non-zero means the schedule drifts.
	drift_ms  = ms[-1] - ms[0] if len(ms) > 1 else 0.0

	step_ms = beatmaker.transport.tick_interval_ms(bpm)
	mode = "busy pattern" if busy else "empty pattern"

	print(f"\nTick Jitter Benchmark - {loops} loops at {bpm} BPM ({mode})")
	print(f"{'─' * 62}")
	print(f"  Ticks measured  : {len(ms)}")
	print(f"  Step interval   : {step_ms:.3f} ms")
	print(f"{'─' * 62}")
	print(f"  Mean lateness   : {mean_ms:>8.3f} ms")
	print(f"  Median lateness : {median_ms:>8.3f} ms")
	print(f"  Std deviation   : {stdev_ms:>8.3f} ms")
	print(f"  P95 lateness    : {p95_ms:>8.3f} ms")
	print(f"  Max lateness    : {max_ms:>8.3f} ms")
	print(f"  Clock drift     : {drift_ms:>+8.3f} ms")
	print(f"{'─' * 62}")
	print()


def main () -> None:

	parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
	parser.add_argument("--bpm",   type=int, default=120, help="Tempo in BPM (default: 120)")
	parser.add_argument("--loops", type=int, default=8,   help="Loops to measure (default: 8)")
	parser.add_argument("--busy",  action="store_true",   help="Fill every cell of the pattern")
	args = parser.parse_args()

	jitter = _run_benchmark(args.bpm, args.loops, args.busy)
	_print_report(jitter, args.bpm, args.loops, args.busy)


if __name__ == "__main__":
	main()
