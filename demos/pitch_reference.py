#!/usr/bin/env python3
"""Demo showing which BPM jumps fit common turntable pitch ranges."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from percent import RANGE_DECIMALS, compute_percent, round_percent_scaled

# Pitch fader ranges found on common decks, in percent
PITCH_RANGES = [6, 8, 16]


def fits(src, dest, pitch_range):
    return abs(round_percent_scaled(src, dest, RANGE_DECIMALS)) <= pitch_range * 10


def main():
    print("Pitch Range Reference")
    print("=" * 40)
    print()

    sources = [90, 120, 128, 140, 174]
    jumps = [1, 2, 5, 8, 10, 15]

    for src in sources:
        print(f"From {src} BPM")
        print("-" * 20)

        for jump in jumps:
            for dest in (src + jump, src - jump):
                result = compute_percent(src, dest)
                ranges = [f"±{r}%" for r in PITCH_RANGES if fits(src, dest, r)]
                fit = ", ".join(ranges) if ranges else "out of range"
                print(f"  {dest:>4} BPM: {result.value_text_signed:>7}%   {fit}")

        print()

    print("Usage Examples:")
    print("-" * 15)
    print("• ±8% covers most house and techno blends within one genre")
    print("• Jumping between genres (e.g. 128 -> 140) usually needs ±16%")
    print()
    print("Full table: python bpmtable-cli.py --local table --min-bpm 120 --pitch 6")


if __name__ == "__main__":
    main()
