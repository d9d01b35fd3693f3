import re
from pathlib import Path

import numpy as np

from cascadepy.decay_events import DecayEvent, DecayType
from cascadepy.probability_selector import ProbabilitySelector

_default_rng = np.random.default_rng()


class GammaForest:
    """
    Gamma lines with relative production probabilities, e.g. the prompt
    gammas of a capture reaction.

    Parameters
    ----------
    energies : array_like
        Line energies.
    probabilities : array_like
        Relative line strengths.
    E2keV : float
        Conversion factor from the given energy unit to keV.
    rng : numpy.random.Generator, optional
    """

    def __init__(self, energies, probabilities, E2keV=1.0, rng=None):
        if len(energies) != len(probabilities):
            raise ValueError("Gamma energies and probabilities need the same length.")
        self.rng = rng or _default_rng
        self.gamma_E = [float(e) * E2keV for e in energies]
        self.gamma_prob = ProbabilitySelector()
        for p in probabilities:
            self.gamma_prob.add_prob(float(p))

    @classmethod
    def from_file(cls, fname, E2keV=1.0, rng=None, verbosity=False):
        """
        Read a two column (energy, strength) text file.

        Lines starting with '#' are comments; columns may be separated by
        blanks, tabs or commas. Rows without exactly two numbers are skipped.
        """
        path = Path(fname)
        if not path.is_file():
            raise FileNotFoundError(f"Gamma line file '{fname}' is unreadable.")

        energies, probabilities = [], []
        for line in path.read_text(encoding="utf-8").splitlines():
            line = line.strip()
            if not line or line[0] == "#":
                continue
            try:
                values = [float(v) for v in re.split(r"[\s,]+", line) if v]
            except ValueError:
                continue
            if len(values) != 2:
                continue
            energies.append(values[0])
            probabilities.append(values[1])

        forest = cls(energies, probabilities, E2keV=E2keV, rng=rng)
        if verbosity:
            print(f"Located {len(forest.gamma_E)} gammas with total cross section {forest.total_cross_section():g}")
        return forest

    def total_cross_section(self):
        return self.gamma_prob.get_cum_prob()

    def gen_decays(self, events, n=1.0):
        """
        Append gammas for n (possibly fractional) reactions.

        floor(n) gammas are always produced, one more with probability
        n - floor(n).
        """
        while n >= 1.0 or self.rng.uniform(0.0, 1.0) < n:
            i, _ = self.gamma_prob.select(rng=self.rng)
            events.append(DecayEvent(kind=DecayType.GAMMA, E=self.gamma_E[i], t=0.0))
            n -= 1.0
        return events
