import numpy as np
import pandas as pd

from cascadepy.atomic_relaxation import DecayAtom
from cascadepy.exceptions import (BadAugerZError, DecaySchemeError, DuplicateLevelError,
                                  InvalidCaptureError, UnknownLevelError)
from cascadepy.load_data import _clean_half_life, get_field
from cascadepy.probability_selector import ProbabilitySelector
from cascadepy.transitions import BetaDecayTransition, ConversionGamma, ElectronCapture


class NuclearLevel:
    """
    Nuclear level of a decay scheme.

    The level name has the form "A.Z.n". After loading, n is replaced by the
    position of the level in the energy-sorted level list of its scheme.
    """

    def __init__(self, record):
        self.name = str(get_field(record, "name") or get_field(record, "nm") or "0.0.0")
        parts = self.name.split(".")
        if len(parts) != 3:
            raise DecaySchemeError(f"Malformed level name '{self.name}', expected 'A.Z.n'.", self.name)
        try:
            self.A, self.Z, self.n = (int(p) for p in parts)
        except ValueError as exc:
            raise DecaySchemeError(f"Malformed level name '{self.name}', expected 'A.Z.n'.", self.name) from exc

        self.E = float(get_field(record, "E") or 0.0)
        self.hl = _clean_half_life(get_field(record, "hl"))
        self.jpi = str(get_field(record, "jpi") or "")
        self.flux_in = 0.0
        self.flux_out = 0.0

    def scale(self, s):
        self.flux_in *= s
        self.flux_out *= s

    def describe(self, verbose=False):
        return (f"[{self.n}] A={self.A} Z={self.Z} jpi={self.jpi}\t E = {self.E:.2f} keV\t"
                f" HL = {self.hl:.3g} s\t Flux in = {self.flux_in:.3g}, out = {self.flux_out:.3g}")

    def display(self, verbose=False):
        print(self.describe(verbose))

    def __repr__(self):
        return f"NuclearLevel({self.name}, E={self.E} keV)"


class LevelScheme:
    """
    Nuclear levels and transitions of one isotope, and the random generation
    of decay chains through them.

    Parameters
    ----------
    data : DecaySchemeData
        Level, transition and Auger records of the isotope.
    binding_energies : BindingEnergyLibrary
        Electron binding energies, queried per atomic number.
    cutoff : float
        Half-life (s) above which a level is treated as stable inside a chain
        and becomes a chain start of its own.
    rng : numpy.random.Generator, optional
        Random generator for all internally drawn numbers.
    matrix_element_policy : callable, optional
        (jpi_from, jpi_to) -> (M2_F, M2_GT) for beta transitions without
        explicit matrix elements.
    verbosity : bool
        Print construction progress.
    """

    def __init__(self, data, binding_energies, cutoff=np.inf, rng=None,
                 matrix_element_policy=None, verbosity=False):
        self.name = data.name
        self.fancyname = data.fancyname or data.name
        self.binding_energies = binding_energies
        self.rng = rng or np.random.default_rng()
        self.matrix_element_policy = matrix_element_policy
        self.verbosity = verbosity

        self.levels = []
        self.level_index_map = {}
        self.transitions = []
        self.trans_in = []
        self.trans_out = []
        self.level_decays = []
        self.atoms = {}
        self.l_start = ProbabilitySelector()
        self.tcut = cutoff
        self.unmatched_captures = []
        self._ndf_cache = {}

        # 1) levels, sorted by energy
        for _, row in data.levels.iterrows():
            self.levels.append(NuclearLevel(row))
        self.levels.sort(key=lambda level: level.E)
        for n, level in enumerate(self.levels):
            if level.name in self.level_index_map:
                raise DuplicateLevelError(f"Level '{level.name}' is defined twice.", level.name)
            level.n = n
            self.level_index_map[level.name] = n
            self.trans_in.append([])
            self.trans_out.append([])
            self.level_decays.append(ProbabilitySelector())

        # 2) gamma transitions with internal conversion
        for _, row in data.gammas.iterrows():
            self.add_transition(ConversionGamma(self._level(row, "from"), self._level(row, "to"), row))

        # 3) optional normalization to unit flux into the final levels
        if data.gamma_norm == "groundstate":
            self.normalize_to_groundstate()

        # 4) K vacancies from conversion electrons, then measured Auger / X-ray data
        for transition in self.transitions:
            transition.to_atom.icek += transition.get_p_vacant(0) * transition.i_total

        for _, row in data.augers.iterrows():
            Z = get_field(row, "Z")
            Z = int(Z) if Z is not None else 0
            if Z <= 0:
                raise BadAugerZError(f"Auger record of '{self.name}' has invalid atomic number Z={Z}.", Z)
            self.get_atom(Z).load(row)

        # 5) beta decays
        for _, row in data.betas.iterrows():
            m2_f, m2_gt = get_field(row, "M2_F"), get_field(row, "M2_GT")
            if m2_f is not None or m2_gt is not None:
                m2_f, m2_gt = float(m2_f or 0.0), float(m2_gt or 0.0)
            beta = BetaDecayTransition(self._level(row, "from"), self._level(row, "to"),
                                       positron=bool(int(get_field(row, "positron") or 0)),
                                       forbidden=int(get_field(row, "forbidden") or 0),
                                       m2_f=m2_f, m2_gt=m2_gt,
                                       matrix_element_policy=self.matrix_element_policy)
            beta.i_total = float(get_field(row, "I") or 0.0) / 100.0
            self.add_transition(beta)

        # 6) electron captures, explicit or to every level still missing flux
        for _, row in data.ecapts.iterrows():
            self._load_capture(row)

        self.set_cutoff(cutoff)

        if self.verbosity:
            print(f"Built level scheme {self.fancyname}: {len(self.levels)} levels, "
                  f"{len(self.transitions)} transitions, {len(self.atoms)} atoms, {self.get_ndf()} DF")

    def _level(self, row, key):
        return self.levels[self.level_index(str(get_field(row, key) or ""))]

    def _load_capture(self, row):
        origin = self._level(row, "from")
        to = str(get_field(row, "to") or "AUTO")

        if to == "AUTO":
            n_added = 0
            for dest in self.levels:
                if dest.A == origin.A and dest.Z + 1 == origin.Z and dest.E < origin.E:
                    missing_flux = dest.flux_out - dest.flux_in
                    if missing_flux <= 0:
                        continue
                    capture = ElectronCapture(origin, dest)
                    capture.i_total = missing_flux
                    self.add_transition(capture)
                    n_added += 1
            if n_added == 0:
                self.unmatched_captures.append(origin.name)
                if self.verbosity:
                    print(f"No level with missing flux found for automatic electron capture from {origin.name}.")
            return

        dest = self.levels[self.level_index(to)]
        if not (dest.A == origin.A and dest.Z + 1 == origin.Z and dest.E < origin.E):
            raise InvalidCaptureError(
                f"Electron capture {origin.name} -> {dest.name} must lower Z by one and end at lower energy.",
                (origin.name, dest.name))
        capture = ElectronCapture(origin, dest)
        capture.i_total = float(get_field(row, "I") or 0.0)
        self.add_transition(capture)

    def level_index(self, name):
        """Index of a level by its name."""
        if name not in self.level_index_map:
            raise UnknownLevelError(f"Unknown level '{name}' in decay scheme '{self.name}'.", name)
        return self.level_index_map[name]

    def get_atom(self, Z):
        """Atomic relaxation model for atomic number Z, created on first use."""
        if Z not in self.atoms:
            self.atoms[Z] = DecayAtom(self.binding_energies.get_binding_table(Z), rng=self.rng)
        return self.atoms[Z]

    def add_transition(self, transition):
        transition.to_atom = self.get_atom(transition.to_level.Z)
        transition.rng = self.rng
        self.trans_in[transition.to_level.n].append(transition)
        self.trans_out[transition.from_level.n].append(transition)
        self.level_decays[transition.from_level.n].add_prob(transition.i_total)
        transition.from_level.flux_out += transition.i_total
        transition.to_level.flux_in += transition.i_total
        self.transitions.append(transition)
        self._ndf_cache = {}

    def normalize_to_groundstate(self):
        """Scale all intensities so the flux into levels without decays sums to one."""
        gs_flux = sum(level.flux_in for level in self.levels if not level.flux_out)
        if not gs_flux > 0:
            raise DecaySchemeError(f"Decay scheme '{self.name}' has no flux into final levels to normalize to.",
                                   self.name)
        for transition in self.transitions:
            transition.scale(1.0 / gs_flux)
        for level in self.levels:
            level.scale(1.0 / gs_flux)

    def set_cutoff(self, t):
        """
        Set the half-life cutoff and rebuild the decay and start selectors.

        The highest level always starts chains. Levels that decay but live
        longer than the cutoff start chains with a weight equal to the flux
        feeding them.
        """
        self.tcut = t
        self.l_start = ProbabilitySelector()
        for n, level in enumerate(self.levels):
            self.level_decays[n] = ProbabilitySelector()
            for transition in self.trans_out[n]:
                self.level_decays[n].add_prob(transition.i_total)

            p_start = 1.0 if n + 1 == len(self.levels) else 0.0
            if not p_start and level.hl > self.tcut and self.trans_out[n]:
                p_start = sum(transition.i_total for transition in self.trans_in[n])
            self.l_start.add_prob(p_start)
        self._ndf_cache = {}

    def gen_decay_chain(self, events, rnd=None, n=None, rng=None):
        """
        Generate the particles of one decay chain.

        Parameters
        ----------
        events : list
            DecayEvents are appended here.
        rnd : array_like, optional
            Uniform random numbers for the chain, at least get_ndf() long. The
            array is copied, the caller's values are left untouched. Without
            it all numbers are drawn from the scheme's generator.
        n : int, optional
            Level to start from. If omitted the start level is sampled and a
            long-lived start level is allowed to decay.
        rng : numpy.random.Generator, optional
            Generator for this call, e.g. one per thread. Defaults to the
            scheme's generator.
        """
        rng = rng or self.rng
        if rnd is not None:
            rnd = np.array(rnd, dtype=float)

        start = n is None
        if start:
            n, residual = self.l_start.select(_first(rnd), rng=rng)
            if _first(rnd) is not None:
                rnd[0] = residual

        while True:
            level = self.levels[n]
            if not level.flux_out or (not start and level.hl > self.tcut):
                return events
            start = False

            t_index, residual = self.level_decays[n].select(_first(rnd), rng=rng)
            if _first(rnd) is not None:
                rnd[0] = residual
            transition = self.trans_out[n][t_index]
            k_vacancies = transition.run(events, rnd, rng)
            if rnd is not None:
                rnd = rnd[transition.get_ndf():]

            for _ in range(k_vacancies):
                transition.to_atom.gen_auger(events, rng)

            n = transition.to_level.n

    def gen_event(self, rnd=None, rng=None):
        """Decay events of one freshly sampled chain."""
        return self.gen_decay_chain([], rnd, rng=rng)

    def get_ndf(self, n=None):
        """
        Maximum number of random numbers one decay chain can consume.

        With a level index the count is for chains passing through that
        level, otherwise the maximum over all possible start levels.
        """
        if n is None:
            if not self.l_start.get_cum_prob() > 0:
                return 0
            return max([self.get_ndf(i) for i, p in enumerate(self.start_probabilities()) if p > 0],
                       default=0)

        if n not in self._ndf_cache:
            ndf = 0
            for transition in self.trans_out[n]:
                ndf = max(ndf, transition.get_ndf() + self.get_ndf(transition.to_level.n))
            self._ndf_cache[n] = ndf
        return self._ndf_cache[n]

    def scale(self, s):
        """Scale every intensity of the scheme by s."""
        self.l_start.scale(s)
        for transition in self.transitions:
            transition.scale(s)
        for n, level in enumerate(self.levels):
            level.scale(s)
            self.level_decays[n].scale(s)

    def start_probabilities(self):
        """Normalized probability of each level to start a chain."""
        return self.l_start.get_probs()

    def flux_table(self):
        """
        Per level flux bookkeeping as a pandas DataFrame.

        Besides the accumulated flux_in / flux_out the table holds the sums of
        the intensities of the incoming and outgoing transitions, which have
        to agree with them.
        """
        p_start = self.start_probabilities() if self.levels else []
        return pd.DataFrame({"n": [level.n for level in self.levels],
                             "name": [level.name for level in self.levels],
                             "E": [level.E for level in self.levels],
                             "hl": [level.hl for level in self.levels],
                             "flux_in": [level.flux_in for level in self.levels],
                             "flux_out": [level.flux_out for level in self.levels],
                             "sum_in": [sum(t.i_total for t in self.trans_in[level.n]) for level in self.levels],
                             "sum_out": [sum(t.i_total for t in self.trans_out[level.n]) for level in self.levels],
                             "p_start": list(p_start),
                             "ndf": [self.get_ndf(level.n) for level in self.levels]})

    def describe(self, verbose=False):
        lines = ["---- Nuclear Level System ----",
                 f"---- {self.get_ndf()} DF",
                 "---- Energy Levels ----"]
        lines += [f"[{self.get_ndf(level.n)} DF] " + level.describe(verbose) for level in self.levels]
        lines.append("---- Atoms ----")
        lines += [self.atoms[Z].describe() for Z in sorted(self.atoms)]
        lines.append("---- Transitions ----")
        lines += [f"({i}) " + transition.describe(verbose) for i, transition in enumerate(self.transitions)]
        lines.append("------------------------------")
        return "\n".join(lines)

    def display(self, verbose=False):
        print(self.describe(verbose))


def _first(rnd):
    if rnd is None or len(rnd) == 0:
        return None
    return rnd[0]
