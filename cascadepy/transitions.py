import numpy as np

from cascadepy.beta_spectrum import BetaQuantiles, BetaSpectrumShape, spin_parity_matrix_elements
from cascadepy.binding_energies import SHELL_NAMES
from cascadepy.decay_events import DecayEvent, DecayType
from cascadepy.load_data import get_field
from cascadepy.probability_selector import ProbabilitySelector

_default_rng = np.random.default_rng()


class Transition:
    """
    Directed edge between two nuclear levels.

    Subclasses implement run(), which appends the emitted particles to an
    event list. When an external random vector rnd is given, a transition
    reads at most its first ndf entries; rnd[0] is shared with the level
    selection before it and may be overwritten with a residual variate.
    Internal draws use the rng passed to run(), else the transition's own
    generator. run() returns the number of K-shell vacancies it left in the
    destination atom and stores no per-call state.

    Attributes
    ----------
    from_level, to_level : NuclearLevel
        Origin and destination of the transition.
    i_total : float
        Intensity (relative rate) of the transition.
    to_atom : DecayAtom
        Atomic relaxation model of the destination element, set when the
        transition is added to a LevelScheme.
    """

    ndf = 0

    def __init__(self, from_level, to_level):
        self.from_level = from_level
        self.to_level = to_level
        self.i_total = 0.0
        self.to_atom = None
        self.rng = _default_rng

    def run(self, events, rnd=None, rng=None):
        """Append the emitted particles; returns the number of K-shell vacancies left behind."""
        raise NotImplementedError

    def get_ndf(self):
        return self.ndf

    def get_p_vacant(self, shell):
        """Probability per transition to leave a vacancy in the given atomic shell."""
        return 0.0

    def scale(self, s):
        self.i_total *= s

    def describe(self, verbose=False):
        return f"[{self.from_level.n}]->[{self.to_level.n}] {self.i_total:.3g} ({self.get_ndf()} DF)"

    def display(self, verbose=False):
        print(self.describe(verbose))


class ConversionGamma(Transition):
    """
    Gamma transition competing with internal conversion.

    The record holds the gamma intensity 'Igamma' in percent and, per atomic
    shell, an entry 'CE_K', 'CE_L', ... of the form "coef[~err][@s1:s2:...]":
    the conversion coefficient of the shell, its uncertainty, and the relative
    weights of the subshells. Reading stops at the first missing shell.
    """

    def __init__(self, from_level, to_level, record):
        super().__init__(from_level, to_level)
        self.e_gamma = from_level.E - to_level.E
        self.i_gamma = _get_float(record, "Igamma", 0.0) / 100.0

        self.shells = ProbabilitySelector()
        self.shell_uncert = []
        self.subshells = []
        for shell_name in SHELL_NAMES:
            entry = get_field(record, f"CE_{shell_name}")
            if entry is None:
                break
            coef, err, subshell_weights = parse_conversion_entry(entry)
            self.shells.add_prob(coef)
            self.shell_uncert.append(err * self.i_gamma)
            subshell_selector = ProbabilitySelector()
            for w in subshell_weights:
                subshell_selector.add_prob(w)
            self.subshells.append(subshell_selector)

        # last category: no conversion, the gamma itself
        self.shells.add_prob(1.0)
        self.shells.scale(self.i_gamma)
        self.i_total = self.shells.get_cum_prob()

    @property
    def ndf(self):
        return 4 if self.subshells else 2

    def run(self, events, rnd=None, rng=None):
        rng = rng or self.rng
        if rnd is None:
            shell, _ = self.shells.select(rng=rng)
        else:
            shell, rnd[0] = self.shells.select(rnd[0])

        evt = DecayEvent(kind=DecayType.GAMMA, E=self.e_gamma)
        if shell < len(self.subshells):
            if rnd is None:
                subshell, _ = self.subshells[shell].select(rng=rng)
            else:
                subshell, _ = self.subshells[shell].select(rnd[1])
            evt.kind = DecayType.ELECTRON
            evt.E -= self.to_atom.binding_table.get_subshell_binding(shell, subshell)
        else:
            shell = -1

        if rnd is None:
            evt.randp(rng=rng)
        else:
            evt.randp(rnd[self.ndf - 2:self.ndf])
        events.append(evt)
        return int(shell == 0)

    def get_p_vacant(self, shell):
        if shell < len(self.subshells):
            return self.shells.get_prob(shell)
        return 0.0

    def get_conversion_efficiency(self):
        """Fraction of transitions that emit a conversion electron."""
        return sum(self.get_p_vacant(n) for n in range(len(self.subshells)))

    def shell_average_energy(self, n):
        """Subshell-weighted conversion electron energy of shell n."""
        if not 0 <= n < len(self.subshells):
            raise IndexError(f"No conversion data for shell {n}.")
        e, w = 0.0, 0.0
        binding_table = self.to_atom.binding_table
        for i in range(self.subshells[n].n):
            p = self.subshells[n].get_prob(i)
            w += p
            e += (self.e_gamma - binding_table.get_subshell_binding(n, i)) * p
        return e / w

    def average_energy(self):
        """
        Intensity weighted mean conversion electron energy.

        Returns
        -------
        tuple
            (mean energy, uncertainty propagated from the shell coefficients)
            or (0, 0) when the gamma has no intensity.
        """
        e, w = 0.0, 0.0
        for n in range(len(self.subshells)):
            p = self.shells.get_prob(n)
            e += self.shell_average_energy(n) * p
            w += p
        if not w > 0:
            return 0.0, 0.0
        e /= w
        serr = 0.0
        for n in range(len(self.subshells)):
            u = (self.shell_average_energy(n) - e) * self.shell_uncert[n]
            serr += u * u
        return e, np.sqrt(serr) / w

    def scale(self, s):
        super().scale(s)
        self.i_gamma *= s
        self.shells.scale(s)

    def describe(self, verbose=False):
        ceff = 100.0 * self.get_conversion_efficiency()
        line = f"Gamma {self.e_gamma:.1f} ({(100.0 - ceff) * self.i_total:.3g}%)"
        if self.subshells and ceff > 0:
            eavg, eerr = self.average_energy()
            line += f", CE {eavg:.2f}~{eerr:.2f} ({ceff * self.i_total:.3g}%)"
        line += "\t" + super().describe(verbose)

        if verbose:
            for n, subshell_selector in enumerate(self.subshells):
                line += (f"\n\t[{SHELL_NAMES[n]}] {self.shell_average_energy(n):.2f}keV"
                         f"\t{100.0 * self.shells.get_prob(n):.3g}%"
                         f"\t{100.0 * self.shells.get_prob(n) * self.i_total:.3g}%\t")
                if subshell_selector.n > 1:
                    line += ":".join(f"{subshell_selector.get_prob(i):.3g}" for i in range(subshell_selector.n))
        return line


class BetaDecayTransition(Transition):
    """
    Beta- or beta+ decay with a continuous energy spectrum.

    Random numbers: rnd[0], rnd[1] give the direction, rnd[2] the energy.

    Parameters
    ----------
    from_level, to_level : NuclearLevel
    positron : bool
        True for beta+ decay.
    forbidden : int
        Degree of forbiddenness.
    m2_f, m2_gt : float, optional
        Squared Fermi / Gamow-Teller matrix elements. Missing values are taken
        from matrix_element_policy(from_level.jpi, to_level.jpi).
    matrix_element_policy : callable, optional
        Defaults to spin_parity_matrix_elements.
    """

    ndf = 3

    def __init__(self, from_level, to_level, positron=False, forbidden=0,
                 m2_f=None, m2_gt=None, matrix_element_policy=None):
        super().__init__(from_level, to_level)
        self.positron = bool(positron)

        if m2_f is None and m2_gt is None:
            policy = matrix_element_policy or spin_parity_matrix_elements
            m2_f, m2_gt = policy(from_level.jpi, to_level.jpi)
        m2_f = m2_f or 0.0
        m2_gt = m2_gt or 0.0

        self.spectrum = BetaSpectrumShape(to_level.A, to_level.Z, from_level.E - to_level.E,
                                          positron=self.positron, forbidden=forbidden,
                                          m2_f=m2_f, m2_gt=m2_gt)
        self.quantiles = BetaQuantiles(self.spectrum)

    def run(self, events, rnd=None, rng=None):
        rng = rng or self.rng
        evt = DecayEvent(kind=DecayType.POSITRON if self.positron else DecayType.ELECTRON)
        if rnd is None:
            evt.randp(rng=rng)
            evt.E = self.quantiles.sample(rng)
        else:
            evt.randp(rnd[:2])
            evt.E = self.quantiles.eval(rnd[2])
        events.append(evt)
        return 0

    def describe(self, verbose=False):
        sign = "+" if self.positron else "-"
        return (f"Beta{sign} {self.spectrum.endpoint:.1f} keV endpoint"
                f" (forbidden {self.spectrum.forbidden}, M2_F={self.spectrum.m2_f:.3g},"
                f" M2_GT={self.spectrum.m2_gt:.3g})\t" + super().describe(verbose))


class ElectronCapture(Transition):
    """
    Electron capture to a level of the element one proton lower.

    No particle is emitted directly. Each run decides whether the electron
    came from the K shell, with the probability of K vacancies not explained
    by internal conversion in the destination atom; a K capture leaves one K
    vacancy for atomic relaxation.
    """

    ndf = 0

    def run(self, events, rnd=None, rng=None):
        rng = rng or self.rng
        return int(rng.uniform(0.0, 1.0) < self.to_atom.i_missing)

    def describe(self, verbose=False):
        return "Electron capture\t" + super().describe(verbose)


def parse_conversion_entry(entry):
    """
    Parse a conversion coefficient entry "coef[~err][@s1:s2:...]".

    Returns
    -------
    tuple
        (coefficient, uncertainty, list of subshell weights)
    """
    if not isinstance(entry, str):
        return float(entry), 0.0, [1.0]

    parts = entry.strip().split("@")
    value = parts[0].split("~")
    coef = float(value[0])
    err = float(value[1]) if len(value) > 1 and value[1].strip() else 0.0
    if len(parts) == 1 or not parts[1].strip():
        subshell_weights = [1.0]
    else:
        subshell_weights = [float(s) for s in parts[1].split(":")]
    return coef, err, subshell_weights


def _get_float(record, key, default):
    value = get_field(record, key)
    return default if value is None else float(value)
