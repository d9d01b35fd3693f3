import numpy as np
import pandas as pd

from cascadepy.decay_events import DecayEvent, DecayType

_default_rng = np.random.default_rng()


class DecayAtom:
    """
    Relaxation of a K-shell vacancy by Auger electron or X-ray emission.

    One DecayAtom exists per atomic number inside a level scheme and is shared
    by every transition ending in that element.

    Parameters
    ----------
    binding_table : BindingEnergyTable
        Electron binding energies of the element.
    rng : numpy.random.Generator, optional
        Random generator for the Auger/X-ray competition.
    """

    def __init__(self, binding_table, rng=None):
        self.binding_table = binding_table
        self.rng = rng or _default_rng

        self.i_auger = 0.0    # Auger intensity per decay
        self.i_kxr = 0.0      # K X-ray intensity per decay
        self.icek = 0.0       # K vacancies from conversion electrons per decay
        self.i_missing = 0.0  # K vacancies not explained by conversion
        self.p_auger = 0.0

        if binding_table.Z > 2:
            self.e_auger = (binding_table.get_subshell_binding(0, 0)
                            - binding_table.get_subshell_binding(1, 0)
                            - binding_table.get_subshell_binding(1, 1))
        else:
            self.e_auger = 0.0

    @property
    def Z(self):
        return self.binding_table.Z

    def load(self, record):
        """
        Load measured Auger and K X-ray intensities (in percent).

        Keys starting with 'k' are K X-ray lines. The total Auger intensity is
        taken from 'Iauger'; without it the keys starting with 'a' are summed.
        """
        i_auger_lines = 0.0
        for key, value in record.items():
            if not key or _is_missing(value):
                continue
            if key[0] == "a":
                i_auger_lines += float(value) / 100.0
            elif key[0] == "k":
                self.i_kxr += float(value) / 100.0

        i_auger = record.get("Iauger", None)
        if _is_missing(i_auger):
            self.i_auger = i_auger_lines
        else:
            self.i_auger = float(i_auger) / 100.0

        if not self.i_auger:
            self.i_missing = self.p_auger = 0.0
            return

        self.p_auger = self.i_auger / (self.i_auger + self.i_kxr)
        self.i_missing = self.i_auger + self.i_kxr - self.icek

    def gen_auger(self, events, rng=None):
        """Relax one K vacancy, appending an Auger electron if that branch is chosen."""
        rng = rng or self.rng
        if rng.uniform(0.0, 1.0) > self.p_auger:
            return
        events.append(DecayEvent(kind=DecayType.ELECTRON, E=self.e_auger).randp(rng=rng))

    def describe(self):
        return (f"{self.binding_table.name} {self.Z}: pAuger = {self.p_auger:.3f}, "
                f"Eauger = {self.e_auger:.2f}, initCapt = {self.i_missing:.3f}")

    def display(self, verbose=False):
        print(self.describe())


def _is_missing(value):
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    return bool(pd.isna(value))
