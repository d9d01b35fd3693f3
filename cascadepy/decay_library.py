from collections.abc import Mapping

import numpy as np

from cascadepy.exceptions import MissingDecayDataError
from cascadepy.level_scheme import LevelScheme


class DecayLibrary:
    """
    Lazily built level schemes, one per isotope name.

    Parameters
    ----------
    data_source : Mapping or callable
        Maps an isotope name to its DecaySchemeData. A callable may return
        None or raise KeyError / OSError for isotopes without data.
    binding_energies : BindingEnergyLibrary
        Electron binding energies shared by all schemes.
    cutoff : float
        Half-life cutoff (s) handed to every LevelScheme.
    seed : int, optional
        Seed of the library's SeedSequence; each scheme gets its own
        independent generator spawned from it.
    matrix_element_policy : callable, optional
        Passed on to LevelScheme for beta transitions.
    verbosity : bool
        Print when schemes are built or fail to build.
    """

    def __init__(self, data_source, binding_energies, cutoff=np.inf, seed=None,
                 matrix_element_policy=None, verbosity=False):
        self.data_source = data_source
        self.binding_energies = binding_energies
        self.tcut = cutoff
        self.seed_sequence = np.random.SeedSequence(seed)
        self.matrix_element_policy = matrix_element_policy
        self.verbosity = verbosity

        self.schemes = {}
        self.cantdothis = set()

    def _load_data(self, name):
        if isinstance(self.data_source, Mapping):
            if name not in self.data_source:
                raise MissingDecayDataError(f"No decay data for '{name}'.", name)
            return self.data_source[name]

        try:
            data = self.data_source(name)
        except (KeyError, OSError) as exc:
            raise MissingDecayDataError(f"No decay data for '{name}'.", name) from exc
        if data is None:
            raise MissingDecayDataError(f"No decay data for '{name}'.", name)
        return data

    def get_generator(self, name):
        """Level scheme of an isotope, built on the first request."""
        if name in self.schemes:
            return self.schemes[name]

        data = self._load_data(name)
        rng = np.random.default_rng(self.seed_sequence.spawn(1)[0])
        scheme = LevelScheme(data, self.binding_energies, cutoff=self.tcut, rng=rng,
                             matrix_element_policy=self.matrix_element_policy,
                             verbosity=self.verbosity)
        self.schemes[name] = scheme
        if self.verbosity:
            print(f"Added decay generator for {name}.")
        return scheme

    def has_generator(self, name):
        """True if a level scheme for name exists or can be built; failures are remembered."""
        if name in self.cantdothis:
            return False
        try:
            self.get_generator(name)
            return True
        except Exception as exc:
            if self.verbosity:
                print(f"Can not build decay generator for {name}: {exc}")
            self.cantdothis.add(name)
        return False

    def clear_cache(self):
        """Forget all built schemes and failed isotopes."""
        self.schemes = {}
        self.cantdothis = set()
