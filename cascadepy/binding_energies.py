from __future__ import annotations

from typing import Dict, List

import pandas as pd

from cascadepy.exceptions import MissingBindingEnergyError

# atomic shell letters, index 0 == K shell
SHELL_NAMES = "KLMNOPQ"


class BindingEnergyTable:
    """
    Electron binding energies (keV) of one element, by shell and subshell.

    Parameters
    ----------
    Z : int
        Atomic number.
    name : str
        Element symbol.
    shells : list of list of float
        shells[i][j] is the binding energy of subshell j of shell i.
    """

    def __init__(self, Z: int, name: str, shells: List[List[float]]):
        self.Z = int(Z)
        self.name = name
        self.shells = [list(map(float, s)) for s in shells]

    @property
    def n_shells(self):
        return len(self.shells)

    def n_subshells(self, shell):
        return len(self.shells[shell]) if shell < len(self.shells) else 0

    def get_subshell_binding(self, shell, subshell):
        """Binding energy of a subshell in keV."""
        try:
            return self.shells[shell][subshell]
        except IndexError as exc:
            raise MissingBindingEnergyError(
                f"No binding energy for {self.name} (Z={self.Z}) shell {SHELL_NAMES[shell]}, subshell {subshell}.",
                (self.Z, shell, subshell)) from exc

    def __repr__(self):
        return f"BindingEnergyTable({self.name}, Z={self.Z}, shells={self.n_shells})"


class BindingEnergyLibrary:
    """
    Binding energy tables for many elements.

    The library is built from a pandas DataFrame with one row per subshell
    and the columns Z, element, shell, subshell, binding. The shell column may
    hold either the shell index or its letter (K, L, M, ...).
    """

    def __init__(self, binding_df: pd.DataFrame):
        self.tables: Dict[int, BindingEnergyTable] = {}

        df = binding_df.copy()
        df["shell"] = df["shell"].apply(_shell_index)
        df = df.sort_values(["Z", "shell", "subshell"])

        for Z, element_df in df.groupby("Z"):
            shells = [list(shell_df["binding"].astype(float))
                      for _, shell_df in element_df.groupby("shell", sort=True)]
            name = str(element_df["element"].iloc[0]) if "element" in element_df.columns else str(int(Z))
            self.tables[int(Z)] = BindingEnergyTable(int(Z), name, shells)

    @classmethod
    def from_records(cls, records):
        """Build the library from an iterable of dicts with the DataFrame columns."""
        return cls(pd.DataFrame(list(records), columns=["Z", "element", "shell", "subshell", "binding"]))

    def get_binding_table(self, Z):
        if int(Z) not in self.tables:
            raise MissingBindingEnergyError(f"No electron binding energies for Z={Z}.", Z)
        return self.tables[int(Z)]

    def __contains__(self, Z):
        return int(Z) in self.tables


def _shell_index(shell):
    if isinstance(shell, str):
        if shell.strip().upper() not in SHELL_NAMES:
            raise ValueError(f"Unknown atomic shell name '{shell}'.")
        return SHELL_NAMES.index(shell.strip().upper())
    return int(shell)
