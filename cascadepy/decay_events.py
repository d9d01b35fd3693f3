from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum

import numpy as np
import pandas as pd

_default_rng = np.random.default_rng()


class DecayType(IntEnum):
    GAMMA = 0
    ELECTRON = 1
    POSITRON = 2
    NEUTRINO = 3
    NONEVENT = 4


_PARTICLE_NAMES = {DecayType.GAMMA: "gamma",
                   DecayType.ELECTRON: "e-",
                   DecayType.POSITRON: "e+",
                   DecayType.NEUTRINO: "neutrino"}


def particle_name(kind):
    """Short name of a particle type, 'UNKNOWN' for anything else."""
    return _PARTICLE_NAMES.get(kind, "UNKNOWN")


def particle_type(name):
    """Inverse of particle_name; unknown names give DecayType.NONEVENT."""
    for kind, kind_name in _PARTICLE_NAMES.items():
        if kind_name == name:
            return kind
    return DecayType.NONEVENT


def random_direction(rnd=None, rng=None):
    """
    Isotropic unit vector.

    rnd[0] fixes cos(theta) = 2*rnd[0] - 1 and rnd[1] the azimuth
    phi = 2*pi*rnd[1]; without rnd both are drawn from rng.
    """
    if rnd is None:
        rng = rng or _default_rng
        u_theta, u_phi = rng.uniform(0.0, 1.0), rng.uniform(0.0, 1.0)
    else:
        u_theta, u_phi = rnd[0], rnd[1]
    phi = 2.0 * np.pi * u_phi
    costheta = 2.0 * u_theta - 1.0
    sintheta = np.sqrt(max(0.0, 1.0 - costheta * costheta))
    return np.array([np.cos(phi) * sintheta, np.sin(phi) * sintheta, costheta])


@dataclass
class DecayEvent:
    """
    One particle emitted during a decay chain.

    Attributes
    ----------
    kind : DecayType
        Particle species.
    E : float
        Kinetic energy in keV.
    p : np.ndarray
        Unit momentum direction.
    x : np.ndarray
        Vertex position.
    t : float
        Time offset in seconds.
    w : float
        Event weight.
    eid : int
        Number of the primary event this particle belongs to.
    """

    kind: DecayType = DecayType.NONEVENT
    E: float = 0.0
    p: np.ndarray = field(default_factory=lambda: np.array([0.0, 0.0, 1.0]))
    x: np.ndarray = field(default_factory=lambda: np.zeros(3))
    t: float = 0.0
    w: float = 1.0
    eid: int = 0

    def randp(self, rnd=None, rng=None):
        """Give the event an isotropic direction."""
        self.p = random_direction(rnd, rng)
        return self

    @property
    def name(self):
        return particle_name(self.kind)


def events_to_dataframe(events):
    """
    Collect decay events into a pandas DataFrame.

    The columns follow the usual event tree naming: num, PID, KE, vertex,
    direction, time, weight.
    """
    columns = ["num", "PID", "KE", "vertex", "direction", "time", "weight"]
    if len(events) == 0:
        return pd.DataFrame(columns=columns)

    return pd.DataFrame({"num": [e.eid for e in events],
                         "PID": [particle_name(e.kind) for e in events],
                         "KE": [e.E for e in events],
                         "vertex": [tuple(e.x) for e in events],
                         "direction": [tuple(e.p) for e in events],
                         "time": [e.t for e in events],
                         "weight": [e.w for e in events]},
                        columns=columns)
