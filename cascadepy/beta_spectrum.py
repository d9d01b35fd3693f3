"""
Beta decay energy spectra.

The spectrum shape is the allowed phase space p W (W0 - W)^2 multiplied by
the relativistic Fermi function (point charge wave function evaluated at the
nuclear radius) and, for unique forbidden transitions, the usual shape factor
in the lepton momenta. Energies are kinetic energies in keV; internally the
total energy W and momentum p are in units of the electron mass.

References:
    - Konopinski, The Theory of Beta Radioactivity (1966)
    - Hayen et al., Rev. Mod. Phys. 90, 015008 (2018)
"""

from __future__ import annotations

from typing import Callable, Tuple

import numpy as np
from scipy.constants import physical_constants, fine_structure
from scipy.integrate import cumulative_trapezoid, trapezoid
from scipy.special import factorial, gammaln, loggamma

from cascadepy.exceptions import InvalidDistributionError

M_E_KEV = physical_constants["electron mass energy equivalent in MeV"][0] * 1e3
# reduced Compton wavelength of the electron in fm
LAMBDA_E_FM = physical_constants["reduced Compton wavelength"][0] * 1e15
# nuclear radius parameter R = R0 * A^(1/3)
R0_FM = 1.2
# axial to vector coupling ratio g_A / g_V
LAMBDA_GA = 1.2754

_default_rng = np.random.default_rng()

MatrixElementPolicy = Callable[[str, str], Tuple[float, float]]


def spin_parity_matrix_elements(jpi_from: str, jpi_to: str) -> Tuple[float, float]:
    """
    Guess the squared Fermi and Gamow-Teller matrix elements from the
    spin-parity labels of the two levels.

    Identical labels are treated as a pure Fermi transition, everything else
    as pure Gamow-Teller. This ignores mixed transitions; pass a different
    policy to LevelScheme when better nuclear input is available.

    Returns
    -------
    tuple
        (M2_F, M2_GT)
    """
    if jpi_from == jpi_to:
        return 1.0, 0.0
    return 0.0, 1.0


def fermi_function(Z, W, A):
    """
    Relativistic Fermi function F(Z, W).

    Parameters
    ----------
    Z : int
        Charge of the daughter nucleus, negative for positron emission.
    W : float or np.ndarray
        Total electron energy in units of the electron mass (W > 1).
    A : int
        Mass number, sets the nuclear radius.
    """
    W = np.asarray(W, dtype=float)
    p = np.sqrt(W * W - 1.0)
    alpha_z = fine_structure * Z
    gamma = np.sqrt(1.0 - alpha_z * alpha_z)
    eta = alpha_z * W / p
    R = R0_FM * A ** (1.0 / 3.0) / LAMBDA_E_FM

    log_f = (np.log(2.0 * (1.0 + gamma))
             + 2.0 * (gamma - 1.0) * np.log(2.0 * p * R)
             + np.pi * eta
             + 2.0 * np.real(loggamma(gamma + 1j * eta))
             - 2.0 * gammaln(2.0 * gamma + 1.0))
    return np.exp(log_f)


def unique_forbidden_shape_factor(p, q, order):
    """Shape factor sum_k p^2k q^2(L-k) / ((2k+1)! (2(L-k)+1)!) of a unique forbidden transition."""
    if order == 0:
        return np.ones_like(np.asarray(p, dtype=float))
    c = 0.0
    for k in range(order + 1):
        c = c + (p ** (2 * k) * q ** (2 * (order - k))
                 / (factorial(2 * k + 1) * factorial(2 * (order - k) + 1)))
    return c


class BetaSpectrumShape:
    """
    Unnormalized beta (or positron) kinetic energy spectrum.

    Parameters
    ----------
    A : int
        Mass number of the daughter.
    Z : int
        Atomic number of the daughter.
    endpoint : float
        Endpoint (maximum kinetic) energy in keV.
    positron : bool
        True for beta+ decay.
    forbidden : int
        Degree of forbiddenness (0 = allowed).
    m2_f, m2_gt : float
        Squared Fermi and Gamow-Teller matrix elements.
    """

    def __init__(self, A, Z, endpoint, positron=False, forbidden=0, m2_f=0.0, m2_gt=1.0):
        if endpoint <= 0:
            raise ValueError(f"Beta spectrum endpoint must be positive, got {endpoint} keV.")
        self.A = A
        self.Z = Z
        self.endpoint = float(endpoint)
        self.positron = bool(positron)
        self.forbidden = int(forbidden)
        self.m2_f = m2_f
        self.m2_gt = m2_gt

    @property
    def W0(self):
        return 1.0 + self.endpoint / M_E_KEV

    def decay_prob(self, KE):
        """Spectrum density at kinetic energy KE (keV); zero outside (0, endpoint)."""
        KE = np.asarray(KE, dtype=float)
        inside = (KE > 0) & (KE < self.endpoint)
        KE_in = np.where(inside, KE, 0.5 * self.endpoint)

        W = 1.0 + KE_in / M_E_KEV
        p = np.sqrt(W * W - 1.0)
        q = self.W0 - W
        charge = -self.Z if self.positron else self.Z

        dens = (p * W * q * q
                * fermi_function(charge, W, self.A)
                * unique_forbidden_shape_factor(p, q, self.forbidden)
                * (self.m2_f + LAMBDA_GA ** 2 * self.m2_gt))
        dens = np.where(inside, dens, 0.0)
        return dens if dens.ndim else float(dens)


class BetaQuantiles:
    """
    Inverse cumulative distribution of a beta spectrum on a fixed grid.

    eval(u) maps a uniform variate to a kinetic energy by binary search in
    the tabulated cumulative distribution followed by linear interpolation.
    """

    def __init__(self, shape: BetaSpectrumShape, npx=1000):
        self.energies = np.linspace(0.0, shape.endpoint, npx + 1)
        density = shape.decay_prob(self.energies)
        cdf = cumulative_trapezoid(density, self.energies, initial=0.0)
        if not cdf[-1] > 0:
            raise InvalidDistributionError(
                f"Beta spectrum with endpoint {shape.endpoint} keV has no weight "
                f"(M2_F={shape.m2_f}, M2_GT={shape.m2_gt}).")
        self.cdf = cdf / cdf[-1]

    def eval(self, u):
        return float(np.interp(u, self.cdf, self.energies))

    def sample(self, rng=None, size=None):
        u = (rng or _default_rng).uniform(0.0, 1.0, size=size)
        if size is None:
            return self.eval(u)
        return np.interp(u, self.cdf, self.energies)

    def mean(self):
        """Mean kinetic energy of the tabulated spectrum."""
        return float(trapezoid(1.0 - self.cdf, self.energies))
