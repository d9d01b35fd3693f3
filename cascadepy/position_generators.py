import numpy as np

_default_rng = np.random.default_rng()


class CubePosGen:
    """Uniform vertex positions in the unit cube [0, 1)^3."""

    ndf = 3

    def __init__(self, rng=None):
        self.rng = rng or _default_rng

    def gen_pos(self, rnd=None):
        if rnd is None:
            return self.rng.uniform(0.0, 1.0, size=3)
        return np.array(rnd[:3], dtype=float)


def square2circle(x, y, r=1.0):
    """Map two uniform variates onto a uniform point of a disk with radius r."""
    th = 2.0 * np.pi * x
    r = r * np.sqrt(y)
    return r * np.cos(th), r * np.sin(th)


class CylPosGen(CubePosGen):
    """
    Uniform vertex positions in a cylinder of radius r and height dz
    centred on the origin, axis along z.
    """

    def __init__(self, r, dz, rng=None):
        super().__init__(rng)
        self.r = r
        self.dz = dz

    def gen_pos(self, rnd=None):
        v = super().gen_pos(rnd)
        v[0], v[1] = square2circle(v[0], v[1], self.r)
        v[2] = (v[2] - 0.5) * self.dz
        return v
