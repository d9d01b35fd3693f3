import numpy as np

from cascadepy.exceptions import InvalidDistributionError

_default_rng = np.random.default_rng()

# largest double below 1, keeps residuals inside [0, 1)
_ONE_MINUS = np.nextafter(1.0, 0.0)


class ProbabilitySelector:
    """
    Weighted random choice between N categories.

    The selector keeps the cumulative boundaries [0, c1, c2, ..., cN] of the
    (unnormalized) category masses. Selecting with a caller supplied uniform
    variate returns, next to the category index, the position of the variate
    inside the chosen sub-interval rescaled to [0, 1). That residual is again
    uniformly distributed and can drive the next nested selection, so one
    random number is enough for a whole cascade of choices.
    """

    def __init__(self):
        self.cumprob = [0.0]
        self._cum_array = None

    def __len__(self):
        return len(self.cumprob) - 1

    @property
    def n(self):
        """Number of categories."""
        return len(self.cumprob) - 1

    def add_prob(self, p):
        """Append a new category with (unnormalized) mass p."""
        if p < 0:
            raise ValueError(f"Negative probability mass {p} can not be added.")
        self.cumprob.append(self.cumprob[-1] + float(p))
        self._cum_array = None

    def get_cum_prob(self):
        """Total mass of all categories."""
        return self.cumprob[-1]

    def get_prob(self, i):
        """Normalized probability of category i, 0 for a selector without mass."""
        if not 0 <= i < self.n:
            raise IndexError(f"Category {i} outside of selector with {self.n} categories.")
        if not self.cumprob[-1] > 0:
            return 0.0
        return (self.cumprob[i + 1] - self.cumprob[i]) / self.cumprob[-1]

    def get_probs(self):
        """Normalized probabilities of all categories as numpy array."""
        if not self.cumprob[-1] > 0:
            return np.zeros(self.n)
        return np.diff(self.cumprob) / self.cumprob[-1]

    def scale(self, s):
        """Multiply the mass of every category by s."""
        self.cumprob = [c * s for c in self.cumprob]
        self._cum_array = None

    def select(self, x=None, rng=None):
        """
        Sample a category.

        Parameters
        ----------
        x : float, optional
            Uniform variate in [0, 1]. If omitted one is drawn from rng.
        rng : numpy.random.Generator, optional
            Random generator used when x is not supplied.

        Returns
        -------
        tuple
            (selected index, residual uniform variate in [0, 1))
        """
        total = self.cumprob[-1]
        if self.n == 0 or not total > 0:
            raise InvalidDistributionError(
                f"Can not select from a distribution with {self.n} categories and total mass {total}.")

        if x is None:
            x = (rng or _default_rng).uniform(0.0, total)
        else:
            assert 0.0 <= x <= 1.0, f"uniform variate {x} outside [0, 1]"
            x = x * total

        if self._cum_array is None:
            self._cum_array = np.asarray(self.cumprob)
        cum = self._cum_array

        selected = int(np.searchsorted(cum, x, side="right")) - 1
        if selected >= self.n:
            # x sits on the upper edge; take the last category with non-zero mass
            selected = int(np.searchsorted(cum, total, side="left")) - 1
        assert 0 <= selected < self.n

        residual = (x - cum[selected]) / (cum[selected + 1] - cum[selected])
        residual = min(max(residual, 0.0), _ONE_MINUS)
        return selected, residual

    def __repr__(self):
        return f"ProbabilitySelector(n={self.n}, total={self.get_cum_prob():.6g})"
