# -*- coding: utf-8 -*-
"""
gaintree.split
==============

Split strategies.  A strategy looks at a single feature over the points of a
node and decides whether splitting on that feature beats a supplied gain.

``split_if_better`` always returns a ``(gain, split_info)`` pair:

* no improvement: the supplied ``best_gain`` unchanged and an empty
  ``split_info`` array;
* improvement: the new gain and a one-element ``split_info`` array holding the
  auxiliary value needed to route points (the threshold for
  :class:`BestBinaryNumericSplit`, the number of children for
  :class:`AllCategoricalSplit`).

The routing helpers (``num_children``, ``child_index``, ``child_indices``) only
read ``split_info``, so a trained node needs nothing but its split tag and that
array to send a query point to a child.
"""

from __future__ import annotations
import numpy as np

from .gain import FitnessFunction, GiniGain

# A candidate must beat the current gain by more than this to count.
MIN_IMPROVEMENT = 1e-7

_NO_SPLIT = np.empty(0, dtype=float)


def _as_weights(weights, n: int) -> np.ndarray:
    if weights is None:
        return np.ones(n, dtype=float)
    weights = np.asarray(weights, dtype=float)
    if weights.shape != (n,):
        raise ValueError("weights must have the same length as values")
    return weights


class SplitStrategy:
    """Common interface of the split strategies."""

    tag: str = ""

    def __init__(self, fitness_function: type[FitnessFunction] = GiniGain):
        self.fitness_function = fitness_function

    def __repr__(self):
        return f"{type(self).__name__}({self.fitness_function.__name__})"

    @staticmethod
    def num_children(split_info) -> int:
        raise NotImplementedError

    @staticmethod
    def child_index(value, split_info) -> int:
        raise NotImplementedError

    @staticmethod
    def child_indices(values, split_info) -> np.ndarray:
        raise NotImplementedError


class BestBinaryNumericSplit(SplitStrategy):
    """Best two-way split ``value <= threshold`` on a numeric feature."""

    tag = "best_binary_numeric"

    def split_if_better(self, best_gain: float, values, labels, num_classes: int,
                        weights=None, minimum_leaf_size: int = 1):
        """
        Scan every threshold between consecutive distinct values.

        Parameters
        ----------
        best_gain : float
            Gain to beat (usually the gain of the unsplit node).
        values : array-like of float
            Feature value of every point in the node.
        labels : array-like of int
            Class index of every point, aligned with ``values``.
        num_classes : int
            Number of classes.
        weights : array-like of float or None
            Per-point weights; ``None`` selects the unweighted computation.
        minimum_leaf_size : int
            Minimum number of points on each side of the split.

        Returns
        -------
        (float, ndarray)
            The gain reached and ``[threshold]``, or ``best_gain`` and an empty
            array when no threshold improves on it.
        """
        values = np.asarray(values, dtype=float)
        labels = np.asarray(labels, dtype=np.intp)
        n = values.shape[0]
        minimum = max(int(minimum_leaf_size), 1)
        if n < 2 * minimum:
            return best_gain, _NO_SPLIT.copy()
        w = _as_weights(weights, n)

        order = np.argsort(values, kind="mergesort")
        v = values[order]
        if v[0] == v[-1]:
            return best_gain, _NO_SPLIT.copy()

        onehot = np.zeros((n, num_classes), dtype=float)
        onehot[np.arange(n), labels[order]] = w[order]
        cum = onehot.cumsum(axis=0)
        total = cum[-1]
        total_weight = total.sum()
        if total_weight <= 0:
            return best_gain, _NO_SPLIT.copy()

        # Candidate i puts points [0, i] on the left and (i, n) on the right.
        left = cum[:-1]
        right = total - left
        left_size = np.arange(1, n)
        valid = ((v[:-1] != v[1:]) & (left_size >= minimum)
                 & (n - left_size >= minimum))
        if not valid.any():
            return best_gain, _NO_SPLIT.copy()

        left_ratio = left.sum(axis=1) / total_weight
        right_ratio = 1.0 - left_ratio
        fitness = self.fitness_function
        gains = left_ratio * fitness.impurity(left) + right_ratio * fitness.impurity(right)
        gains = np.where(valid, gains, -np.inf)

        i = int(np.argmax(gains))
        gain = float(gains[i])
        if not gain > best_gain + MIN_IMPROVEMENT:
            return best_gain, _NO_SPLIT.copy()
        return gain, np.array([self._threshold(v[i], v[i + 1])], dtype=float)

    @staticmethod
    def _threshold(lo: float, hi: float) -> float:
        # lo <= t < hi; points <= t go to child 0
        with np.errstate(over="ignore"):
            t = lo + 0.5 * (hi - lo)
        if not np.isfinite(t) or t >= hi:
            t = lo
        return float(t)

    @staticmethod
    def num_children(split_info) -> int:
        return 2

    @staticmethod
    def child_index(value, split_info) -> int:
        return 0 if float(value) <= split_info[0] else 1

    @staticmethod
    def child_indices(values, split_info) -> np.ndarray:
        return np.where(np.asarray(values, dtype=float) <= split_info[0], 0, 1)


class AllCategoricalSplit(SplitStrategy):
    """One child per category of a categorical feature."""

    tag = "all_categorical"

    def split_if_better(self, best_gain: float, values, num_categories: int,
                        labels, num_classes: int, weights=None,
                        minimum_leaf_size: int = 1):
        """
        Evaluate the split that sends each point to the child of its category.

        ``values`` holds integer category codes in ``[0, num_categories)``.  The
        split is rejected when any category would hold fewer than
        ``minimum_leaf_size`` points.  On success ``split_info`` is
        ``[num_categories]``.
        """
        labels = np.asarray(labels, dtype=np.intp)
        codes = np.asarray(values, dtype=float)
        n = codes.shape[0]
        num_categories = int(num_categories)
        minimum = max(int(minimum_leaf_size), 1)
        if num_categories < 2 or n < num_categories * minimum:
            return best_gain, _NO_SPLIT.copy()
        codes = codes.astype(np.intp)
        if n and (codes.min() < 0 or codes.max() >= num_categories):
            raise ValueError("category codes must lie in [0, num_categories)")
        w = _as_weights(weights, n)

        sizes = np.bincount(codes, minlength=num_categories)
        if (sizes < minimum).any():
            return best_gain, _NO_SPLIT.copy()

        counts = np.zeros((num_categories, num_classes), dtype=float)
        np.add.at(counts, (codes, labels), w)
        child_weight = counts.sum(axis=1)
        total_weight = child_weight.sum()
        if total_weight <= 0:
            return best_gain, _NO_SPLIT.copy()

        gain = float(np.sum(child_weight / total_weight
                            * self.fitness_function.impurity(counts)))
        if not gain > best_gain + MIN_IMPROVEMENT:
            return best_gain, _NO_SPLIT.copy()
        return gain, np.array([float(num_categories)])

    @staticmethod
    def num_children(split_info) -> int:
        return int(split_info[0])

    @staticmethod
    def child_index(value, split_info) -> int:
        # unseen or missing categories go to the first child
        value = float(value)
        if not np.isfinite(value) or value != int(value) or not 0 <= value < split_info[0]:
            return 0
        return int(value)

    @staticmethod
    def child_indices(values, split_info) -> np.ndarray:
        values = np.asarray(values, dtype=float)
        ok = np.isfinite(values) & (values >= 0) & (values < split_info[0])
        ok &= values == np.floor(np.where(ok, values, 0.0))
        return np.where(ok, values, 0.0).astype(np.intp)


SPLIT_TYPES = {
    BestBinaryNumericSplit.tag: BestBinaryNumericSplit,
    AllCategoricalSplit.tag: AllCategoricalSplit,
}

NUMERIC_SPLITS = {"best_binary": BestBinaryNumericSplit}
CATEGORICAL_SPLITS = {"all_categorical": AllCategoricalSplit}


def resolve_split(split, registry: dict) -> type[SplitStrategy]:
    """Map a split name (or a :class:`SplitStrategy` subclass) to a class."""
    if isinstance(split, type) and issubclass(split, SplitStrategy):
        return split
    try:
        return registry[str(split)]
    except KeyError:
        raise ValueError(
            f"Unknown split strategy {split!r}; expected one of {sorted(registry)}"
        ) from None
