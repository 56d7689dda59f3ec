# -*- coding: utf-8 -*-
"""
gaintree.gain
=============

Impurity ("gain") metrics used to score class distributions.

Both metrics return a *negated* impurity: a pure distribution scores ``0.0``
and every mixed distribution scores below zero, so a split improves a node when
its gain is larger than the node's own gain.

Each metric works on raw label vectors through :meth:`FitnessFunction.evaluate`
or directly on class-count vectors through :meth:`FitnessFunction.impurity`.
The latter also accepts a 2-D stack of count vectors (one per row), which the
split strategies use to score every candidate split in one pass.
"""

from __future__ import annotations
import numpy as np


def class_counts(labels: np.ndarray, num_classes: int,
                 weights: np.ndarray | None = None) -> np.ndarray:
    """Return the (weighted) number of points of each class as a float vector."""
    labels = np.asarray(labels, dtype=np.intp)
    if weights is None:
        return np.bincount(labels, minlength=num_classes).astype(float)
    return np.bincount(labels, weights=np.asarray(weights, dtype=float),
                       minlength=num_classes)


def _proportions(counts: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    tot = counts.sum(axis=-1, keepdims=True)
    p = np.divide(counts, tot, out=np.zeros_like(counts), where=tot > 0)
    return p, tot[..., 0]


class FitnessFunction:
    """Base class of the gain metrics.

    Subclasses implement :meth:`impurity`; everything else is shared.
    """

    name: str = ""

    @classmethod
    def impurity(cls, counts: np.ndarray) -> np.ndarray | float:
        raise NotImplementedError

    @classmethod
    def evaluate(cls, labels, num_classes: int, weights=None) -> float:
        """
        Gain of the distribution of ``labels``.

        Parameters
        ----------
        labels : array-like of int
            Class indices in ``[0, num_classes)``.
        num_classes : int
            Number of classes.
        weights : array-like of float or None
            Per-point weights aligned with ``labels``.  ``None`` selects the
            unweighted computation; all-ones weights give the same result.

        Returns
        -------
        float
            ``0.0`` for an empty range or a range carrying no weight.
        """
        labels = np.asarray(labels)
        if labels.size == 0:
            return 0.0
        if weights is not None:
            weights = np.asarray(weights, dtype=float)
            if weights.shape != labels.shape:
                raise ValueError("weights must have the same length as labels")
        return float(cls.impurity(class_counts(labels, num_classes, weights)))


class GiniGain(FitnessFunction):
    """Negated Gini impurity, ``-(1 - sum(p_i ** 2))``."""

    name = "gini"

    @classmethod
    def impurity(cls, counts):
        counts = np.asarray(counts, dtype=float)
        p, tot = _proportions(counts)
        gini = -(1.0 - np.sum(p * p, axis=-1))
        return np.where(tot > 0, gini, 0.0)


class InformationGain(FitnessFunction):
    """Negated entropy, ``sum(p_i * log2(p_i))`` with ``0 * log2(0) = 0``."""

    name = "entropy"

    @classmethod
    def impurity(cls, counts):
        counts = np.asarray(counts, dtype=float)
        p, _ = _proportions(counts)
        logp = np.log2(p, out=np.zeros_like(p), where=p > 0)
        return np.sum(p * logp, axis=-1)


CRITERIA = {
    "gini": GiniGain,
    "entropy": InformationGain,
    "information": InformationGain,
}


def resolve_criterion(criterion) -> type[FitnessFunction]:
    """Map a criterion name (or a :class:`FitnessFunction` subclass) to a class."""
    if isinstance(criterion, type) and issubclass(criterion, FitnessFunction):
        return criterion
    try:
        return CRITERIA[str(criterion).lower()]
    except KeyError:
        raise ValueError(
            f"Unknown criterion {criterion!r}; expected one of {sorted(CRITERIA)}"
        ) from None
