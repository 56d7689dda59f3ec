# -*- coding: utf-8 -*-
"""
gaintree.dataset_info
=====================

Per-feature metadata: whether a feature is numeric or categorical and, for
categorical features, the bijection between raw category values (kept as
strings) and the integer codes the tree is trained on.
"""

from __future__ import annotations
import logging
from enum import Enum

import numpy as np

logger = logging.getLogger(__name__)


def _isnan_scalar(v) -> bool:
    return (v is None) or (isinstance(v, float) and np.isnan(v))


class Datatype(str, Enum):
    numeric = "numeric"
    categorical = "categorical"


class DatasetInfo:
    """
    Type and category mappings for each dimension of a dataset.

    Parameters
    ----------
    dimensionality : int, default=0
        Number of features.  Every feature starts out numeric.

    Notes
    -----
    Mapping a string into a dimension with :meth:`map_string` turns that
    dimension categorical.  Codes are handed out in order of first appearance,
    so the number of categories of a dimension is :meth:`num_mappings`.
    """

    def __init__(self, dimensionality: int = 0):
        dimensionality = int(dimensionality)
        if dimensionality < 0:
            raise ValueError("dimensionality must be non-negative")
        self._types = [Datatype.numeric] * dimensionality
        self._maps: list[dict[str, int]] = [{} for _ in range(dimensionality)]
        self._reverse: list[list[str]] = [[] for _ in range(dimensionality)]

    def __repr__(self):
        cats = [i for i, t in enumerate(self._types) if t == Datatype.categorical]
        return f"DatasetInfo(dimensionality={self.dimensionality}, categorical={cats})"

    def __eq__(self, other):
        if not isinstance(other, DatasetInfo):
            return NotImplemented
        return self._types == other._types and self._reverse == other._reverse

    @property
    def dimensionality(self) -> int:
        return len(self._types)

    def type(self, dim: int) -> Datatype:
        return self._types[dim]

    def set_type(self, dim: int, datatype) -> None:
        self._types[dim] = Datatype(datatype)

    def num_mappings(self, dim: int) -> int:
        return len(self._reverse[dim])

    def map_string(self, value, dim: int) -> int:
        """Return the code of ``value`` in ``dim``, creating it if needed."""
        key = str(value)
        mapping = self._maps[dim]
        if key not in mapping:
            mapping[key] = len(self._reverse[dim])
            self._reverse[dim].append(key)
        self._types[dim] = Datatype.categorical
        return mapping[key]

    def unmap_string(self, code, dim: int) -> str:
        code = int(code)
        if not 0 <= code < len(self._reverse[dim]):
            raise ValueError(f"Unknown category code {code} for dimension {dim}")
        return self._reverse[dim][code]

    def categories(self, dim: int) -> list[str]:
        return list(self._reverse[dim])

    # ------------------------------------------------------------------
    # Encoding
    # ------------------------------------------------------------------
    @classmethod
    def fit_transform(cls, X, categorical_features=None):
        """
        Build the metadata for ``X`` and return it with the encoded matrix.

        Parameters
        ----------
        X : array-like of shape (n_points, n_features)
            Raw data.  Categorical columns may hold any hashable values.
        categorical_features : iterable of int or None
            Indices of the categorical columns.

        Returns
        -------
        (DatasetInfo, ndarray of shape (n_points, n_features))
            Categorical columns are replaced by their codes, numeric columns
            are converted to float.
        """
        X = np.asarray(X, dtype=object if categorical_features else None)
        if X.ndim != 2:
            raise ValueError("X must be a 2-D array")
        info = cls(X.shape[1])
        cats = sorted(set(int(i) for i in (categorical_features or [])))
        for j in cats:
            if not 0 <= j < info.dimensionality:
                raise ValueError(f"categorical feature index {j} out of range")
            info.set_type(j, Datatype.categorical)
            # sorted codes keep the encoding independent of row order
            for value in sorted({str(v) for v in X[:, j] if not _isnan_scalar(v)}):
                info.map_string(value, j)
            if info.num_mappings(j) < 2:
                logger.warning("Categorical feature %d has fewer than two categories; "
                               "it will never be split on", j)
        return info, info.transform(X)

    def transform(self, X) -> np.ndarray:
        """
        Encode ``X`` with the existing mappings.

        Unknown or missing categories become ``NaN``; classification routes
        them to the first child of a categorical split.
        """
        X = np.asarray(X)
        if X.ndim != 2:
            raise ValueError("X must be a 2-D array")
        if X.shape[1] != self.dimensionality:
            raise ValueError(
                f"X has {X.shape[1]} features but DatasetInfo has {self.dimensionality}"
            )
        out = np.empty(X.shape, dtype=float)
        for j in range(self.dimensionality):
            col = X[:, j]
            if self._types[j] == Datatype.categorical:
                mapping = self._maps[j]
                out[:, j] = [np.nan if _isnan_scalar(v) else mapping.get(str(v), np.nan)
                             for v in col]
            else:
                out[:, j] = np.asarray(col, dtype=float)
        return out

    # ------------------------------------------------------------------
    # Serialization surface
    # ------------------------------------------------------------------
    def to_dict(self) -> dict:
        return {
            "types": [t.value for t in self._types],
            "categories": [list(r) for r in self._reverse],
        }

    @classmethod
    def from_dict(cls, state: dict) -> "DatasetInfo":
        info = cls(len(state["types"]))
        for j, (t, cats) in enumerate(zip(state["types"], state["categories"])):
            for c in cats:
                info.map_string(c, j)
            info.set_type(j, t)
        return info
