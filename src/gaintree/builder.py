# -*- coding: utf-8 -*-
"""
gaintree.builder
================

Top-down tree induction.

:class:`TreeBuilder` owns a private copy of the training matrix together with
the aligned labels and weights.  Every node works on a contiguous range
``[begin, begin + count)`` of those buffers; once the node has chosen a split
the range is reordered in place so that each child's points are contiguous,
and the children are built on the sub-ranges, in child order.  No node ever
copies more than its own range.
"""

from __future__ import annotations
import logging

import numpy as np

from .dataset_info import DatasetInfo, Datatype
from .gain import FitnessFunction, GiniGain, resolve_criterion
from .node import TreeNode
from .split import (AllCategoricalSplit, BestBinaryNumericSplit, CATEGORICAL_SPLITS,
                    NUMERIC_SPLITS, resolve_split)

logger = logging.getLogger(__name__)


class TreeBuilder:
    """
    Build a classification tree top-down.

    Parameters
    ----------
    criterion : str or FitnessFunction subclass, default=GiniGain
        Gain metric (``"gini"`` or ``"entropy"``).
    numeric_split : str or SplitStrategy subclass, default=BestBinaryNumericSplit
        Strategy used on numeric features.
    categorical_split : str or SplitStrategy subclass, default=AllCategoricalSplit
        Strategy used on categorical features.
    minimum_leaf_size : int, default=20
        Minimum number of points in each child of a split.  A node with fewer
        than ``2 * minimum_leaf_size`` points is always a leaf.
    max_depth : int or None, default=None
        Depth at which nodes become leaves.  ``max_depth=1`` builds a decision
        stump.
    """

    def __init__(self, criterion=GiniGain, numeric_split=BestBinaryNumericSplit,
                 categorical_split=AllCategoricalSplit, minimum_leaf_size: int = 20,
                 max_depth: int | None = None):
        self.fitness_function: type[FitnessFunction] = resolve_criterion(criterion)
        self.numeric_split = resolve_split(numeric_split, NUMERIC_SPLITS)(self.fitness_function)
        self.categorical_split = resolve_split(categorical_split, CATEGORICAL_SPLITS)(
            self.fitness_function)
        self.minimum_leaf_size = int(minimum_leaf_size)
        if self.minimum_leaf_size < 0:
            raise ValueError("minimum_leaf_size must be non-negative")
        if max_depth is not None and int(max_depth) < 0:
            raise ValueError("max_depth must be non-negative or None")
        self.max_depth = None if max_depth is None else int(max_depth)

    def build(self, data, labels, num_classes: int, weights=None,
              dataset_info: DatasetInfo | None = None) -> TreeNode:
        """
        Train a tree and return its root.

        Parameters
        ----------
        data : array-like of shape (n_points, n_features)
            Numeric matrix; categorical columns hold category codes.
        labels : array-like of int, shape (n_points,)
            Class indices in ``[0, num_classes)``.
        num_classes : int
            Number of classes (at least one).
        weights : array-like of float or None
            Non-negative per-point weights.  ``None`` trains unweighted.
        dataset_info : DatasetInfo or None
            Feature types; all features are numeric when omitted.

        Raises
        ------
        ValueError
            If any of the inputs violate the constraints above.
        """
        X, y, w, info = self._validate(data, labels, num_classes, weights, dataset_info)
        self._X, self._y, self._w, self._info = X, y, w, info
        self._num_classes = int(num_classes)
        try:
            root = self._build_node(0, X.shape[0], depth=0)
        finally:
            del self._X, self._y, self._w, self._info
        logger.debug("Built tree with %d nodes (%d leaves), depth %d",
                     root.node_count(), root.leaf_count(), root.depth())
        return root

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------
    def _validate(self, data, labels, num_classes, weights, dataset_info):
        X = np.array(data, dtype=float, copy=True)
        if X.ndim != 2:
            raise ValueError("data must be a 2-D array of shape (n_points, n_features)")
        n, d = X.shape
        if n == 0:
            raise ValueError("Cannot build a tree on an empty dataset")
        if int(num_classes) < 1:
            raise ValueError("num_classes must be at least 1")

        y = np.asarray(labels)
        if y.shape != (n,):
            raise ValueError(f"labels has {y.size} entries but data has {n} points")
        if not np.issubdtype(y.dtype, np.integer):
            if not np.all(np.equal(np.mod(y, 1), 0)):
                raise ValueError("labels must be integer class indices")
        y = y.astype(np.intp, copy=True)
        if y.min() < 0 or y.max() >= int(num_classes):
            raise ValueError("labels must lie in [0, num_classes)")

        w = None
        if weights is not None:
            w = np.array(weights, dtype=float, copy=True)
            if w.shape != (n,):
                raise ValueError(f"weights has {w.size} entries but data has {n} points")
            if not np.all(np.isfinite(w)) or (w < 0).any():
                raise ValueError("weights must be finite and non-negative")

        info = dataset_info if dataset_info is not None else DatasetInfo(d)
        if info.dimensionality != d:
            raise ValueError(
                f"DatasetInfo has {info.dimensionality} dimensions but data has {d} features"
            )
        for j in range(d):
            col = X[:, j]
            if info.type(j) == Datatype.categorical:
                k = info.num_mappings(j)
                if (~np.isfinite(col)).any() or (col != np.floor(col)).any() \
                        or col.min() < 0 or col.max() >= k:
                    raise ValueError(f"feature {j} holds codes outside [0, {k})")
            elif not np.all(np.isfinite(col)):
                raise ValueError(f"feature {j} contains non-finite values")
        return X, y, w, info

    # ------------------------------------------------------------------
    # Induction
    # ------------------------------------------------------------------
    def _leaf(self, labels, weights, gain=None) -> TreeNode:
        counts = np.bincount(labels, minlength=self._num_classes).astype(float) \
            if weights is None else np.bincount(labels, weights=weights,
                                                minlength=self._num_classes)
        tot = counts.sum()
        if tot <= 0:
            probs = np.full(self._num_classes, 1.0 / self._num_classes)
        else:
            probs = counts / tot
        return TreeNode(probs, n_samples=labels.shape[0], gain=gain)

    def _build_node(self, begin: int, count: int, depth: int) -> TreeNode:
        """
        Build the subtree over ``[begin, begin + count)``.

        Pending child ranges live on an explicit stack rather than the call
        stack, so tree depth is not bounded by the interpreter's recursion
        limit.  Children are expanded in child order.
        """
        root, sizes = self._split_range(begin, count, depth)
        stack = []
        if sizes is not None:
            stack.append((root, begin, sizes, depth + 1))
        while stack:
            parent, child_begin, sizes, child_depth = stack.pop()
            pending = []
            for size in sizes:
                size = int(size)
                child, child_sizes = self._split_range(child_begin, size, child_depth)
                parent.children.append(child)
                if child_sizes is not None:
                    pending.append((child, child_begin, child_sizes, child_depth + 1))
                child_begin += size
            stack.extend(reversed(pending))
        return root

    def _split_range(self, begin: int, count: int, depth: int):
        """
        Turn ``[begin, begin + count)`` into a node.

        Returns ``(node, sizes)``.  For an internal node the range has been
        partitioned and ``sizes`` holds the number of points of each child, in
        child order; its children are still to be built.  For a leaf ``sizes``
        is ``None``.
        """
        end = begin + count
        labels = self._y[begin:end]
        weights = None if self._w is None else self._w[begin:end]

        minimum = max(self.minimum_leaf_size, 1)
        if count < 2 * minimum or (self.max_depth is not None and depth >= self.max_depth):
            return self._leaf(labels, weights), None

        best_gain = self.fitness_function.evaluate(labels, self._num_classes, weights)
        node_gain = best_gain
        best_dim, best_split, best_info = None, None, None
        # a pure node cannot be improved on
        if best_gain < 0.0:
            for j in range(self._info.dimensionality):
                values = self._X[begin:end, j]
                if self._info.type(j) == Datatype.categorical:
                    split = self.categorical_split
                    gain, info = split.split_if_better(
                        best_gain, values, self._info.num_mappings(j), labels,
                        self._num_classes, weights, self.minimum_leaf_size)
                else:
                    split = self.numeric_split
                    gain, info = split.split_if_better(
                        best_gain, values, labels, self._num_classes, weights,
                        self.minimum_leaf_size)
                # strict comparison: the lowest feature index wins ties
                if info.size and gain > best_gain:
                    best_dim, best_split, best_info, best_gain = j, split, info, gain
                if best_gain >= 0.0:
                    break

        if best_dim is None:
            return self._leaf(labels, weights, gain=node_gain), None

        logger.debug("Node [%d, %d) depth %d: split on feature %d (%s, %s), gain %.6f -> %.6f",
                     begin, end, depth, best_dim, best_split.tag, best_info.tolist(),
                     node_gain, best_gain)

        # Partition the range so each child's points are contiguous.
        child_idx = best_split.child_indices(self._X[begin:end, best_dim], best_info)
        num_children = best_split.num_children(best_info)
        order = np.argsort(child_idx, kind="mergesort")
        self._X[begin:end] = self._X[begin:end][order]
        self._y[begin:end] = self._y[begin:end][order]
        if self._w is not None:
            self._w[begin:end] = self._w[begin:end][order]
        sizes = np.bincount(child_idx, minlength=num_children)

        node = self._leaf(self._y[begin:end],
                          None if self._w is None else self._w[begin:end], gain=node_gain)
        if sizes.max() == count:
            # every point went to one child; splitting again would loop forever
            logger.debug("Node [%d, %d): split on feature %d does not separate the points",
                         begin, end, best_dim)
            return node, None
        node.feature_index = best_dim
        node.split_type = best_split.tag
        node.split_info = best_info
        return node, sizes
