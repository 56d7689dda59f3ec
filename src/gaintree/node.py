# -*- coding: utf-8 -*-
"""
gaintree.node
=============

The ``TreeNode`` data structure.  A node is either a leaf, carrying the class
probabilities of the training points that reached it, or an internal node,
carrying a split descriptor (feature index, split tag and ``split_info``) and
two or more children it owns exclusively.
"""

from __future__ import annotations
import numpy as np

from .split import SPLIT_TYPES


class TreeNode:
    """Single node of a decision tree.

    Parameters
    ----------
    class_probabilities : array-like of float
        Weighted class proportions of the training points in this node.  Used
        for prediction when the node is a leaf.
    feature_index : int or None, default=None
        Feature the node splits on; ``None`` for leaves.
    split_type : str or None, default=None
        Tag of the split strategy (a key of :data:`gaintree.split.SPLIT_TYPES`).
    split_info : array-like of float or None, default=None
        Auxiliary routing data produced by the split strategy: ``[threshold]``
        for numeric splits, ``[num_children]`` for categorical splits.
    children : list[TreeNode] or None, default=None
        Child nodes, in child-index order.

    Attributes
    ----------
    n_samples : int
        Number of training points that reached the node.
    gain : float or None
        Gain of the node's label distribution before splitting.
    """

    def __init__(self, class_probabilities, *, feature_index: int | None = None,
                 split_type: str | None = None, split_info=None,
                 children: list["TreeNode"] | None = None,
                 n_samples: int = 0, gain: float | None = None):
        self.class_probabilities = np.asarray(class_probabilities, dtype=float)
        self.feature_index = feature_index
        self.split_type = split_type
        self.split_info = (np.empty(0, dtype=float) if split_info is None
                           else np.asarray(split_info, dtype=float))
        self.children: list[TreeNode] = list(children or [])
        self.n_samples = int(n_samples)
        self.gain = gain

    def __repr__(self):
        if self.is_leaf:
            return f"TreeNode(leaf, probabilities={self.class_probabilities.round(4).tolist()})"
        return (f"TreeNode(feature={self.feature_index}, split={self.split_type}, "
                f"info={self.split_info.tolist()}, children={self.num_children})")

    @property
    def is_leaf(self) -> bool:
        return not self.children

    @property
    def num_children(self) -> int:
        return len(self.children)

    def child(self, i: int) -> "TreeNode":
        return self.children[i]

    @property
    def predicted_class(self) -> int:
        return int(np.argmax(self.class_probabilities))

    # ------------------------------------------------------------------
    # Routing / classification
    # ------------------------------------------------------------------
    def calculate_direction(self, point) -> int:
        """Index of the child that ``point`` is routed to."""
        strategy = SPLIT_TYPES[self.split_type]
        return strategy.child_index(point[self.feature_index], self.split_info)

    def leaf_for(self, point) -> "TreeNode":
        node = self
        while not node.is_leaf:
            node = node.children[node.calculate_direction(point)]
        return node

    def classify(self, point) -> tuple[int, np.ndarray]:
        """Return ``(predicted class index, class probabilities)`` for ``point``."""
        leaf = self.leaf_for(point)
        return leaf.predicted_class, leaf.class_probabilities.copy()

    # ------------------------------------------------------------------
    # Shape
    # ------------------------------------------------------------------
    def iter_nodes(self):
        """Yield every node of the subtree, depth-first, parents first."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def node_count(self) -> int:
        return sum(1 for _ in self.iter_nodes())

    def leaf_count(self) -> int:
        return sum(1 for n in self.iter_nodes() if n.is_leaf)

    def depth(self) -> int:
        deepest = 0
        stack = [(self, 0)]
        while stack:
            node, level = stack.pop()
            deepest = max(deepest, level)
            stack.extend((ch, level + 1) for ch in node.children)
        return deepest

    # ------------------------------------------------------------------
    # Serialization surface
    # ------------------------------------------------------------------
    def to_dict(self) -> dict:
        """JSON-compatible description of the subtree rooted here."""
        state = {
            "class_probabilities": self.class_probabilities.tolist(),
            "n_samples": self.n_samples,
        }
        if not self.is_leaf:
            state.update(
                feature_index=int(self.feature_index),
                split_type=self.split_type,
                split_info=self.split_info.tolist(),
                children=[ch.to_dict() for ch in self.children],
            )
        return state

    @classmethod
    def from_dict(cls, state: dict) -> "TreeNode":
        children = [cls.from_dict(ch) for ch in state.get("children", [])]
        split_type = state.get("split_type")
        if children:
            if split_type not in SPLIT_TYPES:
                raise ValueError(f"Unknown split type {split_type!r}")
            expected = SPLIT_TYPES[split_type].num_children(state["split_info"])
            if expected != len(children):
                raise ValueError(
                    f"Split expects {expected} children but {len(children)} were given"
                )
        return cls(
            state["class_probabilities"],
            feature_index=state.get("feature_index"),
            split_type=split_type,
            split_info=state.get("split_info"),
            children=children,
            n_samples=state.get("n_samples", 0),
        )
