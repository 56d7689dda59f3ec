# -*- coding: utf-8 -*-
"""
gaintree.tree
=============

This module implements a scikit-learn–style decision tree classifier on top of
:class:`gaintree.builder.TreeBuilder`.  It supports both numeric and
categorical predictors, optional sample weights, the Gini and information gain
criteria, and a minimum leaf size.  Categorical predictors are split into one
child per category rather than into two groups.

In addition to the core training and prediction routines, the classifier
provides utilities for rule export and pretty printing of the tree.
"""

# -----------------------------------------------------------------------------

from __future__ import annotations
import logging

import numpy as np
from sklearn.base import BaseEstimator, ClassifierMixin
from sklearn.exceptions import NotFittedError

from .builder import TreeBuilder
from .dataset_info import DatasetInfo, Datatype
from .node import TreeNode
from .split import BestBinaryNumericSplit

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Classifier
# -----------------------------------------------------------------------------
class DecisionTreeClassifier(ClassifierMixin, BaseEstimator):
    """
    Decision tree classifier with pluggable gain metric and split strategies.

    Each node evaluates every feature with the split strategy matching its
    type (binary threshold split for numeric features, one child per category
    for categorical features) and keeps the split with the best gain.  Leaves
    store the weighted class proportions of the training points reaching them.

    Parameters
    ----------
    criterion : {"gini", "entropy"} or FitnessFunction subclass, default="gini"
        Gain metric used to score splits.
    numeric_split : str or SplitStrategy subclass, default="best_binary"
        Split strategy for numeric features.
    categorical_split : str or SplitStrategy subclass, default="all_categorical"
        Split strategy for categorical features.
    min_samples_leaf : int, default=20
        Minimum number of training points in each child after a split.
    max_depth : int or None, default=None
        Maximum depth of the tree.  If ``None`` the depth is unbounded;
        ``max_depth=1`` builds a decision stump.
    feature_names : list[str] or None, default=None
        Optional list of feature names used for rule exports.  Required when
        ``categorical_features`` are given by name.
    categorical_features : list[int|str] or None, default=None
        Indices or names of categorical input features.  These columns may
        hold arbitrary values (strings, ints, ...); all other features are
        treated as numeric.
    verbose : int, default=0
        When positive, the training accuracy is logged after ``fit``.

    Attributes
    ----------
    tree_ : TreeNode
        Root of the fitted tree.
    classes_ : ndarray of shape (n_classes,)
        Class labels seen during ``fit``.
    dataset_info_ : DatasetInfo
        Feature types and category mappings used for training.
    n_features_in_ : int
        Number of features seen during ``fit``.

    Notes
    -----
    Training on identical inputs always yields an identical tree: ties
    between features are resolved in favour of the lowest feature index and
    ties between thresholds in favour of the lowest threshold.
    """

    def __init__(
        self,
        *,
        criterion="gini",
        numeric_split="best_binary",
        categorical_split="all_categorical",
        min_samples_leaf: int = 20,
        max_depth: int | None = None,
        feature_names: list[str] | None = None,
        categorical_features: list[int | str] | None = None,
        verbose: int = 0,
    ):
        self.criterion = criterion
        self.numeric_split = numeric_split
        self.categorical_split = categorical_split
        self.min_samples_leaf = min_samples_leaf
        self.max_depth = max_depth
        self.feature_names = feature_names
        self.categorical_features = categorical_features
        self.verbose = verbose

    # ------------------------------------------------------------------
    # Training
    # ------------------------------------------------------------------
    def fit(self, X, y, sample_weight=None, dataset_info: DatasetInfo | None = None):
        """
        Build the tree from the training set ``(X, y)``.

        Parameters
        ----------
        X : array-like of shape (n_samples, n_features)
            Training inputs.
        y : array-like of shape (n_samples,)
            Class labels.
        sample_weight : array-like of shape (n_samples,) or None
            Non-negative weights.  ``None`` is equivalent to all-ones weights.
        dataset_info : DatasetInfo or None
            Pre-built feature metadata.  When given, ``X`` must already be
            numerically encoded (categorical columns hold category codes) and
            ``categorical_features`` is ignored.

        Returns
        -------
        self
        """
        y = np.asarray(y)
        if y.ndim != 1:
            raise ValueError("y must be a 1-D array")
        if y.shape[0] == 0:
            raise ValueError("Cannot fit on an empty dataset")
        if sample_weight is not None:
            sample_weight = np.asarray(sample_weight, dtype=float)
            if len(sample_weight) != len(y):
                raise ValueError("sample_weight must have the same length as y")

        if dataset_info is not None:
            X_enc = np.asarray(X, dtype=float)
            if X_enc.ndim != 2:
                raise ValueError("X must be a 2-D array")
            self.dataset_info_ = dataset_info
            self.encode_input_ = False
        else:
            X_arr = np.asarray(X, dtype=object if self.categorical_features else None)
            if X_arr.ndim != 2:
                raise ValueError("X must be a 2-D array")
            cats = self._categorical_indices(X_arr.shape[1])
            self.dataset_info_, X_enc = DatasetInfo.fit_transform(X_arr, cats)
            self.encode_input_ = True
        if X_enc.shape[0] != y.shape[0]:
            raise ValueError(f"X has {X_enc.shape[0]} rows but y has {y.shape[0]} labels")
        self.n_features_in_ = X_enc.shape[1]

        self.classes_, y_idx = np.unique(y, return_inverse=True)
        builder = TreeBuilder(
            criterion=self.criterion,
            numeric_split=self.numeric_split,
            categorical_split=self.categorical_split,
            minimum_leaf_size=self.min_samples_leaf,
            max_depth=self.max_depth,
        )
        self.tree_ = builder.build(X_enc, y_idx, len(self.classes_), sample_weight,
                                   self.dataset_info_)
        logger.info("Fitted tree: %d nodes, %d leaves, depth %d",
                    self.tree_.node_count(), self.tree_.leaf_count(), self.tree_.depth())

        if self.verbose > 0:
            acc = float(np.mean(self._predict_indices(X_enc) == y_idx))
            logger.info("%.2f%% correct on training set (%d / %d)",
                        100.0 * acc, int(round(acc * len(y))), len(y))
        return self

    def _categorical_indices(self, n_features: int) -> list[int]:
        cf = self.categorical_features
        if not cf:
            return []
        if isinstance(cf[0], str):
            if self.feature_names is None:
                raise ValueError("feature_names must be provided when using categorical_features by name")
            if len(self.feature_names) != n_features:
                raise ValueError("feature_names length must match X.shape[1]")
            name_to_idx = {n: i for i, n in enumerate(self.feature_names)}
            try:
                return [name_to_idx[c] for c in cf]
            except KeyError as e:
                raise ValueError(f"Unknown categorical feature name {e.args[0]!r}") from None
        return [int(i) for i in cf]

    # ------------------------------------------------------------------
    # Prediction
    # ------------------------------------------------------------------
    def _check_fitted(self):
        if getattr(self, "tree_", None) is None:
            raise NotFittedError("Estimator not fitted. Call fit(...) first.")

    def _encode(self, X) -> np.ndarray:
        if self.encode_input_:
            X = np.asarray(X, dtype=object if self.categorical_features else None)
            if X.ndim == 1:
                X = X.reshape(1, -1)
            X = self.dataset_info_.transform(X)
        else:
            X = np.atleast_2d(np.asarray(X, dtype=float))
        if X.shape[1] != self.n_features_in_:
            raise ValueError(
                f"X has {X.shape[1]} features, but the tree was fitted with {self.n_features_in_}"
            )
        return X

    def _predict_indices(self, X_enc) -> np.ndarray:
        return np.array([self.tree_.leaf_for(x).predicted_class for x in X_enc], dtype=np.intp)

    def predict(self, X):
        """
        Predict class labels for the provided samples.

        Parameters
        ----------
        X : array-like of shape (n_samples, n_features)
            Input samples.

        Returns
        -------
        ndarray of shape (n_samples,)
            Predicted class labels.
        """
        self._check_fitted()
        return self.classes_[self._predict_indices(self._encode(X))]

    def predict_proba(self, X):
        """
        Predict class probabilities for the provided samples.

        Returns
        -------
        ndarray of shape (n_samples, n_classes)
            Class probabilities of the leaf reached by each sample, with
            columns ordered like :attr:`classes_`.
        """
        self._check_fitted()
        X_enc = self._encode(X)
        return np.array([self.tree_.leaf_for(x).class_probabilities for x in X_enc],
                        dtype=float).reshape(len(X_enc), len(self.classes_))

    def classify(self, x):
        """Return ``(predicted label, class probabilities)`` for a single sample."""
        self._check_fitted()
        idx, probs = self.tree_.classify(self._encode(x)[0])
        return self.classes_[idx], probs

    # ------------------------------------------------------------------
    # Rule export / printing helpers
    # ------------------------------------------------------------------
    def export_rules(self, *, feature_names=None, class_names=None):
        """
        Export all decision rules in the tree as a list of human‑readable strings.

        Each rule has the form ``<antecedent> => <predicted class>`` where the
        antecedent is a conjunction of conditions from root to leaf.

        Parameters
        ----------
        feature_names : list[str], optional
            Names for the input features.  Defaults to those provided at
            construction time.
        class_names : list[str], optional
            Names for the classes, ordered according to ``self.classes_``.

        Returns
        -------
        list[str]
            List of rule strings.
        """
        self._check_fitted()
        rules: list[str] = []
        fn = feature_names if feature_names is not None else self.feature_names
        self._collect_rules(self.tree_, [], rules, fn, class_names)
        return rules

    def print_tree(self, feature_names=None, class_names=None):
        """Pretty‑print the decision tree to ``stdout``."""
        self._check_fitted()
        fn = feature_names if feature_names is not None else self.feature_names
        self._print_node(self.tree_, "", fn, class_names)

    def _feature_name(self, j: int, fn) -> str:
        return fn[j] if (fn is not None and 0 <= j < len(fn)) else f"X[{j}]"

    def _class_name(self, node: TreeNode, cn) -> str:
        return str(cn[node.predicted_class] if cn is not None
                   else self.classes_[node.predicted_class])

    def _conditions(self, node: TreeNode, fn) -> list[str]:
        name = self._feature_name(node.feature_index, fn)
        if node.split_type == BestBinaryNumericSplit.tag:
            thr = node.split_info[0]
            return [f"{name} <= {thr:.4f}", f"{name} > {thr:.4f}"]
        info = self.dataset_info_
        conds = []
        for c in range(node.num_children):
            if info.type(node.feature_index) == Datatype.categorical \
                    and c < info.num_mappings(node.feature_index):
                conds.append(f"{name} == {info.unmap_string(c, node.feature_index)}")
            else:
                conds.append(f"{name} == {c}")
        return conds

    def _collect_rules(self, node: TreeNode, parts, rules, fn, cn):
        if node.is_leaf:
            body = " AND ".join(parts) if parts else "<root>"
            rules.append(f"{body} => {self._class_name(node, cn)}")
            return
        for cond, child in zip(self._conditions(node, fn), node.children):
            self._collect_rules(child, parts + [cond], rules, fn, cn)

    def _print_node(self, node: TreeNode, indent="", fn=None, cn=None):
        if node.is_leaf:
            probs = np.round(node.class_probabilities, 4).tolist()
            print(f"{indent}Predict {self._class_name(node, cn)} | p={probs}")
            return
        for cond, child in zip(self._conditions(node, fn), node.children):
            print(f"{indent}if {cond}:")
            self._print_node(child, indent + "  ", fn, cn)
