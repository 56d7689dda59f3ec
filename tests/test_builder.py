import numpy as np
import pytest
from sklearn.datasets import make_blobs
from gaintree import (BestBinaryNumericSplit, DatasetInfo, Datatype, InformationGain,
                      TreeBuilder, TreeNode)


def _random_dataset(seed=0, n=1000, d=10, k=3):
    rng = np.random.default_rng(seed)
    X = rng.random((n, d))
    y = np.arange(n) % k
    return X, y


def _mock_categorical_data(seed=0, n=4000):
    """Points on rings (one ring per class) plus two noisy categorical features."""
    rng = np.random.default_rng(seed)
    y = rng.integers(0, 5, n)
    magnitude = 2.0 + 4.0 * y + 0.5 * rng.random(n)
    angle = rng.random(n)
    c1_probs = rng.dirichlet(np.ones(4) * 0.5, size=5)
    c2_probs = rng.dirichlet(np.ones(2) * 0.5, size=5)
    c1 = np.array([rng.choice(4, p=c1_probs[c]) for c in y])
    c2 = np.array([rng.choice(2, p=c2_probs[c]) for c in y])
    X = np.column_stack([magnitude * np.cos(angle), magnitude * np.sin(angle), c1, c2])

    info = DatasetInfo(4)
    for code in "0123":
        info.map_string(code, 2)
    for code in "01":
        info.map_string(code, 3)
    return X.astype(float), y, info


def _accuracy(root, X, y):
    preds = np.array([root.classify(x)[0] for x in X])
    return float(np.mean(preds == y))


def test_basic_construction():
    X, y = _random_dataset()
    root = TreeBuilder(minimum_leaf_size=50).build(X, y, 3)
    assert root.num_children > 0


def test_basic_construction_with_weights():
    X, y = _random_dataset()
    weighted = TreeBuilder(minimum_leaf_size=50).build(X, y, 3, np.ones(len(y)))
    plain = TreeBuilder(minimum_leaf_size=50).build(X, y, 3)
    assert weighted.num_children > 0
    assert weighted.to_dict() == plain.to_dict()


@pytest.mark.parametrize("use_weights", [False, True])
def test_perfect_training_set(use_weights):
    X, y = _random_dataset()
    weights = np.ones(len(y)) if use_weights else None
    root = TreeBuilder(minimum_leaf_size=1).build(X, y, 3, weights)

    for x, label in zip(X, y):
        prediction, probs = root.classify(x)
        assert prediction == label
        assert probs.shape == (3,)
        expected = np.zeros(3)
        expected[label] = 1.0
        assert np.allclose(probs, expected, atol=1e-5)


def test_training_does_not_mutate_input():
    X, y = _random_dataset(n=200)
    X_before, y_before = X.copy(), y.copy()
    TreeBuilder(minimum_leaf_size=1).build(X, y, 3)
    assert np.array_equal(X, X_before)
    assert np.array_equal(y, y_before)


def test_class_probabilities_of_unsplit_root():
    rng = np.random.default_rng(1)
    X = rng.random((100, 5))
    y = np.tile([0, 1], 50)
    # the leaf size floor prevents any split
    root = TreeBuilder(minimum_leaf_size=1000).build(X, y, 2)
    assert root.num_children == 0
    prediction, probs = root.classify(X[0])
    assert probs.shape == (2,)
    assert probs == pytest.approx([0.5, 0.5])


def test_decision_stump():
    X, y = _random_dataset()
    stump = TreeBuilder(minimum_leaf_size=1, max_depth=1).build(X, y, 3)
    assert stump.num_children == 2
    assert stump.child(0).num_children == 0
    assert stump.child(1).num_children == 0


def test_training_is_deterministic():
    X, y = _random_dataset(n=300)
    first = TreeBuilder(minimum_leaf_size=5).build(X, y, 3)
    second = TreeBuilder(minimum_leaf_size=5).build(X.copy(), y.copy(), 3)
    assert first.to_dict() == second.to_dict()


def test_tie_goes_to_lowest_feature():
    X = np.array([[0, 0], [1, 1], [2, 2], [3, 3]], dtype=float)
    y = np.array([0, 0, 1, 1])
    root = TreeBuilder(minimum_leaf_size=1).build(X, y, 2)
    assert root.feature_index == 0
    assert 1.0 < root.split_info[0] < 2.0


def test_tree_invariants():
    X, y = _random_dataset(n=400)
    root = TreeBuilder(minimum_leaf_size=10).build(X, y, 3)
    for node in root.iter_nodes():
        assert node.num_children == 0 or node.num_children >= 2
        assert node.class_probabilities.sum() == pytest.approx(1.0)
        if node.is_leaf:
            assert node.n_samples >= 10
        else:
            assert sum(ch.n_samples for ch in node.children) == node.n_samples


def test_serialized_tree_classifies_identically():
    X, y = _random_dataset(n=300)
    root = TreeBuilder(minimum_leaf_size=5).build(X, y, 3)
    restored = TreeNode.from_dict(root.to_dict())
    assert restored.node_count() == root.node_count()
    for x in X[:50]:
        assert restored.classify(x)[0] == root.classify(x)[0]
        assert np.array_equal(restored.classify(x)[1], root.classify(x)[1])


@pytest.mark.parametrize("criterion", ["gini", InformationGain])
def test_categorical_build(criterion):
    X, y, info = _mock_categorical_data()
    builder = TreeBuilder(criterion=criterion, minimum_leaf_size=10)
    root = builder.build(X[:2000], y[:2000], 5, dataset_info=info)
    assert _accuracy(root, X[2000:], y[2000:]) > 0.70

    weighted = builder.build(X[:2000], y[:2000], 5, np.ones(2000), dataset_info=info)
    assert _accuracy(weighted, X[2000:], y[2000:]) > 0.70


def test_categorical_split_creates_one_child_per_category():
    X = np.array([[0], [0], [1], [1], [2], [2]], dtype=float)
    y = np.array([0, 0, 1, 1, 2, 2])
    info = DatasetInfo(1)
    for c in "abc":
        info.map_string(c, 0)
    root = TreeBuilder(minimum_leaf_size=1).build(X, y, 3, dataset_info=info)
    assert info.type(0) == Datatype.categorical
    assert root.split_type == "all_categorical"
    assert root.num_children == 3
    assert [ch.predicted_class for ch in root.children] == [0, 1, 2]
    # unseen code falls back to child 0
    assert root.classify(np.array([7.0]))[0] == 0


@pytest.mark.parametrize("criterion", ["gini", "entropy"])
def test_categorical_weighted_noise(criterion):
    X, y, info = _mock_categorical_data()
    rng = np.random.default_rng(7)
    noise = np.column_stack([rng.random(2000), rng.random(2000),
                             rng.integers(0, 4, 2000), rng.integers(0, 2, 2000)]).astype(float)
    noise_labels = rng.integers(0, 5, 2000)
    weights = np.concatenate([rng.uniform(0.9, 1.0, 2000), rng.uniform(0.0, 0.001, 2000)])

    data = np.vstack([X[:2000], noise])
    labels = np.concatenate([y[:2000], noise_labels])
    root = TreeBuilder(criterion=criterion, minimum_leaf_size=10).build(
        data, labels, 5, weights, dataset_info=info)
    assert _accuracy(root, X[2000:], y[2000:]) > 0.70


@pytest.mark.parametrize("criterion", ["gini", "entropy"])
def test_weighted_noise_generalization(criterion):
    X, y = make_blobs(n_samples=600, centers=3, n_features=4, cluster_std=1.0, random_state=3)
    X_train, y_train, X_test, y_test = X[:300], y[:300], X[300:], y[300:]

    baseline = TreeBuilder(criterion=criterion, minimum_leaf_size=10).build(X_train, y_train, 3)
    assert _accuracy(baseline, X_test, y_test) > 0.75

    rng = np.random.default_rng(11)
    noise = rng.uniform(X.min(axis=0), X.max(axis=0), size=(1000, 4))
    noise_labels = rng.integers(0, 3, 1000)
    data = np.vstack([X_train, noise])
    labels = np.concatenate([y_train, noise_labels])
    weights = np.concatenate([rng.uniform(0.9, 1.0, 300), rng.uniform(0.0, 0.01, 1000)])

    root = TreeBuilder(criterion=criterion, minimum_leaf_size=10).build(data, labels, 3, weights)
    assert _accuracy(root, X_test, y_test) > 0.75


def test_adjacent_float_values_are_separated():
    a = 1.0 + np.finfo(float).eps
    b = np.nextafter(a, 2.0)
    root = TreeBuilder(minimum_leaf_size=1).build([[a], [b]], [0, 1], 2)
    assert root.num_children == 2
    assert root.classify([a])[0] == 0
    assert root.classify([b])[0] == 1


def test_huge_values_are_separated():
    root = TreeBuilder(minimum_leaf_size=1).build([[1e308], [1.7e308]], [0, 1], 2)
    assert root.num_children == 2
    assert np.isfinite(root.split_info[0])
    assert root.classify([1e308])[0] == 0
    assert root.classify([1.7e308])[0] == 1


def test_depth_beyond_recursion_limit():
    # alternating labels on one feature force a leaf per point
    n = 4000
    X = np.arange(n, dtype=float).reshape(-1, 1)
    y = np.arange(n) % 2
    root = TreeBuilder(minimum_leaf_size=1).build(X, y, 2)
    leaves = [node for node in root.iter_nodes() if node.is_leaf]
    assert len(leaves) == n
    assert all(leaf.class_probabilities.max() == 1.0 for leaf in leaves)
    assert root.depth() >= 11
    for i in (0, 1, 1999, 2000, n - 2, n - 1):
        assert root.classify(X[i])[0] == y[i]


class _NoSeparationSplit(BestBinaryNumericSplit):
    @staticmethod
    def child_indices(values, split_info):
        return np.zeros(len(values), dtype=np.intp)


def test_split_that_does_not_separate_becomes_leaf():
    X, y = _random_dataset(n=100)
    root = TreeBuilder(numeric_split=_NoSeparationSplit, minimum_leaf_size=1).build(X, y, 3)
    assert root.is_leaf
    assert root.n_samples == 100


def test_default_minimum_leaf_size():
    assert TreeBuilder().minimum_leaf_size == 20


# -----------------------------------------------------------------------------
# Contract violations
# -----------------------------------------------------------------------------
def test_empty_dataset_raises():
    with pytest.raises(ValueError):
        TreeBuilder().build(np.empty((0, 3)), np.empty(0, dtype=int), 2)


def test_zero_classes_raise():
    X, y = _random_dataset(n=10)
    with pytest.raises(ValueError):
        TreeBuilder().build(X, np.zeros(10, dtype=int), 0)


def test_mismatched_labels_raise():
    X, y = _random_dataset(n=10)
    with pytest.raises(ValueError):
        TreeBuilder().build(X, y[:-1], 3)


def test_label_out_of_range_raises():
    X, y = _random_dataset(n=10)
    with pytest.raises(ValueError):
        TreeBuilder().build(X, y, 2)


def test_mismatched_weights_raise():
    X, y = _random_dataset(n=10)
    with pytest.raises(ValueError):
        TreeBuilder().build(X, y, 3, np.ones(9))


def test_negative_weights_raise():
    X, y = _random_dataset(n=10)
    weights = np.ones(10)
    weights[3] = -1.0
    with pytest.raises(ValueError):
        TreeBuilder().build(X, y, 3, weights)


def test_bad_category_codes_raise():
    X = np.array([[0.0], [1.0], [5.0]])
    info = DatasetInfo(1)
    info.map_string("a", 0)
    info.map_string("b", 0)
    with pytest.raises(ValueError):
        TreeBuilder().build(X, np.array([0, 1, 0]), 2, dataset_info=info)


def test_dataset_info_dimension_mismatch_raises():
    X, y = _random_dataset(n=10)
    with pytest.raises(ValueError):
        TreeBuilder().build(X, y, 3, dataset_info=DatasetInfo(2))


def test_unknown_criterion_raises():
    with pytest.raises(ValueError):
        TreeBuilder(criterion="mse")
