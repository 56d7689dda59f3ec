import logging
from time import perf_counter

import numpy as np
from sklearn.datasets import make_blobs
from gaintree import DecisionTreeClassifier

logging.basicConfig(level=logging.INFO, format="%(name)s: %(message)s")

# Two numeric features plus a "city" column whose value shifts the class odds
X_num, y = make_blobs(n_samples=1000, centers=3, n_features=2, cluster_std=2.0, random_state=42)
rng = np.random.default_rng(42)
cities = np.array([f"City_{i}" for i in range(6)])
city = np.where(rng.random(1000) < 0.7, cities[y * 2], rng.choice(cities, size=1000))

X = np.column_stack([X_num, city]).astype(object)
feats = ["x0", "x1", "city"]

clf = DecisionTreeClassifier(
    criterion="gini", min_samples_leaf=20,
    feature_names=feats, categorical_features=["city"], verbose=1,
)

t0 = perf_counter(); clf.fit(X[:700], y[:700]); print(f"fit: {perf_counter()-t0:.3f} s")
print(f"test accuracy: {clf.score(X[700:], y[700:]):.3f}")
clf.print_tree(class_names=["A", "B", "C"])
