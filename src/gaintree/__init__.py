# gaintree/__init__.py
"""
gaintree: decision tree induction with pluggable gain metrics and split
strategies, in pure Python (scikit-learn style).

Exports:
    - DecisionTreeClassifier
    - TreeBuilder, TreeNode
    - GiniGain, InformationGain
    - BestBinaryNumericSplit, AllCategoricalSplit
    - DatasetInfo, Datatype
"""
from .builder import TreeBuilder
from .dataset_info import DatasetInfo, Datatype
from .gain import GiniGain, InformationGain
from .node import TreeNode
from .split import AllCategoricalSplit, BestBinaryNumericSplit
from .tree import DecisionTreeClassifier

__all__ = [
    "DecisionTreeClassifier",
    "TreeBuilder",
    "TreeNode",
    "GiniGain",
    "InformationGain",
    "BestBinaryNumericSplit",
    "AllCategoricalSplit",
    "DatasetInfo",
    "Datatype",
]
__version__ = "0.1.0"
