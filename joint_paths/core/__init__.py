from joint_paths.core.adapters.BaseAdapter import BaseAdapter
from joint_paths.core.engine.lifecycle import AdapterSet, JointController
from joint_paths.core.errors import JointError
from joint_paths.core.strategies.Strategy import (
    StatusDict,
    StatusTuple,
    Strategy,
)

__all__ = [
    "Strategy",
    "StatusDict",
    "StatusTuple",
    "BaseAdapter",
    "AdapterSet",
    "JointController",
    "JointError",
]
