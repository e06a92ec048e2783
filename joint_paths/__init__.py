__version__ = "0.1.0"

from joint_paths.core import (
    AdapterSet,
    BaseAdapter,
    JointController,
    JointError,
    StatusDict,
    StatusTuple,
    Strategy,
)

__all__ = [
    "__version__",
    "AdapterSet",
    "BaseAdapter",
    "JointController",
    "JointError",
    "Strategy",
    "StatusDict",
    "StatusTuple",
]
