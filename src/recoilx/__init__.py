"""recoilx: a reactive state graph of cells and computations, with a todo list on top."""

from importlib.metadata import version as _version

__version__ = _version("recoilx")

from recoilx.errors import (
    AsyncFailure,
    CircularDependency,
    ComputationError,
    InvalidName,
    NotFound,
    RecoilxError,
)
from recoilx.loadable import Errored, Loadable, Pending, Resolved
from recoilx.cell import Cell, atom
from recoilx.computed import Computation, computed, selector
from recoilx._tracking import ReadContext
from recoilx.reaction import Subscription
from recoilx.action import action, transaction
from recoilx.store import Store
from recoilx.list_ops import find_by_id, insert, remove_by_id, replace_by_id
# textual NOT auto-imported — opt-in only

__all__ = [
    "AsyncFailure",
    "CircularDependency",
    "ComputationError",
    "InvalidName",
    "NotFound",
    "RecoilxError",
    "Errored",
    "Loadable",
    "Pending",
    "Resolved",
    "Cell",
    "atom",
    "Computation",
    "computed",
    "selector",
    "ReadContext",
    "Subscription",
    "action",
    "transaction",
    "Store",
    "find_by_id",
    "insert",
    "remove_by_id",
    "replace_by_id",
]
