"""Tagged registration of benchmark operations and per-library setup hooks.

Each image library module registers plain functions here instead of
implementing a shared interface; the libraries have no common image type.
"""

import dataclasses
import fnmatch
import logging
from typing import Callable, Dict, List, Optional

from imgbench.errors import DuplicateOperationError, UnknownOperationError

log = logging.getLogger(__name__)

TASKS = ("info", "resize")


@dataclasses.dataclass(frozen=True)
class Operation:
    """A named, measurable unit of work for one library."""
    name: str
    library: str
    task: str
    func: Callable
    baseline: bool = False
    description: str = ""


class Registry:
    def __init__(self):
        self._operations: Dict[str, Operation] = {}
        self._setup_hooks: Dict[str, Callable[..., None]] = {}

    def operation(self, library: str, task: str, baseline: bool = False):
        """Decorator registering ``func(harness)`` as ``<library>_<task>``."""
        if task not in TASKS:
            raise ValueError(f"Unknown task {task!r}; expected one of {TASKS}")

        def decorator(func):
            name = f"{library}_{task}"
            if name in self._operations:
                raise DuplicateOperationError(f"Operation {name!r} is already registered")
            doc = (func.__doc__ or "").strip().splitlines()
            self._operations[name] = Operation(
                name=name,
                library=library,
                task=task,
                func=func,
                baseline=baseline,
                description=doc[0] if doc else "",
            )
            log.debug("Registered operation %s", name)
            return func

        return decorator

    def setup_hook(self, library: str):
        """Decorator registering a one-time setup callable for a library."""
        def decorator(func):
            self._setup_hooks[library] = func
            return func

        return decorator

    def get(self, name: str) -> Operation:
        try:
            return self._operations[name]
        except KeyError:
            raise UnknownOperationError(name) from None

    def hook_for(self, library: str) -> Optional[Callable[..., None]]:
        return self._setup_hooks.get(library)

    def libraries(self) -> List[str]:
        seen = []
        for op in self._operations.values():
            if op.library not in seen:
                seen.append(op.library)
        return seen

    def operations(
        self,
        task: Optional[str] = None,
        pattern: Optional[str] = None,
        libraries=None,
    ) -> List[Operation]:
        """Returns registered operations in registration order, optionally filtered."""
        result = []
        for op in self._operations.values():
            if task and op.task != task:
                continue
            if libraries is not None and op.library not in libraries:
                continue
            if pattern and not fnmatch.fnmatchcase(op.name, pattern):
                continue
            result.append(op)
        return result

    def baseline_for(self, task: str, library: Optional[str] = None) -> Optional[Operation]:
        """Finds the baseline operation of a task.

        ``library`` overrides the registered baseline flag, e.g. from config.
        """
        for op in self._operations.values():
            if op.task != task:
                continue
            if library is not None:
                if op.library == library:
                    return op
            elif op.baseline:
                return op
        return None

    def __contains__(self, name: str) -> bool:
        return name in self._operations

    def __len__(self) -> int:
        return len(self._operations)


# Global registry populated by imgbench.ops
registry = Registry()
operation = registry.operation
setup_hook = registry.setup_hook
