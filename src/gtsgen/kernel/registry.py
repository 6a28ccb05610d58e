"""Name -> declaration registry for one batch.

Parent links are names resolved through this flat index. The registry is
built once per run and is read-only afterwards.
"""

from collections import OrderedDict
from typing import Iterator, List, Mapping, Optional, Sequence, Union

from .declaration import SchemaDeclaration
from .errors import (
    DuplicateDeclarationError,
    InheritanceCycleError,
    UnresolvedParentError,
)


class DeclarationRegistry:
    """Read-only index of the declarations in one batch."""

    def __init__(self, declarations: Sequence[SchemaDeclaration]):
        self._by_name: "OrderedDict[str, SchemaDeclaration]" = OrderedDict()
        for decl in declarations:
            if decl.name in self._by_name:
                raise DuplicateDeclarationError(decl.name)
            self._by_name[decl.name] = decl
        self._check_parents()
        self._check_cycles()

    def _check_parents(self) -> None:
        for decl in self._by_name.values():
            parent = decl.parent_name
            if parent is not None and parent not in self._by_name:
                raise UnresolvedParentError(decl.name, parent)

    def _check_cycles(self) -> None:
        """Detect cycles in base references using DFS coloring."""
        WHITE, GRAY, BLACK = 0, 1, 2
        color = {name: WHITE for name in self._by_name}

        for start in sorted(self._by_name):  # Sort for deterministic order
            if color[start] != WHITE:
                continue
            path: List[str] = []
            node: Optional[str] = start
            # Each node has at most one parent, so the walk is a simple chain
            while node is not None and node in self._by_name:
                if color[node] == GRAY:
                    raise InheritanceCycleError(path[path.index(node):])
                if color[node] == BLACK:
                    break
                color[node] = GRAY
                path.append(node)
                node = self._by_name[node].parent_name
            for visited in path:
                color[visited] = BLACK

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __iter__(self) -> Iterator[SchemaDeclaration]:
        return iter(self._by_name.values())

    def __len__(self) -> int:
        return len(self._by_name)

    def get(self, name: str) -> Optional[SchemaDeclaration]:
        return self._by_name.get(name)

    def lineage(self, name: str) -> List[SchemaDeclaration]:
        """Chain from the root ancestor down to ``name`` (outermost -> innermost).

        Raises:
            KeyError: if ``name`` is not registered.
        """
        return lineage(self._by_name[name], self)


def lineage(
    decl: SchemaDeclaration,
    declarations: Union[DeclarationRegistry, Mapping[str, SchemaDeclaration]],
) -> List[SchemaDeclaration]:
    """Chain from the root ancestor down to ``decl``, parents looked up by name.

    Raises:
        UnresolvedParentError: if an ancestor is missing from ``declarations``.
        InheritanceCycleError: if the parent links loop back.
    """
    chain = [decl]
    seen = {decl.name}
    current = decl
    while current.parent_name is not None:
        parent = declarations.get(current.parent_name)
        if parent is None:
            raise UnresolvedParentError(current.name, current.parent_name)
        if parent.name in seen:
            names = [d.name for d in chain]
            raise InheritanceCycleError(names[names.index(parent.name):])
        seen.add(parent.name)
        chain.append(parent)
        current = parent
    chain.reverse()
    return chain
