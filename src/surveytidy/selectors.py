"""
Column selection for surveytidy verbs.

A selection is a string (column name), an integer (0-based position,
negative counts from the right), a Selector, or a list/tuple mixing
these. resolve() turns a selection into an ordered list of existing
column names.

Rules:
    - Names are returned in the order they are first matched
    - A name matched twice appears once
    - Not(...) removes names; a selection that starts with Not(...)
      starts from every column
    - A plain name or AllOf entry that does not exist is an error;
      AnyOf silently skips missing names
"""

from __future__ import annotations

import re
from abc import ABC
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Iterator, List, Optional, Sequence, Tuple

import pandas as pd

from surveytidy.errors import ColumnNotFoundError


class Selector(ABC):
    """Base class for selection helpers. Structure only."""
    pass


@dataclass(frozen=True)
class Everything(Selector):
    pass


@dataclass(frozen=True)
class StartsWith(Selector):
    prefix: str


@dataclass(frozen=True)
class EndsWith(Selector):
    suffix: str


@dataclass(frozen=True)
class Contains(Selector):
    text: str


@dataclass(frozen=True)
class Matches(Selector):
    """Regular expression, matched with ``re.search``."""
    pattern: str


@dataclass(frozen=True)
class AllOf(Selector):
    names: Tuple[str, ...]

    def __init__(self, names: Iterable[str]):
        object.__setattr__(self, "names", tuple(names))


@dataclass(frozen=True)
class AnyOf(Selector):
    names: Tuple[str, ...]

    def __init__(self, names: Iterable[str]):
        object.__setattr__(self, "names", tuple(names))


@dataclass(frozen=True)
class Where(Selector):
    """Columns whose values satisfy ``predicate(series)``, e.g. Where(is_numeric_dtype)."""
    predicate: Callable[[pd.Series], bool]


@dataclass(frozen=True)
class Not(Selector):
    selector: Any


def _flatten(selection: Any) -> Iterator[Any]:
    if isinstance(selection, (list, tuple)):
        for item in selection:
            yield from _flatten(item)
    else:
        yield selection


def _match(item: Any, columns: Sequence[str], data: Optional[pd.DataFrame]) -> List[str]:
    if isinstance(item, str):
        if item not in columns:
            raise ColumnNotFoundError([item])
        return [item]

    if isinstance(item, int) and not isinstance(item, bool):
        try:
            return [columns[item]]
        except IndexError:
            raise ColumnNotFoundError([f"position {item}"])

    if isinstance(item, Everything):
        return list(columns)
    if isinstance(item, StartsWith):
        return [c for c in columns if c.startswith(item.prefix)]
    if isinstance(item, EndsWith):
        return [c for c in columns if c.endswith(item.suffix)]
    if isinstance(item, Contains):
        return [c for c in columns if item.text in c]
    if isinstance(item, Matches):
        pattern = re.compile(item.pattern)
        return [c for c in columns if pattern.search(c)]

    if isinstance(item, AllOf):
        missing = [n for n in item.names if n not in columns]
        if missing:
            raise ColumnNotFoundError(missing)
        return list(item.names)
    if isinstance(item, AnyOf):
        return [n for n in item.names if n in columns]

    if isinstance(item, Where):
        if data is None:
            raise TypeError("Where() needs the data to be resolved")
        return [c for c in columns if item.predicate(data[c])]

    raise TypeError(f"Unsupported column selection: {item!r}")


def resolve(selection: Any, columns: Iterable[str], data: Optional[pd.DataFrame] = None) -> List[str]:
    """
    Resolve a selection against ordered column names.

    Args:
        selection: Name, position, Selector, or a list/tuple of them
        columns: Available column names, in order
        data: DataFrame backing the columns (needed by Where)

    Returns:
        Ordered, de-duplicated list of matching column names

    Raises:
        ColumnNotFoundError: If a name or AllOf entry does not exist
    """
    columns = list(columns)
    chosen: List[str] = []

    for i, item in enumerate(_flatten(selection)):
        if isinstance(item, Not):
            if i == 0:
                chosen = list(columns)
            dropped = set(resolve(item.selector, columns, data))
            chosen = [c for c in chosen if c not in dropped]
            continue
        for name in _match(item, columns, data):
            if name not in chosen:
                chosen.append(name)

    return chosen
