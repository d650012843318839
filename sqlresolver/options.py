"""
Find options: the filter/order/limit/eager-load descriptor handed to the data layer.

FindOptions is immutable. Hooks receive one and return a new one built with
the helper methods (``order_by``, ``filter``, ``with_limit``...), so nothing
is shared between concurrent resolver calls.
"""

from __future__ import annotations

import dataclasses
import json
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from .errors import InvalidFieldError

ASC = 'asc'
DESC = 'desc'
REVERSE_PREFIX = 'reverse:'

OrderClause = Tuple[str, str]


def _direction(value: Any) -> str:
    if value is None:
        return ASC
    direction = str(getattr(value, 'value', value)).strip().lower()
    if direction not in (ASC, DESC):
        raise InvalidFieldError(f"Invalid order direction '{value}', expected 'asc' or 'desc'")
    return direction


@dataclasses.dataclass(frozen=True)
class FindOptions:
    """Query descriptor built fresh for each resolver call."""

    where: Mapping[str, Any] = dataclasses.field(default_factory=dict)
    order: Tuple[OrderClause, ...] = ()
    limit: Optional[int] = None
    offset: Optional[int] = None
    include: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, 'where', MappingProxyType(dict(self.where or {})))
        object.__setattr__(self, 'order', tuple((str(f), _direction(d)) for f, d in (self.order or ())))
        object.__setattr__(self, 'include', tuple(self.include or ()))

    def replace(self, **changes) -> 'FindOptions':
        return dataclasses.replace(self, **changes)

    def filter(self, **conditions) -> 'FindOptions':
        """Return options with extra equality conditions (lists become IN)."""
        where = dict(self.where)
        where.update(conditions)
        return self.replace(where=where)

    def order_by(self, field: str, direction: str = ASC) -> 'FindOptions':
        """Append an order clause after the existing ones."""
        return self.replace(order=self.order + ((field, _direction(direction)),))

    def with_limit(self, limit: Optional[int]) -> 'FindOptions':
        return self.replace(limit=limit)

    def with_offset(self, offset: Optional[int]) -> 'FindOptions':
        return self.replace(offset=offset)

    def including(self, *relationships: str) -> 'FindOptions':
        include = self.include + tuple(r for r in relationships if r not in self.include)
        return self.replace(include=include)


def parse_order(value: Union[str, Iterable[Any], None]) -> List[OrderClause]:
    """Parse an ``order`` argument into ``(field, direction)`` pairs.

    Accepted forms:
    - ``"name"`` -> ascending
    - ``"reverse:name"`` -> descending
    - ``"name desc, id"`` -> several clauses with optional direction
    - a list of any of the above
    """
    if value is None:
        return []
    if not isinstance(value, str):
        clauses: List[OrderClause] = []
        for item in value:
            clauses.extend(parse_order(item))
        return clauses

    clauses = []
    for spec in value.split(','):
        spec = spec.strip()
        if not spec:
            continue
        if spec.startswith(REVERSE_PREFIX):
            clauses.append((spec[len(REVERSE_PREFIX):].strip(), DESC))
            continue
        parts = spec.split()
        if len(parts) == 1:
            clauses.append((parts[0], ASC))
        elif len(parts) == 2:
            clauses.append((parts[0], _direction(parts[1])))
        else:
            raise InvalidFieldError(f"Invalid order_by '{spec}'")
    return clauses


def parse_where(value: Union[Mapping[str, Any], str, None]) -> Dict[str, Any]:
    """Parse a ``where`` argument: a mapping or a JSON object string."""
    if value is None:
        return {}
    if isinstance(value, str):
        if not value.strip():
            return {}
        try:
            value = json.loads(value.strip())
        except json.JSONDecodeError as e:
            raise InvalidFieldError(f"Invalid JSON format in where conditions: {value}. Error: {e}")
    if not isinstance(value, Mapping):
        raise InvalidFieldError(f"Where conditions must be a JSON object, got: {type(value).__name__}")
    return dict(value)


def build_options(args: Mapping[str, Any], target: Any) -> FindOptions:
    """Translate resolver arguments into default FindOptions for ``target``.

    ``None`` values count as "not supplied". Arguments named after a column of
    the target model become equality filters; anything else is ignored here
    and left for ``before`` hooks.
    """
    where: Dict[str, Any] = {}
    order: List[OrderClause] = []
    limit = None
    offset = None

    for key, value in (args or {}).items():
        if value is None:
            continue
        if key == 'limit':
            limit = value
        elif key == 'offset':
            offset = value
        elif key == 'order':
            for field, direction in parse_order(value):
                attr = target.attribute_name(field)
                if attr is None:
                    raise InvalidFieldError(f"Invalid order_by '{field}' for {target.model.__name__}")
                order.append((attr, direction))
        elif key == 'where':
            for field, condition in parse_where(value).items():
                attr = target.attribute_name(field)
                if attr is None:
                    raise InvalidFieldError(f"Invalid where field '{field}' for {target.model.__name__}")
                where[attr] = condition
        else:
            attr = target.attribute_name(key)
            if attr is not None:
                where[attr] = value

    return FindOptions(where=where, order=tuple(order), limit=limit, offset=offset)
