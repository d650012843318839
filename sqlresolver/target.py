"""
Queryable targets.

A target is what a resolver is bound to: either a mapped model class
(``User``) or a relationship attribute (``User.tasks``). It knows how to
turn FindOptions into a SQLAlchemy ``Select`` for that target.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Set, Tuple

from sqlalchemy import inspect, select
from sqlalchemy.orm import RelationshipProperty, selectinload, with_parent
from sqlalchemy.orm.attributes import QueryableAttribute
from sqlalchemy.sql import Select

from .errors import InvalidFieldError
from .naming import from_camel
from .options import FindOptions


class Target:
    """A model class or a relationship attribute a resolver fetches from."""

    def __init__(self, queryable: Any):
        self.relation: Optional[QueryableAttribute] = None
        self.relationship: Optional[RelationshipProperty] = None
        if isinstance(queryable, QueryableAttribute):
            prop = queryable.property
            if not isinstance(prop, RelationshipProperty):
                raise TypeError(f"{queryable} is a column attribute, expected a relationship")
            self.relation = queryable
            self.relationship = prop
            self.model = prop.mapper.class_
        else:
            mapper = inspect(queryable, raiseerr=False)
            if mapper is None or not hasattr(mapper, 'column_attrs'):
                raise TypeError(f"Expected a mapped class or relationship attribute, got {queryable!r}")
            self.model = mapper.class_
        self.mapper = inspect(self.model)
        self._attributes = self._build_attribute_map()

    def __repr__(self) -> str:
        if self.relation is not None:
            return f"<Target {self.relation}>"
        return f"<Target {self.model.__name__}>"

    @property
    def key(self) -> Optional[str]:
        """Name of the relationship on the parent model, if any."""
        return self.relationship.key if self.relationship is not None else None

    @property
    def is_collection(self) -> bool:
        if self.relationship is None:
            return True
        return bool(self.relationship.uselist)

    def _build_attribute_map(self) -> Dict[str, str]:
        # attribute key and underlying column name both map to the attribute key
        names: Dict[str, str] = {}
        for prop in self.mapper.column_attrs:
            names[prop.key] = prop.key
            for col in prop.columns:
                col_name = getattr(col, 'name', None)
                if col_name and col_name not in names:
                    names[col_name] = prop.key
        return names

    def attribute_name(self, name: str) -> Optional[str]:
        """Map a GraphQL / column / attribute name to a mapped attribute key."""
        if name in self._attributes:
            return self._attributes[name]
        snake = from_camel(name)
        return self._attributes.get(snake)

    def column(self, name: str):
        attr = self.attribute_name(name)
        if attr is None:
            raise InvalidFieldError(f"Invalid field '{name}' for {self.model.__name__}")
        return getattr(self.model, attr)

    def relationship_names(self) -> Set[str]:
        return {rel.key for rel in self.mapper.relationships}

    def relationship_name(self, name: str) -> Optional[str]:
        names = self.relationship_names()
        if name in names:
            return name
        snake = from_camel(name)
        return snake if snake in names else None

    def primary_key(self) -> List[Any]:
        return [getattr(self.model, self.mapper.get_property_by_column(col).key) for col in self.mapper.primary_key]

    def identity(self, instance: Any) -> Tuple[Any, ...]:
        return tuple(
            getattr(instance, self.mapper.get_property_by_column(col).key)
            for col in self.mapper.primary_key
        )

    def loaded_value(self, root: Any, many: Optional[bool] = None) -> Tuple[bool, Any]:
        """Return ``(True, value)`` when ``root`` already holds this relationship.

        ``many`` shapes the value like a query would: a loaded collection
        read by a singular field gives its first row by primary key, a
        loaded scalar read by a list field gives a one-item list.
        """
        if self.relationship is None or root is None:
            return False, None
        state = inspect(root, raiseerr=False)
        if state is None or not hasattr(state, 'unloaded'):
            return False, None
        if self.key in state.unloaded:
            return False, None
        value = state.dict.get(self.key)
        if self.is_collection:
            rows = sorted(value or [], key=self.identity)
            if many is False:
                return True, rows[0] if rows else None
            return True, rows
        if many:
            return True, [] if value is None else [value]
        return True, value

    def statement(self, options: FindOptions, root: Any = None, many: bool = True) -> Select:
        """Build the select for ``options``; associations are scoped to ``root``."""
        stmt = select(self.model)
        if self.relation is not None:
            stmt = stmt.where(with_parent(root, self.relation))

        for name, value in options.where.items():
            column = self.column(name)
            if isinstance(value, (list, tuple, set, frozenset)):
                stmt = stmt.where(column.in_(list(value)))
            else:
                stmt = stmt.where(column == value)

        if options.order:
            for name, direction in options.order:
                column = self.column(name)
                stmt = stmt.order_by(column.desc() if direction == 'desc' else column.asc())
        elif many:
            stmt = stmt.order_by(*(col.asc() for col in self.primary_key()))

        if options.offset is not None:
            stmt = stmt.offset(options.offset)
        if options.limit is not None:
            stmt = stmt.limit(options.limit)
        elif not many:
            stmt = stmt.limit(1)

        for name in options.include:
            rel_name = self.relationship_name(name)
            if rel_name is None:
                raise InvalidFieldError(f"Invalid relationship '{name}' for {self.model.__name__}")
            stmt = stmt.options(selectinload(getattr(self.model, rel_name)))
        return stmt
