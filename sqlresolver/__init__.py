"""sqlresolver public API.

GraphQL resolvers for SQLAlchemy models and relationships.

Exposes:
- resolver: build an async ``(root, info, **args)`` resolver for a model or relationship
- proxy: plain forwarding wrapper around a resolver
- field: Strawberry field backed by a resolver
- FindOptions, build_options, parse_order: the options handed to ``before`` hooks
- Target: model / relationship descriptor
- error types
"""
from .errors import InvalidFieldError, InvalidOptionsError, MissingSessionError, SQLResolverError
from .fields import field
from .options import FindOptions, build_options, parse_order
from .resolver import proxy, resolver
from .target import Target

__all__ = [
    'resolver', 'proxy', 'field',
    'FindOptions', 'build_options', 'parse_order', 'Target',
    'SQLResolverError', 'InvalidFieldError', 'InvalidOptionsError', 'MissingSessionError',
]
