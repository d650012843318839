"""Exceptions raised by sqlresolver.

Failures coming from the database or from user hooks are never wrapped;
only problems detected by sqlresolver itself use these types.
"""


class SQLResolverError(Exception):
    """Base class for sqlresolver errors."""
    pass


class InvalidFieldError(SQLResolverError, ValueError):
    """Raised when an invalid field is used in where conditions or ordering."""
    pass


class InvalidOptionsError(SQLResolverError, TypeError):
    """Raised when a ``before`` hook returns something other than FindOptions."""
    pass


class MissingSessionError(SQLResolverError, RuntimeError):
    """Raised when the GraphQL context carries no database session."""
    pass


__all__ = [
    'SQLResolverError',
    'InvalidFieldError',
    'InvalidOptionsError',
    'MissingSessionError',
]
