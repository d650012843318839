"""
Resolver factory.

``resolver(target)`` returns an async GraphQL resolver ``(root, info, **args)``
that turns field arguments into FindOptions, lets an optional ``before`` hook
amend them, runs the query against the session found in the GraphQL context
and returns one instance or a list, depending on the field's return type.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Union

from graphql import (
    FieldNode,
    FragmentSpreadNode,
    InlineFragmentNode,
    get_named_type,
    get_nullable_type,
    is_list_type,
    is_object_type,
)
from sqlalchemy.ext.asyncio import AsyncSession
from strawberry.schema.schema_converter import GraphQLCoreConverter

from .errors import InvalidOptionsError, MissingSessionError
from .options import FindOptions, build_options
from .target import Target

logger = logging.getLogger(__name__)

SESSION_KEY = 'db_session'
SESSION_FACTORY_KEY = 'session_factory'
LOGGING_KEY = 'logging'
_LOCK_KEY = 'sqlresolver.lock'
# False on resolve functions (and Strawberry field metadata) that always run their own query
PRELOAD_KEY = 'sqlresolver_preload'

BeforeHook = Callable[[FindOptions, Dict[str, Any], Any, Any], Union[FindOptions, Awaitable[FindOptions]]]
AfterHook = Callable[[Any, Dict[str, Any], Any, Any], Any]
Resolver = Callable[..., Awaitable[Any]]


def context_value(context: Any, key: str) -> Any:
    """Read ``key`` from a dict context or an attribute-style context object."""
    if context is None:
        return None
    if isinstance(context, dict):
        return context.get(key)
    return getattr(context, key, None)


def _raw_info(info: Any) -> Any:
    # Strawberry wraps graphql-core's GraphQLResolveInfo
    return getattr(info, '_raw_info', info)


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


def _returns_list(info: Any, target: Target, single: Optional[bool]) -> bool:
    if single is not None:
        return not single
    return_type = getattr(_raw_info(info), 'return_type', None)
    if return_type is None:
        return target.is_collection
    return is_list_type(get_nullable_type(return_type))


def _selected_fields(info: Any) -> Iterable[FieldNode]:
    raw = _raw_info(info)
    fragments = getattr(raw, 'fragments', None) or {}

    def walk(selection_set):
        if selection_set is None:
            return
        for selection in selection_set.selections:
            if isinstance(selection, FieldNode):
                yield selection
            elif isinstance(selection, InlineFragmentNode):
                yield from walk(selection.selection_set)
            elif isinstance(selection, FragmentSpreadNode):
                fragment = fragments.get(selection.name.value)
                if fragment is not None:
                    yield from walk(fragment.selection_set)

    for node in getattr(raw, 'field_nodes', None) or []:
        yield from walk(getattr(node, 'selection_set', None))


def uses_preload(resolve: Any) -> bool:
    return bool(getattr(resolve, PRELOAD_KEY, True))


def _field_uses_preload(field_def: Any) -> bool:
    if field_def is None:
        return True
    definition = (getattr(field_def, 'extensions', None) or {}).get(GraphQLCoreConverter.DEFINITION_BACKREF)
    if definition is not None:
        metadata = getattr(definition, 'metadata', None) or {}
        return bool(metadata.get(PRELOAD_KEY, True))
    return uses_preload(field_def.resolve)


def _child_fields(info: Any) -> Dict[str, Any]:
    return_type = getattr(_raw_info(info), 'return_type', None)
    if return_type is None:
        return {}
    named = get_named_type(return_type)
    return named.fields if is_object_type(named) else {}


def eager_relationships(info: Any, target: Target) -> List[str]:
    """Relationships selected below this field without arguments.

    Those can be loaded together with the parent rows; selections carrying
    arguments, and fields whose resolver always queries (``before`` hook,
    argument defaults), are left to their own resolvers.
    """
    names: List[str] = []
    children = _child_fields(info)
    for node in _selected_fields(info):
        if node.arguments or not _field_uses_preload(children.get(node.name.value)):
            continue
        rel_name = target.relationship_name(node.name.value)
        if rel_name is not None and rel_name not in names:
            names.append(rel_name)
    return names


def _log_statement(context: Any, statement: Any) -> None:
    sql = str(statement)
    logger.debug(f"Executing statement: {sql}")
    callback = context_value(context, LOGGING_KEY)
    if callable(callback):
        callback(sql)


async def _fetch(session: AsyncSession, statement: Any, many: bool) -> Any:
    result = await session.execute(statement)
    if many:
        return list(result.scalars().all())
    return result.scalars().first()


async def execute(context: Any, statement: Any, many: bool, session_key: str = SESSION_KEY) -> Any:
    """Run ``statement`` on the session supplied by the GraphQL context.

    A ``session_factory`` in the context gives every call its own session.
    Otherwise calls sharing one ``AsyncSession`` are serialized, since an
    AsyncSession does not allow concurrent operations.
    """
    factory = context_value(context, SESSION_FACTORY_KEY)
    if factory is not None:
        async with factory() as session:
            return await _fetch(session, statement, many)

    session = context_value(context, session_key)
    if session is None:
        raise MissingSessionError(
            f"No database session in GraphQL context: expected '{session_key}' or '{SESSION_FACTORY_KEY}'"
        )
    lock = session.info.setdefault(_LOCK_KEY, asyncio.Lock())
    async with lock:
        return await _fetch(session, statement, many)


def _args_supplied(args: Dict[str, Any]) -> bool:
    return any(value is not None for value in args.values())


def resolver(
    queryable: Any,
    *,
    before: Optional[BeforeHook] = None,
    after: Optional[AfterHook] = None,
    session_key: str = SESSION_KEY,
    single: Optional[bool] = None,
) -> Resolver:
    """
    Create an async resolver for a model class or a relationship attribute.

    Args:
        queryable: mapped model class (``User``) or relationship (``User.tasks``)
        before: ``before(options, args, root, context)`` returning FindOptions,
            sync or async; called once per resolution
        after: ``after(result, args, root, context)`` returning the value to
            hand back to GraphQL, sync or async
        session_key: context key holding the AsyncSession
        single: force singular (True) or list (False) results instead of
            reading the field's GraphQL return type

    Returns:
        ``async def resolve(root, info, **args)``
    """
    target = Target(queryable)

    async def resolve(root: Any, info: Any, **args: Any) -> Any:
        context = getattr(_raw_info(info), 'context', None)
        many = _returns_list(info, target, single)

        if before is None and target.relationship is not None and not _args_supplied(args):
            loaded, value = target.loaded_value(root, many)
            if loaded:
                logger.debug(f"Using eager-loaded '{target.key}' for {target}")
                if after is not None:
                    value = await _maybe_await(after(value, args, root, context))
                return value

        options = build_options(args, target)
        include = eager_relationships(info, target)
        if include:
            logger.info(f"Eager loading {include} for {target}")
            options = options.including(*include)

        if before is not None:
            options = await _maybe_await(before(options, args, root, context))
            if not isinstance(options, FindOptions):
                raise InvalidOptionsError(
                    f"before hook for {target} returned {type(options).__name__}, expected FindOptions"
                )

        statement = target.statement(options, root=root, many=many)
        _log_statement(context, statement)
        result = await execute(context, statement, many, session_key=session_key)

        if after is not None:
            result = await _maybe_await(after(result, args, root, context))
        return result

    setattr(resolve, PRELOAD_KEY, before is None)
    return resolve


def proxy(resolve: Callable[..., Any]) -> Callable[..., Any]:
    """Wrap a resolver in a plain function forwarding every argument unchanged."""
    def forward(*args: Any, **kwargs: Any) -> Any:
        return resolve(*args, **kwargs)
    setattr(forward, PRELOAD_KEY, uses_preload(resolve))
    return forward
