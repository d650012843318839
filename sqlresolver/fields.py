"""
Strawberry integration.

``field()`` wraps a resolver in a ``strawberry.field`` whose signature exposes
the GraphQL arguments the resolver understands. The field type comes from the
class annotation::

    @strawberry.type
    class UserType:
        tasks: List[TaskType] = field(User.tasks, args={'limit': Optional[int]})
"""

from __future__ import annotations

import keyword
import typing
from typing import Annotated, Any, Callable, Dict, List, Optional, Tuple

import strawberry
from strawberry.types import Info as StrawberryInfo

from .resolver import PRELOAD_KEY, SESSION_KEY, AfterHook, BeforeHook, resolver, uses_preload

_ARG_DESC_LIMIT = "Maximum number of rows to return"
_ARG_DESC_OFFSET = "Number of rows to skip"
_ARG_DESC_ORDER = (
    "Order by a field: 'name' ascending, 'reverse:name' descending; "
    "comma-separate several fields, e.g. 'name desc, id'"
)

DEFAULT_ARGS: Dict[str, Any] = {
    'limit': Annotated[Optional[int], strawberry.argument(description=_ARG_DESC_LIMIT)],
    'offset': Annotated[Optional[int], strawberry.argument(description=_ARG_DESC_OFFSET)],
    'order': Annotated[Optional[str], strawberry.argument(description=_ARG_DESC_ORDER)],
}


def _is_optional(annotation: Any) -> bool:
    if typing.get_origin(annotation) is Annotated:
        annotation = typing.get_args(annotation)[0]
    return type(None) in typing.get_args(annotation)


_NO_DEFAULT = object()


def _split_argument(spec: Any) -> Tuple[Any, Any]:
    # ``(annotation, default)`` declares a GraphQL default value
    if isinstance(spec, tuple) and len(spec) == 2:
        return spec[0], spec[1]
    return spec, _NO_DEFAULT


def _make_strawberry_resolver(impl: Callable[..., Any], arguments: Dict[str, Any]):
    annotations: Dict[str, Any] = {}
    defaults: Dict[str, Any] = {}
    for name, spec in arguments.items():
        if not name.isidentifier() or keyword.iskeyword(name) or name in ('self', 'info'):
            raise ValueError(f"Invalid GraphQL argument name for resolver: {name!r}")
        annotation, default = _split_argument(spec)
        annotations[name] = annotation
        if default is not _NO_DEFAULT:
            defaults[name] = default
        elif _is_optional(annotation):
            defaults[name] = None
    # Arguments without a default come first
    required = [a for a in annotations if a not in defaults]
    optional = [a for a in annotations if a in defaults]
    params = ['self', 'info'] + required + [f"{a}=_defaults[{a!r}]" for a in optional]
    forwarded = ', '.join(f"{a}={a}" for a in required + optional)
    src = f"async def _sqlresolver_field({', '.join(params)}):\n"
    src += f"    return await _impl(self, info{', ' + forwarded if forwarded else ''})\n"
    env: Dict[str, Any] = {'_impl': impl, '_defaults': defaults, '__name__': __name__}
    exec(src, env)
    fn = env['_sqlresolver_field']
    anns: Dict[str, Any] = {'info': StrawberryInfo}
    anns.update(annotations)
    fn.__annotations__ = anns
    return fn, defaults


def field(
    queryable: Any = None,
    *,
    args: Optional[Dict[str, Any]] = None,
    resolve: Optional[Callable[..., Any]] = None,
    before: Optional[BeforeHook] = None,
    after: Optional[AfterHook] = None,
    single: Optional[bool] = None,
    session_key: str = SESSION_KEY,
    description: Optional[str] = None,
) -> Any:
    """
    Build a Strawberry field backed by ``resolver(queryable, ...)``.

    Args:
        queryable: model class or relationship attribute; not needed when
            ``resolve`` is given
        args: GraphQL arguments as ``{name: annotation}`` or
            ``{name: (annotation, default)}``; defaults to
            ``limit``, ``offset`` and ``order``
        resolve: an existing ``(root, info, **args)`` resolver to expose,
            e.g. one wrapped with ``proxy()``
        before, after, single, session_key: passed to ``resolver()``
        description: GraphQL field description
    """
    if resolve is None:
        if queryable is None:
            raise TypeError("field() needs a queryable or a resolve function")
        resolve = resolver(queryable, before=before, after=after, session_key=session_key, single=single)
    elif before is not None or after is not None:
        raise TypeError("before/after hooks belong to resolver(); pass them there when giving resolve=")
    arguments = dict(DEFAULT_ARGS if args is None else args)
    fn, defaults = _make_strawberry_resolver(resolve, arguments)
    # a non-null default is always passed, so the resolver never reads preloaded rows
    preload = uses_preload(resolve) and all(value is None for value in defaults.values())
    metadata = {PRELOAD_KEY: preload}
    if description:
        return strawberry.field(resolver=fn, description=description, metadata=metadata)
    return strawberry.field(resolver=fn, metadata=metadata)


__all__: List[str] = ['field', 'DEFAULT_ARGS']
