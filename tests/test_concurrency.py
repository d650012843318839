import asyncio
import pytest
from types import SimpleNamespace

from graphql import GraphQLList, GraphQLObjectType, GraphQLField, GraphQLString
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from sqlresolver import proxy, resolver
from tests.fixtures import create_sample_users
from tests.models import Base, User
from tests.schema import schema as resolver_schema

_task_list = GraphQLList(GraphQLObjectType('T', {'title': GraphQLField(GraphQLString)}))


def _info(context):
    return SimpleNamespace(context=context, return_type=_task_list, field_nodes=[])


async def _load_users(session):
    rows = await session.execute(select(User).order_by(User.id))
    return list(rows.scalars().all())


@pytest.mark.asyncio
async def test_same_resolver_with_different_parents(db_session, populated_db):
    tasks = resolver(User.tasks)
    user_a, user_b = await _load_users(db_session)
    db_session.expunge_all()
    info = _info({'db_session': db_session})

    results = await asyncio.gather(
        tasks(user_a, info, limit=2),
        tasks(user_b, info),
        tasks(user_a, info, order='reverse:id'),
    )
    assert [t.id for t in results[0]] == [1, 2]
    assert [t.id for t in results[1]] == [4, 5]
    assert [t.id for t in results[2]] == [3, 2, 1]


@pytest.mark.asyncio
async def test_proxy_matches_direct_call(db_session, populated_db):
    tasks = resolver(User.tasks)
    forwarded = proxy(tasks)
    user_a, _ = await _load_users(db_session)
    db_session.expunge_all()
    info = _info({'db_session': db_session})

    direct = await tasks(user_a, info, limit=2, order='reverse:id')
    via_proxy = await forwarded(user_a, info, limit=2, order='reverse:id')
    assert [t.id for t in direct] == [t.id for t in via_proxy] == [3, 2]


@pytest.mark.asyncio
async def test_parallel_schema_executions(db_session, populated_db):
    q = "query { users { id tasks(limit: 1) { title } } }"
    results = await asyncio.gather(*[
        resolver_schema.execute(q, context_value={'db_session': db_session}) for _ in range(5)
    ])
    for res in results:
        assert res.errors is None, res.errors
        assert [len(u['tasks']) for u in res.data['users']] == [1, 1]


@pytest.fixture
async def file_session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'resolver.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        await create_sample_users(session)
    yield factory
    await engine.dispose()


@pytest.mark.asyncio
async def test_session_factory_gives_each_call_a_session(file_session_factory):
    q = """
    query { users(order: "id") { id tasks(limit: 2, order: "reverse:id") { id } } }
    """
    res = await resolver_schema.execute(q, context_value={'session_factory': file_session_factory})
    assert res.errors is None, res.errors
    assert res.data == {
        'users': [
            {'id': 1, 'tasks': [{'id': 3}, {'id': 2}]},
            {'id': 2, 'tasks': [{'id': 5}, {'id': 4}]},
        ]
    }
