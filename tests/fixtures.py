"""Database fixtures for sqlresolver tests (shared)."""

import random
from datetime import datetime

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from tests.models import User, Task


def _random_title() -> str:
    return str(random.random())


async def create_sample_users(session: AsyncSession):
    """Create and commit two users with tasks.

    User 1 has three tasks dated June 11, 16 and 20 2014; user 2 has two tasks
    with default timestamps. Names sort opposite to ids. The session is
    cleared afterwards so resolvers load fresh rows.
    """
    user_a = User(
        id=1,
        name='b' + str(random.random()),
        tasks=[
            Task(id=1, title=_random_title(), created=datetime(2014, 6, 11)),
            Task(id=2, title=_random_title(), created=datetime(2014, 6, 16)),
            Task(id=3, title=_random_title(), created=datetime(2014, 6, 20)),
        ],
    )
    user_b = User(
        id=2,
        name='a' + str(random.random()),
        tasks=[
            Task(id=4, title=_random_title()),
            Task(id=5, title=_random_title()),
        ],
    )
    session.add_all([user_a, user_b])
    await session.flush()
    await session.commit()
    session.expunge_all()
    return [user_a, user_b]


@pytest.fixture(scope="function")
async def sample_users(db_session: AsyncSession):
    return await create_sample_users(db_session)


@pytest.fixture(scope="function")
async def populated_db(sample_users):
    user_a, user_b = sample_users
    return {
        'users': sample_users,
        'user_a': user_a,
        'user_b': user_b,
    }
