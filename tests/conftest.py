import pytest

from santa_exchange.db import Base, MemoryStore, SqlStore, create_session_factory, init_engine

NAMES = ("Alice", "Bob", "Carol", "Dave", "Erin", "Frank")


@pytest.fixture(params=["memory", "sql"])
def store(request, tmp_path):
    if request.param == "memory":
        yield MemoryStore()
        return

    engine = init_engine(f"sqlite+pysqlite:///{tmp_path / 'santa.db'}")
    Base.metadata.create_all(engine)
    yield SqlStore(create_session_factory(engine))
    engine.dispose()


@pytest.fixture
def users(store):
    return {name: store.add_user(name, f"{name.lower()}@example.com") for name in NAMES}
