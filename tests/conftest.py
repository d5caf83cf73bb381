import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import scoped_session, sessionmaker
from sqlalchemy.pool import StaticPool

from querycatalog.web.app import create_app
from querycatalog.web.catalog import QueryCatalog
from querycatalog.web.models.base import Base
from querycatalog.web.models.user import User

conf = {
    "TESTING": True,
    "SECRET_KEY": "testing",
    "OAUTH_CONSUMER_TOKEN": None,
    "OAUTH_SECRET_TOKEN": None,
    "REDIS_HOST": None,
    "DB_URL": "sqlite://",
    "QUERY_RESULTS_PER_PAGE": 3,
    "LOG_LEVEL": "DEBUG",
}


@pytest.fixture(scope="function")
def db_session():
    # One in-memory database shared by every connection of the test
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    session = scoped_session(sessionmaker(bind=engine))
    yield session
    session.remove()
    engine.dispose()


@pytest.fixture(scope="function")
def users(db_session):
    alice = User(username="Alice", wiki_uid=101, stars=0, forks=0)
    bob = User(username="Bob", wiki_uid=102, stars=0, forks=0)
    carol = User(username="Carol", wiki_uid=103, stars=0, forks=0)
    db_session.add_all([alice, bob, carol])
    db_session.commit()
    return {"alice": alice.id, "bob": bob.id, "carol": carol.id}


@pytest.fixture(scope="function")
def catalog(db_session):
    return QueryCatalog.from_session(db_session)


@pytest.fixture(scope="function")
def make_query(catalog, users):
    def make(creator="alice", title="Top editors", text="SELECT * FROM revision",
             private=False, tags=("wiki",), description="a query"):
        result = catalog.create(
            title, description, users[creator], private, text, list(tags)
        )
        assert result.success, result
        return result.data
    return make


@pytest.fixture(scope="function")
def client(db_session, mocker):
    mocker.patch(
        "querycatalog.web.connections.Connections.session",
        new_callable=mocker.PropertyMock,
        return_value=db_session,
    )

    app = create_app(conf)

    with app.test_client() as client:
        yield client
