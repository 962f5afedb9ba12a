from datetime import datetime

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from tests.models import Comment, Country, Post, User, authors, books, core_metadata, publishers


@pytest.fixture
def engine():
    """In-memory SQLite engine with the ORM tables created."""
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def seeded_session(session):
    """Session with users, posts, comments and countries."""
    nl = Country(name="Netherlands")
    be = Country(name="Belgium")
    alice = User(
        name="alice",
        email="alice@example.com",
        age=30,
        country=nl,
        created_at=datetime(2024, 1, 10),
    )
    bob = User(name="bob", age=25, active=False, country=be, created_at=datetime(2024, 3, 5))
    carol = User(
        name="carol",
        email="carol@example.com",
        age=40,
        country=nl,
        created_at=datetime(2023, 12, 1),
    )
    dave = User(name="dave", email="dave@example.org")
    hello = Post(title="Hello World", views=10, author=alice)
    tips = Post(title="SQL tips", views=5, author=alice)
    again = Post(title="hello again", views=1, author=bob)
    session.add_all([nl, be, alice, bob, carol, dave, hello, tips, again])
    session.add_all(
        [
            Comment(body="Nice", post=hello),
            Comment(body="Great", post=hello),
            Comment(body="Meh", post=again),
        ]
    )
    session.commit()
    session.expunge_all()
    return session


@pytest.fixture
def core_connection():
    """Connection to an in-memory database with the Core tables seeded."""
    eng = create_engine("sqlite://", poolclass=StaticPool)
    core_metadata.create_all(eng)
    with eng.begin() as conn:
        conn.execute(
            publishers.insert(),
            [{"id": 1, "name": "Acme"}, {"id": 2, "name": "Globex"}],
        )
        conn.execute(
            authors.insert(),
            [
                {"id": 1, "name": "Tolkien", "born": 1892},
                {"id": 2, "name": "Le Guin", "born": 1929},
            ],
        )
        conn.execute(
            books.insert(),
            [
                {"id": 1, "title": "The Hobbit", "pages": 310, "author_id": 1, "publisher_id": 1},
                {"id": 2, "title": "Earthsea", "pages": 205, "author_id": 2, "publisher_id": 2},
                {"id": 3, "title": "Silmarillion", "pages": 365, "author_id": 1, "publisher_id": None},
            ],
        )
    with eng.connect() as conn:
        yield conn
    eng.dispose()
