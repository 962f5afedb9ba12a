"""Models shared by the test suite."""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import Column, ForeignKey, Integer, MetaData, String, Table
from sqlmodel import Field, Relationship, SQLModel


class Country(SQLModel, table=True):
    __tablename__ = "countries"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(default="")


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(default="")
    email: Optional[str] = Field(default=None)
    age: Optional[int] = Field(default=None)
    active: bool = Field(default=True)
    created_at: Optional[datetime] = Field(default=None)
    country_id: Optional[int] = Field(default=None, foreign_key="countries.id")

    country: Optional[Country] = Relationship()
    posts: List["Post"] = Relationship(back_populates="author")


class Post(SQLModel, table=True):
    __tablename__ = "posts"

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str = Field(default="")
    views: int = Field(default=0)
    author_id: Optional[int] = Field(default=None, foreign_key="users.id")

    author: Optional[User] = Relationship(back_populates="posts")
    comments: List["Comment"] = Relationship(back_populates="post")


class Comment(SQLModel, table=True):
    __tablename__ = "comments"

    id: Optional[int] = Field(default=None, primary_key=True)
    body: str = Field(default="")
    post_id: Optional[int] = Field(default=None, foreign_key="posts.id")

    post: Optional[Post] = Relationship(back_populates="comments")


# Plain Core tables, kept out of the SQLModel metadata
core_metadata = MetaData()

publishers = Table(
    "publishers",
    core_metadata,
    Column("id", Integer, primary_key=True),
    Column("name", String(50), nullable=False),
)

authors = Table(
    "authors",
    core_metadata,
    Column("id", Integer, primary_key=True),
    Column("name", String(50), nullable=False),
    Column("born", Integer, nullable=True),
)

books = Table(
    "books",
    core_metadata,
    Column("id", Integer, primary_key=True),
    Column("title", String(100), nullable=False),
    Column("pages", Integer, nullable=True),
    Column("author_id", Integer, ForeignKey("authors.id"), nullable=True),
    Column("publisher_id", Integer, ForeignKey("publishers.id"), nullable=True),
)
