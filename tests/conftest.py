#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
    tests.conftest
    ~~~~~~~~~~~~~~

    Shared fixtures: a fresh SQLite database per test, a fixed clock
    and small factories for libraries and books.

    :copyright: (c) 2025 by Authors.
    :license: see LICENSE for more details.
"""

import os
import datetime

# Set TESTING before any shelfshare imports
os.environ["TESTING"] = "true"

import pytest
from sqlalchemy.orm import sessionmaker
from shelfshare.core.db import Base, make_engine
from shelfshare.core import models  # noqa: F401  registers tables
from shelfshare.core.catalog import CatalogAPI

T0 = datetime.datetime(2025, 3, 1, 12, 0, 0)
HOUR = datetime.timedelta(hours=1)

OWNER = "user-owner"
ALICE = "user-alice"
BOB = "user-bob"


@pytest.fixture
def engine():
    engine = make_engine("sqlite:///:memory:", echo=False)
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def libraries(db_session):
    """Each of OWNER, ALICE and BOB gets a library."""
    return {
        user: CatalogAPI.create_library(db_session, user, name=f"{user}'s shelf")
        for user in (OWNER, ALICE, BOB)
    }


@pytest.fixture
def book(db_session, libraries):
    return CatalogAPI.add_book(
        db_session, OWNER, "The Left Hand of Darkness", author="Ursula K. Le Guin")


@pytest.fixture
def two_sessions(tmp_path):
    """Two independent sessions on one file-backed database."""
    engine = make_engine(f"sqlite:///{tmp_path / 'race.db'}", echo=False)
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    first, second = SessionLocal(), SessionLocal()
    try:
        yield first, second
    finally:
        first.close()
        second.close()
        engine.dispose()
