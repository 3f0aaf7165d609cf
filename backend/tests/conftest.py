"""
Pytest fixtures for schoolhub backend tests.

Provides test database setup, owner/media/category fixtures, and test client.
"""

import pytest
from schoolhub import create_app
from schoolhub.extensions import db
from schoolhub.services import owner_service, media_service, category_service


ACTOR = "tester"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'LOG_LEVEL': 'WARNING',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def teacher(db_session):
    """Teacher: carries addresses, contact numbers, email addresses."""
    return owner_service.create_owner(
        "teacher", {"title": "Ms", "first_name": "Thandi", "last_name": "Mokoena"}, actor=ACTOR
    )


@pytest.fixture(scope='function')
def product(db_session):
    return owner_service.create_owner(
        "product", {"sku": "BALL-5", "name": "Soccer Ball", "price_cents": 19900}, actor=ACTOR
    )


@pytest.fixture(scope='function')
def other_product(db_session):
    return owner_service.create_owner(
        "product", {"sku": "NET-1", "name": "Goal Net", "price_cents": 89900}, actor=ACTOR
    )


@pytest.fixture(scope='function')
def images(db_session):
    """Three shared image rows."""
    return [
        media_service.create_media(
            "image",
            {"file_name": f"img{i}.jpg", "relative_path": f"uploads/img{i}.jpg", "size": 1024 * i},
            actor=ACTOR,
        )
        for i in range(1, 4)
    ]


@pytest.fixture(scope='function')
def sport_tree(db_session):
    """Product categories: Sport > Soccer > Junior, plus a separate Books root."""
    sport = category_service.create_category("product", "Sport", actor=ACTOR)
    soccer = category_service.create_category("product", "Soccer", parent_id=sport.id, actor=ACTOR)
    junior = category_service.create_category("product", "Junior", parent_id=soccer.id, actor=ACTOR)
    books = category_service.create_category("product", "Books", actor=ACTOR)
    return {"sport": sport, "soccer": soccer, "junior": junior, "books": books}
