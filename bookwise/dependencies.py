from fastapi import Depends, Request
from sqlalchemy.orm import Session

from .classifier import ClassificationEngine, default_engine
from .config import Settings
from .crud import SqlAlchemyStore
from .errors import AuthenticationFailed
from .models import User
from .statistics import StatisticsAggregator


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


# Dependency to get DB session
def get_db(request: Request):
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_store(db: Session = Depends(get_db)) -> SqlAlchemyStore:
    return SqlAlchemyStore(db)


def get_aggregator(store: SqlAlchemyStore = Depends(get_store)) -> StatisticsAggregator:
    return StatisticsAggregator(store)


def get_classifier() -> ClassificationEngine:
    return default_engine


# Dependency to get logged-in user
def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    user_id = request.session.get("user_id")
    if not user_id:
        raise AuthenticationFailed("Please log in first")

    user = db.get(User, user_id)
    if user is None:
        request.session.clear()
        raise AuthenticationFailed("User account no longer exists")
    return user
