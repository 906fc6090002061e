# bookwise/categories.py

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends

from .crud import SqlAlchemyStore
from .dependencies import get_current_user, get_store
from .models import User
from .schemas import CategoryCreate, CategoryUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/categories", tags=["categories"])


@router.get("")
def list_categories(
    type: Optional[Literal["income", "expense"]] = None,
    user: User = Depends(get_current_user),
    store: SqlAlchemyStore = Depends(get_store),
):
    categories = store.list_categories(user.id, type)
    return {
        "success": True,
        "message": "Categories loaded",
        "data": {
            "categories": [c.to_dict() for c in categories],
            "total": len(categories),
        },
    }


@router.post("/init-defaults", status_code=201)
def init_default_categories(
    user: User = Depends(get_current_user),
    store: SqlAlchemyStore = Depends(get_store),
):
    created = store.create_default_categories(user.id)
    return {
        "success": True,
        "message": f"Created {len(created)} default categories",
        "data": {"categories": [c.to_dict() for c in created], "total": len(created)},
    }


@router.get("/{category_id}")
def get_category(
    category_id: int,
    user: User = Depends(get_current_user),
    store: SqlAlchemyStore = Depends(get_store),
):
    category = store.get_category(category_id, user.id)
    category.usage_count = store.usage_count(category_id)
    return {"success": True, "message": "Category loaded", "data": {"category": category.to_dict()}}


@router.get("/{category_id}/stats")
def get_category_stats(
    category_id: int,
    user: User = Depends(get_current_user),
    store: SqlAlchemyStore = Depends(get_store),
):
    category = store.get_category(category_id, user.id)
    count = store.usage_count(category_id)
    category.usage_count = count
    return {
        "success": True,
        "message": "Category statistics loaded",
        "data": {
            "category": category.to_dict(),
            "statistics": {"total_transactions": count, "can_delete": count == 0},
        },
    }


@router.post("", status_code=201)
def create_category(
    payload: CategoryCreate,
    user: User = Depends(get_current_user),
    store: SqlAlchemyStore = Depends(get_store),
):
    category = store.create_category(user.id, payload.name, payload.type, payload.color)
    return {"success": True, "message": "Category created", "data": {"category": category.to_dict()}}


@router.put("/{category_id}")
def update_category(
    category_id: int,
    payload: CategoryUpdate,
    user: User = Depends(get_current_user),
    store: SqlAlchemyStore = Depends(get_store),
):
    category = store.update_category(category_id, user.id, name=payload.name, color=payload.color)
    return {"success": True, "message": "Category updated", "data": {"category": category.to_dict()}}


@router.delete("/{category_id}")
def delete_category(
    category_id: int,
    user: User = Depends(get_current_user),
    store: SqlAlchemyStore = Depends(get_store),
):
    store.delete_category(category_id, user.id)
    return {"success": True, "message": "Category deleted"}
