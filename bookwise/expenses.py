# bookwise/expenses.py

import logging
from datetime import date
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from .classifier import UNKNOWN, ClassificationEngine
from .crud import SqlAlchemyStore
from .dependencies import get_aggregator, get_classifier, get_current_user, get_store
from .errors import BookwiseError, DuplicateCategory
from .models import EXPENSE, User
from .schemas import (
    BulkImportRequest,
    ClassifySuggestionRequest,
    ExpenseCreate,
    ExpenseUpdate,
    QuickExpenseRequest,
)
from .statistics import StatisticsAggregator, validate_range

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/expenses", tags=["expenses"])

MAX_PAGE_SIZE = 100
MAX_RECENT = 20


def record_quick_expense(
    store: SqlAlchemyStore,
    classifier: ClassificationEngine,
    user_id: int,
    category_name: str,
    amount,
    type: Optional[str] = None,
    description: Optional[str] = None,
    today: Optional[date] = None,
):
    """Record an expense dated today against a category looked up by name.

    Without an explicit type the name is classified; names that cannot be
    classified are filed as expenses. A missing (owner, name, type) category
    is created with the recommended color.
    """
    final_type = type
    auto_classified = False

    if not type:
        suggestion = classifier.suggest_type(category_name)
        auto_classified = True
        if suggestion.type != UNKNOWN:
            final_type = suggestion.type
            logger.info(
                "Classified '%s' as %s for user %s (confidence %s, %s)",
                category_name, final_type, user_id, suggestion.confidence, suggestion.reason,
            )
        else:
            final_type = EXPENSE
            logger.warning(
                "Could not classify '%s' for user %s, defaulting to expense", category_name, user_id
            )

    category = store.find_category_by_name(user_id, category_name, final_type)
    if category is None:
        try:
            category = store.create_category(
                user_id,
                category_name,
                final_type,
                classifier.recommended_color(final_type, category_name),
            )
        except DuplicateCategory:
            # created by a concurrent request since the lookup
            category = store.find_category_by_name(user_id, category_name, final_type)
            if category is None:
                raise

    expense = store.create_expense(
        user_id=user_id,
        category_id=category.id,
        amount=amount,
        transaction_date=today or date.today(),
        description=description,
    )
    classification = {
        "is_auto_classified": auto_classified,
        "type": final_type,
        "category_name": category_name,
    }
    return expense, category, classification


@router.get("/statistics")
def get_statistics(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    group_by: Literal["day", "month"] = Query("month", alias="groupBy"),
    user: User = Depends(get_current_user),
    aggregator: StatisticsAggregator = Depends(get_aggregator),
):
    statistics = aggregator.get_statistics(user.id, start_date, end_date, group_by)
    return {"success": True, "message": "Statistics loaded", "data": statistics}


@router.get("/recent")
def get_recent_expenses(
    limit: int = Query(10, ge=1),
    user: User = Depends(get_current_user),
    store: SqlAlchemyStore = Depends(get_store),
):
    page = store.list_expenses(user.id, page=1, limit=min(limit, MAX_RECENT))
    return {
        "success": True,
        "message": "Recent expenses loaded",
        "data": {"expenses": [e.to_dict() for e in page.items], "total": len(page.items)},
    }


@router.post("/quick", status_code=201)
def quick_expense(
    payload: QuickExpenseRequest,
    user: User = Depends(get_current_user),
    store: SqlAlchemyStore = Depends(get_store),
    classifier: ClassificationEngine = Depends(get_classifier),
):
    expense, category, classification = record_quick_expense(
        store,
        classifier,
        user.id,
        payload.category_name,
        payload.amount,
        type=payload.type,
        description=payload.description,
    )
    if classification["is_auto_classified"]:
        message = f"Recorded, classified as {classification['type']}"
    else:
        message = "Recorded"
    return {
        "success": True,
        "message": message,
        "data": {
            "expense": expense.to_dict(),
            "category": category.to_dict(),
            "classification": classification,
        },
    }


@router.post("/bulk-import")
def bulk_import(
    payload: BulkImportRequest,
    user: User = Depends(get_current_user),
    store: SqlAlchemyStore = Depends(get_store),
):
    results = {"success": [], "failed": []}

    for index, item in enumerate(payload.expenses):
        try:
            data = ExpenseCreate.model_validate(item)
            expense = store.create_expense(
                user_id=user.id,
                category_id=data.category_id,
                amount=data.amount,
                transaction_date=data.transaction_date,
                description=data.description,
            )
        except ValidationError as e:
            errors = "; ".join(err["msg"] for err in e.errors())
            results["failed"].append({"index": index, "data": item, "error": errors})
        except BookwiseError as e:
            results["failed"].append({"index": index, "data": item, "error": e.message})
        else:
            results["success"].append({"index": index, "expense": expense.to_dict()})

    logger.info(
        "User %s bulk import: %d attempted, %d ok, %d failed",
        user.id, len(payload.expenses), len(results["success"]), len(results["failed"]),
    )
    body = {
        "success": not results["failed"],
        "message": (
            f"Import finished, {len(results['success'])} succeeded, "
            f"{len(results['failed'])} failed"
        ),
        "data": results,
    }
    status_code = 207 if results["failed"] else 201
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


@router.post("/classify-suggestion")
def classify_suggestion(
    payload: ClassifySuggestionRequest,
    user: User = Depends(get_current_user),
    classifier: ClassificationEngine = Depends(get_classifier),
):
    suggestion = classifier.suggest_type(payload.category_name)
    data = suggestion.to_dict()
    data["recommended_color"] = (
        classifier.recommended_color(suggestion.type, payload.category_name)
        if suggestion.is_known
        else None
    )
    return {
        "success": True,
        "message": "Suggestion ready",
        "data": {
            "category_name": payload.category_name,
            "suggestion": data,
            "type_text": suggestion.type if suggestion.is_known else "undetermined",
        },
    }


@router.get("")
def list_expenses(
    page: int = Query(1, ge=1, le=1000),
    limit: int = Query(20, ge=1),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    category_id: Optional[int] = Query(None, alias="categoryId", ge=1),
    type: Optional[Literal["income", "expense"]] = None,
    user: User = Depends(get_current_user),
    store: SqlAlchemyStore = Depends(get_store),
):
    validate_range(start_date, end_date)
    result = store.list_expenses(
        user.id,
        page=page,
        limit=min(limit, MAX_PAGE_SIZE),
        start_date=start_date,
        end_date=end_date,
        category_id=category_id,
        type=type,
    )
    return {
        "success": True,
        "message": "Expenses loaded",
        "data": {
            "expenses": [e.to_dict() for e in result.items],
            "pagination": result.pagination(),
        },
    }


@router.get("/{expense_id}")
def get_expense(
    expense_id: int,
    user: User = Depends(get_current_user),
    store: SqlAlchemyStore = Depends(get_store),
):
    expense = store.get_expense(expense_id, user.id)
    return {"success": True, "message": "Expense loaded", "data": {"expense": expense.to_dict()}}


@router.post("", status_code=201)
def create_expense(
    payload: ExpenseCreate,
    user: User = Depends(get_current_user),
    store: SqlAlchemyStore = Depends(get_store),
):
    expense = store.create_expense(
        user_id=user.id,
        category_id=payload.category_id,
        amount=payload.amount,
        transaction_date=payload.transaction_date,
        description=payload.description,
    )
    return {"success": True, "message": "Expense created", "data": {"expense": expense.to_dict()}}


@router.put("/{expense_id}")
def update_expense(
    expense_id: int,
    payload: ExpenseUpdate,
    user: User = Depends(get_current_user),
    store: SqlAlchemyStore = Depends(get_store),
):
    expense = store.update_expense(expense_id, user.id, payload.changes())
    return {"success": True, "message": "Expense updated", "data": {"expense": expense.to_dict()}}


@router.delete("/{expense_id}")
def delete_expense(
    expense_id: int,
    user: User = Depends(get_current_user),
    store: SqlAlchemyStore = Depends(get_store),
):
    store.delete_expense(expense_id, user.id)
    return {"success": True, "message": "Expense deleted"}
