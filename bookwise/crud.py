import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .default_categories import DEFAULT_CATEGORIES
from .errors import (
    DuplicateCategory,
    NotFound,
    OwnershipViolation,
    ReferentialBlock,
    ValidationFailed,
)
from .interfaces import Page, TransactionRow, TransactionStore
from .models import Category, Expense, DEFAULT_CATEGORY_COLOR

CENT = Decimal("0.01")
EXPENSE_FIELDS = ("category_id", "amount", "description", "transaction_date")


def to_amount(value) -> Decimal:
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


class SqlAlchemyStore(TransactionStore):
    """TransactionStore on one SQLAlchemy session.

    Every mutation commits on success and rolls back on failure, so a request
    never leaves a half-applied change in the session.
    """

    def __init__(self, db: Session, logger: Optional[logging.Logger] = None):
        self.db = db
        self.logger = logger or logging.getLogger(__name__)

    # categories

    def find_category_by_name(self, user_id: int, name: str, type: str):
        return self.db.query(Category).filter_by(user_id=user_id, name=name, type=type).first()

    def get_category(self, category_id: int, user_id: int):
        category = self.db.get(Category, category_id)
        if category is None:
            raise NotFound("Category not found")
        if category.user_id != user_id:
            self.logger.warning(
                "User %s tried to access category %s owned by user %s",
                user_id, category_id, category.user_id,
            )
            raise OwnershipViolation("You do not have access to this category")
        return category

    def create_category(self, user_id: int, name: str, type: str, color: Optional[str] = None):
        if self.find_category_by_name(user_id, name, type):
            raise DuplicateCategory(f"A {type} category named '{name}' already exists")

        category = Category(
            user_id=user_id, name=name, type=type, color=color or DEFAULT_CATEGORY_COLOR
        )
        self.db.add(category)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise DuplicateCategory(f"A {type} category named '{name}' already exists") from e
        self.db.refresh(category)

        self.logger.info(
            "Category %s created for user %s (%s, %s)", category.id, user_id, name, type
        )
        return category

    def list_categories(self, user_id: int, type: Optional[str] = None) -> List[Category]:
        usage = (
            self.db.query(Expense.category_id, func.count(Expense.id).label("usage_count"))
            .filter(Expense.user_id == user_id)
            .group_by(Expense.category_id)
            .subquery()
        )
        query = (
            self.db.query(Category, func.coalesce(usage.c.usage_count, 0))
            .outerjoin(usage, Category.id == usage.c.category_id)
            .filter(Category.user_id == user_id)
        )
        if type:
            query = query.filter(Category.type == type)

        categories = []
        for category, count in query.order_by(Category.name.asc()).all():
            category.usage_count = int(count)
            categories.append(category)
        return categories

    def update_category(
        self, category_id: int, user_id: int, name: Optional[str] = None, color: Optional[str] = None
    ):
        category = self.get_category(category_id, user_id)
        if name is None and color is None:
            raise ValidationFailed("No fields to update")

        if name is not None and name != category.name:
            if self.find_category_by_name(user_id, name, category.type):
                raise DuplicateCategory(
                    f"A {category.type} category named '{name}' already exists"
                )
            category.name = name
        if color is not None:
            category.color = color

        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise DuplicateCategory(
                f"A {category.type} category named '{name}' already exists"
            ) from e
        self.db.refresh(category)

        self.logger.info("Category %s updated by user %s", category_id, user_id)
        return category

    def usage_count(self, category_id: int) -> int:
        return (
            self.db.query(func.count(Expense.id))
            .filter(Expense.category_id == category_id)
            .scalar()
        )

    def delete_category(self, category_id: int, user_id: int) -> None:
        category = self.get_category(category_id, user_id)
        count = self.usage_count(category_id)
        if count > 0:
            raise ReferentialBlock(category_id, count)

        self.db.delete(category)
        try:
            self.db.commit()
        except IntegrityError as e:
            # an expense was attached after the count, the foreign key refused
            self.db.rollback()
            raise ReferentialBlock(category_id, self.usage_count(category_id)) from e

        self.logger.info("Category %s (%s) deleted by user %s", category_id, category.name, user_id)

    def create_default_categories(self, user_id: int) -> List[Category]:
        created = []
        for cat in DEFAULT_CATEGORIES:
            if self.find_category_by_name(user_id, cat["name"], cat["type"]):
                continue
            category = Category(
                user_id=user_id, name=cat["name"], type=cat["type"], color=cat["color"]
            )
            self.db.add(category)
            created.append(category)

        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise
        for category in created:
            self.db.refresh(category)

        self.logger.info("Default categories created for user %s: %d", user_id, len(created))
        return created

    # expenses

    def _owned_category(self, category_id: int, user_id: int) -> Category:
        # row lock where supported, so the category cannot vanish before the insert
        category = (
            self.db.query(Category)
            .filter(Category.id == category_id, Category.user_id == user_id)
            .with_for_update(read=True)
            .first()
        )
        if category is None:
            self.logger.warning(
                "User %s referenced category %s which is missing or not theirs",
                user_id, category_id,
            )
            raise OwnershipViolation("Category does not exist or does not belong to this user")
        return category

    def get_expense(self, expense_id: int, user_id: int):
        expense = self.db.get(Expense, expense_id)
        if expense is None:
            raise NotFound("Expense not found")
        if expense.user_id != user_id:
            self.logger.warning(
                "User %s tried to access expense %s owned by user %s",
                user_id, expense_id, expense.user_id,
            )
            raise OwnershipViolation("You do not have access to this expense")
        return expense

    def create_expense(self, user_id, category_id, amount, transaction_date, description=None):
        try:
            self._owned_category(category_id, user_id)
            expense = Expense(
                user_id=user_id,
                category_id=category_id,
                amount=to_amount(amount),
                description=description or None,
                transaction_date=transaction_date,
            )
            self.db.add(expense)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise OwnershipViolation(
                "Category does not exist or does not belong to this user"
            ) from e
        except OwnershipViolation:
            self.db.rollback()
            raise
        self.db.refresh(expense)

        self.logger.info(
            "Expense %s created for user %s (category %s, amount %s, date %s)",
            expense.id, user_id, category_id, expense.amount, transaction_date,
        )
        return expense

    def list_expenses(
        self,
        user_id: int,
        page: int = 1,
        limit: int = 20,
        start_date=None,
        end_date=None,
        category_id: Optional[int] = None,
        type: Optional[str] = None,
    ) -> Page:
        query = self.db.query(Expense).join(Category).filter(Expense.user_id == user_id)
        if start_date:
            query = query.filter(Expense.transaction_date >= start_date)
        if end_date:
            query = query.filter(Expense.transaction_date <= end_date)
        if category_id:
            query = query.filter(Expense.category_id == category_id)
        if type:
            query = query.filter(Category.type == type)

        total = query.count()
        items = (
            query.order_by(
                Expense.transaction_date.desc(), Expense.created_at.desc(), Expense.id.desc()
            )
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return Page(items=items, page=page, limit=limit, total=total)

    def update_expense(self, expense_id: int, user_id: int, changes: Dict[str, Any]):
        expense = self.get_expense(expense_id, user_id)
        changes = {k: v for k, v in changes.items() if k in EXPENSE_FIELDS}
        if not changes:
            raise ValidationFailed("No fields to update")

        try:
            if "category_id" in changes:
                self._owned_category(changes["category_id"], user_id)
                expense.category_id = changes["category_id"]
            if "amount" in changes:
                expense.amount = to_amount(changes["amount"])
            if "description" in changes:
                expense.description = changes["description"] or None
            if "transaction_date" in changes:
                expense.transaction_date = changes["transaction_date"]
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise OwnershipViolation(
                "Category does not exist or does not belong to this user"
            ) from e
        except OwnershipViolation:
            self.db.rollback()
            raise
        self.db.refresh(expense)

        self.logger.info("Expense %s updated by user %s: %s", expense_id, user_id, sorted(changes))
        return expense

    def delete_expense(self, expense_id: int, user_id: int) -> None:
        expense = self.get_expense(expense_id, user_id)
        self.db.delete(expense)
        self.db.commit()
        self.logger.info("Expense %s deleted by user %s", expense_id, user_id)

    def fetch_transactions(self, user_id: int, start_date=None, end_date=None) -> List[TransactionRow]:
        query = (
            self.db.query(
                Category.id,
                Category.name,
                Category.type,
                Category.color,
                Expense.amount,
                Expense.transaction_date,
            )
            .join(Category, Expense.category_id == Category.id)
            .filter(Expense.user_id == user_id)
        )
        if start_date:
            query = query.filter(Expense.transaction_date >= start_date)
        if end_date:
            query = query.filter(Expense.transaction_date <= end_date)

        rows = query.order_by(Expense.transaction_date.desc(), Expense.id.desc()).all()
        return [
            TransactionRow(
                category_id=row[0],
                category_name=row[1],
                category_type=row[2],
                category_color=row[3],
                amount=to_amount(row[4]),
                transaction_date=row[5],
            )
            for row in rows
        ]
