from datetime import date, timedelta
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from bookwise.default_categories import DEFAULT_CATEGORIES
from bookwise.errors import (
    DuplicateCategory,
    NotFound,
    OwnershipViolation,
    ReferentialBlock,
    ValidationFailed,
)
from bookwise.models import Category, Expense
from bookwise.statistics import StatisticsAggregator


def test_create_category_defaults_color(store, user):
    category = store.create_category(user.id, "寵物", "expense")
    assert category.id is not None
    assert category.color == "#007bff"


def test_category_name_unique_per_owner_and_type(store, user, other_user):
    store.create_category(user.id, "紅利", "income")
    with pytest.raises(DuplicateCategory):
        store.create_category(user.id, "紅利", "income")
    # same name is fine for the other type or another user
    store.create_category(user.id, "紅利", "expense")
    store.create_category(other_user.id, "紅利", "income")


def test_get_category_checks_owner(store, user, other_user):
    category = store.create_category(user.id, "寵物", "expense")
    with pytest.raises(OwnershipViolation):
        store.get_category(category.id, other_user.id)
    with pytest.raises(NotFound):
        store.get_category(9999, user.id)


def test_list_categories_with_usage_count(store, user, other_user, today):
    food = store.create_category(user.id, "餐飲", "expense")
    store.create_category(user.id, "薪資", "income")
    store.create_category(other_user.id, "交通", "expense")
    store.create_expense(user.id, food.id, Decimal("80"), today)
    store.create_expense(user.id, food.id, Decimal("120"), today)

    categories = store.list_categories(user.id)
    assert {c.name: c.usage_count for c in categories} == {"餐飲": 2, "薪資": 0}
    assert [c.name for c in store.list_categories(user.id, "income")] == ["薪資"]
    assert categories[0].to_dict()["usage_count"] in (0, 2)


def test_update_category_name_and_color(store, user):
    category = store.create_category(user.id, "餐飲", "expense")
    store.create_category(user.id, "交通", "expense")

    updated = store.update_category(category.id, user.id, name="外食", color="#123456")
    assert updated.name == "外食"
    assert updated.color == "#123456"
    assert updated.type == "expense"

    with pytest.raises(DuplicateCategory):
        store.update_category(category.id, user.id, name="交通")
    with pytest.raises(ValidationFailed):
        store.update_category(category.id, user.id)


def test_delete_blocked_while_in_use(store, user, today):
    category = store.create_category(user.id, "餐飲", "expense")
    expense = store.create_expense(user.id, category.id, Decimal("10"), today)

    with pytest.raises(ReferentialBlock) as excinfo:
        store.delete_category(category.id, user.id)
    assert excinfo.value.usage_count == 1
    assert "1" in excinfo.value.message

    store.delete_expense(expense.id, user.id)
    assert store.usage_count(category.id) == 0
    store.delete_category(category.id, user.id)
    with pytest.raises(NotFound):
        store.get_category(category.id, user.id)


def test_delete_other_users_category_rejected(store, user, other_user):
    category = store.create_category(user.id, "餐飲", "expense")
    with pytest.raises(OwnershipViolation):
        store.delete_category(category.id, other_user.id)


def test_default_categories_created_once(store, user):
    created = store.create_default_categories(user.id)
    assert len(created) == len(DEFAULT_CATEGORIES)
    assert store.create_default_categories(user.id) == []


def test_expense_requires_own_category(store, user, other_user, today):
    foreign = store.create_category(other_user.id, "餐飲", "expense")
    with pytest.raises(OwnershipViolation):
        store.create_expense(user.id, foreign.id, Decimal("10"), today)
    with pytest.raises(OwnershipViolation):
        store.create_expense(user.id, 9999, Decimal("10"), today)
    assert store.list_expenses(user.id).total == 0


def test_amount_stored_with_two_decimals(store, user, today):
    category = store.create_category(user.id, "餐飲", "expense")
    expense = store.create_expense(user.id, category.id, "12.346", today, description="")
    assert expense.amount == Decimal("12.35")
    assert expense.description is None
    assert expense.type == "expense"


def test_update_expense_is_partial(store, user, other_user, today):
    food = store.create_category(user.id, "餐飲", "expense")
    salary = store.create_category(user.id, "薪資", "income")
    foreign = store.create_category(other_user.id, "交通", "expense")
    expense = store.create_expense(user.id, food.id, Decimal("10"), today, "lunch")

    updated = store.update_expense(expense.id, user.id, {"amount": Decimal("25.5")})
    assert updated.amount == Decimal("25.50")
    assert updated.description == "lunch"
    assert updated.category_id == food.id

    updated = store.update_expense(expense.id, user.id, {"category_id": salary.id})
    assert updated.type == "income"

    with pytest.raises(OwnershipViolation):
        store.update_expense(expense.id, user.id, {"category_id": foreign.id})
    with pytest.raises(OwnershipViolation):
        store.update_expense(expense.id, other_user.id, {"amount": Decimal("1")})
    with pytest.raises(ValidationFailed):
        store.update_expense(expense.id, user.id, {})


def test_delete_expense_checks_owner(store, user, other_user, today):
    category = store.create_category(user.id, "餐飲", "expense")
    expense = store.create_expense(user.id, category.id, Decimal("10"), today)
    with pytest.raises(OwnershipViolation):
        store.delete_expense(expense.id, other_user.id)
    with pytest.raises(NotFound):
        store.delete_expense(9999, user.id)
    store.delete_expense(expense.id, user.id)


def test_list_expenses_pagination_and_filters(store, user, today):
    food = store.create_category(user.id, "餐飲", "expense")
    salary = store.create_category(user.id, "薪資", "income")
    for offset in range(5):
        store.create_expense(user.id, food.id, Decimal("10"), today - timedelta(days=offset))
    store.create_expense(user.id, salary.id, Decimal("1000"), today - timedelta(days=10))

    first = store.list_expenses(user.id, page=1, limit=4)
    assert first.total == 6
    assert len(first.items) == 4
    assert first.total_pages == 2
    assert first.has_more is True
    dates = [e.transaction_date for e in first.items]
    assert dates == sorted(dates, reverse=True)

    second = store.list_expenses(user.id, page=2, limit=4)
    assert len(second.items) == 2
    assert second.has_more is False

    assert store.list_expenses(user.id, type="income").total == 1
    assert store.list_expenses(user.id, category_id=food.id).total == 5
    recent = store.list_expenses(user.id, start_date=today - timedelta(days=1))
    assert recent.total == 2
    assert store.list_expenses(user.id, end_date=today - timedelta(days=5)).total == 1


def test_breakdown_round_trip_through_database(store, user, today):
    category = store.create_category(user.id, "餐飲", "expense")
    amounts = [Decimal("19.99"), Decimal("0.01"), Decimal("250.50"), Decimal("33.33")]
    for amount in amounts:
        store.create_expense(user.id, category.id, amount, today)

    breakdown = StatisticsAggregator(store).category_breakdown(user.id)
    assert len(breakdown) == 1
    assert breakdown[0]["count"] == len(amounts)
    assert breakdown[0]["total"] == sum(amounts)


def test_statistics_only_see_own_rows(store, user, other_user, today):
    mine = store.create_category(user.id, "薪資", "income")
    theirs = store.create_category(other_user.id, "薪資", "income")
    store.create_expense(user.id, mine.id, Decimal("100"), today)
    store.create_expense(other_user.id, theirs.id, Decimal("999"), today)

    summary = StatisticsAggregator(store).summarize(user.id)
    assert summary["income"] == {"total": Decimal("100"), "count": 1}
    assert summary["balance"] == Decimal("100")


def test_fetch_transactions_respects_window(store, user):
    category = store.create_category(user.id, "餐飲", "expense")
    store.create_expense(user.id, category.id, Decimal("1"), date(2024, 1, 1))
    store.create_expense(user.id, category.id, Decimal("2"), date(2024, 2, 1))

    rows = store.fetch_transactions(user.id, start_date=date(2024, 1, 15))
    assert [r.amount for r in rows] == [Decimal("2.00")]
    assert rows[0].category_name == "餐飲"


@pytest.mark.parametrize(
    "raw, stored",
    [("12.345", Decimal("12.35")), ("0.025", Decimal("0.03")), ("7.994", Decimal("7.99"))],
)
def test_half_cents_round_away_from_zero(store, user, today, raw, stored):
    category = store.create_category(user.id, "餐飲", "expense")
    expense = store.create_expense(user.id, category.id, raw, today)
    assert expense.amount == stored


def test_foreign_key_refuses_deleting_used_category(db, store, user, today):
    category = store.create_category(user.id, "餐飲", "expense")
    store.create_expense(user.id, category.id, Decimal("10"), today)

    db.delete(category)
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()

    assert db.query(Category).filter_by(id=category.id).count() == 1
    assert db.query(Expense).filter_by(category_id=category.id).count() == 1


def test_delete_racing_an_insert_is_blocked(store, user, today, monkeypatch):
    category = store.create_category(user.id, "餐飲", "expense")
    store.create_expense(user.id, category.id, Decimal("10"), today)

    # the count ran before the expense landed
    monkeypatch.setattr(store, "usage_count", lambda category_id: 0)
    with pytest.raises(ReferentialBlock):
        store.delete_category(category.id, user.id)

    monkeypatch.undo()
    assert store.get_category(category.id, user.id).name == "餐飲"
    assert store.usage_count(category.id) == 1


def test_insert_after_category_vanished(store, user, today, monkeypatch):
    monkeypatch.setattr(store, "_owned_category", lambda category_id, user_id: None)
    with pytest.raises(OwnershipViolation):
        store.create_expense(user.id, 9999, Decimal("10"), today)

    monkeypatch.undo()
    assert store.list_expenses(user.id).total == 0


def test_update_after_category_vanished(store, user, today, monkeypatch):
    food = store.create_category(user.id, "餐飲", "expense")
    expense = store.create_expense(user.id, food.id, Decimal("10"), today)

    monkeypatch.setattr(store, "_owned_category", lambda category_id, user_id: None)
    with pytest.raises(OwnershipViolation):
        store.update_expense(expense.id, user.id, {"category_id": 9999})

    monkeypatch.undo()
    assert store.get_expense(expense.id, user.id).category_id == food.id
