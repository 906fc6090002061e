from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class TransactionRow:
    """One expense joined with its category, as read for statistics."""
    category_id: int
    category_name: str
    category_type: str
    category_color: str
    amount: Decimal
    transaction_date: date


@dataclass
class Page:
    items: List[Any]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return -(-self.total // self.limit)

    @property
    def has_more(self) -> bool:
        return self.page * self.limit < self.total

    def pagination(self) -> Dict[str, Any]:
        return {
            "page": self.page,
            "limit": self.limit,
            "total": self.total,
            "total_pages": self.total_pages,
            "has_more": self.has_more,
        }


class TransactionStore(ABC):
    """Storage for categories and expenses, always scoped to an owning user.

    Lookups by id raise NotFound for a missing row and OwnershipViolation when
    the row belongs to somebody else.
    """

    # categories

    @abstractmethod
    def create_category(self, user_id: int, name: str, type: str, color: Optional[str] = None):
        pass

    @abstractmethod
    def get_category(self, category_id: int, user_id: int):
        pass

    @abstractmethod
    def find_category_by_name(self, user_id: int, name: str, type: str):
        """Return the (owner, name, type) category or None."""
        pass

    @abstractmethod
    def list_categories(self, user_id: int, type: Optional[str] = None) -> list:
        pass

    @abstractmethod
    def update_category(
        self, category_id: int, user_id: int, name: Optional[str] = None, color: Optional[str] = None
    ):
        pass

    @abstractmethod
    def delete_category(self, category_id: int, user_id: int) -> None:
        """Raises ReferentialBlock while expenses still reference the category."""
        pass

    @abstractmethod
    def usage_count(self, category_id: int) -> int:
        pass

    @abstractmethod
    def create_default_categories(self, user_id: int) -> list:
        pass

    # expenses

    @abstractmethod
    def create_expense(
        self,
        user_id: int,
        category_id: int,
        amount: Decimal,
        transaction_date: date,
        description: Optional[str] = None,
    ):
        pass

    @abstractmethod
    def get_expense(self, expense_id: int, user_id: int):
        pass

    @abstractmethod
    def list_expenses(
        self,
        user_id: int,
        page: int = 1,
        limit: int = 20,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        category_id: Optional[int] = None,
        type: Optional[str] = None,
    ) -> Page:
        pass

    @abstractmethod
    def update_expense(self, expense_id: int, user_id: int, changes: Dict[str, Any]):
        pass

    @abstractmethod
    def delete_expense(self, expense_id: int, user_id: int) -> None:
        pass

    @abstractmethod
    def fetch_transactions(
        self, user_id: int, start_date: Optional[date] = None, end_date: Optional[date] = None
    ) -> List[TransactionRow]:
        """All of the user's expenses in the window, newest first, in one read."""
        pass
