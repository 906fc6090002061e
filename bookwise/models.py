# bookwise/models.py

from sqlalchemy import (
    Column,
    Integer,
    String,
    Numeric,
    Date,
    DateTime,
    ForeignKey,
    Text,
    UniqueConstraint,
    Index,
    func,
)
from sqlalchemy.orm import relationship
from .database import Base

INCOME = "income"
EXPENSE = "expense"
CATEGORY_TYPES = (INCOME, EXPENSE)

DEFAULT_CATEGORY_COLOR = "#007bff"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, nullable=False)
    email = Column(String(100), unique=True, nullable=False)
    password = Column(String(255), nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    categories = relationship("Category", back_populates="owner")
    expenses = relationship("Expense", back_populates="owner")

    def to_dict(self):
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


class Category(Base):
    __tablename__ = "categories"
    __table_args__ = (
        UniqueConstraint("user_id", "name", "type", name="uq_category_user_name_type"),
        Index("idx_user_type", "user_id", "type"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(50), nullable=False)
    type = Column(String(10), nullable=False)  # 'income' or 'expense', fixed at creation
    color = Column(String(7), nullable=False, default=DEFAULT_CATEGORY_COLOR)
    created_at = Column(DateTime, server_default=func.now())

    owner = relationship("User", back_populates="categories")
    # the database RESTRICT rule decides, the ORM must never null out children
    expenses = relationship("Expense", back_populates="category", passive_deletes="all")

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "type": self.type,
            "color": self.color,
            "created_at": self.created_at,
            # set by the store when listing, never stored
            "usage_count": getattr(self, "usage_count", 0),
        }


class Expense(Base):
    __tablename__ = "expenses"
    __table_args__ = (
        Index("idx_user_date", "user_id", "transaction_date"),
        Index("idx_category", "category_id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    category_id = Column(
        Integer, ForeignKey("categories.id", ondelete="RESTRICT"), nullable=False
    )
    amount = Column(Numeric(10, 2), nullable=False)
    description = Column(Text)
    transaction_date = Column(Date, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    owner = relationship("User", back_populates="expenses")
    category = relationship("Category", back_populates="expenses")

    @property
    def type(self):
        return self.category.type if self.category else None

    def to_dict(self):
        data = {
            "id": self.id,
            "user_id": self.user_id,
            "category_id": self.category_id,
            "amount": self.amount,
            "description": self.description,
            "transaction_date": self.transaction_date,
            "date": self.transaction_date,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
        if self.category is not None:
            data.update(
                {
                    "category_name": self.category.name,
                    "category_type": self.category.type,
                    "category_color": self.category.color,
                    "type": self.category.type,
                    "category": {
                        "id": self.category.id,
                        "name": self.category.name,
                        "type": self.category.type,
                        "color": self.category.color,
                    },
                }
            )
        return data
