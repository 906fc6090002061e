"""Request bodies. Strings are trimmed before any rule runs."""
import re
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

AMOUNT_MIN = Decimal("0.01")
AMOUNT_MAX = Decimal("9999999.99")
DESCRIPTION_MAX = 500
BULK_IMPORT_MAX = 100

USERNAME_RE = re.compile(r"^[a-zA-Z0-9_一-龥]+$")
EMAIL_RE = re.compile(r"^[\w.+-]+@[\w-]+(\.[\w-]+)*\.[A-Za-z]{2,}$")
CATEGORY_NAME_RE = re.compile(r"^[一-龥a-zA-Z0-9\s\-_]+$")
COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"

CategoryType = Literal["income", "expense"]


def one_year_before(day: date) -> date:
    try:
        return day.replace(year=day.year - 1)
    except ValueError:  # 29 February
        return day.replace(year=day.year - 1, day=28)


def check_transaction_date(value: date) -> date:
    today = date.today()
    if value > today:
        raise ValueError("Transaction date cannot be in the future")
    if value < one_year_before(today):
        raise ValueError("Transaction date cannot be more than one year ago")
    return value


def check_category_name(value: str) -> str:
    if not CATEGORY_NAME_RE.match(value):
        raise ValueError(
            "Category name may only contain Chinese, English letters, digits, "
            "spaces, hyphens and underscores"
        )
    return value


class RequestModel(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)


class RegisterRequest(RequestModel):
    username: str = Field(..., min_length=3, max_length=20)
    email: str = Field(..., max_length=100)
    password: str = Field(..., min_length=6, max_length=128)
    confirm_password: str = Field(..., alias="confirmPassword")

    @field_validator("username")
    @classmethod
    def username_chars(cls, v):
        if not USERNAME_RE.match(v):
            raise ValueError("Username may only contain Chinese, English letters, digits and underscores")
        return v

    @field_validator("email")
    @classmethod
    def email_format(cls, v):
        if not EMAIL_RE.match(v):
            raise ValueError("Invalid email format (e.g. name@example.com)")
        return v.lower()

    @field_validator("password")
    @classmethod
    def password_strength(cls, v):
        if not (re.search(r"[a-z]", v) and re.search(r"[A-Z]", v) and re.search(r"\d", v)):
            raise ValueError("Password needs an uppercase letter, a lowercase letter and a digit")
        return v

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("Password confirmation does not match")
        return self


class LoginRequest(RequestModel):
    login_field: str = Field(..., alias="loginField", min_length=3, max_length=100)
    password: str = Field(..., min_length=1, max_length=128)


class CategoryCreate(RequestModel):
    name: str = Field(..., min_length=1, max_length=50)
    type: CategoryType
    color: Optional[str] = Field(None, pattern=COLOR_PATTERN)

    @field_validator("name")
    @classmethod
    def name_chars(cls, v):
        return check_category_name(v)


class CategoryUpdate(RequestModel):
    # type is immutable, anything sent for it is ignored
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    color: Optional[str] = Field(None, pattern=COLOR_PATTERN)

    @field_validator("name")
    @classmethod
    def name_chars(cls, v):
        return check_category_name(v) if v is not None else v


class ExpenseCreate(RequestModel):
    category_id: int = Field(..., ge=1)
    amount: Decimal = Field(..., ge=AMOUNT_MIN, le=AMOUNT_MAX)
    description: Optional[str] = Field(None, max_length=DESCRIPTION_MAX)
    transaction_date: date

    @field_validator("transaction_date")
    @classmethod
    def date_window(cls, v):
        return check_transaction_date(v)


class ExpenseUpdate(RequestModel):
    category_id: Optional[int] = Field(None, ge=1)
    amount: Optional[Decimal] = Field(None, ge=AMOUNT_MIN, le=AMOUNT_MAX)
    description: Optional[str] = Field(None, max_length=DESCRIPTION_MAX)
    transaction_date: Optional[date] = None

    @field_validator("transaction_date")
    @classmethod
    def date_window(cls, v):
        return check_transaction_date(v) if v is not None else v

    def changes(self) -> Dict[str, Any]:
        """Only the fields the client actually sent. Only description can be cleared."""
        data = self.model_dump(exclude_unset=True)
        return {k: v for k, v in data.items() if v is not None or k == "description"}


class QuickExpenseRequest(RequestModel):
    amount: Decimal = Field(..., ge=AMOUNT_MIN, le=AMOUNT_MAX)
    category_name: str = Field(..., alias="categoryName", min_length=1, max_length=50)
    type: Optional[CategoryType] = None
    description: Optional[str] = Field(None, max_length=DESCRIPTION_MAX)

    @field_validator("category_name")
    @classmethod
    def name_chars(cls, v):
        return check_category_name(v)


class BulkImportRequest(RequestModel):
    # items are validated one by one so a bad row does not sink the batch
    expenses: List[Dict[str, Any]] = Field(..., min_length=1, max_length=BULK_IMPORT_MAX)


class ClassifySuggestionRequest(RequestModel):
    category_name: str = Field(..., alias="categoryName", min_length=1, max_length=50)
