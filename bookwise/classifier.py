"""Guess whether a category name means income or expense.

Plain substring matching against two keyword vocabularies. Expense keywords
win when a name contains words from both lists (e.g. "房租" is rent paid as
well as rent received).
"""
from dataclasses import dataclass, field
from typing import Optional, Sequence, Tuple

from .models import INCOME, EXPENSE

UNKNOWN = "unknown"

BASE_CONFIDENCE = 0.6
CONFIDENCE_PER_MATCH = 0.3
MAX_CONFIDENCE = 0.9

INCOME_KEYWORDS = (
    # work
    "薪資", "薪水", "工資", "獎金", "津貼", "年終", "分紅", "佣金", "提成",
    "兼職", "打工", "外快", "接案", "代班", "加班費",
    # investment
    "投資", "股票", "基金", "債券", "定存", "利息", "股利", "股息", "配息",
    "收益", "報酬", "獲利", "盈利", "分息",
    "租金", "房租", "店租", "租賃", "出租",
    # other
    "獎學金", "補助", "退稅", "退款", "回饋", "現金回饋", "紅利", "點數",
    "賣出", "二手", "轉賣", "變賣", "中獎", "禮金", "紅包",
    "退休金", "保險金", "理賠", "補償",
    # english
    "salary", "payroll", "wage", "bonus", "dividend", "interest", "refund",
    "cashback", "scholarship", "pension", "lottery", "severance",
)

EXPENSE_KEYWORDS = (
    # food
    "餐飲", "食物", "早餐", "午餐", "晚餐", "宵夜", "飲料", "咖啡", "茶",
    "零食", "水果", "蔬菜", "肉類", "海鮮", "便當", "外食", "聚餐",
    "餐廳", "小吃", "速食", "火鍋", "燒烤", "飲品", "酒類",
    # transport
    "交通", "計程車", "公車", "捷運", "高鐵", "火車", "飛機", "機票",
    "汽油", "停車", "過路費", "車資", "搭車", "油費", "停車費",
    "運費", "快遞", "宅配", "郵費", "運輸",
    # shopping
    "購物", "買", "購買", "商品", "用品", "服飾", "衣服", "鞋子", "包包",
    "化妝品", "保養品", "電器", "3C", "手機", "電腦", "家具", "裝潢",
    "書籍", "文具", "玩具", "禮物", "送禮",
    # entertainment
    "娛樂", "電影", "遊戲", "旅遊", "旅行", "住宿", "飯店", "民宿",
    "門票", "票", "演唱會", "表演", "展覽", "遊樂園", "KTV", "唱歌",
    "運動", "健身", "游泳", "球類", "課程", "學習",
    # living
    "居住", "房租", "水電", "瓦斯", "電費", "水費", "網路", "電話",
    "清潔", "洗衣", "修理", "維修", "保養", "清潔用品", "生活用品",
    # health
    "醫療", "看病", "診所", "醫院", "藥品", "藥局", "保健", "健康",
    "牙科", "眼科", "體檢", "疫苗", "治療", "復健",
    # education
    "教育", "學費", "補習", "培訓", "考試", "證照", "教材", "學用品",
    # insurance, tax and fees
    "保險", "稅務", "稅金", "罰款", "手續費", "服務費", "管理費",
    "年費", "月費", "會員費", "訂閱",
    # english
    "food", "breakfast", "lunch", "dinner", "coffee", "grocery", "groceries",
    "restaurant", "taxi", "fuel", "parking", "transport", "shopping",
    "clothes", "movie", "travel", "hotel", "utilities", "electricity",
    "medical", "doctor", "pharmacy", "tuition", "insurance", "subscription",
)

# first matching keyword wins, so order matters
RECOMMENDED_COLORS = {
    INCOME: (
        ("薪資", "#007bff"),
        ("投資", "#17a2b8"),
        ("租金", "#6f42c1"),
        ("其他", "#6c757d"),
    ),
    EXPENSE: (
        ("餐飲", "#fd7e14"),
        ("交通", "#6f42c1"),
        ("購物", "#e83e8c"),
        ("娛樂", "#20c997"),
        ("醫療", "#dc3545"),
        ("居住", "#6c757d"),
        ("教育", "#007bff"),
        ("其他", "#343a40"),
    ),
}
DEFAULT_COLORS = {INCOME: "#28a745", EXPENSE: "#dc3545"}
FALLBACK_COLOR = "#6c757d"


def normalize(name) -> str:
    """Trim and case-fold; anything that is not a string becomes ''."""
    if not isinstance(name, str):
        return ""
    return name.strip().casefold()


@dataclass(frozen=True)
class Suggestion:
    type: str
    confidence: float
    reason: str
    matched_keywords: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_known(self) -> bool:
        return self.type != UNKNOWN

    def to_dict(self):
        return {
            "type": self.type if self.is_known else None,
            "confidence": self.confidence,
            "reason": self.reason,
            "matched_keywords": list(self.matched_keywords),
        }


class ClassificationEngine:
    def __init__(
        self,
        income_keywords: Sequence[str] = INCOME_KEYWORDS,
        expense_keywords: Sequence[str] = EXPENSE_KEYWORDS,
    ):
        self.income_keywords = _dedupe(income_keywords)
        self.expense_keywords = _dedupe(expense_keywords)

    def _matches(self, keywords: Tuple[str, ...], normalized: str) -> Tuple[str, ...]:
        return tuple(k for k in keywords if k.casefold() in normalized)

    def classify(self, name) -> str:
        normalized = normalize(name)
        if not normalized:
            return UNKNOWN
        if self._matches(self.expense_keywords, normalized):
            return EXPENSE
        if self._matches(self.income_keywords, normalized):
            return INCOME
        return UNKNOWN

    def suggest_type(self, name) -> Suggestion:
        category_type = self.classify(name)
        if category_type == UNKNOWN:
            return Suggestion(
                type=UNKNOWN,
                confidence=0.0,
                reason="Cannot determine the type from the category name",
            )

        keywords = self.income_keywords if category_type == INCOME else self.expense_keywords
        matched = self._matches(keywords, normalize(name))
        confidence = min(MAX_CONFIDENCE, BASE_CONFIDENCE + CONFIDENCE_PER_MATCH * len(matched))
        return Suggestion(
            type=category_type,
            confidence=round(confidence, 2),
            reason="Matched keywords: " + ", ".join(matched),
            matched_keywords=matched,
        )

    def recommended_color(self, category_type: Optional[str], name) -> str:
        if category_type not in RECOMMENDED_COLORS:
            return FALLBACK_COLOR
        normalized = normalize(name)
        for keyword, color in RECOMMENDED_COLORS[category_type]:
            if normalized and keyword.casefold() in normalized:
                return color
        return DEFAULT_COLORS[category_type]


def _dedupe(keywords: Sequence[str]) -> Tuple[str, ...]:
    seen = set()
    unique = []
    for keyword in keywords:
        if keyword not in seen:
            seen.add(keyword)
            unique.append(keyword)
    return tuple(unique)


default_engine = ClassificationEngine()
