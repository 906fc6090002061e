DEFAULT_CATEGORIES = [
    {"name": "薪資", "type": "income", "color": "#28a745"},
    {"name": "投資收益", "type": "income", "color": "#17a2b8"},
    {"name": "其他收入", "type": "income", "color": "#6c757d"},
    {"name": "餐飲", "type": "expense", "color": "#fd7e14"},
    {"name": "交通", "type": "expense", "color": "#6f42c1"},
    {"name": "購物", "type": "expense", "color": "#e83e8c"},
    {"name": "娛樂", "type": "expense", "color": "#20c997"},
    {"name": "醫療", "type": "expense", "color": "#dc3545"},
    {"name": "居住", "type": "expense", "color": "#6c757d"},
    {"name": "其他支出", "type": "expense", "color": "#343a40"},
]
