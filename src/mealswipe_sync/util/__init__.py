from .money import count_to_int, format_money, money_to_decimal, usage_percent

__all__ = ["count_to_int", "format_money", "money_to_decimal", "usage_percent"]
