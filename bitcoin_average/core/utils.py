from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone


def today_utc() -> date:
    """Текущая дата в UTC."""
    return datetime.now(timezone.utc).date()


def day_label(day: int) -> str:
    """Метка дня для отображения: 'Day 3'."""
    return f"Day {day}"


def day_start_timestamp(day: int, today: date | None = None) -> int:
    """Unix-время начала суток (UTC) для даты today - day дней."""
    if today is None:
        today = today_utc()
    target = today - timedelta(days=day)
    start = datetime.combine(target, time.min, tzinfo=timezone.utc)
    return int(start.timestamp())


def validate_positive_int(value: int, name: str) -> int:
    """Проверка параметра: целое число > 0."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"'{name}' должен быть целым числом.")
    if value <= 0:
        raise ValueError(f"'{name}' должен быть положительным.")
    return value


def validate_positive_number(value: float, name: str) -> float:
    """Проверка параметра: число > 0. Возвращает значение как float."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"'{name}' должен быть числом.")
    number = float(value)
    if number <= 0:
        raise ValueError(f"'{name}' должен быть положительным.")
    return number
