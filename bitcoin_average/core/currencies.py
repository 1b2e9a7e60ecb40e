from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple

from .exceptions import CurrencyNotFoundError


@dataclass(frozen=True)
class Currency:
    """Валюта котировки, в которой запрашиваем курс биткоина.

    - code: код валюты (USD, EUR);
    - api_id: идентификатор валюты во внешнем API (параметр tsym);
    - template: шаблон отображения суммы, например "${value:.2f}".
    """

    code: str
    name: str
    api_id: str
    template: str

    def __post_init__(self) -> None:
        code = self.code.strip().upper()
        if not (2 <= len(code) <= 5):
            raise ValueError("Currency code must be 2–5 characters long.")
        if not self.api_id.strip():
            raise ValueError("api_id cannot be empty.")
        if "{value" not in self.template:
            raise ValueError("template must contain a {value} placeholder.")

        object.__setattr__(self, "code", code)
        object.__setattr__(self, "api_id", self.api_id.strip())

    def format(self, value: float) -> str:
        """Отформатировать сумму для вывода в консоль и логи."""
        return self.template.format(value=value)

    def __str__(self) -> str:
        return self.code


# ---------- Реестр валют и фабрика ----------

USD = Currency(code="USD", name="US Dollar", api_id="USD", template="${value:.2f}")
EUR = Currency(code="EUR", name="Euro", api_id="EUR", template="{value:.2f} €")

_CURRENCY_REGISTRY: Dict[str, Currency] = {
    USD.code: USD,
    EUR.code: EUR,
}


def supported_codes() -> Tuple[str, ...]:
    """Коды поддерживаемых валют в алфавитном порядке."""
    return tuple(sorted(_CURRENCY_REGISTRY))


def get_currency(code: str) -> Currency:
    """Вернуть объект Currency по её коду.

    Если код неизвестен — бросаем CurrencyNotFoundError.
    """
    if not isinstance(code, str):
        raise TypeError("Currency code must be a string.")

    normalized = code.strip().upper()
    if not normalized:
        raise ValueError("Currency code cannot be empty.")

    try:
        return _CURRENCY_REGISTRY[normalized]
    except KeyError as exc:
        raise CurrencyNotFoundError(
            f"Неизвестная валюта '{normalized}'. "
            f"Поддерживаются: {', '.join(supported_codes())}",
        ) from exc
