from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from ..core.currencies import get_currency, supported_codes
from ..core.exceptions import (
    BatchTimeoutError,
    CurrencyNotFoundError,
    EmptyResultSetError,
)
from ..core.models import Entry
from ..core.usecases import compute_average
from ..retrieval.aggregator import average_rates
from ..retrieval.config import RetrievalConfig

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2

USAGE = (
    "Использование: main.py [--days N] [--timeout SECONDS] "
    "[--attempts N] [--currency CODE] [--allow-partial]"
)


@dataclass
class CliOptions:
    """Разобранные аргументы командной строки."""

    total_days: Optional[int] = None
    timeout: Optional[float] = None
    max_attempts: Optional[int] = None
    currency_code: Optional[str] = None
    allow_partial: bool = False
    show_help: bool = False


def _take_value(args: List[str], idx: int, flag: str, hint: str) -> str:
    if idx + 1 >= len(args):
        raise ValueError(f"Флаг {flag} требует значения: {hint}.")
    return args[idx + 1]


def _parse_positive_int(raw: str, flag: str) -> int:
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(
            f"Значение {flag} должно быть целым числом.",
        ) from exc
    if value <= 0:
        raise ValueError(f"Значение {flag} должно быть положительным.")
    return value


def _parse_args(args: List[str]) -> CliOptions:
    """Разобрать аргументы запуска.

    Поддерживаются флаги:
    --days <N>
    --timeout <SECONDS>
    --attempts <N>
    --currency <USD|EUR>
    --allow-partial
    --help
    Каждый флаг можно указать не более одного раза.
    """
    options = CliOptions()
    seen: set[str] = set()

    idx = 0
    while idx < len(args):
        token = args[idx]
        if token in seen:
            raise ValueError(
                f"Параметр {token} нельзя указывать несколько раз.",
            )
        seen.add(token)

        if token == "--days":
            raw = _take_value(args, idx, token, "число дней")
            options.total_days = _parse_positive_int(raw, token)
            idx += 2
        elif token == "--attempts":
            raw = _take_value(args, idx, token, "число попыток")
            options.max_attempts = _parse_positive_int(raw, token)
            idx += 2
        elif token == "--timeout":
            raw = _take_value(args, idx, token, "секунды")
            try:
                timeout = float(raw)
            except ValueError as exc:
                raise ValueError(
                    "Значение --timeout должно быть числом.",
                ) from exc
            if timeout <= 0:
                raise ValueError("Значение --timeout должно быть положительным.")
            options.timeout = timeout
            idx += 2
        elif token == "--currency":
            raw = _take_value(
                args,
                idx,
                token,
                " или ".join(supported_codes()),
            )
            options.currency_code = get_currency(raw).code
            idx += 2
        elif token == "--allow-partial":
            options.allow_partial = True
            idx += 1
        elif token in {"--help", "-h"}:
            options.show_help = True
            idx += 1
        else:
            raise ValueError(f"Неизвестный аргумент: {token}")

    return options


def _print_entry(entry: Entry) -> None:
    print(entry)


def _report_timeout(exc: BatchTimeoutError, allow_partial: bool) -> int:
    if exc.timeout is not None:
        print(f"Global deadline of {exc.timeout:g}s expired")
    print(str(exc))
    if not allow_partial or not exc.entries:
        return EXIT_FAILURE

    average = average_rates(exc.entries)
    currency = exc.entries[0].currency
    print(
        f"Partial average over {len(exc.entries)} entries: "
        f"{currency.format(average)}",
    )
    return EXIT_OK


def run_cli(argv: Optional[List[str]] = None) -> int:
    """Точка входа CLI. Возвращает код завершения процесса."""
    try:
        options = _parse_args(list(argv or []))
    except (ValueError, CurrencyNotFoundError) as exc:
        print(str(exc))
        print(USAGE)
        return EXIT_USAGE

    if options.show_help:
        print(USAGE)
        return EXIT_OK

    config = RetrievalConfig()
    total_days = options.total_days or config.total_days
    print(f"Add retrieval tasks for the last {total_days} days")
    print("Wait for termination")

    try:
        report = compute_average(
            total_days=options.total_days,
            currency_code=options.currency_code,
            timeout=options.timeout,
            max_attempts=options.max_attempts,
            on_entry=_print_entry,
            config=config,
        )
    except BatchTimeoutError as exc:
        return _report_timeout(exc, options.allow_partial)
    except EmptyResultSetError as exc:
        print(str(exc))
        print("Подробности смотрите в logs/retrieval.log.")
        return EXIT_FAILURE

    print(f"Properly terminated with {len(report.entries)} entries")
    print(f"Average: {report.formatted_average}")
    return EXIT_OK
