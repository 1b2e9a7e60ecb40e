from __future__ import annotations

from functools import wraps
from time import monotonic
from typing import Any, Callable, Optional

from .logging_config import get_retrieval_logger

FuncType = Callable[..., Any]


def log_action(
    action: Optional[str] = None,
    *,
    verbose: bool = False,
) -> Callable[[FuncType], FuncType]:
    """Декоратор для логирования запусков загрузки.

    Логируем на уровне INFO структуру:
    - action (COLLECT и т.п.)
    - currency_code, total_days (если переданы именованными аргументами)
    - entries и average из результата (если применимо)
    - elapsed — длительность вызова
    - result (OK/ERROR)
    - error_type и error_message при исключениях

    Декоратор не глотает исключения — только фиксирует их в логах.
    """

    def decorator(func: FuncType) -> FuncType:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            logger = get_retrieval_logger()
            act = action or func.__name__.upper()

            currency = kwargs.get("currency_code")
            days = kwargs.get("total_days")
            days_repr = str(days) if isinstance(days, int) else "-"
            started = monotonic()

            try:
                result = func(*args, **kwargs)

                entries = getattr(result, "entries", None)
                average = getattr(result, "average", None)

                entries_repr = str(len(entries)) if entries is not None else "-"
                avg_repr = (
                    f"{average:,.2f}" if isinstance(average, (int, float)) else "-"
                )
                states_context = ""
                if verbose:
                    states = getattr(result, "states", None) or {}
                    failed = sorted(
                        label for label, state in states.items()
                        if state.name != "SUCCEEDED"
                    )
                    if failed:
                        states_context = f" missing='{', '.join(failed)}'"

                msg = (
                    f"{act} currency='{currency or '-'}' days={days_repr} "
                    f"entries={entries_repr} average={avg_repr} "
                    f"elapsed={monotonic() - started:.2f}s "
                    f"result=OK{states_context}"
                )
                logger.info(msg)
                return result
            except Exception as exc:  # noqa: BLE001
                error_type = type(exc).__name__
                error_message = str(exc)

                msg = (
                    f"{act} currency='{currency or '-'}' days={days_repr} "
                    f"elapsed={monotonic() - started:.2f}s "
                    f"result=ERROR error_type='{error_type}' "
                    f"error_message='{error_message}'"
                )
                logger.error(msg)
                raise

        return wrapper  # type: ignore[return-value]

    return decorator
