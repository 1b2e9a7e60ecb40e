from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .currencies import Currency


@dataclass(frozen=True)
class Entry:
    """Курс биткоина за один день: метка дня, курс и валюта.

    Создаётся только после успешного запроса и больше не меняется.
    """

    label: str
    rate: float
    currency: Currency

    def __post_init__(self) -> None:
        if not self.label or not self.label.strip():
            raise ValueError("Метка дня не может быть пустой.")
        if not isinstance(self.rate, (int, float)):
            raise TypeError("rate must be a number.")
        object.__setattr__(self, "rate", float(self.rate))

    def __str__(self) -> str:
        return f"{self.label}: {self.currency.format(self.rate)}"


class OutcomeKind(Enum):
    SUCCESS = "success"
    RATE_LIMITED = "rate_limited"
    FAILURE = "failure"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class AttemptOutcome:
    """Результат одной попытки запроса курса.

    Вместо исключений для управления потоком выполнения клиент API
    возвращает один из четырёх вариантов; rate заполнен только для
    SUCCESS, cause — только для FAILURE.
    """

    kind: OutcomeKind
    rate: Optional[float] = None
    cause: Optional[Exception] = None

    @classmethod
    def success(cls, rate: float) -> "AttemptOutcome":
        return cls(OutcomeKind.SUCCESS, rate=float(rate))

    @classmethod
    def rate_limited(cls) -> "AttemptOutcome":
        return cls(OutcomeKind.RATE_LIMITED)

    @classmethod
    def failure(cls, cause: Exception) -> "AttemptOutcome":
        return cls(OutcomeKind.FAILURE, cause=cause)

    @classmethod
    def cancelled(cls) -> "AttemptOutcome":
        return cls(OutcomeKind.CANCELLED)

    @property
    def is_success(self) -> bool:
        return self.kind is OutcomeKind.SUCCESS


class TaskState(Enum):
    """Состояния задачи загрузки одного дня."""

    IDLE = "idle"
    ATTEMPTING = "attempting"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"
    ABORTED = "aborted"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self not in (TaskState.IDLE, TaskState.ATTEMPTING)
