# SPDX-License-Identifier: GPL-3.0-or-later
# src/easydrive/result.py
"""Risultato tipizzato (successo-con-valore / fallimento-con-messaggio).

Le operazioni pubbliche di `easydrive.drive_utils` non sollevano eccezioni di dominio:
restituiscono un `Result`. La costruzione è sempre esplicita tramite le factory
`Result.success(...)` e `Result.failed(...)`; un valore "nudo" non diventa mai un
successo per conversione implicita.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Iterable, List, Optional, TypeVar

from .exceptions import DriveError

T = TypeVar("T")


class ResultType(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class Result(Generic[T]):
    data: Optional[T] = None
    status: ResultType = ResultType.SUCCESS
    message: str = ""
    error: Optional[BaseException] = None

    @classmethod
    def success(cls, data: T) -> "Result[T]":
        return cls(data=data, status=ResultType.SUCCESS)

    @classmethod
    def failed(cls, error: BaseException | str) -> "Result[T]":
        """Fallimento da eccezione (conservata in `error`) o da semplice messaggio."""
        if isinstance(error, BaseException):
            msg = error.message if isinstance(error, DriveError) else str(error)
            return cls(status=ResultType.FAILED, message=msg or type(error).__name__, error=error)
        return cls(status=ResultType.FAILED, message=str(error))

    @classmethod
    def aggregate(cls, results: Iterable["Result[T]"]) -> "Result[List[T]]":
        """Combina più risultati: il primo fallimento vince, altrimenti lista dei valori."""
        values: List[T] = []
        for res in results:
            if not res.is_succeeded:
                return Result(status=ResultType.FAILED, message=res.message, error=res.error)
            values.append(res.data)  # type: ignore[arg-type]
        return Result.success(values)

    @property
    def is_succeeded(self) -> bool:
        return self.status is ResultType.SUCCESS

    @property
    def is_failed(self) -> bool:
        return self.status is ResultType.FAILED

    def unwrap(self) -> T:
        """Ritorna il valore o rilancia l'errore originale."""
        if self.is_succeeded:
            return self.data  # type: ignore[return-value]
        if self.error is not None:
            raise self.error
        raise DriveError(self.message)

    def __bool__(self) -> bool:
        return self.is_succeeded


__all__ = ["Result", "ResultType"]
