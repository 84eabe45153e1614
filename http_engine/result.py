"""Three-state result published by the execution adapter."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from .response import Response


@dataclass(frozen=True)
class Loading:
    """The call has not completed yet."""

    def __repr__(self) -> str:
        return "Loading"


@dataclass(frozen=True)
class Success:
    """The call completed; ``response`` is ready to be read."""

    response: Response


@dataclass(frozen=True)
class Error:
    """The call failed while connecting or reading."""

    error: BaseException


LOADING = Loading()

Result = Union[Loading, Success, Error]
