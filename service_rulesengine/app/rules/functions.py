"""
Step and result function contracts used by rule trees.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, List, TypeVar

P = TypeVar("P")  # payload
R = TypeVar("R")  # result


@dataclass(frozen=True)
class StepFunctionStep:
    """One level descended during a tree run."""
    name: str
    result: str


@dataclass
class ResultFunctionMeta:
    """Traversal provenance handed to result functions."""
    steps: List[StepFunctionStep] = field(default_factory=list)


class StepFunction(ABC, Generic[P]):
    """Classifies a payload into the key of the child node to visit next."""

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    def call(self, payload: P) -> str:
        ...


class ResultFunction(ABC, Generic[P, R]):
    """Mutates the result once traversal has stopped.

    Raising aborts the remaining result functions of the run.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    def call(self, payload: P, result: R, meta: ResultFunctionMeta) -> None:
        ...


# Factories turn a configured function name plus its decoded JSON args into
# a callable object. They raise when the name is unknown or args are invalid.
StepFunctionFactory = Callable[[str, Any], StepFunction]
ResultFunctionFactory = Callable[[str, Any], ResultFunction]
