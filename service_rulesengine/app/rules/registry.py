"""
Name-keyed registry of step and result function constructors.
"""

from typing import Any, Callable, Dict, List

from shared.errors import BuildError
from shared.logging import get_logger
from .functions import ResultFunction, StepFunction


StepConstructor = Callable[[Any], StepFunction]
ResultConstructor = Callable[[Any], ResultFunction]


class FunctionRegistry:
    """Registry used as the step/result function factory when building trees."""

    def __init__(self):
        self.logger = get_logger("rulesengine.registry")
        self._step_constructors: Dict[str, StepConstructor] = {}
        self._result_constructors: Dict[str, ResultConstructor] = {}

    def register_step(self, name: str, constructor: StepConstructor) -> None:
        """Register a step function constructor under name."""
        self._step_constructors[name] = constructor
        self.logger.debug("Step function registered", function=name)

    def register_result(self, name: str, constructor: ResultConstructor) -> None:
        """Register a result function constructor under name."""
        self._result_constructors[name] = constructor
        self.logger.debug("Result function registered", function=name)

    def step_names(self) -> List[str]:
        return sorted(self._step_constructors)

    def result_names(self) -> List[str]:
        return sorted(self._result_constructors)

    def step_factory(self, name: str, args: Any) -> StepFunction:
        """Materialize a step function from its configured name and args."""
        return self._create(self._step_constructors, "step", name, args)

    def result_factory(self, name: str, args: Any) -> ResultFunction:
        """Materialize a result function from its configured name and args."""
        return self._create(self._result_constructors, "result", name, args)

    def _create(self, constructors: Dict[str, Callable[[Any], Any]], kind: str, name: str, args: Any):
        constructor = constructors.get(name)
        if constructor is None:
            raise BuildError(
                f"Unknown {kind} function '{name}'",
                details={"function": name, "kind": kind}
            )

        try:
            return constructor(args)
        except BuildError:
            raise
        except Exception as e:
            raise BuildError(
                f"Invalid arguments for {kind} function '{name}': {e}",
                details={"function": name, "kind": kind}
            ) from e
