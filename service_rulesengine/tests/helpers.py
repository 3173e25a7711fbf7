"""
Test helpers: sample functions, registries and rules documents.
"""

import json
from typing import Any, Dict, List, Optional

from service_rulesengine.app.rules.functions import ResultFunction, ResultFunctionMeta, StepFunction
from service_rulesengine.app.rules.registry import FunctionRegistry


class FieldOf(StepFunction):
    """Classifies a dict payload by one of its fields."""

    def __init__(self, field: str, name: Optional[str] = None):
        self.field = field
        self._name = name or f"{field}Of"
        self.calls = 0

    @property
    def name(self) -> str:
        return self._name

    def call(self, payload: Dict[str, Any]) -> str:
        self.calls += 1
        return str(payload[self.field])


class FailingStep(StepFunction):
    """Step function that always raises."""

    def __init__(self, message: str = "step exploded"):
        self.message = message

    @property
    def name(self) -> str:
        return "failingStep"

    def call(self, payload: Any) -> str:
        raise RuntimeError(self.message)


class Append(ResultFunction):
    """Appends a fixed value to a list result and records the trace it saw."""

    def __init__(self, value: str):
        self.value = value
        self.seen: List[ResultFunctionMeta] = []

    @property
    def name(self) -> str:
        return "append"

    def call(self, payload: Any, result: List[str], meta: ResultFunctionMeta) -> None:
        self.seen.append(meta)
        result.append(self.value)


class FailingResult(ResultFunction):
    """Result function that always raises."""

    @property
    def name(self) -> str:
        return "failingResult"

    def call(self, payload: Any, result: Any, meta: ResultFunctionMeta) -> None:
        raise ValueError("result exploded")


def create_test_registry() -> FunctionRegistry:
    """Create a registry with the helper functions registered."""
    registry = FunctionRegistry()
    registry.register_step("fieldOf", lambda args: FieldOf(args["field"]))
    registry.register_step("failingStep", lambda args: FailingStep())
    registry.register_result("append", lambda args: Append(args["value"]))
    registry.register_result("failingResult", lambda args: FailingResult())
    return registry


class RulesDocumentFactory:
    """Factory for creating rules configuration documents."""

    @staticmethod
    def model_group(
        rules: Optional[List[Dict[str, Any]]] = None,
        schema: Optional[List[str]] = None,
        default: Optional[str] = "D",
        weight: int = 100,
        version: str = "v1",
        analytics_key: str = "colors-v1",
    ) -> Dict[str, Any]:
        """Create a model group classified by the given payload fields."""
        if schema is None:
            schema = ["color"]
        if rules is None:
            rules = [{"conditions": ["red"], "results": [{"function": "append", "args": {"value": "R"}}]}]

        group: Dict[str, Any] = {
            "weight": weight,
            "version": version,
            "analyticsKey": analytics_key,
            "schema": [{"function": "fieldOf", "args": {"field": field}} for field in schema],
            "rules": rules,
        }
        if default is not None:
            group["default"] = [{"function": "append", "args": {"value": default}}]
        return group

    @staticmethod
    def rules_document(
        model_groups: Optional[List[Dict[str, Any]]] = None,
        stage: str = "processed-request",
        name: str = "colors",
    ) -> Dict[str, Any]:
        """Create a rules document with a single rule set."""
        return {
            "enabled": True,
            "ruleSets": [
                {
                    "stage": stage,
                    "name": name,
                    "modelGroups": model_groups if model_groups is not None else [RulesDocumentFactory.model_group()],
                }
            ],
        }

    @staticmethod
    def rules_json(**kwargs) -> bytes:
        """Create a rules document encoded as JSON bytes."""
        return json.dumps(RulesDocumentFactory.rules_document(**kwargs)).encode("utf-8")


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds
