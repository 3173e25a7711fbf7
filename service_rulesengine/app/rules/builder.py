"""
Tree builder for configured model groups.
"""

from typing import Any, Dict, List, Set, Tuple

from pydantic import ValidationError

from shared.errors import BuildError
from shared.logging import get_logger
from .functions import ResultFunction, ResultFunctionFactory, StepFunctionFactory
from .models import FunctionConfig, ModelGroupConfig, RulesConfig
from .tree import Node, Tree


logger = get_logger("rulesengine.builder")


def parse_rules_config(raw: bytes) -> RulesConfig:
    """Decode and validate a raw JSON rules document."""
    try:
        return RulesConfig.model_validate_json(raw)
    except ValidationError as e:
        raise BuildError(
            "Invalid rules configuration",
            details={"errors": [{"loc": list(err["loc"]), "msg": err["msg"]} for err in e.errors()]}
        ) from e


class ModelGroupTreeBuilder:
    """Builds one model group's tree.

    Level i of the tree is classified by schema function i; each rule's
    conditions spell out the path to a leaf holding the rule's results.
    """

    def __init__(
        self,
        config: ModelGroupConfig,
        step_factory: StepFunctionFactory,
        result_factory: ResultFunctionFactory,
    ):
        self.config = config
        self.step_factory = step_factory
        self.result_factory = result_factory

    def build(self, tree: Tree) -> None:
        tree.default_result_functions = self._result_functions(self.config.default)

        schema = [self.step_factory(f.function, f.args) for f in self.config.schema_functions]
        if schema and not self.config.rules:
            raise BuildError(
                "Model group defines a schema but no rules",
                details={"version": self.config.version, "analytics_key": self.config.analytics_key}
            )

        seen: Set[Tuple[str, ...]] = set()
        for index, rule in enumerate(self.config.rules):
            conditions = tuple(rule.conditions)
            if len(conditions) != len(schema):
                raise BuildError(
                    "Rule conditions do not match schema length",
                    details={"rule": index, "conditions": len(conditions), "schema": len(schema)}
                )
            if conditions in seen:
                raise BuildError("Duplicate rule conditions", details={"rule": index, "conditions": list(conditions)})
            seen.add(conditions)

            node = tree.root
            for step_function, condition in zip(schema, conditions):
                node.step_function = step_function
                node = node.children.setdefault(condition, Node())

            node.result_functions = self._result_functions(rule.results)

        logger.debug(
            "Model group tree built",
            version=self.config.version,
            analytics_key=self.config.analytics_key,
            depth=len(schema),
            rules=len(self.config.rules),
        )

    def _result_functions(self, configs: List[FunctionConfig]) -> List[ResultFunction]:
        return [self.result_factory(f.function, f.args) for f in configs]


def describe(tree: Tree) -> Dict[str, Any]:
    """Summarize a tree for logs."""
    leaves = 0
    stack = [tree.root]
    while stack:
        node = stack.pop()
        if node.is_terminal:
            leaves += 1
        stack.extend(node.children.values())
    return {"depth": tree.depth(), "leaves": leaves, "defaults": len(tree.default_result_functions)}
