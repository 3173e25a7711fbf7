"""
Decision tree traversal and validation.
"""

from dataclasses import dataclass, field
from typing import Dict, Generic, List, Optional, Protocol, Set

from shared.errors import BuildError, ResultFunctionError, StepFunctionError, TreeValidationError
from .functions import P, R, ResultFunction, ResultFunctionMeta, StepFunction, StepFunctionStep


@dataclass(eq=False)
class Node(Generic[P, R]):
    """Tree node.

    A node with children is classified by its step function; a node without
    children is terminal and contributes its result functions.
    """
    step_function: Optional[StepFunction[P]] = None
    result_functions: List[ResultFunction[P, R]] = field(default_factory=list)
    children: Dict[str, "Node[P, R]"] = field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        return not self.children


@dataclass(eq=False)
class Tree(Generic[P, R]):
    """Decision tree plus the result functions used when traversal misses."""
    root: Node[P, R] = field(default_factory=Node)
    default_result_functions: List[ResultFunction[P, R]] = field(default_factory=list)

    def run(self, payload: P, result: R) -> None:
        """Walk the tree for payload and apply the selected result functions to result.

        Each non-terminal node's step function classifies the payload and the
        classification picks the child to visit. When no child matches the
        walk stops and the tree's default result functions apply instead of a
        terminal node's. Failures are raised on the first failing function;
        mutations already made to result are kept.
        """
        node: Optional[Node[P, R]] = self.root
        meta = ResultFunctionMeta()

        while node is not None and node.children:
            step_function = node.step_function
            if step_function is None:
                raise StepFunctionError("<missing>", "Branching node has no step function")
            try:
                classification = step_function.call(payload)
            except StepFunctionError:
                raise
            except Exception as e:
                raise StepFunctionError(step_function.name, str(e)) from e

            meta.steps.append(StepFunctionStep(name=step_function.name, result=classification))
            node = node.children.get(classification)

        result_functions = self.default_result_functions if node is None else node.result_functions

        for result_function in result_functions:
            try:
                result_function.call(payload, result, meta)
            except ResultFunctionError:
                raise
            except Exception as e:
                raise ResultFunctionError(result_function.name, str(e)) from e

    def depth(self) -> int:
        """Number of step functions on every root-to-leaf path of a valid tree."""
        depth = 0
        node = self.root
        while node.children:
            node = next(iter(node.children.values()))
            depth += 1
        return depth

    def validate(self) -> None:
        """Ensure the tree is well-formed.

        Every leaf must sit at the same depth, every branching node needs a
        step function and no node may be reachable more than once.
        """
        seen: Set[int] = set()
        leaf_depths: Set[int] = set()
        stack = [(self.root, 0, "")]

        while stack:
            node, depth, path = stack.pop()
            if id(node) in seen:
                raise TreeValidationError(
                    "Node reachable through more than one path",
                    details={"path": path}
                )
            seen.add(id(node))

            if node.is_terminal:
                leaf_depths.add(depth)
                continue

            if node.step_function is None:
                raise TreeValidationError(
                    "Branching node has no step function",
                    details={"path": path}
                )

            for key, child in node.children.items():
                if child is None:
                    raise TreeValidationError("Missing child node", details={"path": f"{path}/{key}"})
                stack.append((child, depth + 1, f"{path}/{key}"))

        if len(leaf_depths) > 1:
            raise TreeValidationError(
                "Leaves are not all at the same level",
                details={"leaf_depths": sorted(leaf_depths)}
            )


class TreeBuilder(Protocol[P, R]):
    """Populates an empty tree from external configuration."""

    def build(self, tree: Tree[P, R]) -> None:
        ...


def new_tree(builder: TreeBuilder[P, R]) -> Tree[P, R]:
    """Build a tree with builder and validate it.

    Raises BuildError when the builder fails and TreeValidationError when the
    result is malformed; no tree is returned in either case.
    """
    tree: Tree[P, R] = Tree(root=Node())

    try:
        builder.build(tree)
    except (BuildError, TreeValidationError):
        raise
    except Exception as e:
        raise BuildError(f"Tree builder failed: {e}", details={"builder": type(builder).__name__}) from e

    tree.validate()
    return tree
