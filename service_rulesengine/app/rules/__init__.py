"""
Rules package.

Defines the generic decision tree that routes a payload through step
functions to a terminal list of result functions, plus the tooling that
builds such trees from JSON configuration.

Modules of interest:
- functions: Step/result function contracts and traversal metadata.
- tree: Node and Tree types, traversal, validation and new_tree.
- registry: Name-keyed function factories.
- models: Pydantic models for the JSON configuration document.
- builder: Tree builder turning configured model groups into trees.

Trees are immutable once built and safe to run from many threads.
"""
