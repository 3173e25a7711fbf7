"""
Rule configuration data models.
"""

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class FunctionConfig(BaseModel):
    """A configured step or result function."""
    model_config = ConfigDict(populate_by_name=True)

    function: str = Field(..., min_length=1, description="Registered function name")
    args: Optional[Any] = Field(None, description="Function arguments, passed to the factory as decoded JSON")


class RuleConfig(BaseModel):
    """A path through the tree and the results applied at its leaf."""
    conditions: List[str] = Field(..., description="One classification per schema function")
    results: List[FunctionConfig] = Field(default_factory=list, description="Result functions for the leaf")


class ModelGroupConfig(BaseModel):
    """A weighted tree variant."""
    model_config = ConfigDict(populate_by_name=True)

    weight: int = Field(100, ge=1, le=100, description="Selection weight")
    version: str = Field("", description="Model version")
    analytics_key: str = Field("", alias="analyticsKey", description="Key reported with analytics")
    schema_functions: List[FunctionConfig] = Field(default_factory=list, alias="schema", description="Step function per tree level")
    default: List[FunctionConfig] = Field(default_factory=list, description="Result functions used on a traversal miss")
    rules: List[RuleConfig] = Field(default_factory=list, description="Tree paths")


class RuleSetConfig(BaseModel):
    """Model groups that share a stage and name."""
    model_config = ConfigDict(populate_by_name=True)

    stage: str = Field(..., min_length=1, description="Pipeline stage the rule set applies to")
    name: str = Field(..., min_length=1, description="Rule set name")
    enabled: bool = Field(True, description="Whether the rule set is active")
    model_groups: List[ModelGroupConfig] = Field(default_factory=list, alias="modelGroups")


class RulesConfig(BaseModel):
    """Top-level rules configuration document."""
    model_config = ConfigDict(populate_by_name=True)

    enabled: bool = Field(True, description="Whether the configuration is active")
    rule_sets: List[RuleSetConfig] = Field(default_factory=list, alias="ruleSets")
