"""
Unit tests for the rules engine service facade.
"""

import random
import pytest

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from pydantic import ValidationError

from shared.config import RulesEngineConfig, get_config
from shared.errors import ResultFunctionError
from service_rulesengine.app.cache.models import ModelGroup, RuleSet
from service_rulesengine.app.main import RulesEngineService, create_config_source
from service_rulesengine.app.rules.tree import Tree
from service_rulesengine.app.selection import select_model_group
from service_rulesengine.app.sources.config_source import (
    FileConfigSource, HttpConfigSource, InMemoryConfigSource
)
from helpers import RulesDocumentFactory, create_test_registry


class TestSelectModelGroup:
    """Test cases for select_model_group."""

    def _group(self, weight, key):
        return ModelGroup(weight=weight, version="v1", analytics_key=key, tree=Tree())

    def test_empty_rule_set(self):
        """Test that a rule set without groups selects nothing."""
        assert select_model_group(RuleSet(stage="s", name="n")) is None

    def test_single_group(self):
        """Test that a lone group is always selected."""
        group = self._group(1, "only")

        assert select_model_group(RuleSet(stage="s", name="n", model_groups=(group,))) is group

    def test_weighted_selection(self):
        """Test that selection follows the weights."""
        heavy = self._group(99, "heavy")
        light = self._group(1, "light")
        rule_set = RuleSet(stage="s", name="n", model_groups=(heavy, light))
        rng = random.Random(7)

        picks = [select_model_group(rule_set, rng).analytics_key for _ in range(1000)]

        assert picks.count("heavy") > 900


class TestRulesEngineService:
    """Test cases for RulesEngineService."""

    @pytest.fixture
    def config(self):
        """Create service configuration."""
        return RulesEngineConfig(config_source="memory", sweep_interval_seconds=60, log_level="warning")

    @pytest.fixture
    def source(self):
        """Create a source with one document."""
        return InMemoryConfigSource({"account-1": RulesDocumentFactory.rules_json(stage="bidder-request")})

    @pytest.fixture
    def service(self, config, source):
        """Create RulesEngineService instance."""
        return RulesEngineService(config, source=source, registry=create_test_registry(), rng=random.Random(1))

    def test_wiring(self, service, config):
        """Test that settings flow into the cache and refresher."""
        assert service.cache.fetch_timeout_seconds == config.fetch_timeout_seconds
        assert service.refresher.ttl_seconds == config.cache_ttl_seconds
        assert service.refresher.interval_seconds == 60

    @pytest.mark.asyncio
    async def test_evaluate_runs_stage(self, service):
        """Test evaluating a stage against red and blue payloads."""
        red, blue = [], []

        keys = await service.evaluate("account-1", "bidder-request", {"color": "red"}, red)
        await service.evaluate("account-1", "bidder-request", {"color": "blue"}, blue)

        assert keys == ["colors-v1"]
        assert red == ["R"]
        assert blue == ["D"]

    @pytest.mark.asyncio
    async def test_evaluate_other_stage_runs_nothing(self, service):
        """Test that rule sets of other stages are ignored."""
        result = []

        keys = await service.evaluate("account-1", "auction-response", {"color": "red"}, result)

        assert keys == []
        assert result == []

    @pytest.mark.asyncio
    async def test_evaluate_propagates_result_failure(self, service, source):
        """Test that result function failures surface to the caller."""
        group = RulesDocumentFactory.model_group(
            rules=[{"conditions": ["red"], "results": [{"function": "failingResult"}]}]
        )
        source.put("account-2", RulesDocumentFactory.rules_json(model_groups=[group], stage="bidder-request"))

        with pytest.raises(ResultFunctionError):
            await service.evaluate("account-2", "bidder-request", {"color": "red"}, [])

    @pytest.mark.asyncio
    async def test_start_stop(self, service):
        """Test starting and stopping the refresher through the service."""
        await service.start()
        assert service.refresher.running is True

        await service.stop()
        assert service.refresher.running is False


class TestRulesEngineConfig:
    """Test cases for settings loading."""

    def test_defaults(self):
        """Test the documented defaults."""
        config = get_config()

        assert config.cache_ttl_seconds == 300.0
        assert config.sweep_interval_seconds == 300.0
        assert config.refresh_concurrency == 5

    def test_env_overrides(self, monkeypatch):
        """Test that RULES_ environment variables override defaults."""
        monkeypatch.setenv("RULES_CACHE_TTL_SECONDS", "42")
        monkeypatch.setenv("RULES_CONFIG_SOURCE", "http")

        config = get_config()

        assert config.cache_ttl_seconds == 42.0
        assert config.config_source == "http"

    def test_rejects_unknown_source(self):
        """Test that an unknown source kind fails validation."""
        with pytest.raises(ValidationError):
            RulesEngineConfig(config_source="redis")


class TestCreateConfigSource:
    """Test cases for create_config_source."""

    def test_file_source(self, tmp_path):
        """Test the file source."""
        source = create_config_source(RulesEngineConfig(config_source="file", config_dir=str(tmp_path)))

        assert isinstance(source, FileConfigSource)
        assert source.directory == tmp_path

    def test_http_source(self):
        """Test the HTTP source."""
        config = RulesEngineConfig(config_source="http", config_source_url="http://rules.test/", fetch_timeout_seconds=4.0)

        source = create_config_source(config)

        assert isinstance(source, HttpConfigSource)
        assert source.base_url == "http://rules.test"
        assert source.timeout == 1.0
        assert source.retry_config.max_attempts == 3

    def test_memory_source(self):
        """Test the in-memory source."""
        assert isinstance(create_config_source(RulesEngineConfig(config_source="memory")), InMemoryConfigSource)
