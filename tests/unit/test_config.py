"""
Unit tests for cost model and advisor settings.
"""

import os
from unittest.mock import patch

import pytest

from index_advisor.config import AdvisorSettings, CostModel


class TestCostModel:
    """Test CostModel validation and environment overrides."""

    def test_defaults(self):
        """Test default selectivities."""
        model = CostModel()

        assert model.range_selectivity == 0.5
        assert model.text_term_selectivity == 0.05

    @pytest.mark.parametrize("value", [0.0, -0.1, 1.5])
    def test_selectivity_bounds(self, value):
        """Test that selectivities must lie in (0, 1]."""
        with pytest.raises(ValueError):
            CostModel(range_selectivity=value)

    @patch.dict(os.environ, {"ADVISOR_RANGE_SELECTIVITY": "0.25"}, clear=False)
    def test_from_env(self):
        """Test reading a selectivity from the environment."""
        model = CostModel.from_env()

        assert model.range_selectivity == 0.25
        assert model.text_term_selectivity == 0.05


class TestAdvisorSettings:
    """Test AdvisorSettings validation and environment overrides."""

    def test_defaults(self):
        """Test default search bounds."""
        settings = AdvisorSettings()

        assert (settings.max_indexes, settings.max_evaluations, settings.workers) == (3, 1000, 4)

    @pytest.mark.parametrize("field", ["max_indexes", "max_evaluations", "workers"])
    def test_positive_values_required(self, field):
        """Test that every bound must be positive."""
        with pytest.raises(ValueError, match=field):
            AdvisorSettings(**{field: 0})

    @patch.dict(
        os.environ,
        {"ADVISOR_MAX_INDEXES": "5", "ADVISOR_MAX_EVALUATIONS": "20", "ADVISOR_WORKERS": "2"},
    )
    def test_from_env(self):
        """Test reading bounds from the environment."""
        settings = AdvisorSettings.from_env()

        assert settings == AdvisorSettings(max_indexes=5, max_evaluations=20, workers=2)

    @patch.dict(os.environ, {"ADVISOR_MAX_INDEXES": "many"})
    def test_from_env_rejects_garbage(self):
        """Test that a non-integer override is an error."""
        with pytest.raises(ValueError):
            AdvisorSettings.from_env()
