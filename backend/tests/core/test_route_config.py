"""Route Configuration — tests for validation and loading."""

import json

import pytest
from pydantic import ValidationError

from route_guard.core.domain_types import OnboardingStep, RouteCategory
from route_guard.core.errors import RouteConfigError
from route_guard.core.route_config import (
    DEFAULT_ROUTE_CONFIG, RouteConfig, load_route_config,
)

STEPS = {step.value: f"/{step.value}" for step in OnboardingStep}


def test_default_config_covers_every_step():
    for step in OnboardingStep:
        assert DEFAULT_ROUTE_CONFIG.step_path(step).startswith("/")


def test_default_config_is_immutable():
    with pytest.raises(ValidationError):
        DEFAULT_ROUTE_CONFIG.home_path = "/elsewhere"


def test_relative_pattern_is_rejected():
    with pytest.raises(ValidationError, match="must start with"):
        RouteConfig(
            version="bad",
            tables={RouteCategory.PROTECTED: ("profile",)},
            onboarding_steps=STEPS,
        )


def test_missing_step_is_rejected():
    with pytest.raises(ValidationError, match="onboarding_steps missing"):
        RouteConfig(version="bad", tables={}, onboarding_steps={"interests": "/interests"})


def test_load_without_path_returns_default():
    assert load_route_config(None) is DEFAULT_ROUTE_CONFIG


def test_load_from_json_file(tmp_path):
    path = tmp_path / "routes.json"
    path.write_text(json.dumps({
        "version": "test-1",
        "tables": {"protected": ["/vault"]},
        "onboarding_steps": STEPS,
    }))
    config = load_route_config(str(path))
    assert config.version == "test-1"
    assert config.tables[RouteCategory.PROTECTED] == ("/vault",)


def test_load_invalid_json_raises_route_config_error(tmp_path):
    path = tmp_path / "routes.json"
    path.write_text(json.dumps({"version": "x", "tables": {"protected": ["vault"]}}))
    with pytest.raises(RouteConfigError) as exc:
        load_route_config(str(path))
    assert exc.value.code == "ROUTE_CONFIG_INVALID"


def test_load_missing_file_raises_route_config_error(tmp_path):
    with pytest.raises(RouteConfigError):
        load_route_config(str(tmp_path / "absent.json"))
