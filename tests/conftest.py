"""Shared fixtures and flag builders."""

from typing import Any, Dict, List, Optional

import pytest
import respx

from trackflags.errors import ErrorHandler


API_HOST = "api.mixpanel.com"
DEFINITIONS_URL = f"https://{API_HOST}/flags/definitions"
FLAGS_URL = f"https://{API_HOST}/flags"
TOKEN = "test-token"


class RecordingErrorHandler(ErrorHandler):
    """Error handler that keeps every error it receives."""

    def __init__(self):
        self.errors = []

    def handle(self, error):
        self.errors.append(error)


@pytest.fixture
def mock_api():
    """Mock API responses."""
    with respx.mock:
        yield respx


@pytest.fixture
def error_handler():
    return RecordingErrorHandler()


def make_flag(
    flag_key: str = "test_flag",
    context: str = "distinct_id",
    variants: Optional[List[Dict[str, Any]]] = None,
    rollout_percentage: float = 100.0,
    variant_override: Optional[Dict[str, str]] = None,
    variant_splits: Optional[Dict[str, float]] = None,
    runtime_evaluation_rule: Optional[Dict[str, Any]] = None,
    test_users: Optional[Dict[str, str]] = None,
    experiment_id: Optional[str] = None,
    is_experiment_active: Optional[bool] = None,
    hash_salt: Optional[str] = None,
) -> Dict[str, Any]:
    """Build a flag definition in its wire format."""
    if variants is None:
        variants = [
            {"key": "control", "value": "control", "is_control": True, "split": 50.0},
            {"key": "treatment", "value": "treatment", "is_control": False, "split": 50.0},
        ]

    rollout: Dict[str, Any] = {"rollout_percentage": rollout_percentage}
    if runtime_evaluation_rule is not None:
        rollout["runtime_evaluation_rule"] = runtime_evaluation_rule
    if variant_override is not None:
        rollout["variant_override"] = variant_override
    if variant_splits is not None:
        rollout["variant_splits"] = variant_splits

    ruleset: Dict[str, Any] = {"variants": variants, "rollout": [rollout]}
    if test_users is not None:
        ruleset["test"] = {"users": test_users}

    flag: Dict[str, Any] = {
        "id": "test-id",
        "name": "Test Flag",
        "key": flag_key,
        "status": "active",
        "project_id": 123,
        "context": context,
        "ruleset": ruleset,
    }
    if experiment_id is not None:
        flag["experiment_id"] = experiment_id
    if is_experiment_active is not None:
        flag["is_experiment_active"] = is_experiment_active
    if hash_salt is not None:
        flag["hash_salt"] = hash_salt
    return flag
