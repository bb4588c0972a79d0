"""
Client-side flag evaluation logic.
Mirrors the server-side assignment so local and remote evaluation agree.
"""

from typing import Any, Callable, Mapping, Optional

from json_logic import jsonLogic

from trackflags.errors import RuleEvaluationError, TrackflagsError
from trackflags.types import FlagDefinition, Rollout, SelectedVariant
from trackflags.utils import (
    context_value_to_string,
    keys_match,
    lowercase_keys_and_values,
    lowercase_leaf_values,
    normalized_hash,
)

DISTINCT_ID = "distinct_id"
CUSTOM_PROPERTIES = "custom_properties"

ErrorCallback = Callable[[TrackflagsError], None]


def evaluate_flag(
    flag: FlagDefinition,
    context: Mapping[str, Any],
    on_error: Optional[ErrorCallback] = None,
) -> Optional[SelectedVariant]:
    """
    Evaluate a flag for a given context.

    Evaluation priority:
    1. If the context lacks the flag's context key, no decision
    2. If the distinct_id is a configured test user, the forced variant
    3. The first rollout stage the context falls into, then its variant
    4. Otherwise no decision

    Args:
        flag: Flag definition
        context: Evaluation context
        on_error: Receives runtime rule failures

    Returns:
        The selected variant, or None when the caller's fallback applies
    """
    if flag.context_key not in context:
        return None

    context_value = context[flag.context_key]

    test_variant = get_test_user_variant(flag, context)
    if test_variant is not None:
        return test_variant

    rollout = get_assigned_rollout(flag, context_value, context, on_error)
    if rollout is None:
        return None

    return get_assigned_variant(flag, context_value, rollout)


def get_matching_variant(
    flag: FlagDefinition,
    variant_key: str,
    is_qa_tester: Optional[bool] = None,
) -> Optional[SelectedVariant]:
    """Find a declared variant by case-insensitive key."""
    for variant in flag.ruleset.variants:
        if keys_match(variant_key, variant.key):
            return SelectedVariant(
                variant_key=variant.key,
                variant_value=variant.value,
                experiment_id=flag.experiment_id,
                is_experiment_active=flag.is_experiment_active,
                is_qa_tester=is_qa_tester,
            )
    return None


def get_test_user_variant(
    flag: FlagDefinition,
    context: Mapping[str, Any],
) -> Optional[SelectedVariant]:
    """Return the forced variant for a configured test user."""
    test_users = flag.ruleset.test_users
    if not test_users:
        return None

    distinct_id = context.get(DISTINCT_ID)
    if distinct_id is None:
        return None

    variant_key = test_users.get(context_value_to_string(distinct_id))
    if not variant_key:
        return None

    return get_matching_variant(flag, variant_key, is_qa_tester=True)


def rollout_salt(flag: FlagDefinition, index: int) -> str:
    if flag.hash_salt is not None:
        return f"{flag.key}{flag.hash_salt}{index}"
    return f"{flag.key}rollout"


def variant_salt(flag: FlagDefinition) -> str:
    return f"{flag.key}{flag.hash_salt or ''}variant"


def get_assigned_rollout(
    flag: FlagDefinition,
    context_value: Any,
    context: Mapping[str, Any],
    on_error: Optional[ErrorCallback] = None,
) -> Optional[Rollout]:
    """
    Find the first rollout stage the context falls into.

    A stage is taken when the bucket is below its percentage and its runtime
    rule, if any, is satisfied. Stages are never revisited.
    """
    for index, rollout in enumerate(flag.ruleset.rollout):
        bucket = normalized_hash(
            context_value_to_string(context_value), rollout_salt(flag, index)
        )
        if bucket >= rollout.rollout_percentage / 100.0:
            continue
        if is_runtime_rule_satisfied(rollout, context, on_error):
            return rollout
    return None


def get_assigned_variant(
    flag: FlagDefinition,
    context_value: Any,
    rollout: Rollout,
) -> Optional[SelectedVariant]:
    """
    Pick a variant within a matched rollout stage.

    A stage override wins outright. Otherwise variants are walked in
    declaration order, accumulating their split weights; the first variant
    whose cumulative weight exceeds the bucket is selected. If the weights
    never exceed the bucket, the last variant is selected.
    """
    if rollout.variant_override is not None:
        variant = get_matching_variant(flag, rollout.variant_override.key, is_qa_tester=False)
        if variant is not None:
            return variant

    variants = flag.ruleset.variants
    if not variants:
        return None

    bucket = normalized_hash(context_value_to_string(context_value), variant_salt(flag))
    splits = rollout.variant_splits or {}

    selected = variants[0]
    cumulative = 0.0
    for variant in variants:
        selected = variant
        weight = splits.get(variant.key, variant.split)
        cumulative += (weight or 0.0) / 100.0
        if bucket < cumulative:
            break

    return SelectedVariant(
        variant_key=selected.key,
        variant_value=selected.value,
        experiment_id=flag.experiment_id,
        is_experiment_active=flag.is_experiment_active,
        is_qa_tester=False,
    )


def get_runtime_parameters(context: Mapping[str, Any]) -> Optional[dict]:
    """Lowercased custom properties, or None if absent or not a mapping."""
    custom_properties = context.get(CUSTOM_PROPERTIES)
    if not isinstance(custom_properties, Mapping):
        return None
    return lowercase_keys_and_values(dict(custom_properties))


def is_runtime_rule_satisfied(
    rollout: Rollout,
    context: Mapping[str, Any],
    on_error: Optional[ErrorCallback] = None,
) -> bool:
    """
    Check a stage's runtime rule against the context's custom properties.

    Matching is case-insensitive: string literals in the rule and the
    property keys and values are lowercased first. A rule that cannot be
    applied is reported through on_error and treated as unsatisfied.
    """
    rule = rollout.runtime_evaluation_rule
    if not rule:
        return True

    parameters = get_runtime_parameters(context)
    if parameters is None:
        return False

    # "!!" applies JsonLogic truthiness to whatever the rule returns
    truthy_rule = {"!!": [lowercase_leaf_values(rule)]}
    try:
        return bool(jsonLogic(truthy_rule, parameters))
    except Exception as e:
        if on_error:
            on_error(RuleEvaluationError(f"Runtime rule evaluation failed: {e}"))
        return False
