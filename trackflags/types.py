"""
Data types for flag definitions and evaluation results.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union

from trackflags.errors import ServerError

VariantValue = Union[bool, int, float, str, List[Any], Dict[str, Any], None]
"""Any JSON value a variant can resolve to."""


@dataclass(frozen=True)
class Variant:
    """One named outcome of a flag."""
    key: str
    value: VariantValue = None
    is_control: bool = False
    split: Optional[float] = None


@dataclass(frozen=True)
class VariantOverride:
    """Forces every user in a rollout stage onto one variant."""
    key: str


@dataclass(frozen=True)
class Rollout:
    """An ordered gate within a flag's ruleset."""
    rollout_percentage: float
    variant_override: Optional[VariantOverride] = None
    variant_splits: Optional[Dict[str, float]] = None
    runtime_evaluation_rule: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class RuleSet:
    """Variants, rollout stages and test-user overrides of a flag."""
    variants: List[Variant] = field(default_factory=list)
    rollout: List[Rollout] = field(default_factory=list)
    test_users: Optional[Dict[str, str]] = None


@dataclass(frozen=True)
class FlagDefinition:
    """A flag definition as published by the definitions endpoint."""
    key: str
    context: str
    ruleset: RuleSet
    id: Optional[str] = None
    name: Optional[str] = None
    hash_salt: Optional[str] = None
    experiment_id: Optional[str] = None
    is_experiment_active: Optional[bool] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FlagDefinition":
        """
        Build a definition from its JSON representation.

        Raises:
            ServerError: If a required field is missing or has the wrong shape
        """
        try:
            ruleset_data = data.get("ruleset") or {}
            variants = [
                Variant(
                    key=v["key"],
                    value=v.get("value"),
                    is_control=bool(v.get("is_control", False)),
                    split=v.get("split"),
                )
                for v in ruleset_data.get("variants") or []
            ]
            rollout = [_parse_rollout(r) for r in ruleset_data.get("rollout") or []]
            test = ruleset_data.get("test") or {}

            return cls(
                key=data["key"],
                context=data["context"],
                ruleset=RuleSet(
                    variants=variants,
                    rollout=rollout,
                    test_users=test.get("users"),
                ),
                id=_optional_str(data.get("id")),
                name=data.get("name"),
                hash_salt=data.get("hash_salt"),
                experiment_id=_optional_str(data.get("experiment_id")),
                is_experiment_active=data.get("is_experiment_active"),
            )
        except (KeyError, TypeError, AttributeError, ValueError) as e:
            raise ServerError(f"Malformed flag definition: {e!r}") from e

    @property
    def context_key(self) -> str:
        """Name of the context field this flag is bucketed on."""
        return self.context


def _parse_rollout(data: Mapping[str, Any]) -> Rollout:
    override = data.get("variant_override")
    return Rollout(
        rollout_percentage=float(data["rollout_percentage"]),
        variant_override=VariantOverride(key=override["key"]) if override else None,
        variant_splits=data.get("variant_splits"),
        runtime_evaluation_rule=data.get("runtime_evaluation_rule"),
    )


def _optional_str(value: Any) -> Optional[str]:
    return None if value is None else str(value)


@dataclass(frozen=True)
class SelectedVariant:
    """The outcome of a flag evaluation, or a caller supplied fallback."""

    variant_key: Optional[str] = None
    variant_value: VariantValue = None
    experiment_id: Optional[str] = None
    is_experiment_active: Optional[bool] = None
    is_qa_tester: Optional[bool] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SelectedVariant":
        """Build a variant from a remote evaluation response entry."""
        return cls(
            variant_key=data.get("variant_key"),
            variant_value=data.get("variant_value"),
            experiment_id=_optional_str(data.get("experiment_id")),
            is_experiment_active=data.get("is_experiment_active"),
        )

    def to_dict(self) -> dict:
        """Convert to dictionary, omitting unset fields."""
        result = {}
        if self.variant_key is not None:
            result["variant_key"] = self.variant_key
        if self.variant_value is not None:
            result["variant_value"] = self.variant_value
        if self.experiment_id is not None:
            result["experiment_id"] = self.experiment_id
        if self.is_experiment_active is not None:
            result["is_experiment_active"] = self.is_experiment_active
        if self.is_qa_tester is not None:
            result["is_qa_tester"] = self.is_qa_tester
        return result
