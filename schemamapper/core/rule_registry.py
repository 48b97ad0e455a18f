"""Completeness Rule Registry — loads and manages required-field rules.

Rules are declared in YAML and bound to a schema field path. Each rule
names a check (a predicate over the field's current value) and carries the
message and severity shown when the check fails. The registry is created
per editor session; rules can be toggled at runtime.
"""

import logging
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Callable, Optional

import yaml
from pydantic import BaseModel

from schemamapper.core.config import settings
from schemamapper.core.models import Severity, normalize_language

logger = logging.getLogger(__name__)

RulePredicate = Callable[[Any, dict], bool]


@dataclass
class ValidationRule:
    """A named completeness rule bound to one field path."""
    id: str
    field_path: str
    message: str
    predicate: RulePredicate
    severity: Severity = Severity.ERROR
    enabled: bool = True
    name: str = ""
    parameters: dict[str, Any] = field(default_factory=dict)
    check: str = ""  # named check the predicate was bound from; empty for ad hoc predicates


# --- Named checks available to YAML rule files ---


def _non_empty_text(value: Any, context: dict, **_: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _non_empty_mapping(value: Any, context: dict, **_: Any) -> bool:
    return isinstance(value, dict) and len(value) > 0


def _non_empty_list(value: Any, context: dict, **_: Any) -> bool:
    return isinstance(value, list) and len(value) > 0


def _has_language(value: Any, context: dict, language: str = "en", **_: Any) -> bool:
    return isinstance(value, dict) and normalize_language(language) in value


CHECKS: dict[str, Callable[..., bool]] = {
    "non_empty_text": _non_empty_text,
    "non_empty_mapping": _non_empty_mapping,
    "non_empty_list": _non_empty_list,
    "has_language": _has_language,
}


class RuleDef(BaseModel):
    id: str
    field_path: str
    message: str
    check: str
    name: str = ""
    severity: Severity = Severity.ERROR
    enabled: bool = True
    parameters: dict[str, Any] = {}


def _bind_check(check: str, parameters: dict[str, Any]) -> RulePredicate:
    fn = CHECKS[check]
    parameters = dict(parameters)

    def predicate(value: Any, context: dict) -> bool:
        return fn(value, context, **parameters)

    return predicate


def build_rule(rule_def: RuleDef) -> ValidationRule:
    if rule_def.check not in CHECKS:
        raise ValueError(
            f"Rule '{rule_def.id}': unknown check '{rule_def.check}'. "
            f"Must be one of {sorted(CHECKS)}"
        )
    return ValidationRule(
        id=rule_def.id,
        name=rule_def.name or rule_def.id,
        field_path=rule_def.field_path,
        message=rule_def.message,
        severity=rule_def.severity,
        enabled=rule_def.enabled,
        parameters=dict(rule_def.parameters),
        predicate=_bind_check(rule_def.check, rule_def.parameters),
        check=rule_def.check,
    )


def load_rules_from_yaml(yaml_content: str) -> list[ValidationRule]:
    """Parse completeness rules from a YAML string."""
    raw = yaml.safe_load(yaml_content)
    if not isinstance(raw, dict):
        raise ValueError("Rules YAML must be a mapping")

    entries = raw.get("rules") or []
    if not isinstance(entries, list):
        raise ValueError("Rules YAML 'rules' must be a list")

    rules = []
    seen: set[str] = set()
    for entry in entries:
        rule = build_rule(RuleDef(**entry))
        if rule.id in seen:
            raise ValueError(f"Duplicate rule id '{rule.id}'")
        seen.add(rule.id)
        rules.append(rule)
    return rules


def load_default_rules(rules_file: Optional[str] = None) -> list[ValidationRule]:
    """Load the rules file shipped with the package (or an override path)."""
    path = Path(rules_file or settings.rules_file)
    if not path.is_absolute():
        path = settings.package_root / path

    if not path.exists():
        raise FileNotFoundError(f"Completeness rules file not found: {path}")

    rules = load_rules_from_yaml(path.read_text())
    logger.info(f"Loaded {len(rules)} completeness rules from {path}")
    return rules


UPDATABLE_FIELDS = frozenset(f.name for f in fields(ValidationRule)) - {"id", "check"}


class ValidationRuleRegistry:
    """Mutable, per-session collection of completeness rules."""

    def __init__(self, rules: Optional[list[ValidationRule]] = None):
        self._rules: list[ValidationRule] = []
        for rule in rules or []:
            self.add_rule(rule)

    @property
    def rules(self) -> list[ValidationRule]:
        return list(self._rules)

    def add_rule(self, rule: ValidationRule) -> None:
        """Insert a rule, replacing any rule with the same id in place."""
        for index, existing in enumerate(self._rules):
            if existing.id == rule.id:
                self._rules[index] = rule
                return
        self._rules.append(rule)

    def remove_rule(self, rule_id: str) -> None:
        self._rules = [r for r in self._rules if r.id != rule_id]

    def update_rule(self, rule_id: str, **changes: Any) -> None:
        """Change fields of a rule; unknown rule ids are ignored.

        A new ``parameters`` mapping re-binds the rule's named check.

        Raises:
            ValueError: a change names a field rules do not have (or the id),
                or new parameters are given for a rule without a named check.
        """
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update rule fields: {sorted(unknown)}")

        for index, existing in enumerate(self._rules):
            if existing.id != rule_id:
                continue
            if "parameters" in changes and "predicate" not in changes:
                if existing.check not in CHECKS:
                    raise ValueError(f"Rule '{rule_id}' has no named check to re-bind")
                changes["predicate"] = _bind_check(existing.check, changes["parameters"])
            self._rules[index] = replace(existing, **changes)
            return

    def enable_rule(self, rule_id: str) -> None:
        self.update_rule(rule_id, enabled=True)

    def disable_rule(self, rule_id: str) -> None:
        self.update_rule(rule_id, enabled=False)

    def get_rule(self, rule_id: str) -> Optional[ValidationRule]:
        for rule in self._rules:
            if rule.id == rule_id:
                return rule
        return None

    def get_rules_by_field_path(self, field_path: str) -> list[ValidationRule]:
        return [r for r in self.enabled_rules if r.field_path == field_path]

    @property
    def enabled_rules(self) -> list[ValidationRule]:
        return [r for r in self._rules if r.enabled]

    @property
    def error_rules(self) -> list[ValidationRule]:
        return [r for r in self.enabled_rules if r.severity == Severity.ERROR]

    @property
    def warning_rules(self) -> list[ValidationRule]:
        return [r for r in self.enabled_rules if r.severity == Severity.WARNING]

    def clear_all_rules(self) -> None:
        self._rules = []
