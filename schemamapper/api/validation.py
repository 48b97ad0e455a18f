"""Validation endpoints: issues, completeness, field state and rules."""

from fastapi import APIRouter, Depends, HTTPException, Query

from schemamapper.api.deps import get_session
from schemamapper.core.editor_session import EditorSession
from schemamapper.core.models import (
    AutoValidationUpdate,
    CompletenessResult,
    ConstraintViolationsRequest,
    FieldValidationState,
    RuleResponse,
    RuleToggle,
    ValidationResult,
)
from schemamapper.core.rule_registry import ValidationRule

router = APIRouter()


def _rule_response(rule: ValidationRule) -> RuleResponse:
    return RuleResponse(
        id=rule.id,
        name=rule.name,
        field_path=rule.field_path,
        message=rule.message,
        severity=rule.severity,
        enabled=rule.enabled,
    )


@router.get("/sessions/{sid}/validation", response_model=ValidationResult)
async def get_issues(session: EditorSession = Depends(get_session)):
    return session.issues.get_validation_result()


@router.delete("/sessions/{sid}/validation", response_model=ValidationResult)
async def clear_issues(
    path: str = Query(..., min_length=1),
    exact: bool = False,
    session: EditorSession = Depends(get_session),
):
    """Clear the issues at ``path`` (and below it unless ``exact``)."""
    session.issues.clear_errors_for_path(path, exact_match=exact)
    return session.issues.get_validation_result()


@router.get("/sessions/{sid}/validation/completeness", response_model=CompletenessResult)
async def get_completeness(session: EditorSession = Depends(get_session)):
    """Re-run the completeness rules and return missing fields and highlights."""
    return session.refresh_validation()


@router.get("/sessions/{sid}/validation/field", response_model=FieldValidationState)
async def get_field_state(
    path: str = Query(..., min_length=1),
    session: EditorSession = Depends(get_session),
):
    return session.issues.field_state(path)


@router.post("/sessions/{sid}/validation/constraints", response_model=ValidationResult)
async def merge_constraints(
    body: ConstraintViolationsRequest, session: EditorSession = Depends(get_session)
):
    """Record the knowledge base's constraint check results for one path."""
    session.merge_constraint_violations(body.path, body.violations)
    return session.issues.get_validation_result()


@router.put("/sessions/{sid}/validation/auto")
async def set_auto_validation(
    body: AutoValidationUpdate, session: EditorSession = Depends(get_session)
):
    if body.enabled:
        session.enable_auto_validation()
    else:
        session.disable_auto_validation()
    return {"auto_validation": session.auto_validation_enabled}


@router.get("/sessions/{sid}/validation/rules", response_model=list[RuleResponse])
async def list_rules(session: EditorSession = Depends(get_session)):
    return [_rule_response(r) for r in session.rules.rules]


@router.put("/sessions/{sid}/validation/rules/{rule_id}", response_model=RuleResponse)
async def toggle_rule(
    rule_id: str, body: RuleToggle, session: EditorSession = Depends(get_session)
):
    if session.rules.get_rule(rule_id) is None:
        raise HTTPException(status_code=404, detail=f"Rule '{rule_id}' not found")
    if body.enabled:
        session.rules.enable_rule(rule_id)
    else:
        session.rules.disable_rule(rule_id)
    return _rule_response(session.rules.get_rule(rule_id))
