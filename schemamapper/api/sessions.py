"""Editor session endpoints: lifecycle, dataset columns and drop targets."""

from fastapi import APIRouter, Depends, HTTPException, Request

from schemamapper.api.deps import get_registry, get_session
from schemamapper.core.column_profiler import profile_rows
from schemamapper.core.config import settings
from schemamapper.core.editor_session import EditorSession
from schemamapper.core.models import (
    ColumnInfo,
    ColumnProfileRequest,
    SessionCreate,
    SessionResponse,
    TargetSpec,
)
from schemamapper.core.target_paths import target_from_path

router = APIRouter()


def session_response(session: EditorSession) -> SessionResponse:
    doc = session.document
    return SessionResponse(
        session_id=session.session_id,
        project_id=doc.project_id,
        schema_id=doc.schema_id,
        name=doc.name,
        knowledge_base=doc.knowledge_base,
        column_names=list(session.columns),
        target_paths=[t.path for t in session.drag.available_targets],
        is_dirty=doc.is_dirty,
        can_save=session.can_save,
    )


@router.post("/sessions", response_model=SessionResponse, status_code=201)
async def create_session(body: SessionCreate, request: Request):
    """Open a new editor session, optionally with the dataset's columns."""
    registry = get_registry(request)
    session = registry.create(
        project_id=body.project_id,
        name=body.name,
        knowledge_base=body.knowledge_base or settings.default_knowledge_base,
        columns=body.columns,
    )
    return session_response(session)


@router.get("/sessions")
async def list_sessions(request: Request):
    return {"sessions": get_registry(request).list_sessions()}


@router.get("/sessions/{sid}", response_model=SessionResponse)
async def get_session_info(session: EditorSession = Depends(get_session)):
    return session_response(session)


@router.delete("/sessions/{sid}")
async def close_session(request: Request, session: EditorSession = Depends(get_session)):
    get_registry(request).remove(session.session_id)
    return {"closed": session.session_id}


@router.post("/sessions/{sid}/reset", response_model=SessionResponse)
async def reset_session(session: EditorSession = Depends(get_session)):
    """Discard the schema mapping and all issues; columns and targets stay."""
    session.reset()
    return session_response(session)


# --- Columns ---


@router.get("/sessions/{sid}/columns", response_model=list[ColumnInfo])
async def list_columns(session: EditorSession = Depends(get_session)):
    return list(session.columns.values())


@router.put("/sessions/{sid}/columns", response_model=list[ColumnInfo])
async def register_columns(
    columns: list[ColumnInfo], session: EditorSession = Depends(get_session)
):
    names = [c.name for c in columns]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise HTTPException(status_code=400, detail=f"Duplicate column names: {duplicates}")
    session.register_columns(columns)
    return list(session.columns.values())


@router.post("/sessions/{sid}/columns/profile", response_model=list[ColumnInfo])
async def profile_columns(
    body: ColumnProfileRequest, session: EditorSession = Depends(get_session)
):
    """Infer column snapshots from a tabular preview and register them."""
    columns = profile_rows(body.headers, body.rows)
    session.register_columns(columns)
    return columns


# --- Drop targets ---


@router.put("/sessions/{sid}/targets")
async def set_targets(targets: list[TargetSpec], session: EditorSession = Depends(get_session)):
    """Declare the drop targets currently rendered by the editor."""
    try:
        drop_targets = [
            target_from_path(
                t.path,
                t.accepted_types,
                target_kind=t.target_kind,
                language=t.language,
                property_id=t.property_id,
                is_required=t.is_required,
            )
            for t in targets
        ]
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid drop target: {e}")

    session.set_targets(drop_targets)
    return {"targets": [t.path for t in session.drag.available_targets]}


@router.get("/sessions/{sid}/columns/{column_name}/targets")
async def get_valid_targets(column_name: str, session: EditorSession = Depends(get_session)):
    """Paths of the targets the column could be dropped on."""
    column = session.get_column(column_name)
    if column is None:
        raise HTTPException(status_code=404, detail=f"Column '{column_name}' not found")
    targets = session.drag.get_valid_targets_for_column(column)
    return {"column_name": column_name, "valid_target_paths": [t.path for t in targets]}
