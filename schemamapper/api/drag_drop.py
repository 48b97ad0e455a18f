"""Drag & drop endpoints: start, hover, end and drop a column."""

from fastapi import APIRouter, Depends, HTTPException

from schemamapper.api.deps import get_session
from schemamapper.core.editor_session import EditorSession
from schemamapper.core.models import (
    DragStartRequest,
    DragStateResponse,
    DropRequest,
    DropResponse,
    HoverRequest,
    TargetFeedbackResponse,
)

router = APIRouter()


def drag_state_response(session: EditorSession) -> DragStateResponse:
    drag = session.drag
    return DragStateResponse(
        drag_state=drag.drag_state,
        dragged_column=drag.dragged_column.name if drag.dragged_column else None,
        valid_target_paths=sorted(drag.valid_target_paths),
        hovered_target_path=drag.hovered_target_path,
        is_current_hover_valid=drag.is_current_hover_valid,
        feedback=session.last_feedback,
    )


@router.get("/sessions/{sid}/drag", response_model=DragStateResponse)
async def get_drag_state(session: EditorSession = Depends(get_session)):
    return drag_state_response(session)


@router.post("/sessions/{sid}/drag/start", response_model=DragStateResponse)
async def start_drag(body: DragStartRequest, session: EditorSession = Depends(get_session)):
    """Start dragging a column; any drag in progress is replaced."""
    try:
        session.start_drag(body.column_name)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Column '{body.column_name}' not found")
    return drag_state_response(session)


@router.post("/sessions/{sid}/drag/hover", response_model=DragStateResponse)
async def hover(body: HoverRequest, session: EditorSession = Depends(get_session)):
    """Enter a drop zone, or leave the current one when ``path`` is null."""
    if body.path is None:
        session.leave_drop_zone()
    elif session.drag.get_target(body.path) is None:
        raise HTTPException(status_code=404, detail=f"Drop target '{body.path}' not found")
    else:
        session.enter_drop_zone(body.path)
    return drag_state_response(session)


@router.post("/sessions/{sid}/drag/end", response_model=DragStateResponse)
async def end_drag(session: EditorSession = Depends(get_session)):
    session.end_drag()
    return drag_state_response(session)


@router.get("/sessions/{sid}/drag/zones", response_model=list[TargetFeedbackResponse])
async def drop_zones(session: EditorSession = Depends(get_session)):
    """Visual state of every drop zone under the current drag."""
    return [
        TargetFeedbackResponse(path=t.path, state=session.drag.target_feedback(t))
        for t in session.drag.available_targets
    ]


@router.post("/sessions/{sid}/drag/drop", response_model=DropResponse)
async def drop(body: DropRequest, session: EditorSession = Depends(get_session)):
    """Commit a drop of the dragged (or named) column onto a target.

    A rejected drop is not an HTTP error: the response carries the error
    feedback and the issue is recorded on the session.
    """
    if body.column_name is not None:
        column = session.get_column(body.column_name)
        if column is None:
            raise HTTPException(status_code=404, detail=f"Column '{body.column_name}' not found")
    else:
        column = session.drag.dragged_column
        if column is None:
            raise HTTPException(status_code=400, detail="No column is being dragged")

    target = session.drag.get_target(body.target_path)
    if target is None:
        raise HTTPException(status_code=404, detail=f"Drop target '{body.target_path}' not found")

    outcome = await session.perform_drop(column, target)
    return DropResponse(
        success=outcome.success,
        feedback=outcome.feedback,
        statement_id=outcome.statement_id,
    )
