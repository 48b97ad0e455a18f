"""FastAPI dependencies for editor session lookup and validation."""

from fastapi import HTTPException, Path, Request

from schemamapper.core.editor_session import EditorSession, SessionRegistry
from schemamapper.core.id_gen import SESSION_PREFIX, is_generated_id


def get_registry(request: Request) -> SessionRegistry:
    return request.app.state.session_registry


async def get_session(
    request: Request,
    sid: str = Path(..., description="Editor session ID", min_length=1, max_length=64),
) -> EditorSession:
    """Resolve the editor session named in the URL path.

    Raises 400 if the ID is malformed, 404 if no such session is open.
    """
    if not is_generated_id(sid, SESSION_PREFIX):
        raise HTTPException(
            status_code=400,
            detail=f"Invalid session ID format: '{sid}'. "
                   f"Expected '{SESSION_PREFIX}' followed by 32 hex characters."
        )
    session = get_registry(request).get(sid)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Session '{sid}' not found")
    return session
