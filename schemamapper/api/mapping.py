"""Schema mapping endpoints: terms, statements, snapshots and save."""

from fastapi import APIRouter, Depends, HTTPException, Query

from schemamapper.api.deps import get_session
from schemamapper.api.sessions import session_response
from schemamapper.core.editor_session import EditorSession
from schemamapper.core.models import (
    ColumnMapping,
    KnowledgeBaseUpdate,
    NameUpdate,
    PropertyValueMap,
    RankUpdate,
    SchemaSnapshot,
    SessionResponse,
    StatementCreate,
    StatementCreateResponse,
    StatementMapping,
)
from schemamapper.core.schema_document import build_reference

router = APIRouter()


def _require_statement(session: EditorSession, statement_id: str) -> StatementMapping:
    statement = session.document.get_statement(statement_id)
    if statement is None:
        raise HTTPException(status_code=404, detail=f"Statement '{statement_id}' not found")
    return statement


# --- Whole document ---


@router.get("/sessions/{sid}/schema", response_model=SchemaSnapshot)
async def get_schema(session: EditorSession = Depends(get_session)):
    return session.document.snapshot()


@router.put("/sessions/{sid}/schema", response_model=SessionResponse)
async def load_schema(snapshot: SchemaSnapshot, session: EditorSession = Depends(get_session)):
    """Replace the document with a previously saved snapshot."""
    session.document.load(snapshot)
    session.issues.reset()
    return session_response(session)


@router.put("/sessions/{sid}/schema/name", response_model=SessionResponse)
async def update_name(body: NameUpdate, session: EditorSession = Depends(get_session)):
    session.document.update_schema_name(body.name)
    return session_response(session)


@router.put("/sessions/{sid}/schema/knowledge-base", response_model=SessionResponse)
async def update_knowledge_base(
    body: KnowledgeBaseUpdate, session: EditorSession = Depends(get_session)
):
    session.document.set_knowledge_base(body.knowledge_base)
    if body.item_id is not None:
        session.document.set_item_id(body.item_id)
    return session_response(session)


@router.post("/sessions/{sid}/save", response_model=SessionResponse)
async def save_schema(session: EditorSession = Depends(get_session)):
    if not session.can_save:
        raise HTTPException(
            status_code=409,
            detail="Schema cannot be saved: it needs a project, unsaved changes "
                   "and at least one mapping",
        )
    await session.save()
    return session_response(session)


# --- Terms ---


@router.put("/sessions/{sid}/schema/labels/{lang}")
async def set_label(lang: str, mapping: ColumnMapping, session: EditorSession = Depends(get_session)):
    session.document.add_label_mapping(lang, mapping)
    return {"labels": session.document.labels}


@router.delete("/sessions/{sid}/schema/labels/{lang}")
async def remove_label(lang: str, session: EditorSession = Depends(get_session)):
    session.document.remove_label_mapping(lang)
    return {"labels": session.document.labels}


@router.put("/sessions/{sid}/schema/descriptions/{lang}")
async def set_description(
    lang: str, mapping: ColumnMapping, session: EditorSession = Depends(get_session)
):
    session.document.add_description_mapping(lang, mapping)
    return {"descriptions": session.document.descriptions}


@router.delete("/sessions/{sid}/schema/descriptions/{lang}")
async def remove_description(lang: str, session: EditorSession = Depends(get_session)):
    session.document.remove_description_mapping(lang)
    return {"descriptions": session.document.descriptions}


@router.post("/sessions/{sid}/schema/aliases/{lang}")
async def add_alias(lang: str, mapping: ColumnMapping, session: EditorSession = Depends(get_session)):
    """Add an alias; an alias already mapped for the language is ignored."""
    session.document.add_alias_mapping(lang, mapping)
    return {"aliases": session.document.get_aliases(lang)}


@router.delete("/sessions/{sid}/schema/aliases/{lang}")
async def remove_alias(
    lang: str,
    column_name: str = Query(...),
    storage_type: str = Query(...),
    session: EditorSession = Depends(get_session),
):
    mapping = ColumnMapping(column_name=column_name, storage_type=storage_type)
    session.document.remove_alias_mapping(lang, mapping)
    return {"aliases": session.document.get_aliases(lang)}


# --- Statements ---


@router.get("/sessions/{sid}/schema/statements", response_model=list[StatementMapping])
async def list_statements(session: EditorSession = Depends(get_session)):
    return session.document.statements


@router.post(
    "/sessions/{sid}/schema/statements",
    response_model=StatementCreateResponse,
    status_code=201,
)
async def create_statement(body: StatementCreate, session: EditorSession = Depends(get_session)):
    statement_id = session.document.add_statement(
        body.property, body.value, body.rank, body.qualifiers, body.references
    )
    return StatementCreateResponse(statement_id=statement_id)


@router.put("/sessions/{sid}/schema/statements/{statement_id}", response_model=StatementMapping)
async def replace_statement(
    statement_id: str, body: StatementCreate, session: EditorSession = Depends(get_session)
):
    _require_statement(session, statement_id)
    session.document.update_statement(
        statement_id, body.property, body.value, body.rank, body.qualifiers, body.references
    )
    return session.document.get_statement(statement_id)


@router.put(
    "/sessions/{sid}/schema/statements/{statement_id}/rank",
    response_model=StatementMapping,
)
async def update_rank(
    statement_id: str, body: RankUpdate, session: EditorSession = Depends(get_session)
):
    statement = _require_statement(session, statement_id)
    session.document.update_statement_rank(statement_id, body.rank)
    return statement


@router.delete("/sessions/{sid}/schema/statements/{statement_id}")
async def delete_statement(statement_id: str, session: EditorSession = Depends(get_session)):
    _require_statement(session, statement_id)
    session.document.remove_statement(statement_id)
    return {"deleted": statement_id}


@router.post(
    "/sessions/{sid}/schema/statements/{statement_id}/qualifiers",
    response_model=StatementMapping,
)
async def add_qualifier(
    statement_id: str, qualifier: PropertyValueMap, session: EditorSession = Depends(get_session)
):
    statement = _require_statement(session, statement_id)
    session.document.add_qualifier_to_statement(statement_id, qualifier)
    return statement


@router.delete(
    "/sessions/{sid}/schema/statements/{statement_id}/qualifiers/{index}",
    response_model=StatementMapping,
)
async def remove_qualifier(
    statement_id: str, index: int, session: EditorSession = Depends(get_session)
):
    statement = _require_statement(session, statement_id)
    if not 0 <= index < len(statement.qualifiers):
        raise HTTPException(status_code=404, detail=f"Qualifier {index} not found")
    session.document.remove_qualifier_from_statement(statement_id, index)
    return statement


@router.post(
    "/sessions/{sid}/schema/statements/{statement_id}/references",
    response_model=StatementMapping,
    status_code=201,
)
async def add_reference(
    statement_id: str,
    snaks: list[PropertyValueMap],
    session: EditorSession = Depends(get_session),
):
    statement = _require_statement(session, statement_id)
    session.document.add_reference_to_statement(statement_id, build_reference(snaks))
    return statement


@router.delete(
    "/sessions/{sid}/schema/statements/{statement_id}/references/{reference_id}",
    response_model=StatementMapping,
)
async def remove_reference(
    statement_id: str, reference_id: str, session: EditorSession = Depends(get_session)
):
    statement = _require_statement(session, statement_id)
    if not any(r.id == reference_id for r in statement.references):
        raise HTTPException(status_code=404, detail=f"Reference '{reference_id}' not found")
    session.document.remove_reference_from_statement(statement_id, reference_id)
    return session.document.get_statement(statement_id)
