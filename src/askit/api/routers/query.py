"""Question answering endpoint."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from askit.rag.answer import AnswerEngine

from .. import schemas
from ..dependencies import get_answer_engine

router = APIRouter(tags=["query"])


@router.post("/query", response_model=schemas.QueryResponse)
async def query(
    body: schemas.QueryRequest,
    engine: Annotated[AnswerEngine, Depends(get_answer_engine)],
) -> schemas.QueryResponse:
    """Answer a question from the tenant's indexed websites."""

    answer = await engine.answer(
        body.question,
        body.tenant_key,
        website=body.website,
        top_k=body.top_k,
    )
    return schemas.QueryResponse.from_answer(answer)
