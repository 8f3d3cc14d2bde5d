from fastapi import APIRouter, Depends, Request
from typing import Optional
from campuspoll.core.aggregation import compute_prompt_stats
from campuspoll.core.auth import Principal, get_principal
from campuspoll.core.database import Database, get_database
from campuspoll.core.errors import InvalidInputError
from .envelope import ok

router = APIRouter()


@router.get("/prompt-stats")
async def get_prompt_stats(
    request: Request,
    promptId: Optional[str] = None,
    db: Database = Depends(get_database),
    principal: Principal = Depends(get_principal)
):
    """Answer counts and demographic breakdowns for one prompt"""
    if not promptId:
        raise InvalidInputError("Prompt ID is required")

    stats = await compute_prompt_stats(
        db,
        promptId,
        min_per_answer=request.app.state.settings.stats_min_responses_per_answer,
    )
    return ok(stats)
