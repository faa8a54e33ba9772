# pos_sync/api/v1/routes_ai.py
import logging

from fastapi import APIRouter, Depends, HTTPException

from pos_sync.api.deps import get_ai_client
from pos_sync.core.exceptions import AnalysisUnavailableError
from pos_sync.domain.sync.schemas import QuestionIn
from pos_sync.integrations.ai_client import AiServiceClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["ai"])


async def _forward(client: AiServiceClient, mode: str, payload: QuestionIn):
    question = (payload.question or "").strip()
    if not question:
        raise HTTPException(status_code=400, detail="Question is required.")
    try:
        return await client.ask(mode, question)
    except AnalysisUnavailableError:
        logger.exception("Error forwarding %s request", mode)
        raise HTTPException(status_code=500, detail="Failed to get a response from the AI service.")


@router.post("/chat")
async def chat_endpoint(
    payload: QuestionIn,
    client: AiServiceClient = Depends(get_ai_client),
):
    return await _forward(client, "chat", payload)


@router.post("/analyze")
async def analyze_endpoint(
    payload: QuestionIn,
    client: AiServiceClient = Depends(get_ai_client),
):
    return await _forward(client, "analyze", payload)
