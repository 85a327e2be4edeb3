"""API v1 router aggregating all endpoint routers.

Assist:
  /api/v1/assist/context

Documents:
  /api/v1/docs/route

Ledger:
  /api/v1/feedback, /feedback/{id}/review
  /api/v1/corrections, /corrections/{id}/review
  /api/v1/learning/summary

Knowledge:
  /api/v1/knowledge/pending, /knowledge/{id}/review
"""

from fastapi import APIRouter

from copilot.api.v1.endpoints import assist, docs, feedback, knowledge

api_router = APIRouter()

# -------------------------------------------------------------------------
# Assist & Documents
# -------------------------------------------------------------------------
api_router.include_router(assist.router, prefix="/assist", tags=["assist"])
api_router.include_router(docs.router, prefix="/docs", tags=["docs"])

# -------------------------------------------------------------------------
# Ledger & Review
# -------------------------------------------------------------------------
api_router.include_router(feedback.router, tags=["ledger"])
api_router.include_router(knowledge.router, prefix="/knowledge", tags=["knowledge"])
