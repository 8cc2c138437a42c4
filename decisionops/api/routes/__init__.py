from fastapi import APIRouter

from decisionops.api.routes import decisions, health, hypotheses, people, stakeholders

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(decisions.router, prefix="/decisions", tags=["decisions"])
api_router.include_router(hypotheses.router, prefix="/hypotheses", tags=["hypotheses"])
api_router.include_router(stakeholders.router, prefix="/stakeholders", tags=["stakeholders"])
api_router.include_router(people.router, prefix="/people", tags=["people"])
