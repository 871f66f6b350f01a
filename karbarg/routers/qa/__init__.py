"""Q&A API routers."""
from fastapi import APIRouter

from karbarg.routers.qa import answers, community, questions

router = APIRouter(prefix="/qa", tags=["qa"])

router.include_router(questions.router, prefix="/questions", tags=["qa-questions"])
router.include_router(answers.router, prefix="/answers", tags=["qa-answers"])
router.include_router(community.router, tags=["qa-community"])
