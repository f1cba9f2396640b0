"""
API v1 routes.
"""

from fastapi import APIRouter

from minjok.api.v1 import admin, auth, board, comments, issues, papers, profiles, qna, volumes

router = APIRouter()

router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
router.include_router(profiles.router, prefix="/profiles", tags=["Profiles"])
router.include_router(admin.router, prefix="/admin", tags=["Admin"])
router.include_router(papers.router, prefix="/papers", tags=["Papers"])
router.include_router(comments.router, prefix="/comments", tags=["Comments"])
router.include_router(board.router, prefix="/board", tags=["Board"])
router.include_router(qna.router, prefix="/qna", tags=["Q&A"])
router.include_router(issues.router, prefix="/issues", tags=["Issues"])
router.include_router(volumes.router, prefix="/volumes", tags=["Volumes"])
