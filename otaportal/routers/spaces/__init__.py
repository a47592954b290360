"""
Spaces API.

Every endpoint is scoped to a space the caller belongs to:

- GET    /api/spaces
- GET    /api/spaces/{slug}
- GET    /api/spaces/{slug}/files
- GET    /api/spaces/{slug}/files/{id}
- GET    /api/spaces/{slug}/files/{id}/download
- DELETE /api/spaces/{slug}/files/{id}
- POST   /api/spaces/{slug}/upload/presign
- POST   /api/spaces/{slug}/upload/complete
- GET/POST /api/spaces/{slug}/members, PATCH/DELETE /api/spaces/{slug}/members/{user_id}
"""

from fastapi import APIRouter

from . import files, main, members, upload

SPACES_PREFIX = "/api/spaces"

router = APIRouter(
  tags=["Spaces"],
  responses={
    401: {"description": "Not authenticated"},
    403: {"description": "Access denied to space"},
    404: {"description": "Space or file not found"},
  },
)

router.include_router(main.router, prefix=SPACES_PREFIX)
router.include_router(files.router, prefix=SPACES_PREFIX)
router.include_router(upload.router, prefix=SPACES_PREFIX)
router.include_router(members.router, prefix=SPACES_PREFIX)

__all__ = ["router"]
