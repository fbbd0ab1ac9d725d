from fastapi import APIRouter
from overlaykit.api.routes_editors import router as editors_router
from overlaykit.api.routes_elements import router as elements_router
from overlaykit.api.routes_files import router as files_router
from overlaykit.api.routes_overlays import router as overlays_router
from overlaykit.api.routes_presets import router as presets_router
from overlaykit.api.routes_public import router as public_router

api_router = APIRouter()
api_router.include_router(overlays_router, prefix="", tags=["overlays"])
api_router.include_router(elements_router, prefix="", tags=["elements"])
api_router.include_router(editors_router, prefix="", tags=["editors"])
api_router.include_router(presets_router, prefix="", tags=["presets"])
api_router.include_router(public_router, prefix="", tags=["public"])
api_router.include_router(files_router, prefix="", tags=["files"])
