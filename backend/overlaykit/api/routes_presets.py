from fastapi import APIRouter

from overlaykit.schemas.preset import PresetCatalog
from overlaykit.services.presets import load_presets

router = APIRouter()


@router.get("/presets/overlays", response_model=PresetCatalog, response_model_exclude_none=True)
def list_presets_route():
    return load_presets()
