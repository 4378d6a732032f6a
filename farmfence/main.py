import logging

from fastapi import Body, Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from farmfence import config, schemas
from farmfence.db import Base, engine
from farmfence.deps import get_identity, get_service
from farmfence.errors import FarmFenceError
from farmfence.service import FarmFenceService

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Farms & Fences API")


# Create tables at startup
@app.on_event("startup")
def _init_db():
    Base.metadata.create_all(bind=engine)


@app.exception_handler(FarmFenceError)
async def _farmfence_error(request: Request, exc: FarmFenceError):
    logger.warning("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# ---------- fences (declared before /farms/{farm_token} routes) ----------

@app.get("/farms/fences")
def list_fences(
    identity: schemas.Identity = Depends(get_identity),
    svc: FarmFenceService = Depends(get_service),
):
    return {"fences": svc.list_fences(identity)}


@app.post("/farms/fences/select")
def select_fence(
    body: schemas.FenceSelect,
    identity: schemas.Identity = Depends(get_identity),
    svc: FarmFenceService = Depends(get_service),
):
    fence = svc.select_fence(identity, body.fence_token, body.farm_token)
    return {"success": True, "fence": fence}


@app.post("/farms/fences/repair")
def repair_fences(svc: FarmFenceService = Depends(get_service)):
    return svc.repair_fences()


@app.post("/farms/fences", response_model=schemas.FenceOut)
def create_fence(
    body: schemas.FenceCreate,
    identity: schemas.Identity = Depends(get_identity),
    svc: FarmFenceService = Depends(get_service),
):
    return svc.create_fence(identity, body)


@app.put("/farms/fences/{fence_token}/name", response_model=schemas.FenceOut)
def rename_fence(
    fence_token: str,
    body: schemas.NameUpdate,
    identity: schemas.Identity = Depends(get_identity),
    svc: FarmFenceService = Depends(get_service),
):
    return svc.rename_fence(identity, fence_token, body.name)


@app.delete("/farms/fences/{fence_token}")
def delete_fence(
    fence_token: str,
    identity: schemas.Identity = Depends(get_identity),
    svc: FarmFenceService = Depends(get_service),
):
    svc.delete_fence(identity, fence_token)
    return {"success": True}


# ---------- farms ----------

@app.get("/farms")
def list_farms(
    identity: schemas.Identity = Depends(get_identity),
    svc: FarmFenceService = Depends(get_service),
):
    return {"farms": svc.list_farms(identity)}


@app.post("/farms", response_model=schemas.FarmOut)
def create_farm(
    body: schemas.FarmCreate,
    identity: schemas.Identity = Depends(get_identity),
    svc: FarmFenceService = Depends(get_service),
):
    return svc.create_farm(identity, body)


@app.post("/farms/select")
def select_farms(
    body: schemas.FarmSelect,
    identity: schemas.Identity = Depends(get_identity),
    svc: FarmFenceService = Depends(get_service),
):
    selected = svc.select_farms(identity, body.farm_token, select_all=body.select_all)
    return {"success": True, "selected": selected}


@app.put("/farms/{farm_token}/gps", response_model=schemas.FarmOut)
def update_farm_gps(
    farm_token: str,
    body: schemas.GpsUpdate,
    identity: schemas.Identity = Depends(get_identity),
    svc: FarmFenceService = Depends(get_service),
):
    return svc.update_farm_gps(identity, farm_token, body.gps)


@app.put("/farms/{farm_token}/name", response_model=schemas.FarmOut)
def rename_farm(
    farm_token: str,
    body: schemas.NameUpdate,
    identity: schemas.Identity = Depends(get_identity),
    svc: FarmFenceService = Depends(get_service),
):
    return svc.rename_farm(identity, farm_token, body.name)


@app.delete("/farms/{farm_token}", response_model=schemas.FarmDeleteResult)
def delete_farm(
    farm_token: str,
    transfer_to_farm_token: str | None = Body(default=None, embed=True),
    identity: schemas.Identity = Depends(get_identity),
    svc: FarmFenceService = Depends(get_service),
):
    return svc.delete_farm(identity, farm_token, transfer_to_farm_token)
