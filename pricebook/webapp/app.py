"""FastAPI application serving catalog management and estimates."""

from __future__ import annotations

import pathlib
from typing import Any, Dict, Optional

from fastapi import Body, Depends, FastAPI, Header, HTTPException, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates
from pydantic import BaseModel

from ..estimators import EstimateValidationError
from ..lifecycle import CatalogSnapshot, ConfigurationManager
from ..models import Result
from ..service import CatalogUnavailable, estimate_for_user, supported_trades
from ..settings import Settings, build_store
from ..storage import StorageError


class MaterialCreate(BaseModel):
    category: str
    name: str
    price: float
    unit: str = ""
    unit_spec: Optional[str] = None


class MaterialUpdate(BaseModel):
    category: Optional[str] = None
    name: Optional[str] = None
    price: Optional[float] = None
    unit: Optional[str] = None
    unit_spec: Optional[str] = None


class OverrideValue(BaseModel):
    value: float


def current_user(x_user_id: Optional[str] = Header(default=None)) -> str:
    if not (x_user_id or "").strip():
        raise HTTPException(status_code=401, detail="User not authenticated")
    return x_user_id.strip()


def create_app(manager: Optional[ConfigurationManager] = None) -> FastAPI:
    """Create and configure the FastAPI application."""

    if manager is None:
        settings = Settings.from_env()
        manager = ConfigurationManager(build_store(settings), settings.load_trades())

    app = FastAPI(title="Pricebook", version="0.1.0")
    base_dir = pathlib.Path(__file__).parent
    templates = Jinja2Templates(directory=str(base_dir / "templates"))
    app.state.manager = manager

    def open_snapshot(trade: str, user_id: str) -> CatalogSnapshot:
        if trade not in manager.trades:
            available = ", ".join(manager.trades.trades)
            raise HTTPException(status_code=404, detail=f"Unknown trade '{trade}'. Available trades: {available}")
        return _unwrap(manager.open_catalog(user_id, trade))

    def owned(snapshot: CatalogSnapshot, material_id: str) -> None:
        if snapshot.material(material_id) is None:
            raise HTTPException(status_code=404, detail=f"No material {material_id} in this catalog")

    @app.get("/", response_class=HTMLResponse)
    async def index(request: Request) -> HTMLResponse:
        return templates.TemplateResponse(
            request,
            "index.html",
            {"trades": manager.trades.trades, "estimators": supported_trades()},
        )

    @app.get("/api/health")
    async def healthcheck() -> Dict[str, str]:
        return {"status": "ok"}

    @app.get("/api/trades")
    async def list_trades() -> Dict[str, Any]:
        return {
            "version": manager.trades.version,
            "trades": [
                {"key": trade, "label": manager.schema(trade).label, "estimates": trade in supported_trades()}
                for trade in manager.trades.trades
            ],
        }

    @app.get("/api/catalog/{trade}")
    def get_catalog(trade: str, user_id: str = Depends(current_user)) -> Dict[str, Any]:
        snapshot = open_snapshot(trade, user_id)
        return manager.catalog_view(snapshot).to_dict()

    @app.post("/api/catalog/{trade}/materials", status_code=201)
    def add_material(trade: str, body: MaterialCreate, user_id: str = Depends(current_user)) -> Dict[str, Any]:
        snapshot = open_snapshot(trade, user_id)
        added = manager.add_material(
            snapshot.configuration,
            category=body.category,
            name=body.name,
            price=body.price,
            unit=body.unit,
            metadata={"unitSpec": body.unit_spec} if body.unit_spec else None,
        )
        return _unwrap(added).to_dict()

    @app.patch("/api/catalog/{trade}/materials/{material_id}")
    def update_material(
        trade: str, material_id: str, body: MaterialUpdate, user_id: str = Depends(current_user)
    ) -> Dict[str, Any]:
        snapshot = open_snapshot(trade, user_id)
        owned(snapshot, material_id)
        fields = body.model_dump(exclude_none=True, exclude={"unit_spec"})
        if body.unit_spec is not None:
            fields["metadata"] = {**snapshot.material(material_id).metadata, "unitSpec": body.unit_spec}
        if not fields:
            raise HTTPException(status_code=400, detail="Nothing to update")
        return _unwrap(manager.catalog.update_material(material_id, **fields)).to_dict()

    @app.post("/api/catalog/{trade}/materials/{material_id}/archive")
    def archive_material(trade: str, material_id: str, user_id: str = Depends(current_user)) -> Dict[str, Any]:
        owned(open_snapshot(trade, user_id), material_id)
        return _unwrap(manager.catalog.archive_material(material_id)).to_dict()

    @app.post("/api/catalog/{trade}/materials/{material_id}/unarchive")
    def unarchive_material(trade: str, material_id: str, user_id: str = Depends(current_user)) -> Dict[str, Any]:
        owned(open_snapshot(trade, user_id), material_id)
        return _unwrap(manager.catalog.unarchive_material(material_id)).to_dict()

    @app.delete("/api/catalog/{trade}/materials/{material_id}")
    def delete_material(trade: str, material_id: str, user_id: str = Depends(current_user)) -> Dict[str, str]:
        owned(open_snapshot(trade, user_id), material_id)
        _unwrap(manager.catalog.delete_material(material_id))
        return {"deleted": material_id}

    @app.put("/api/catalog/{trade}/overrides/{key}")
    def set_override(
        trade: str, key: str, body: OverrideValue, user_id: str = Depends(current_user)
    ) -> Dict[str, Any]:
        snapshot = open_snapshot(trade, user_id)
        return _unwrap(manager.catalog.set_pricing_override(snapshot.configuration.id, key, body.value)).to_dict()

    @app.post("/api/catalog/{trade}/reset")
    def reset_catalog(trade: str, user_id: str = Depends(current_user)) -> Dict[str, Any]:
        snapshot = open_snapshot(trade, user_id)
        _unwrap(manager.reset_configuration(snapshot.configuration.id))
        return {"reset": trade.lower(), "configuration_id": snapshot.configuration.id}

    @app.post("/api/estimate/{trade}")
    def estimate(
        trade: str,
        inputs: Optional[Dict[str, Any]] = Body(default=None),
        user_id: str = Depends(current_user),
    ) -> Dict[str, Any]:
        try:
            run = estimate_for_user(manager, user_id, trade, inputs or {})
        except EstimateValidationError as exc:
            raise HTTPException(status_code=400, detail={"message": str(exc), "errors": exc.errors}) from exc
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except CatalogUnavailable as exc:
            raise HTTPException(status_code=502, detail=str(exc)) from exc

        return {
            **run.estimate.to_dict(),
            "trade_label": manager.schema(run.trade).label,
            "configuration_id": run.configuration_id,
            "material_count": run.material_count,
        }

    return app


def _unwrap(result: Result[Any]) -> Any:
    if not result:
        status = 502 if isinstance(result.cause, StorageError) else 400
        raise HTTPException(status_code=status, detail=result.error or "Operation failed")
    return result.data

