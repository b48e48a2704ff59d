"""
HTTP API for the BPM pitch table

Exposes the percent engine, the grid builder and the table controls over a
small REST interface, plus runtime access to the configuration.
"""

import logging
import threading
import time
from typing import Any, Dict, Optional
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, HTTPException, BackgroundTasks, Query
from pydantic import BaseModel, Field, ValidationError

from config import RootConfig
from controls import TableControls
from grid import LEGEND, build_grid, grid_metrics
from inputs import BPM_MAX, BPM_MIN, PITCH_MAX, PITCH_MIN, clamp_pitch
from percent import compute_percent


log = logging.getLogger(__name__)

API_VERSION = "1.0.0"

# Config paths that feed a control field when applied to the running table
CONTROL_PATHS = {
    'table.min_bpm': 'bpm_min',
    'table.pitch_max': 'pitch_max',
    'table.source_bpm': 'source_bpm',
    'table.dest_bpm': 'dest_bpm',
}


class ConfigUpdateRequest(BaseModel):
    """Request model for updating configuration values."""
    path: str = Field(..., description="Dot-separated path to the config value (e.g., 'table.min_bpm')")
    value: Any = Field(..., description="New value to set")
    apply_immediately: bool = Field(True, description="Whether to apply the change to the running table")


class ConfigUpdateResponse(BaseModel):
    """Response model for configuration updates."""
    success: bool
    message: str
    old_value: Optional[Any] = None
    new_value: Optional[Any] = None
    applied_to_table: bool = False


class ConfigGetResponse(BaseModel):
    path: str
    value: Any
    exists: bool = True


class ControlCommitRequest(BaseModel):
    """Free text typed into one of the input fields."""
    field: str = Field(..., description="bpm_min, pitch_max, source_bpm or dest_bpm")
    value: str = Field(..., description="Raw field text")


class SelectRequest(BaseModel):
    src: int
    dest: int


class SystemStatusResponse(BaseModel):
    status: str
    uptime_seconds: float
    api_version: str = API_VERSION


class APIServer:
    """FastAPI server around a TableControls instance."""

    def __init__(self, config: RootConfig, controls: Optional[TableControls] = None):
        """Initialize the API server.

        Args:
            config: Current configuration object
            controls: Table controls to serve; built from ``config.table`` when omitted
        """
        self.config = config
        self.controls = controls or TableControls.from_config(config.table)
        self.start_time = time.time()
        self._server = None
        self._thread = None
        self._running = False
        self._root_schema: Dict[str, Any] = {}

        self.app = FastAPI(
            title="BPM Pitch Table API",
            description="Pitch-shift percentages between BPM values",
            version=API_VERSION,
            lifespan=self.lifespan
        )

        self._setup_routes()

    @asynccontextmanager
    async def lifespan(self, app: FastAPI):
        log.info("API server starting up")
        yield
        log.info("API server shutting down")

    def _setup_routes(self):
        """Set up API routes."""

        @self.app.get("/", response_model=Dict[str, str])
        async def root():
            return {
                "name": "BPM Pitch Table API",
                "version": API_VERSION,
                "status": "running",
                "docs": "/docs"
            }

        @self.app.get("/status", response_model=SystemStatusResponse)
        async def get_status():
            return SystemStatusResponse(
                status="running",
                uptime_seconds=time.time() - self.start_time
            )

        @self.app.get("/percent")
        async def get_percent(src: int, dest: int):
            """Single-pair lookup, independent of the table window."""
            result = compute_percent(src, dest)
            if result is None:
                return {"available": False, "src": src, "dest": dest}
            return {"available": True, "src": src, "dest": dest, **result.to_dict()}

        @self.app.get("/table")
        async def get_table(
            min_bpm: Optional[int] = Query(None, ge=BPM_MIN, le=BPM_MAX),
            pitch_max: Optional[float] = Query(None, ge=float(PITCH_MIN), le=float(PITCH_MAX)),
        ):
            """Full grid, for the current controls unless overridden."""
            if min_bpm is None and pitch_max is None:
                grid = self.controls.grid
                ceiling = self.controls.pitch_max
            else:
                ceiling = clamp_pitch(pitch_max) if pitch_max is not None else self.controls.pitch_max
                grid = build_grid(min_bpm if min_bpm is not None else self.controls.bpm_min, ceiling)

            payload = grid.to_dict()
            payload["metrics"] = dict(grid_metrics(grid, ceiling))
            payload["legend"] = [{"swatch": swatch, "label": label} for swatch, label in LEGEND]
            return payload

        @self.app.get("/controls", response_model=Dict[str, Any])
        async def get_controls():
            return self.controls.snapshot()

        @self.app.post("/controls")
        async def commit_control(request: ControlCommitRequest):
            """Commit raw field text; unparsable text keeps the previous value."""
            try:
                accepted = self.controls.commit(request.field, request.value)
            except KeyError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return {"accepted": accepted, "controls": self.controls.snapshot()}

        @self.app.post("/controls/select")
        async def select_pair(request: SelectRequest):
            self.controls.select(request.src, request.dest)
            return self.controls.snapshot()

        @self.app.post("/controls/reset")
        async def reset_controls():
            """Reset the controls to the configured table settings."""
            self.controls.reset(self.config.table)
            return {"message": "Controls reset successfully", "controls": self.controls.snapshot()}

        @self.app.get("/config", response_model=Dict[str, Any])
        async def get_full_config():
            return self.config.model_dump()

        @self.app.get("/config/schema")
        async def get_config_schema():
            return RootConfig.model_json_schema()

        @self.app.get("/config/mappings")
        async def get_supported_mappings():
            """Get information about supported configuration paths and their types."""
            schema = RootConfig.model_json_schema()
            self._root_schema = schema
            return self._extract_schema_paths(schema)

        @self.app.get("/config/{config_path:path}", response_model=ConfigGetResponse)
        async def get_config_value(config_path: str):
            try:
                value = self._get_config_value(config_path)
                return ConfigGetResponse(path=config_path, value=value)
            except KeyError:
                return ConfigGetResponse(path=config_path, value=None, exists=False)

        @self.app.post("/config", response_model=ConfigUpdateResponse)
        async def update_config(
            request: ConfigUpdateRequest,
            background_tasks: BackgroundTasks
        ):
            """Update a configuration value."""
            try:
                try:
                    old_value = self._get_config_value(request.path)
                except KeyError:
                    old_value = None

                self._set_config_value(request.path, request.value)

                response = ConfigUpdateResponse(
                    success=True,
                    message=f"Configuration updated successfully: {request.path}",
                    old_value=old_value,
                    new_value=request.value,
                )

                if request.apply_immediately and request.path in CONTROL_PATHS:
                    background_tasks.add_task(
                        self._apply_config_to_table,
                        request.path,
                        request.value
                    )
                    response.applied_to_table = True
                    response.message += " and applied to the table"

                return response

            except ValueError as e:
                raise HTTPException(status_code=400, detail=f"Value error: {e}")
            except Exception as e:
                log.error(f"Error updating config {request.path}: {e}")
                raise HTTPException(status_code=500, detail=f"Internal error: {e}")

    def _get_config_value(self, path: str) -> Any:
        """Get a configuration value by dot-separated path."""
        current = self.config.model_dump()

        for key in path.split('.'):
            if isinstance(current, dict) and key in current:
                current = current[key]
            else:
                raise KeyError(f"Configuration path not found: {path}")

        return current

    def _set_config_value(self, path: str, value: Any) -> None:
        """Set a configuration value by dot-separated path, revalidating the whole config."""
        keys = path.split('.')
        config_dict = self.config.model_dump()
        current = config_dict

        for key in keys[:-1]:
            if not isinstance(current.get(key), dict):
                raise ValueError(f"Configuration path not found: {path}")
            current = current[key]

        if keys[-1] not in current:
            raise ValueError(f"Configuration path not found: {path}")
        current[keys[-1]] = value

        try:
            self.config = RootConfig(**config_dict)
        except ValidationError as e:
            raise ValueError(f"Configuration validation failed: {e}")

    def _apply_config_to_table(self, path: str, value: Any) -> None:
        """Push a table setting into the running controls."""
        field = CONTROL_PATHS[path]
        self.controls.commit(field, str(value))
        log.info(f"Applied config change to table: {field}={value}")

    def _extract_schema_paths(self, schema: Dict[str, Any], prefix: str = "") -> Dict[str, Any]:
        """Extract all leaf configuration paths from a JSON schema."""
        paths = {}

        def resolve_ref(ref_schema: Dict[str, Any], root_schema: Dict[str, Any]) -> Dict[str, Any]:
            ref_path = ref_schema.get("$ref", "")
            if ref_path.startswith("#/$defs/"):
                return root_schema.get("$defs", {}).get(ref_path[len("#/$defs/"):], {})
            return ref_schema

        root = schema if not prefix else self._root_schema
        for prop_name, prop_schema in schema.get("properties", {}).items():
            current_path = f"{prefix}.{prop_name}" if prefix else prop_name
            resolved = resolve_ref(prop_schema, root)

            if resolved.get("type") == "object" and "properties" in resolved:
                paths.update(self._extract_schema_paths(resolved, current_path))
            else:
                paths[current_path] = {
                    "type": resolved.get("type", "unknown"),
                    "description": resolved.get("description", ""),
                    "default": resolved.get("default"),
                    "enum": resolved.get("enum"),
                    "minimum": resolved.get("minimum"),
                    "maximum": resolved.get("maximum"),
                }

        return paths

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self) -> None:
        """Start the API server in a background thread."""
        if self._running:
            return

        self._running = True
        self._thread = threading.Thread(
            target=self._run_server,
            daemon=True,
            name="api-server"
        )
        self._thread.start()
        log.info(f"API server starting on port {self.config.api.port}")

    def stop(self) -> None:
        if not self._running:
            return

        self._running = False
        if self._server:
            self._server.should_exit = True

        if self._thread:
            self._thread.join(timeout=5.0)

        log.info("API server stopped")

    def _run_server(self) -> None:
        """Run the FastAPI app with uvicorn (blocking)."""
        try:
            config = uvicorn.Config(
                self.app,
                host=self.config.api.host,
                port=self.config.api.port,
                log_level="info" if log.isEnabledFor(logging.INFO) else "warning",
                access_log=True
            )
            self._server = uvicorn.Server(config)
            self._server.run()
        except Exception as e:
            log.error(f"API server error: {e}")
            self._running = False


def create_api_server(config: RootConfig, controls: Optional[TableControls] = None) -> Optional[APIServer]:
    """Create the API server if enabled."""
    if not config.api.enabled:
        log.info("API server disabled in configuration")
        return None

    try:
        return APIServer(config, controls)
    except Exception as e:
        log.error(f"Failed to create API server: {e}")
        return None
