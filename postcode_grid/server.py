#!/usr/bin/env python3
"""
Postcode Grid - Flask Server

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Lightweight Flask server for the delivery grid builder.
Owns the merchant state and coverage geometry; the Leaflet page only
forwards events and renders the returned state.

Key Interactions:
- Loads district GeoJSON resources on startup (DistrictLoader)
- Uses Shapely for radius-clipped coverage masks (CoverageMaskComputer)
- Persists merchants to a local key-value file (MerchantStore)
- Serves the Leaflet map interface and the delivery_config.json download

Navigation Guide:
- ROUTES: API endpoints (/api/state, /api/districts/click, /api/export, ...)
- STARTUP: Server initialization and data loading

For Navigation: Use VS Code outline (Ctrl+Shift+O)
"""

from pathlib import Path
from typing import Any, Dict, Optional, Tuple
import logging
import sys

from flask import Flask, Response, jsonify, render_template, request
from flask_cors import CORS

from postcode_grid.config_types import CONFIG, PostcodeGridConfig, get_frontend_config
from postcode_grid.controller import InteractionController
from postcode_grid.coverage_mask import CoverageMaskComputer
from postcode_grid.district_loader import DistrictLoader
from postcode_grid.export_data import build_export_document, serialize_export_document
from postcode_grid.geometry_service import GeometryService
from postcode_grid.merchant_store import KeyValueStore, MerchantStore, PersistedConfigError

# ═══════════════════════════════════════════════════════════════════════════
# 🌐 FLASK APPLICATION
# ═══════════════════════════════════════════════════════════════════════════

app = Flask(__name__, template_folder="templates", static_folder="static")
CORS(app)

# Global services - initialized on startup
data_loader: Optional[DistrictLoader] = None
controller: Optional[InteractionController] = None
export_filename: str = CONFIG.server.export_filename

# Logging setup
logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(name)s:%(message)s")
logger = logging.getLogger(__name__)


def _not_initialized() -> Tuple[Response, int]:
    return jsonify({"error": "Server not initialized"}), 500


def _state_response() -> Response:
    return jsonify(controller.snapshot())


@app.errorhandler(OSError)
def storage_error(e: OSError) -> Tuple[Response, int]:
    """Storage write failed (lock timeout, disk error); state is unchanged."""
    logger.error(f"❌ Could not save merchant config: {e}")
    return jsonify({"error": f"Could not save merchant config: {e}"}), 500


def _get_coordinate(data: Dict[str, Any]) -> Tuple[float, float]:
    """Parse lat/lon from a request body. Raises ValueError if missing."""
    if "lat" not in data or "lon" not in data:
        raise ValueError("Missing lat/lon in request body")
    try:
        return float(data["lat"]), float(data["lon"])
    except (TypeError, ValueError):
        raise ValueError("lat/lon must be numbers")


# ═══════════════════════════════════════════════════════════════════════════
# 🛣️ API ROUTES
# ═══════════════════════════════════════════════════════════════════════════


@app.route("/")
def index() -> str:
    """Serve the main map interface."""
    return render_template("index.html")


@app.route("/api/config")
def get_config() -> Response:
    """
    Get frontend configuration settings.

    Returns:
        JSON object with map, radius slider and style settings.
    """
    return jsonify(get_frontend_config())


@app.route("/api/data/info")
def get_data_info() -> Response:
    """
    Get information about the loaded district catalog.

    Returns:
        JSON object with resource counts and load timestamp.
    """
    if data_loader is None:
        return _not_initialized()

    return jsonify(data_loader.get_data_info())


@app.route("/api/districts")
def get_districts() -> Response:
    """
    Get all district polygons as GeoJSON FeatureCollection.

    Returns:
        GeoJSON FeatureCollection; every feature has properties.code.
    """
    if data_loader is None:
        return _not_initialized()

    return jsonify(data_loader.get_districts_geojson())


@app.route("/api/state")
def get_state() -> Response:
    """
    Get merchants, active id, move mode, click binding and active mask.
    """
    if controller is None:
        return _not_initialized()

    return _state_response()


@app.route("/api/merchants/active", methods=["POST"])
def select_merchant() -> Response:
    """
    Switch the active merchant (no data change).

    Request Body:
        {"id": str}
    """
    if controller is None:
        return _not_initialized()

    data = request.get_json(silent=True)
    if not data or "id" not in data:
        return jsonify({"error": "Missing id in request body"}), 400

    try:
        controller.select_merchant(str(data["id"]))
    except KeyError:
        return jsonify({"error": f"Unknown merchant: {data['id']}"}), 404

    return _state_response()


@app.route("/api/districts/click", methods=["POST"])
def district_click() -> Response:
    """
    Handle a district polygon click.

    Request Body:
        {
            "code": str,          # District code of the clicked polygon
            "merchantId": str,    # bindingMerchantId the handler was bound with
            "lat": float,         # Click coordinate (used in move mode)
            "lon": float
        }
    """
    if controller is None:
        return _not_initialized()

    data = request.get_json(silent=True)
    if not data or "code" not in data:
        return jsonify({"error": "Missing code in request body"}), 400

    lat = lon = None
    if "lat" in data and "lon" in data:
        try:
            lat, lon = _get_coordinate(data)
        except ValueError as e:
            return jsonify({"error": str(e)}), 400

    try:
        controller.district_click(str(data["code"]), data.get("merchantId"), lat, lon)
    except KeyError:
        return jsonify({"error": f"Unknown merchant: {data.get('merchantId')}"}), 404
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    return _state_response()


@app.route("/api/map/click", methods=["POST"])
def map_click() -> Response:
    """
    Handle a click on the map background (moves the center in move mode).

    Request Body:
        {"lat": float, "lon": float}
    """
    if controller is None:
        return _not_initialized()

    data = request.get_json(silent=True) or {}
    try:
        lat, lon = _get_coordinate(data)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    controller.map_click(lat, lon)
    return _state_response()


@app.route("/api/radius", methods=["POST"])
def set_radius() -> Response:
    """
    Set the active merchant's radius.

    Request Body:
        {"radiusMiles": float}   # 0-15, snapped to 0.5
    """
    if controller is None:
        return _not_initialized()

    data = request.get_json(silent=True)
    if not data or "radiusMiles" not in data:
        return jsonify({"error": "Missing radiusMiles in request body"}), 400

    try:
        controller.set_radius(data["radiusMiles"])
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    return _state_response()


@app.route("/api/move-mode", methods=["POST"])
def set_move_mode() -> Response:
    """
    Turn move-center mode on or off.

    Request Body:
        {"enabled": bool}
    """
    if controller is None:
        return _not_initialized()

    data = request.get_json(silent=True)
    if not data or not isinstance(data.get("enabled"), bool):
        return jsonify({"error": "Missing boolean enabled in request body"}), 400

    controller.set_move_mode(data["enabled"])
    return _state_response()


@app.route("/api/codes/remove", methods=["POST"])
def remove_code() -> Response:
    """
    Remove a district chip from the active merchant.

    Request Body:
        {"code": str, "merchantId": str}
    """
    if controller is None:
        return _not_initialized()

    data = request.get_json(silent=True)
    if not data or "code" not in data:
        return jsonify({"error": "Missing code in request body"}), 400

    try:
        controller.remove_code(str(data["code"]), data.get("merchantId"))
    except KeyError:
        return jsonify({"error": f"Unknown merchant: {data.get('merchantId')}"}), 404

    return _state_response()


@app.route("/api/clear", methods=["POST"])
def clear_active() -> Response:
    """Clear the active merchant's district selection."""
    if controller is None:
        return _not_initialized()

    controller.clear_active()
    return _state_response()


@app.route("/api/reset", methods=["POST"])
def reset_to_defaults() -> Response:
    """Discard the stored config and restore the default merchants."""
    if controller is None:
        return _not_initialized()

    controller.reset()
    return _state_response()


@app.route("/api/export", methods=["GET"])
def export_config() -> Response:
    """
    Export all merchants with their coverage masks.

    Returns:
        JSON file download (delivery_config.json).
    """
    if controller is None:
        return _not_initialized()

    document = build_export_document(controller.store.merchants, controller.mask_computer)

    return Response(
        serialize_export_document(document),
        mimetype="application/json",
        headers={"Content-Disposition": f"attachment; filename={export_filename}"},
    )


# ═══════════════════════════════════════════════════════════════════════════
# 🚀 SERVER INITIALIZATION
# ═══════════════════════════════════════════════════════════════════════════


def initialize_services(
    resource_root: Optional[str] = None,
    storage_path: Optional[Path] = None,
    config: PostcodeGridConfig = CONFIG,
) -> bool:
    """
    Initialize the district catalog, merchant store and controller.

    Args:
        resource_root: Directory or base URL of district files (default: config)
        storage_path: Key-value storage file (default: config)
        config: Typed configuration

    Returns:
        True if initialization successful, False otherwise.
    """
    global data_loader, controller, export_filename

    root = resource_root or config.districts.resource_root
    path = Path(storage_path) if storage_path else config.storage.resolved_path

    try:
        logger.info(f"🚀 Initializing services from: {root}")

        data_loader = DistrictLoader(
            root,
            config.districts.files,
            max_workers=config.districts.max_workers,
            request_timeout_s=config.districts.request_timeout_s,
        )

        geometry_service = GeometryService(
            metric_crs=config.geometry.metric_crs,
            buffer_resolution=config.geometry.buffer_resolution,
        )
        mask_computer = CoverageMaskComputer(
            data_loader.get_districts_gdf(), geometry_service
        )

        store = MerchantStore(
            KeyValueStore(path, lock_timeout_s=config.storage.lock_timeout_s),
            config.storage.key,
            config.default_merchant_dicts(),
        )
        controller = InteractionController(store, mask_computer, config.radius)
        export_filename = config.server.export_filename

        logger.info(f"✅ Loaded {len(store.merchants)} merchants (storage: {path})")
        return True

    except PersistedConfigError as e:
        logger.error(f"❌ Stored merchant config is unreadable: {e}")
        return False
    except Exception as e:
        logger.error(f"❌ Failed to initialize services: {e}")
        return False


def main() -> None:
    """Main entry point - initialize and start server."""
    # Resource root from command line or config
    resource_root = sys.argv[1] if len(sys.argv) > 1 else None

    if not initialize_services(resource_root):
        logger.error("Failed to initialize. Check district files and storage.")
        sys.exit(1)

    host, port = CONFIG.server.host, CONFIG.server.port
    logger.info(f"🌐 Starting server at http://{host}:{port}")
    logger.info(f"   Open browser to: http://{host}:{port}")

    app.run(host=host, port=port, debug=False)


if __name__ == "__main__":
    main()
