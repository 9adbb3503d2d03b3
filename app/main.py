import argparse
import atexit
from pathlib import Path
from typing import Optional

# Import configuration management
import sys
sys.path.append(str(Path(__file__).parent.parent))
from config_manager import ConfigManager

from flask import Flask, jsonify

from personalization_service.config import PersonalizationConfig
from personalization_service.models.utils import Clock, now_ms
from app.personalization.factory import create_personalization_module

# -----------------------------------------------------------------------------
# Configuration
# -----------------------------------------------------------------------------

config_manager = ConfigManager()
paths_config = config_manager.get_paths_config()
app_config = config_manager.get_app_config()
personalization_config = config_manager.get_personalization_config()

USER_DATA_DIR = Path(__file__).parent.parent / paths_config.user_data_dir


def create_app(
    user_data_dir: Optional[Path] = None,
    config: Optional[PersonalizationConfig] = None,
    clock: Clock = now_ms,
) -> Flask:
    """Build the Flask app with the personalization blueprint registered.

    Args:
        user_data_dir: Directory for per-user JSON files (defaults to the configured one)
        config: Component configuration (defaults to the loaded configuration)
        clock: Epoch-ms clock, injectable for tests

    Returns:
        Configured Flask application
    """
    flask_app = Flask(__name__)
    module = create_personalization_module(
        user_data_dir=Path(user_data_dir) if user_data_dir else USER_DATA_DIR,
        config=config or personalization_config,
        clock=clock,
    )
    flask_app.register_blueprint(module["blueprint"])
    flask_app.extensions["personalization"] = module["service"]

    @flask_app.route("/health", methods=["GET"])
    def health():
        return jsonify({"status": "ok"})

    return flask_app


app = create_app()
atexit.register(app.extensions["personalization"].close_all)

# -----------------------------------------------------------------------------
# Entry point
# -----------------------------------------------------------------------------

if __name__ == "__main__":
    from personalization_service.logging_config import setup_logging

    parser = argparse.ArgumentParser(description="Personalization service")
    parser.add_argument("--port", type=int, help="Port to run the server on")
    parser.add_argument("--host", type=str, help="Host to bind the server to")
    parser.add_argument("--debug", action="store_true", help="Enable debug mode")
    args = parser.parse_args()

    if args.port:
        app_config.port = args.port
    if args.host:
        app_config.host = args.host
    if args.debug:
        app_config.debug = args.debug

    setup_logging(app_config.debug)
    print(f"✅ Storing user data in {USER_DATA_DIR.resolve()}")
    print(f"📋 Configuration loaded:")
    print(f"   - Tracking: {personalization_config.tracking.enabled}")
    print(f"   - Dynamic rails: {personalization_config.dynamic_rails.enabled}")
    print(f"   - Cached events: {personalization_config.cache.enabled}")
    print(f"   - Server: {app_config.host}:{app_config.port}")
    app.run(
        host=app_config.host,
        port=app_config.port,
        debug=app_config.debug
    )
