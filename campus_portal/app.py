# Campus Portal - learning resource viewer
import logging
import sys

from dotenv import load_dotenv
from flask import Flask

# Load environment variables from .env file before configuration is read
load_dotenv()

from campus_portal.config import app_config  # noqa: E402
from campus_portal.api.files import files_bp  # noqa: E402
from campus_portal.api.resources import init_resources_helpers, resources_bp  # noqa: E402
from campus_portal.services.resources import LocatorResolver, StorageSigner  # noqa: E402


def configure_logging(level=None):
    log_level = (level or app_config.LOG_LEVEL).upper()
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    handler.setFormatter(formatter)

    # Get the root logger and clear any existing handlers to avoid duplicates
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(log_level)
    root_logger.addHandler(handler)

    # Silence per-request logs from the HTTP client
    logging.getLogger('httpx').setLevel(logging.WARNING)


def create_app(resolver=None):
    """Build the Flask app with the proxy gateway and resolve endpoint."""
    configure_logging()
    app = Flask(__name__)

    resolver = resolver or LocatorResolver(StorageSigner())
    init_resources_helpers(resolver=resolver)

    app.register_blueprint(files_bp)
    app.register_blueprint(resources_bp)
    app.logger.info(f"Resource viewer ready (proxy at {app_config.PROXY_PATH}, mode={app_config.VIEWER_OPEN_MODE})")
    return app


if __name__ == '__main__':
    create_app().run(host='0.0.0.0', port=8899)
