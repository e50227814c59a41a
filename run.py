import atexit
import json
import os
import logging
from concurrent.futures import ThreadPoolExecutor
from dotenv import load_dotenv
from flask import Flask
from popcorn.catalog import CatalogClient, OMDB_URL
from popcorn.repo import SqliteKVStore
from popcorn.service import PopcornService
from popcorn.web import register_routes, register_error_handlers

DEFAULT_CFG = {
    "database": "data/popcorn.db",
    "debug": True,
    "host": "127.0.0.1",
    "port": 5000,
    "logging_level": "INFO",
    "omdb_base_url": OMDB_URL,
    "omdb_api_key": "",
    "request_timeout": 8.0,
    "storage_key": "watched",
    "storage_max_bytes": 5 * 1024 * 1024,
    "max_rating": 10,
    "min_query_length": 1,
    "background_fetch": True,
    "fetch_workers": 4,
    "default_title": "usePopcorn",
}

# OMDB_API_KEY and SECRET_KEY may live in a local .env file
load_dotenv()

def load_config(path="config.json"):
    cfg = DEFAULT_CFG.copy()
    if not os.path.exists(path):
        print("config.json not found, using defaults")
    else:
        try:
            with open(path, "r", encoding="utf-8") as f:
                cfg.update(json.load(f))
        except (OSError, ValueError) as e:
            print("Failed to read config.json:", e, "(using defaults)")
            cfg = DEFAULT_CFG.copy()
    # secrets come from the environment when present
    if os.environ.get("OMDB_API_KEY"):
        cfg["omdb_api_key"] = os.environ["OMDB_API_KEY"]
    return cfg

cfg = load_config()

def configure_logging(level_name: str, debug: bool = False):
    level = getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # quieter werkzeug/urllib3 when not debugging
    logging.getLogger("werkzeug").setLevel(logging.WARNING if not debug else logging.INFO)
    logging.getLogger("urllib3").setLevel(logging.WARNING)

def create_app(overrides=None, client=None, store=None):
    """
    Build the Flask app. overrides is merged over the loaded config; client and
    store replace the OMDb client and the sqlite store (tests pass fakes).
    """
    conf = cfg.copy()
    conf.update(overrides or {})
    configure_logging(conf.get("logging_level", "INFO"), conf.get("debug", False))
    logger = logging.getLogger(__name__)
    logger.info("Starting app with config: %s",
                {k: v for k, v in conf.items() if k not in ("database", "omdb_api_key")})

    app = Flask(__name__)
    app.secret_key = os.environ.get("SECRET_KEY", "dev-key")
    if store is None:
        store = SqliteKVStore(conf["database"], max_value_bytes=conf.get("storage_max_bytes"))
    if client is None:
        if not conf["omdb_api_key"]:
            logger.error("OMDB_API_KEY is not set; put it in .env or config.json")
            raise SystemExit(1)
        client = CatalogClient(conf["omdb_api_key"], base_url=conf["omdb_base_url"],
                               timeout=conf["request_timeout"])
    executor = None
    if conf.get("background_fetch"):
        executor = ThreadPoolExecutor(max_workers=conf.get("fetch_workers", 4),
                                      thread_name_prefix="popcorn-fetch")
        # shut the pool down at interpreter exit
        atexit.register(executor.shutdown, wait=False)
    app.extensions["popcorn_executor"] = executor
    service = PopcornService(client, store, executor=executor,
                             max_rating=conf["max_rating"],
                             storage_key=conf["storage_key"],
                             min_query_length=conf["min_query_length"],
                             default_title=conf["default_title"])
    app.config["SERVICE"] = service

    register_routes(app, service)
    register_error_handlers(app)
    return app

if __name__ == "__main__":
    app = create_app()
    app.run(host=cfg.get("host", "127.0.0.1"), port=cfg.get("port", 5000), debug=cfg.get("debug", True))
