#!/usr/bin/env python3
"""
Run the GraphPress messaging server.

Usage:
    python -m graphpress.run_server
    python -m graphpress.run_server --port 8080
    python -m graphpress.run_server --graph-file custom_graph.json

Environment variables (a .env file in the working directory is loaded first):
    GRAPH_FILE: Path to graph JSON file (default: graph.json)
    HOST: Server host (default: 0.0.0.0)
    PORT: Server port (default: 8000)
    API_PREFIX: REST API prefix (default: /api)
    SESSION_SECRET: Key used to sign session cookies
    LOG_LEVEL: Logging level (default: INFO)
"""

import argparse
import logging
import os

import uvicorn
from dotenv import load_dotenv

from graphpress.api_host import create_app, AppConfig


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Run the GraphPress messaging server"
    )
    parser.add_argument(
        "--host",
        default=os.getenv("HOST", "0.0.0.0"),
        help="Host to bind to (default: 0.0.0.0)"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.getenv("PORT", "8000")),
        help="Port to bind to (default: 8000)"
    )
    parser.add_argument(
        "--graph-file",
        default=os.getenv("GRAPH_FILE", "graph.json"),
        help="Path to graph JSON file (default: graph.json)"
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload on code changes"
    )
    return parser.parse_args()


def main():
    """Main entry point."""
    load_dotenv()
    args = parse_args()

    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger = logging.getLogger("graphpress")

    config = AppConfig(
        graph_file=args.graph_file,
        host=args.host,
        port=args.port,
    )

    logger.info(f"Graph file: {config.get_graph_path()}")
    logger.info(f"REST API:   http://{config.host}:{config.port}{config.api_prefix}")
    logger.info(f"Health:     http://{config.host}:{config.port}/health")

    if args.reload:
        # uvicorn needs an import string to reload
        os.environ["GRAPH_FILE"] = args.graph_file
        uvicorn.run(
            "graphpress.api_host.server:get_app",
            factory=True,
            host=config.host,
            port=config.port,
            reload=True,
        )
        return

    app = create_app(config)
    uvicorn.run(app, host=config.host, port=config.port)


if __name__ == "__main__":
    main()
