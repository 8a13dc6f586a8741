"""
NoteGraph Server Entry Point

Run with: python main.py [--host HOST] [--port PORT] [--data-dir DIR] [--config FILE]
Or with uvicorn: uvicorn app:app --reload
"""

import argparse

import uvicorn

from app import create_app
from notegraph.config import Config


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="NoteGraph backend server")
    parser.add_argument("--host", help="Bind address (default from config)")
    parser.add_argument("--port", type=int, help="Bind port (default from config)")
    parser.add_argument("--data-dir", help="Directory holding the database and search index")
    parser.add_argument("--config", help="Optional YAML configuration file")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> Config:
    """Config from YAML/env, with command-line options taking precedence."""
    config = Config.from_env_or_yaml(yaml_path=args.config)

    if args.host:
        config.server.host = args.host
    if args.port is not None:
        config.server.port = args.port
    if args.data_dir:
        config.storage.data_dir = args.data_dir

    return config


if __name__ == "__main__":
    config = build_config(parse_args())

    uvicorn.run(
        create_app(config),
        host=config.server.host,
        port=config.server.port,
        log_level=config.logging.level.lower(),
    )
