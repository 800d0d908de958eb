"""Launch a throwaway PostgreSQL container and register it as a pgconn profile."""

from __future__ import annotations

import argparse
import subprocess
import sys
import time
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from pgconn import Connection, ConnectionBackendError
from pgconn.config import CONFIG_FILE, ConnectionProfileConfig, load_config, save_config

DEFAULT_CONTAINER = "pgconn-sample-db"
DEFAULT_PORT = 5543
DEFAULT_PASSWORD = "pgconn"
DEFAULT_DB = "pgconn_demo"
DEFAULT_USER = "pgconn"
DOCKER_IMAGE = "postgres:16-alpine"
PROFILE_NAME = "Docker Sample"

SEED_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS accounts (
        id SERIAL PRIMARY KEY,
        email TEXT NOT NULL UNIQUE,
        created_at TIMESTAMPTZ DEFAULT now()
    )
    """,
    """
    INSERT INTO accounts (email) VALUES
        ('anna@example.com'),
        ('ben@example.com'),
        ('cara@example.com')
    ON CONFLICT DO NOTHING
    """,
)


def run(cmd: list[str], *, check: bool = True) -> subprocess.CompletedProcess[str]:
    print("$", " ".join(cmd))
    return subprocess.run(cmd, check=check, text=True)


def container_exists(name: str) -> bool:
    result = subprocess.run(
        ["docker", "ps", "-a", "--filter", f"name={name}", "--format", "{{.ID}}"],
        text=True,
        capture_output=True,
    )
    return bool(result.stdout.strip())


def start_container(name: str, port: int, password: str, database: str, user: str) -> None:
    if container_exists(name):
        print(f"Container '{name}' already exists. Reusing it.")
        run(["docker", "start", name], check=False)
        return
    run(
        [
            "docker",
            "run",
            "-d",
            "--name",
            name,
            "-e",
            f"POSTGRES_PASSWORD={password}",
            "-e",
            f"POSTGRES_DB={database}",
            "-e",
            f"POSTGRES_USER={user}",
            "-p",
            f"{port}:5432",
            DOCKER_IMAGE,
        ]
    )


def wait_for_start(connection: Connection, retries: int = 15, delay: float = 1.0) -> bool:
    for _ in range(retries):
        try:
            connection.connect()
        except ConnectionBackendError:
            time.sleep(delay)
            continue
        if connection.is_connected():
            return True
    return False


def seed_data(connection: Connection) -> None:
    with connection.transaction():
        for statement in SEED_STATEMENTS:
            connection.execute(statement.strip())


def update_config(parameters: dict[str, object]) -> None:
    config = load_config()
    profiles = list(config.profiles)
    if any(profile.name == PROFILE_NAME for profile in profiles):
        print(f"Profile '{PROFILE_NAME}' already present in config; leaving as-is.")
        return
    profiles.append(ConnectionProfileConfig(name=PROFILE_NAME, **parameters))
    save_config(config.model_copy(update={"profiles": profiles}))
    print(f"Added '{PROFILE_NAME}' profile to {CONFIG_FILE}.")


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--container", default=DEFAULT_CONTAINER, help="Docker container name")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help="Host port to expose Postgres on")
    parser.add_argument("--password", default=DEFAULT_PASSWORD, help="Postgres password")
    parser.add_argument("--database", default=DEFAULT_DB, help="Database name to create")
    parser.add_argument("--user", default=DEFAULT_USER, help="Database user")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv or sys.argv[1:])
    try:
        start_container(args.container, args.port, args.password, args.database, args.user)
    except FileNotFoundError:
        print("Docker is not installed or not on PATH.")
        return 1
    parameters: dict[str, object] = {
        "host": "localhost",
        "port": args.port,
        "user": args.user,
        "password": args.password,
        "database": args.database,
    }
    with Connection(parameters) as connection:
        if not wait_for_start(connection):
            print("Database did not accept connections in time.")
            return 1
        seed_data(connection)
    update_config(parameters)
    print(f"Sample database is ready. Run: python -m pgconn --profile '{PROFILE_NAME}' 'SELECT * FROM accounts'")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
