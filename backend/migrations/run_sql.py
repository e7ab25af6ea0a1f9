from __future__ import annotations

import argparse
import os
from pathlib import Path

import psycopg2


MIGRATIONS_DIR = Path(__file__).resolve().parent


def _load_env_file(env_path: Path) -> None:
    if not env_path.exists():
        return
    for raw in env_path.read_text(encoding="utf-8").splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        k, v = line.split("=", 1)
        os.environ.setdefault(k.strip(), v.strip().strip('"').strip("'"))


def _normalize_psycopg_url(url: str) -> str:
    # psycopg2 wants a plain libpq URL, not the SQLAlchemy dialect form.
    url = url.strip()
    for prefix in ("postgresql+psycopg2://", "postgresql+psycopg://", "postgres://"):
        if url.startswith(prefix):
            return "postgresql://" + url.removeprefix(prefix)
    return url


def _sql_files(names: list[str]) -> list[Path]:
    if names:
        return [Path(n).resolve() for n in names]
    return sorted(MIGRATIONS_DIR.glob("*.sql"))


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Apply hostel schema SQL files against Postgres using DATABASE_URL (all migrations/*.sql by default)"
    )
    parser.add_argument("sql_files", nargs="*", help="Paths to .sql files; defaults to every file in migrations/")
    parser.add_argument("--dry-run", action="store_true", help="List the files that would run and exit")
    args = parser.parse_args()

    files = _sql_files(args.sql_files)
    if not files:
        raise SystemExit("No .sql files found")
    if args.dry_run:
        for path in files:
            print(f"would run {path.name}")
        return 0

    backend_dir = MIGRATIONS_DIR.parent
    _load_env_file(backend_dir / ".env")
    database_url = os.environ.get("DATABASE_URL")
    if not database_url:
        raise SystemExit("DATABASE_URL not set (backend/.env)")

    conninfo = _normalize_psycopg_url(database_url)
    with psycopg2.connect(conninfo) as conn:
        conn.autocommit = True
        with conn.cursor() as cur:
            for path in files:
                cur.execute(path.read_text(encoding="utf-8"))
                print(f"OK: executed {path.name}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
