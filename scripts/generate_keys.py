"""Generate the ledger database key for SQLCipher-backed stores."""

from __future__ import annotations

import argparse
import secrets
from pathlib import Path

from policy_ledger.core.config import DEFAULT_DB_KEY_ENV


def _render_line(name: str, value: str, env_format: str) -> str:
    if env_format == "powershell":
        return f"$env:{name}='{value}'"
    if env_format == "shell-export":
        return f"export {name}='{value}'"
    return f"{name}='{value}'"


def _write_env_file(path: Path, name: str, db_key: str, env_format: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(_render_line(name, db_key, env_format) + "\n", encoding="utf-8")


def main() -> None:
    """Generate a key and optionally write/print the env line."""
    parser = argparse.ArgumentParser(description="Generate the policy ledger DB key.")
    parser.add_argument(
        "--name",
        default=DEFAULT_DB_KEY_ENV,
        help="Environment variable name to emit.",
    )
    parser.add_argument(
        "--write-env",
        default=None,
        help="Path to write the generated key. Omit to skip file output.",
    )
    parser.add_argument(
        "--format",
        choices=["shell", "shell-export", "powershell"],
        default="shell",
        help="Output format for written/printed lines.",
    )
    parser.add_argument(
        "--stdout",
        action="store_true",
        help="Also print the generated line to stdout.",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite existing env file.",
    )
    args = parser.parse_args()

    db_key = secrets.token_urlsafe(48)

    if args.write_env:
        target_path = Path(args.write_env)
        if target_path.exists() and not args.force:
            print(f"[INFO] key file already exists: {target_path}")
            return
        _write_env_file(target_path, args.name, db_key, args.format)
        print(f"[INFO] key file written: {target_path}")

    if args.stdout:
        print(_render_line(args.name, db_key, args.format))


if __name__ == "__main__":
    main()
