"""Configuration loader for ledger store, payment and logging settings."""

from __future__ import annotations

import os
import secrets
import sys
from dataclasses import dataclass
from pathlib import Path

import yaml

STORE_BACKENDS = ("sqlite", "memory")
BALANCE_SOURCES = ("sentinel", "policy")


@dataclass(frozen=True)
class StoreConfig:
    backend: str
    path: str
    key_env: str
    allow_sqlite_fallback: bool


@dataclass(frozen=True)
class PaymentConfig:
    balance_source: str


@dataclass(frozen=True)
class LoggingConfig:
    level: str
    retention_days: int


@dataclass(frozen=True)
class AppConfig:
    store: StoreConfig
    payments: PaymentConfig
    logging: LoggingConfig


DEFAULT_CONFIG_REL_PATH = Path("config/ledger.yaml")
DEFAULT_DB_KEY_ENV = "POLICY_LEDGER_DB_KEY"
RUNTIME_ENV_REL_PATH = Path("config/runtime.env")
_RUNTIME_ENV_LOADED = False


def _split_key_value(raw_line: str) -> tuple[str, str] | None:
    """Parse a shell or PowerShell key assignment line."""
    line = raw_line.strip()
    if not line or line.startswith("#"):
        return None

    if line.startswith("$env:"):
        line = line[len("$env:") :]
    elif line.startswith("export "):
        line = line[len("export ") :]

    if "=" not in line:
        return None

    key, value = line.split("=", 1)
    key = key.strip()
    value = value.strip()
    if not key:
        return None

    if (value.startswith("'") and value.endswith("'")) or (
        value.startswith('"') and value.endswith('"')
    ):
        value = value[1:-1]

    return key, value


def _runtime_root() -> Path:
    """Return writable root for runtime env creation."""
    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve().parent
    return Path(__file__).resolve().parents[3]


def _iter_env_candidates() -> list[Path]:
    """Return candidate files that may contain runtime keys."""
    roots: list[Path] = [Path.cwd(), _runtime_root()]

    unique: list[Path] = []
    seen: set[Path] = set()
    for root in roots:
        for path in (root / ".env.local", root / RUNTIME_ENV_REL_PATH):
            resolved = path.resolve()
            if resolved in seen:
                continue
            seen.add(resolved)
            unique.append(resolved)
    return unique


def _load_env_from_file(path: Path) -> None:
    """Load KEY=VALUE lines from a local file into process environment."""
    if not path.exists() or not path.is_file():
        return
    with path.open("r", encoding="utf-8") as file:
        for line in file:
            parsed = _split_key_value(line)
            if not parsed:
                continue
            key, value = parsed
            if key and key not in os.environ:
                os.environ[key] = value


def _ensure_runtime_env_loaded() -> None:
    """Load local env files once per process."""
    global _RUNTIME_ENV_LOADED
    if _RUNTIME_ENV_LOADED:
        return
    for path in _iter_env_candidates():
        _load_env_from_file(path)
    _RUNTIME_ENV_LOADED = True


def _bootstrap_db_key_if_needed(key_env: str, db_path: str | None = None) -> None:
    """Generate and persist a DB key when none is available."""
    if os.getenv(key_env):
        return

    runtime_env = _runtime_root() / RUNTIME_ENV_REL_PATH
    if db_path and Path(db_path).exists() and not runtime_env.exists():
        raise RuntimeError(
            "Runtime key file is missing while ledger database exists. "
            f"Restore key file or set {key_env}."
        )

    db_key = secrets.token_urlsafe(48)
    os.environ[key_env] = db_key
    runtime_env.parent.mkdir(parents=True, exist_ok=True)
    with runtime_env.open("a", encoding="utf-8") as file:
        file.write(f"{key_env}='{db_key}'\n")


def ensure_runtime_keys(config: AppConfig) -> None:
    """Ensure the store key is loaded or bootstrapped for the configured DB.

    The memory backend opens no database file, so it needs no key.
    """
    _ensure_runtime_env_loaded()
    if config.store.backend == "memory":
        return
    _bootstrap_db_key_if_needed(config.store.key_env, config.store.path)


def get_required_env(name: str) -> str:
    """Return a required environment variable or raise a clear error."""
    _ensure_runtime_env_loaded()
    value = os.getenv(name)
    if not value:
        raise RuntimeError(f"Required environment variable is missing: {name}")
    return value


def resolve_default_config_path() -> Path:
    """Resolve configuration path for source and packaged execution."""
    env_path = os.getenv("POLICY_LEDGER_CONFIG_PATH")
    if env_path:
        return Path(env_path)

    candidates: list[Path] = []

    if getattr(sys, "frozen", False):
        exe_dir = Path(sys.executable).resolve().parent
        candidates.append(exe_dir / DEFAULT_CONFIG_REL_PATH)

    candidates.append(Path.cwd() / DEFAULT_CONFIG_REL_PATH)
    candidates.append(Path(__file__).resolve().parents[3] / DEFAULT_CONFIG_REL_PATH)

    for candidate in candidates:
        if candidate.exists():
            return candidate

    return candidates[0]


def load_config(config_path: Path | None = None) -> AppConfig:
    """Load the app configuration from YAML."""
    path = config_path or resolve_default_config_path()
    with path.open("r", encoding="utf-8") as file:
        raw = yaml.safe_load(file) or {}

    store_raw = raw.get("store", {})
    payments_raw = raw.get("payments", {})
    logging_raw = raw.get("logging", {})

    backend = str(store_raw.get("backend", "sqlite"))
    if backend not in STORE_BACKENDS:
        raise ValueError(f"Unsupported store backend: {backend}")

    balance_source = str(payments_raw.get("balance_source", "sentinel"))
    if balance_source not in BALANCE_SOURCES:
        raise ValueError(f"Unsupported payment balance source: {balance_source}")

    return AppConfig(
        store=StoreConfig(
            backend=backend,
            path=str(store_raw.get("path", "policy_ledger.db")),
            key_env=str(store_raw.get("key_env", DEFAULT_DB_KEY_ENV)),
            allow_sqlite_fallback=bool(store_raw.get("allow_sqlite_fallback", False)),
        ),
        payments=PaymentConfig(balance_source=balance_source),
        logging=LoggingConfig(
            level=str(logging_raw.get("level", "INFO")).upper(),
            retention_days=int(logging_raw.get("retention_days", 1095)),
        ),
    )
