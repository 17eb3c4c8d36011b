"""Database credentials referenced by a data source's ``creds_ref``."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from pointcheck.errors import DataSourceError

#: Order of the positional form, e.g. ``["sales", "db.local", 5432, "qa", "secret"]``.
CREDENTIAL_KEYS = ("dbname", "host", "port", "user", "password")
YAML_SUFFIXES = (".yml", ".yaml")


@dataclass(frozen=True)
class Credentials:
    dbname: str
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = field(default=None, repr=False)


def load_credentials(creds_ref: Any) -> Credentials:
    """Turn a credentials reference into :class:`Credentials`.

    Accepted references: a ``Credentials`` instance, a mapping with the
    :data:`CREDENTIAL_KEYS`, a sequence in that order, a path to a YAML file
    holding such a mapping, or any other path (taken as the database file
    for file-backed engines).
    """
    if isinstance(creds_ref, Credentials):
        return creds_ref
    if isinstance(creds_ref, (str, Path)):
        path = Path(creds_ref)
        if path.suffix.lower() not in YAML_SUFFIXES:
            return Credentials(dbname=str(path))
        return _from_mapping(_read_yaml(path), str(path))
    if isinstance(creds_ref, Mapping):
        return _from_mapping(creds_ref, "mapping")
    if isinstance(creds_ref, Sequence):
        if len(creds_ref) > len(CREDENTIAL_KEYS):
            raise DataSourceError(
                f"Credential sequences hold at most {len(CREDENTIAL_KEYS)} items."
            )
        return _from_mapping(dict(zip(CREDENTIAL_KEYS, creds_ref)), "sequence")
    raise DataSourceError(f"Unsupported credentials reference of type {type(creds_ref).__name__}.")


def _read_yaml(path: Path) -> Mapping[str, Any]:
    if not path.exists():
        raise DataSourceError(f"Credentials file not found at {path}", source=str(path))
    try:
        raw = yaml.safe_load(path.read_text()) or {}
    except OSError as exc:
        raise DataSourceError(f"Cannot read credentials file {path}: {exc}", source=str(path)) from exc
    except yaml.YAMLError as exc:
        raise DataSourceError(f"Invalid YAML in credentials file {path}: {exc}") from exc
    if not isinstance(raw, Mapping):
        raise DataSourceError(f"Credentials file {path} must hold a mapping.")
    return raw


def _from_mapping(raw: Mapping[str, Any], origin: str) -> Credentials:
    dbname = raw.get("dbname") or raw.get("database")
    if not dbname:
        raise DataSourceError(f"Credentials from {origin} are missing 'dbname'.")
    port = raw.get("port")
    if port is not None:
        try:
            port = int(port)
        except (TypeError, ValueError) as exc:
            raise DataSourceError(f"Invalid port {port!r} in credentials from {origin}.") from exc
    return Credentials(
        dbname=str(dbname),
        host=raw.get("host"),
        port=port,
        user=raw.get("user") or raw.get("username"),
        password=raw.get("password"),
    )
