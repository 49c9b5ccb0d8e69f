"""Target registry: named database endpoints loaded once from JSON."""
import json
from dataclasses import dataclass, field
from pathlib import Path

import config
from errors import ConfigurationError
from log_utils import get_logger

logger = get_logger(__name__)

DRIVERS = ("postgres", "sqlite")
_REQUIRED_FIELDS = ("name", "port", "dbname", "user", "password")
_SQLITE_REQUIRED_FIELDS = ("name", "dbname")


@dataclass(frozen=True)
class TargetConfig:
    """Connection parameters for one named target."""

    name: str
    host: str
    port: int
    user: str
    password: str = field(repr=False)
    dbname: str
    hostname: str = ""
    driver: str = config.DEFAULT_DRIVER
    sslmode: str = config.DEFAULT_SSLMODE

    def describe(self) -> str:
        """Redacted connection description, safe for logs."""
        if self.driver == "sqlite":
            return f"sqlite:{self.dbname}"
        return f"{self.user}@{self.host}:{self.port}/{self.dbname}"


class Registry:
    """Read-only mapping of target name to TargetConfig."""

    def __init__(self, targets, audit_target_name: str = config.AUDIT_TARGET_NAME):
        self._targets = {}
        for target in targets:
            if target.name in self._targets:
                raise ConfigurationError(f"duplicate target name: {target.name!r}")
            self._targets[target.name] = target
        self.audit_target_name = audit_target_name

    def lookup(self, name: str) -> TargetConfig | None:
        return self._targets.get(name)

    def names(self) -> list[str]:
        return list(self._targets)

    def audit_target(self) -> TargetConfig:
        target = self._targets.get(self.audit_target_name)
        if target is None:
            raise ConfigurationError(
                f"audit store target {self.audit_target_name!r} is not configured"
            )
        return target

    def __len__(self):
        return len(self._targets)

    def __contains__(self, name):
        return name in self._targets


def _parse_target(entry: dict, index: int) -> TargetConfig:
    if not isinstance(entry, dict):
        raise ConfigurationError(f"databases[{index}] must be an object")
    driver = entry.get("driver") or config.DEFAULT_DRIVER
    if driver not in DRIVERS:
        raise ConfigurationError(f"databases[{index}] has unknown driver {driver!r}")
    # SQLite targets are a file path in dbname; network fields don't apply
    required = _SQLITE_REQUIRED_FIELDS if driver == "sqlite" else _REQUIRED_FIELDS
    missing = [k for k in required if entry.get(k) in (None, "")]
    host = entry.get("host") or entry.get("ip") or ""
    if driver != "sqlite" and not host:
        missing.append("host")
    if missing:
        raise ConfigurationError(
            f"databases[{index}] is missing required field(s): {', '.join(missing)}"
        )
    try:
        port = int(entry.get("port") or 0)
    except (TypeError, ValueError):
        raise ConfigurationError(f"databases[{index}] has invalid port {entry['port']!r}") from None
    return TargetConfig(
        name=str(entry["name"]),
        host=str(host),
        port=port,
        user=str(entry.get("user") or ""),
        password=str(entry.get("password") or ""),
        dbname=str(entry["dbname"]),
        hostname=str(entry.get("hostname") or ""),
        driver=driver,
        sslmode=str(entry.get("sslmode") or config.DEFAULT_SSLMODE),
    )


def parse_registry(data, audit_target_name: str = config.AUDIT_TARGET_NAME) -> Registry:
    if not isinstance(data, dict) or not isinstance(data.get("databases"), list):
        raise ConfigurationError("target configuration must contain a 'databases' list")
    targets = [_parse_target(entry, i) for i, entry in enumerate(data["databases"])]
    return Registry(targets, audit_target_name=audit_target_name)


def load_registry(path: Path = config.DB_CONFIG_PATH,
                  audit_target_name: str = config.AUDIT_TARGET_NAME) -> Registry:
    """
    Load the target registry from a JSON file.
    Raises ConfigurationError if the file is missing, unreadable or malformed.
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigurationError(f"failed to open config file {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"failed to parse config file {path}: {e}") from e
    registry = parse_registry(data, audit_target_name=audit_target_name)
    logger.info("Loaded %d target(s) from %s", len(registry), path)
    if audit_target_name not in registry:
        logger.warning("Audit store target %r is not configured", audit_target_name)
    return registry
