from __future__ import annotations

import configparser
import logging
import os
import stat
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

from app.adminpanel.modules.registry.service import ModuleRegistry
from app.adminpanel.modules.settings.service import ConfigStore, parse_bool

logger = logging.getLogger(__name__)

LEGACY_DIRECTIVES = ("magic_quotes_gpc", "register_globals")
SECURITY_SCANNER_MODULE = "SecurityCenter"
PROTECTIVE_FILE = ".htaccess"


@dataclass(frozen=True)
class SecurityReport:
    legacy_directives: dict[str, bool]
    config_world_writable: bool
    temp_dir_protected: bool
    scanner_active: bool
    ids_filtering: bool
    ids_soft_block: Any

    def to_dict(self) -> dict:
        return asdict(self)


def read_ini_directives(path: str | os.PathLike[str] | None) -> dict[str, str]:
    """Flatten every section of a host ini file into one {directive: raw value} map."""
    if not path or not Path(path).is_file():
        return {}
    parser = configparser.ConfigParser(interpolation=None, strict=False, allow_no_value=True)
    try:
        text = Path(path).read_text(encoding="utf-8", errors="ignore")
        # Host ini files may start with bare directives before any [section].
        parser.read_string(f"[__top__]\n{text}")
    except configparser.Error as e:
        logger.warning("Could not parse host ini file %s: %s", path, e)
        return {}
    out: dict[str, str] = {}
    for section in parser.sections():
        for key, value in parser.items(section):
            out[key.strip().lower()] = (value or "").strip().strip('"')
    return out


def is_world_writable(path: str | os.PathLike[str] | None) -> bool:
    if not path:
        return False
    try:
        mode = os.stat(path).st_mode
    except OSError:
        return False
    return bool(mode & stat.S_IWOTH)


def _is_inside(path: Path, root: Path) -> bool:
    try:
        path.relative_to(root)
    except ValueError:
        return False
    return True


def temp_dir_protected(temp_dir: str | None, document_root: str | None, install_root: str) -> bool:
    """
    A temp directory outside the document root needs no protection. Inside it,
    it is only safe when the protective access-control file is present.
    """
    if not temp_dir:
        return True
    candidate = Path(temp_dir)
    if not candidate.is_absolute():
        candidate = Path(install_root) / candidate
    candidate = Path(os.path.normpath(candidate))
    if document_root:
        root = Path(os.path.normpath(document_root))
        if not _is_inside(candidate, root):
            return True
    return (candidate / PROTECTIVE_FILE).is_file()


class SecurityAdvisor:
    def __init__(
        self,
        modules: ModuleRegistry,
        system: ConfigStore,
        *,
        config_file: str | None,
        temp_dir: str | None,
        document_root: str | None,
        install_root: str,
        host_ini_file: str | None = None,
    ) -> None:
        self.modules = modules
        self.system = system
        self.config_file = config_file
        self.temp_dir = temp_dir
        self.document_root = document_root
        self.install_root = install_root
        self.host_ini_file = host_ini_file

    def _resolve(self, path: str | None) -> str | None:
        if not path:
            return None
        p = Path(path)
        return str(p if p.is_absolute() else Path(self.install_root) / p)

    def report(self) -> SecurityReport:
        directives = read_ini_directives(self._resolve(self.host_ini_file))
        scanner_active = self.modules.is_available(SECURITY_SCANNER_MODULE)
        return SecurityReport(
            legacy_directives={name: parse_bool(directives.get(name, "")) for name in LEGACY_DIRECTIVES},
            config_world_writable=is_world_writable(self._resolve(self.config_file)),
            temp_dir_protected=temp_dir_protected(self.temp_dir, self.document_root, self.install_root),
            scanner_active=scanner_active,
            ids_filtering=scanner_active and parse_bool(self.system.get("useids", False)),
            ids_soft_block=self.system.get("idssoftblock"),
        )
