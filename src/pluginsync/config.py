from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

APP = "pluginsync"

DEFAULT_SVN_URL = "https://plugins.svn.wordpress.org"
DEFAULT_API_URL = "https://api.wordpress.org/plugins/info/1.0"
DEFAULT_CACHE_TTL_S = 86400


def config_dir() -> Path:
    """
    Cross-platform config directory:
      - Windows: %APPDATA%\\pluginsync
      - macOS/Linux: $XDG_CONFIG_HOME/pluginsync or ~/.config/pluginsync
    """
    if os.name == "nt":
        base = os.environ.get("APPDATA") or str(Path.home())
        return Path(base) / APP
    return Path(os.environ.get("XDG_CONFIG_HOME", str(Path.home() / ".config"))) / APP


def config_path() -> Path:
    return config_dir() / "config.json"


def default_data_dir() -> Path:
    if os.name == "nt":
        base = os.environ.get("LOCALAPPDATA") or str(Path.home())
        return Path(base) / APP
    return Path(os.environ.get("XDG_DATA_HOME", str(Path.home() / ".local" / "share"))) / APP


@dataclass
class Settings:
    data_dir: str = ""
    db_path: str = ""          # empty = <data_dir>/pluginsync.db
    svn_url: str = DEFAULT_SVN_URL
    api_url: str = DEFAULT_API_URL
    cache_ttl_s: int = DEFAULT_CACHE_TTL_S
    timeout_s: int = 30
    user_agents: List[str] = field(default_factory=lambda: [f"{APP}/0.1"])
    # action name -> default allow-list of slugs
    actions: Dict[str, List[str]] = field(default_factory=dict)

    def __post_init__(self):
        if not self.data_dir:
            self.data_dir = str(default_data_dir())

    @property
    def data_path(self) -> Path:
        return Path(self.data_dir).expanduser()

    @property
    def database_path(self) -> Path:
        if self.db_path:
            return Path(self.db_path).expanduser()
        return self.data_path / f"{APP}.db"

    @property
    def cache_dir(self) -> Path:
        return self.data_path / "cache"

    @property
    def metadata_dir(self) -> Path:
        return self.cache_dir / "plugin-raw-data"

    @property
    def baseline_path(self) -> Path:
        return self.data_path / "plugin-data.json"

    def filter_for(self, action: str) -> List[str]:
        return list(self.actions.get(action, []))

    @staticmethod
    def load(path: Optional[Path] = None) -> "Settings":
        path = path or config_path()

        data: dict = {}

        if path.exists():
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, ValueError):
                data = {}
            if not isinstance(data, dict):
                data = {}

        s = Settings(
            data_dir=str(data.get("data_dir", "")),
            db_path=str(data.get("db_path", "")),
            svn_url=str(data.get("svn_url", DEFAULT_SVN_URL)),
            api_url=str(data.get("api_url", DEFAULT_API_URL)),
            cache_ttl_s=int(data.get("cache_ttl_s", DEFAULT_CACHE_TTL_S)),
            timeout_s=int(data.get("timeout_s", 30)),
            user_agents=[str(ua) for ua in data.get("user_agents", [])] or [f"{APP}/0.1"],
            actions={
                str(name): [str(slug) for slug in slugs]
                for name, slugs in (data.get("actions") or {}).items()
            },
        )

        # Environment overrides (highest priority)
        s.data_dir = os.environ.get("PLUGINSYNC_DATA_DIR", s.data_dir)
        s.db_path = os.environ.get("PLUGINSYNC_DB_PATH", s.db_path)
        s.svn_url = os.environ.get("PLUGINSYNC_SVN_URL", s.svn_url)
        s.api_url = os.environ.get("PLUGINSYNC_API_URL", s.api_url)
        ttl = os.environ.get("PLUGINSYNC_CACHE_TTL")
        if ttl and ttl.isdigit():
            s.cache_ttl_s = int(ttl)

        s.svn_url = s.svn_url.rstrip("/")
        s.api_url = s.api_url.rstrip("/")

        return s

    def save(self, path: Optional[Path] = None) -> Path:
        path = path or config_path()
        path.parent.mkdir(parents=True, exist_ok=True)

        payload = {
            "data_dir": self.data_dir,
            "db_path": self.db_path,
            "svn_url": self.svn_url,
            "api_url": self.api_url,
            "cache_ttl_s": self.cache_ttl_s,
            "timeout_s": self.timeout_s,
            "user_agents": self.user_agents,
            "actions": self.actions,
        }
        path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        return path
