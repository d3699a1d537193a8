from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

import yaml

DEFAULT_CONFIG = "configs/base.yaml"


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into base (mutates base) and return base."""
    for k, v in override.items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
    return base


class Config:
    """
    Project config object.
    Loads `configs/base.yaml` (relative to the project root) and turns the top-level
    keys into attributes. Nested sections are wrapped in `Config` as well, so
    `cfg.SMM.FB_DOCS` works the same as `cfg.cfg_dict["SMM"]["FB_DOCS"]`.
    """

    def __init__(
        self,
        load: bool = True,
        cfg_dict: Optional[dict[str, Any]] = None,
        path: Optional[str] = DEFAULT_CONFIG,
    ):
        if load:
            cfg_path = self._resolve_cfg_path(path)
            with open(cfg_path, "r") as f:
                loaded = yaml.safe_load(f) or {}
            self.cfg_file = str(cfg_path)
            if cfg_dict:
                _deep_merge(loaded, cfg_dict)
            cfg_dict = loaded
        else:
            self.cfg_file = None
            cfg_dict = cfg_dict or {}

        if not isinstance(cfg_dict, dict):
            raise TypeError(f"Config root must be a dict, got: {type(cfg_dict)}")

        self.cfg_dict: dict[str, Any] = cfg_dict
        self._refresh_attributes()

    def _refresh_attributes(self) -> None:
        def wrap(v: Any) -> Any:
            if isinstance(v, dict):
                return Config(load=False, cfg_dict=v, path=None)
            return v

        for k, v in self.cfg_dict.items():
            setattr(self, k, wrap(v))

    def __getattr__(self, name: str) -> Any:
        # Only reached for keys missing from the yaml; sections read optional keys freely.
        if name.startswith("_"):
            raise AttributeError(name)
        return None

    def _find_project_root(self, start: Path | str = __file__) -> Path:
        """Walk up from `start` to locate the directory containing pyproject.toml."""
        p = Path(start).resolve()
        for parent in (p, *p.parents):
            if (parent / "pyproject.toml").exists():
                return parent
        return Path.cwd().resolve()

    def _resolve_cfg_path(self, user_path: Optional[str]) -> Path:
        root = self._find_project_root()
        if user_path is None:
            return root / DEFAULT_CONFIG
        p = Path(user_path).expanduser()
        if not p.is_absolute():
            p = (root / p).resolve()
        else:
            p = p.resolve()
        if not p.exists():
            raise FileNotFoundError(f"Config file not found: {p}")
        return p

    def update_dict(self, cfg_dict: dict[str, Any]) -> None:
        """Deep-merge overrides into the existing config and refresh attributes."""
        if not isinstance(cfg_dict, dict):
            raise TypeError("update_dict expects a dict")
        _deep_merge(self.cfg_dict, cfg_dict)
        self._refresh_attributes()

    def dump(self) -> str:
        return json.dumps(self.cfg_dict, indent=2, ensure_ascii=False)

    def __repr__(self) -> str:
        return f"{self.dump()}\n"

