from __future__ import annotations

from pathlib import Path
from typing import Any


def load_yaml(path: str | Path) -> dict[str, Any]:
    path = Path(path)
    try:
        import yaml  # type: ignore
    except Exception as exc:  # pragma: no cover
        raise RuntimeError(
            "PyYAML is required to read run configs. In your venv, try `python -c \"import yaml\"`."
        ) from exc
    if not path.exists():
        raise FileNotFoundError(f"Run config not found: {path}")
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Expected YAML mapping at top-level: {path}")
    return data


def get(dct: dict[str, Any], path: str, default: Any = None) -> Any:
    cur: Any = dct
    for part in path.split("."):
        if not isinstance(cur, dict) or part not in cur:
            return default
        cur = cur[part]
    return cur


# Command-line option name -> dotted key in the run config.
CONFIG_KEYS = {
    "case": "case.dir",
    "region": "case.region",
    "parallel": "case.parallel",
    "compressible": "energy.compressible",
    "courant": "energy.courant",
    "time": "time.select",
    "latest_time": "time.latest",
    "constant": "time.constant",
    "no_zero": "time.no_zero",
}


def merge_options(cli: dict[str, Any], cfg: dict[str, Any]) -> dict[str, Any]:
    """
    Fill options left unset on the command line (None) from the run config.
    """
    out = dict(cli)
    for name, key in CONFIG_KEYS.items():
        if out.get(name) is None:
            out[name] = get(cfg, key)
    if out.get("time") is not None:
        # YAML may give a number or a list for time.select.
        sel = out["time"]
        out["time"] = ",".join(str(t) for t in sel) if isinstance(sel, (list, tuple)) else str(sel)
    return out
