"""Single source of truth for config + repo paths (no env overrides).

Policy:
- No fallback/default config values for required keys.
- If required config keys are missing, terminate with a clear error.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from oscnet.analytic import DEFAULT_COND_LIMIT, DEFAULT_IMAG_TOL
from oscnet.integrator import DEFAULT_DIVERGENCE_LIMIT, DEFAULT_MAX_STEP_S, DEFAULT_STEP_FRACTION


REPO_ROOT = Path(__file__).parent.parent
DEFAULT_CONFIG_PATH = REPO_ROOT / 'config.json'


@dataclass(frozen=True)
class SolverSettings:
    imag_tol: float = DEFAULT_IMAG_TOL
    cond_limit: float = DEFAULT_COND_LIMIT
    max_step_s: float = DEFAULT_MAX_STEP_S
    step_fraction: float = DEFAULT_STEP_FRACTION
    divergence_limit: float = DEFAULT_DIVERGENCE_LIMIT


def resolve_path(p: str, base: Path = REPO_ROOT) -> Path:
    path = Path(p)
    return path if path.is_absolute() else (base / path)


def load_json(path: Path) -> dict:
    return json.loads(path.read_text(encoding='utf-8'))


def _require_path(cfg: dict, keys: list[str]) -> Any:
    cur: Any = cfg
    prefix: list[str] = []
    for k in keys:
        prefix.append(k)
        if not isinstance(cur, dict) or k not in cur:
            raise KeyError(f'Missing required config key: {".".join(prefix)}')
        cur = cur[k]
    return cur


def has_key(cfg: dict, keys: list[str]) -> bool:
    try:
        v = _require_path(cfg, keys)
    except KeyError:
        return False
    return v is not None


def req_str(cfg: dict, keys: list[str]) -> str:
    v = _require_path(cfg, keys)
    if not isinstance(v, str) or not v.strip():
        raise ValueError(f'Config key {".".join(keys)} must be a non-empty string.')
    return v


def req_float(cfg: dict, keys: list[str]) -> float:
    v = _require_path(cfg, keys)
    try:
        return float(v)
    except Exception as e:
        raise ValueError(f'Config key {".".join(keys)} must be a float-like value.') from e


def req_int(cfg: dict, keys: list[str]) -> int:
    v = _require_path(cfg, keys)
    try:
        return int(v)
    except Exception as e:
        raise ValueError(f'Config key {".".join(keys)} must be an int-like value.') from e


def req_list(cfg: dict, keys: list[str]) -> list:
    v = _require_path(cfg, keys)
    if not isinstance(v, list) or not v:
        raise ValueError(f'Config key {".".join(keys)} must be a non-empty list.')
    return v


def read_config(path: Path | None = None) -> dict:
    cfg = load_json(DEFAULT_CONFIG_PATH if path is None else Path(path))
    validate_config(cfg)
    return cfg


def validate_config(cfg: dict) -> None:
    # Existence/type checks (no defaults).
    if has_key(cfg, ['network', 'chain']):
        req_list(cfg, ['network', 'chain', 'masses'])
        req_list(cfg, ['network', 'chain', 'k_elem'])
        req_list(cfg, ['network', 'chain', 'c_elem'])
    else:
        req_list(cfg, ['network', 'masses'])
        req_list(cfg, ['network', 'damping'])
        req_list(cfg, ['network', 'stiffness'])

    req_list(cfg, ['initial_state', 'positions'])

    req_float(cfg, ['simulation', 't_start_s'])
    req_float(cfg, ['simulation', 't_end_s'])
    if req_int(cfg, ['simulation', 'n_samples']) < 1:
        raise ValueError('simulation.n_samples must be >= 1.')
    if has_key(cfg, ['simulation', 'events_csv']):
        req_str(cfg, ['simulation', 'events_csv'])

    solver_settings(cfg)

    req_str(cfg, ['output_dir'])


def solver_settings(cfg: dict) -> SolverSettings:
    s = SolverSettings(
        imag_tol=req_float(cfg, ['solver', 'imag_tol']),
        cond_limit=req_float(cfg, ['solver', 'cond_limit']),
        max_step_s=req_float(cfg, ['solver', 'max_step_s']),
        step_fraction=req_float(cfg, ['solver', 'step_fraction']),
        divergence_limit=req_float(cfg, ['solver', 'divergence_limit']),
    )
    if s.imag_tol <= 0.0:
        raise ValueError('solver.imag_tol must be > 0.')
    if s.cond_limit <= 1.0:
        raise ValueError('solver.cond_limit must be > 1.')
    if s.max_step_s <= 0.0:
        raise ValueError('solver.max_step_s must be > 0.')
    if not 0.0 < s.step_fraction <= 1.0:
        raise ValueError('solver.step_fraction must be in (0, 1].')
    if s.divergence_limit <= 0.0:
        raise ValueError('solver.divergence_limit must be > 0.')
    return s
