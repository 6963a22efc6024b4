from __future__ import annotations

from pathlib import Path


def repo_root_from_file(file: str | Path, *, levels_up: int) -> Path:
    if levels_up < 0:
        raise ValueError("levels_up must be >= 0")
    return Path(file).resolve().parents[levels_up]


def configs_root_from_file(file: str | Path, *, levels_up: int) -> Path:
    return repo_root_from_file(file, levels_up=levels_up) / "configs"


def artifacts_root_from_file(file: str | Path, *, levels_up: int) -> Path:
    return repo_root_from_file(file, levels_up=levels_up) / "artifacts"


def resolve_under_root(root: Path, p: str | Path, *, strip_prefix: str | None = None) -> Path:
    root = Path(root)
    candidate = Path(p)
    if candidate.is_absolute():
        if candidate == root or root in candidate.parents:
            return candidate
        raise ValueError(f"path must be under {root}")
    if strip_prefix:
        parts = candidate.parts
        if parts and parts[0] == strip_prefix:
            candidate = Path(*parts[1:])
    return root / candidate


def resolve_config_path(file: str | Path, p: str | Path, *, levels_up: int) -> Path:
    """Resolve ``p`` (absolute, cwd-relative, or ``configs/...``) to an existing-looking path.

    Absolute paths and paths that exist relative to cwd are returned as-is;
    everything else is taken relative to the repo's ``configs/`` directory.
    """
    candidate = Path(p)
    if candidate.is_absolute() or candidate.exists():
        return candidate
    root = configs_root_from_file(file, levels_up=levels_up)
    return resolve_under_root(root, candidate, strip_prefix="configs")
