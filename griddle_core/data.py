from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from griddle_core import config
from griddle_core.dataset_io import DatasetIoError, parse_dataset_json, parse_griddle_json, validate_dataset
from griddle_core.model import GriddleFile, PivotConfig

logger = logging.getLogger(__name__)

FileSignature = Tuple[str, float]


def get_source_files(data_dir: Optional[Path] = None) -> List[Path]:
    data_dir = data_dir or config.DATA_DIR
    files: List[Path] = []
    for pattern in config.FILE_GLOBS:
        files.extend(data_dir.glob(pattern))
    return sorted(set(files))


def file_signature(path: Path) -> FileSignature:
    return str(path), path.stat().st_mtime


def dataset_name_from_path(path: Path) -> str:
    name = path.name
    for suffix in (".griddle.json", ".dataset.json"):
        if name.endswith(suffix):
            return name[: -len(suffix)]
    return path.stem


def load_griddle_path(path: Path) -> GriddleFile:
    """Read one file; bare dataset files get an empty pivot config."""
    text = path.read_text(encoding="utf-8")
    if path.name.endswith(".griddle.json"):
        return parse_griddle_json(text)
    return GriddleFile(dataset=parse_dataset_json(text), pivot_config=PivotConfig())


# ---------------- Public API (memoized by file signature) ----------------
@lru_cache(maxsize=16)
def _load_cached(signature: FileSignature) -> GriddleFile:
    path = Path(signature[0])
    file = load_griddle_path(path)
    for warning in validate_dataset(file.dataset):
        logger.warning("%s: %s", path.name, warning)
    return file


def list_datasets(data_dir: Optional[Path] = None) -> Dict[str, Path]:
    return {dataset_name_from_path(p): p for p in get_source_files(data_dir)}


def load_dataset(name: str, data_dir: Optional[Path] = None) -> Optional[GriddleFile]:
    path = list_datasets(data_dir).get(name)
    if path is None:
        return None
    return _load_cached(file_signature(path))


def load_all_datasets(data_dir: Optional[Path] = None) -> Dict[str, GriddleFile]:
    out: Dict[str, GriddleFile] = {}
    for name, path in list_datasets(data_dir).items():
        try:
            out[name] = _load_cached(file_signature(path))
        except DatasetIoError as exc:
            logger.warning("skipping unreadable dataset %s: %s", path.name, exc)
    return out


def clear_cache() -> None:
    _load_cached.cache_clear()
