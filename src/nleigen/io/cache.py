"""On-disk cache of accepted eigenpairs."""
from __future__ import annotations

import hashlib
import json
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Union

import numpy as np


@dataclass
class CachedSolution:
    omegas: np.ndarray
    phi: np.ndarray
    deflation_basis: np.ndarray


def file_digest(path: Union[str, Path]) -> str:
    """SHA-256 of a file's bytes, used to key cached solutions."""
    digest = hashlib.sha256()
    with Path(path).open("rb") as handle:
        for chunk in iter(lambda: handle.read(65536), b""):
            digest.update(chunk)
    return digest.hexdigest()


class SolverResultCache:
    """Eigenpairs stored under ``base_path/<name>``.

    A cached entry is only reused when its ``metadata.json`` equals the
    metadata of the current run (input digest and solver settings).
    """

    arrays_filename = "spectra.npz"
    metadata_filename = "metadata.json"

    def __init__(self, base_path: Union[str, Path]) -> None:
        self.base_path = Path(base_path)

    def entry(self, name: str) -> Path:
        return self.base_path / name

    def stored_metadata(self, name: str) -> Optional[dict]:
        meta_file = self.entry(name) / self.metadata_filename
        if not meta_file.is_file():
            return None
        try:
            return json.loads(meta_file.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            return None

    def available(self, name: str, *, metadata: Mapping[str, object]) -> bool:
        if not (self.entry(name) / self.arrays_filename).is_file():
            return False
        # compare in JSON form so tuples and floats match what was written
        expected = json.loads(json.dumps(dict(metadata)))
        return self.stored_metadata(name) == expected

    def load(self, name: str) -> CachedSolution:
        with np.load(self.entry(name) / self.arrays_filename) as arrays:
            return CachedSolution(
                omegas=arrays["omegas"],
                phi=arrays["phi"],
                deflation_basis=arrays["deflation_basis"],
            )

    def save(
        self,
        name: str,
        *,
        omegas: np.ndarray,
        phi: np.ndarray,
        deflation_basis: np.ndarray,
        metadata: Mapping[str, object],
    ) -> Path:
        target = self.entry(name)
        target.mkdir(parents=True, exist_ok=True)
        np.savez(target / self.arrays_filename,
                 omegas=np.asarray(omegas, dtype=float),
                 phi=np.asarray(phi, dtype=float),
                 deflation_basis=np.asarray(deflation_basis, dtype=float))
        (target / self.metadata_filename).write_text(
            json.dumps(dict(metadata), indent=2, sort_keys=True), encoding="utf-8")
        return target

    def drop(self, name: str) -> None:
        target = self.entry(name)
        if target.exists():
            shutil.rmtree(target)
