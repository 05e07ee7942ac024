from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import numpy as np

from ldcorrect.calibration import LensCalibrationTable
from ldcorrect.core.backmap import DisplacementField

FIELD_SCHEMA_VERSION = "ldcorrect.field.v0"


def _to_float_matrix(x: np.ndarray, shape: tuple[int, ...]) -> np.ndarray:
    x = np.asarray(x, dtype=np.float64)
    return x.reshape(shape)


def save_displacement_field(
    field_dir: Path,
    field: DisplacementField,
    *,
    calibration: LensCalibrationTable | None = None,
) -> Path:
    """
    Save a displacement field into a directory:

      field.json + field.npz

    The JSON carries the image size, optical centre and the fingerprint of the
    lens table the field was built from, so a cache can be checked without
    loading the arrays.
    """
    field_dir = Path(field_dir)
    field_dir.mkdir(parents=True, exist_ok=True)

    arrays_path = field_dir / "field.npz"
    np.savez_compressed(
        arrays_path,
        h_d=np.asarray(field.h_d, dtype=np.float64),
        v_d=np.asarray(field.v_d, dtype=np.float64),
    )

    meta: dict[str, Any] = {
        "schema_version": FIELD_SCHEMA_VERSION,
        "image": {"width_px": field.width, "height_px": field.height},
        "center": {"hc_px": field.center[0], "vc_px": field.center[1]},
        "lens": {"fingerprint": calibration.fingerprint() if calibration is not None else None},
        "arrays": {"format": "npz", "path": arrays_path.name, "keys": {"h_d": "h_d", "v_d": "v_d"}},
    }

    json_path = field_dir / "field.json"
    json_path.write_text(json.dumps(meta, indent=2, sort_keys=True), encoding="utf-8")
    return json_path


def read_field_meta(field_dir: Path) -> dict[str, Any]:
    meta = json.loads((Path(field_dir) / "field.json").read_text(encoding="utf-8"))
    if str(meta.get("schema_version")) != FIELD_SCHEMA_VERSION:
        raise ValueError("unsupported field schema")
    return meta


def load_displacement_field(field_dir: Path) -> DisplacementField:
    field_dir = Path(field_dir)
    meta = read_field_meta(field_dir)

    image = meta["image"]
    center = meta["center"]
    arrays = meta["arrays"]
    shape = (int(image["height_px"]), int(image["width_px"]))

    with np.load(str(field_dir / str(arrays["path"]))) as npz:
        k = arrays["keys"]
        h_d = _to_float_matrix(npz[str(k["h_d"])], shape)
        v_d = _to_float_matrix(npz[str(k["v_d"])], shape)

    return DisplacementField(h_d=h_d, v_d=v_d, center=(float(center["hc_px"]), float(center["vc_px"])))


def field_matches(field_dir: Path, *, width: int, height: int, calibration: LensCalibrationTable) -> bool:
    """True when a saved field exists for this resolution and lens table."""
    if not (Path(field_dir) / "field.json").exists():
        return False
    try:
        meta = read_field_meta(field_dir)
    except (ValueError, OSError):
        return False
    arrays_path = Path(field_dir) / str(meta.get("arrays", {}).get("path", "field.npz"))
    if not arrays_path.exists():
        return False
    image = meta.get("image", {})
    lens = meta.get("lens", {})
    return (
        int(image.get("width_px", -1)) == int(width)
        and int(image.get("height_px", -1)) == int(height)
        and lens.get("fingerprint") == calibration.fingerprint()
    )
