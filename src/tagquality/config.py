from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from dotenv import load_dotenv

from tagquality.errors import SetupError

ENV_FILE_NAME = ".env.local"
RAW_DIR_ENV = "RAW_DIR"

# AprilTag 3 families understood by pupil-apriltags.
KNOWN_FAMILIES = (
    "tag16h5",
    "tag25h9",
    "tag36h11",
    "tagCircle21h7",
    "tagCircle49h12",
    "tagCustom48h12",
    "tagStandard41h12",
    "tagStandard52h13",
)


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class DetectorConfig:
    """
    Tuning of the AprilTag detector.

    `nthreads` is the detector's internal worker count; the sweep itself stays
    single-threaded.
    """

    family: str = "tagStandard52h13"
    quad_decimate: float = 1.0
    quad_sigma: float = 0.0
    refine_edges: bool = True
    decode_sharpening: float = 0.25
    nthreads: int = 4


def _require(cond: bool, msg: str) -> None:
    if not cond:
        raise ConfigError(msg)


def parse_detector_config(data: Mapping[str, Any]) -> DetectorConfig:
    defaults = DetectorConfig()

    family = str(data.get("family", defaults.family))
    _require(family in KNOWN_FAMILIES, f"family must be one of {', '.join(KNOWN_FAMILIES)}")

    quad_decimate = float(data.get("quad_decimate", defaults.quad_decimate))
    _require(quad_decimate >= 1.0, "quad_decimate must be >= 1")

    quad_sigma = float(data.get("quad_sigma", defaults.quad_sigma))
    _require(quad_sigma >= 0.0, "quad_sigma must be >= 0")

    decode_sharpening = float(data.get("decode_sharpening", defaults.decode_sharpening))
    _require(decode_sharpening >= 0.0, "decode_sharpening must be >= 0")

    nthreads = int(data.get("nthreads", defaults.nthreads))
    _require(nthreads >= 1, "nthreads must be >= 1")

    return DetectorConfig(
        family=family,
        quad_decimate=quad_decimate,
        quad_sigma=quad_sigma,
        refine_edges=bool(data.get("refine_edges", defaults.refine_edges)),
        decode_sharpening=decode_sharpening,
        nthreads=nthreads,
    )


def load_env_file(path: Path | None = None) -> bool:
    """Load `.env.local` (or `path`) into the process environment if it exists."""
    p = Path(ENV_FILE_NAME) if path is None else Path(path)
    if not p.is_file():
        return False
    return load_dotenv(p, override=False)


def resolve_raw_dir(cli_value: Path | None, env: Mapping[str, str] | None = None) -> Path:
    if cli_value is not None:
        return Path(cli_value)
    env = os.environ if env is None else env
    value = env.get(RAW_DIR_ENV)
    if value:
        return Path(value)
    raise SetupError(
        f"No RAW directory specified. Pass it as the second argument or set {RAW_DIR_ENV} in {ENV_FILE_NAME}"
    )
