from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional

import numpy as np
import pandas as pd


LEVEL_COLUMNS = ["name", "E", "hl", "jpi"]
GAMMA_COLUMNS = ["from", "to", "Igamma"]
BETA_COLUMNS = ["from", "to", "positron", "forbidden", "I"]
ECAPT_COLUMNS = ["from", "to", "I"]
AUGER_COLUMNS = ["Z"]


@dataclass(frozen=True)
class DecaySchemeData:
    """
    Already parsed decay data of one isotope.

    The tables come from an external decay data provider. LevelScheme
    treats them as read-only.

    Attributes
    ----------
    name : str
        Isotope name used as library key (e.g. '207Bi').
    levels : pd.DataFrame
        One row per nuclear level: name ("A.Z.n"), E (keV), hl (s, negative
        for stable), jpi.
    gammas : pd.DataFrame
        Gamma / conversion transitions: from, to, Igamma (percent) and
        optional CE_K, CE_L, ... conversion entries.
    betas : pd.DataFrame
        Beta transitions: from, to, positron, forbidden, I (percent) and
        optional M2_F, M2_GT.
    ecapts : pd.DataFrame
        Electron captures: from, to (level name or "AUTO"), I.
    augers : pd.DataFrame
        Auger / K X-ray intensities (percent), one row per atomic number Z.
    gamma_norm : str
        "groundstate" to normalize the gamma intensities to unit flux into
        the levels without further decays.
    fancyname : str
        Display name.
    """

    name: str
    levels: pd.DataFrame
    gammas: pd.DataFrame = field(default_factory=lambda: pd.DataFrame(columns=GAMMA_COLUMNS))
    betas: pd.DataFrame = field(default_factory=lambda: pd.DataFrame(columns=BETA_COLUMNS))
    ecapts: pd.DataFrame = field(default_factory=lambda: pd.DataFrame(columns=ECAPT_COLUMNS))
    augers: pd.DataFrame = field(default_factory=lambda: pd.DataFrame(columns=AUGER_COLUMNS))
    gamma_norm: str = ""
    fancyname: str = ""

    @classmethod
    def from_records(cls,
                     name: str,
                     levels: Iterable[dict],
                     gammas: Optional[Iterable[dict]] = None,
                     betas: Optional[Iterable[dict]] = None,
                     ecapts: Optional[Iterable[dict]] = None,
                     augers: Optional[Iterable[dict]] = None,
                     gamma_norm: str = "",
                     fancyname: str = "") -> "DecaySchemeData":
        """Build the tables from lists of dicts (one dict per record)."""
        return cls(name=name,
                   levels=_normalize_levels(_to_frame(levels, LEVEL_COLUMNS)),
                   gammas=_to_frame(gammas, GAMMA_COLUMNS),
                   betas=_to_frame(betas, BETA_COLUMNS),
                   ecapts=_to_frame(ecapts, ECAPT_COLUMNS),
                   augers=_to_frame(augers, AUGER_COLUMNS),
                   gamma_norm=gamma_norm,
                   fancyname=fancyname or name)


def _to_frame(records, columns):
    """DataFrame from a list of dicts; missing fields become NaN."""
    records = list(records or [])
    if len(records) == 0:
        return pd.DataFrame(columns=columns)
    df = pd.DataFrame(records)
    for col in columns:
        if col not in df.columns:
            df[col] = np.nan
    return df


def _normalize_levels(df: pd.DataFrame) -> pd.DataFrame:
    """
    Normalize dtypes of the level table.

    Half-lives given as text ('stable', 'inf') or negative numbers become inf;
    missing spin-parity labels become empty strings.
    """
    df = df.copy()
    df["E"] = pd.to_numeric(df["E"], errors="coerce").fillna(0.0)
    df["hl"] = df["hl"].apply(_clean_half_life)
    df["jpi"] = df["jpi"].fillna("").astype(str)
    return df


def _clean_half_life(value):
    if isinstance(value, str):
        s = value.strip().lower()
        if s in ("stable", "inf", "infinity"):
            return np.inf
        if not s:
            return 0.0
        value = float(s)
    if value is None or pd.isna(value):
        return 0.0
    value = float(value)
    return np.inf if value < 0 else value


def get_field(record, key):
    """Value of a record field (dict or DataFrame row); None when missing, NaN or blank."""
    value = record.get(key, None)
    if value is None:
        return None
    if isinstance(value, str):
        return value if value.strip() else None
    if pd.isna(value):
        return None
    return value
