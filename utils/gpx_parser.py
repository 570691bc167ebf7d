"""Copyright (C) 2025 Pierre Marrec
SPDX-License-Identifier: GPL-3.0-or-later

GPX file parser for route and track data.

Only track points are read; timestamps are ignored because a course file is a
route, not a recorded ride.
"""

from __future__ import annotations

import numpy as np
import pandas as pd
from lxml import etree
from streamlit.logger import get_logger

from utils.coercion import safe_float_optional
from utils.errors import EmptyTrackError, ParseError

logger = get_logger(__name__)

# Namespace-agnostic lookups: GPX 1.0 and 1.1 files use different namespaces.
TRKPT_XPATH = ".//*[local-name()='trkpt']"
ELE_XPATH = "./*[local-name()='ele']"


def parse_gpx_points(gpx_bytes: bytes) -> pd.DataFrame:
    """Parse GPX track points into a DataFrame.

    Args:
        gpx_bytes: Raw GPX file content as bytes

    Returns:
        DataFrame with columns: lat, lon, elevationM (NaN where missing),
        in file order.

    Raises:
        ParseError: the document is not well-formed XML
        EmptyTrackError: the document holds no usable track point
    """
    try:
        root = etree.fromstring(gpx_bytes)
    except etree.XMLSyntaxError as e:
        raise ParseError(f"Invalid GPX XML: {e}") from e

    trkpts = root.xpath(TRKPT_XPATH)
    if not trkpts:
        raise EmptyTrackError("No track points found in GPX")

    rows = []
    skipped = 0
    for trkpt in trkpts:
        lat = safe_float_optional(trkpt.get("lat"))
        lon = safe_float_optional(trkpt.get("lon"))
        if lat is None or lon is None:
            skipped += 1
            continue

        elevation_val = np.nan
        ele_elems = trkpt.xpath(ELE_XPATH)
        if ele_elems and ele_elems[0].text:
            parsed = safe_float_optional(ele_elems[0].text.strip())
            if parsed is not None:
                elevation_val = parsed

        rows.append({"lat": lat, "lon": lon, "elevationM": elevation_val})

    if skipped:
        logger.debug(f"Skipped {skipped} track points without lat/lon")

    if not rows:
        raise EmptyTrackError("No track points with coordinates found in GPX")

    df = pd.DataFrame(rows, columns=["lat", "lon", "elevationM"])
    logger.debug(f"Parsed GPX: {len(df)} points")
    return df
