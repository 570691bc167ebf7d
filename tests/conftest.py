import sys
from pathlib import Path

import numpy as np
import pandas as pd
import pytest


# Ensure project root is importable for tests
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


from services.models import AthleteProfile


def make_gpx(points, namespace="http://www.topografix.com/GPX/1/1"):
    """Serialise (lat, lon, ele) tuples as GPX bytes; ele may be None."""
    trkpts = []
    for lat, lon, ele in points:
        ele_xml = f"<ele>{ele}</ele>" if ele is not None else ""
        trkpts.append(f'<trkpt lat="{lat}" lon="{lon}">{ele_xml}</trkpt>')
    xmlns = f' xmlns="{namespace}"' if namespace else ""
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<gpx version="1.1"{xmlns}>
  <trk>
    <trkseg>
      {"".join(trkpts)}
    </trkseg>
  </trk>
</gpx>""".encode()


@pytest.fixture
def gpx_factory():
    return make_gpx


@pytest.fixture
def flat_points():
    """~13.8 mi due north at a constant 1000 m."""
    n = 201
    return pd.DataFrame(
        {
            "lat": 45.0 + np.arange(n) * 0.001,
            "lon": np.full(n, 5.0),
            "elevationM": np.full(n, 1000.0),
        }
    )


@pytest.fixture
def climb_descent_points():
    """~13.8 mi due north: climbs 400 m over the first half, descends it over the second."""
    n = 201
    up = np.arange(101) * 4.0
    down = 400.0 - np.arange(1, 101) * 4.0
    return pd.DataFrame(
        {
            "lat": 45.0 + np.arange(n) * 0.001,
            "lon": np.full(n, 5.0),
            "elevationM": 1000.0 + np.concatenate([up, down]),
        }
    )


@pytest.fixture
def athlete():
    return AthleteProfile(ftp_watts=250, weight_kg=75)
