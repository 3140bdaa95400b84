import numpy as np
import pandas as pd
import pytest


@pytest.fixture
def state_codes():
    return pd.DataFrame({"STATEFP": ["01", "13", "22", "35"], "STUSPS": ["AL", "GA", "LA", "NM"]})


@pytest.fixture
def poverty():
    return pd.DataFrame({
        "FIPS": ["01001", "01003", "01005", "13001", "22001", "35013"],
        "Poverty Percent, All Ages": ["9.4", "9.3", "26.7", "21.0", "20.5", "24.6"],
    })


@pytest.fixture
def mortality():
    return pd.DataFrame({
        "County": ["Autauga County, AL", "Baldwin County, AL", "Barbour County, AL",
                   "Appling County, GA", "Acadia Parish, LA", "Doña Ana County, NM"],
        "County Code": ["01001", "01003", "01005", "13001", "22001", "35013"],
        "Crude Rate": ["12.5", "Unreliable", "15.1", "18.2", "20.0", "22.4"],
    })


@pytest.fixture
def opioid():
    return pd.DataFrame({
        "County": ["AUTAUGA", "BALDWIN", "BARBOUR", "APPLING", "ACADIA", "DONA ANA"],
        "State": ["AL", "AL", "AL", "GA", "LA", "NM"],
        "Opioid Prescribing Rate": ["96.4", "84.2", "", "120.3", "110.0", "70.5"],
    })


@pytest.fixture
def corrections():
    return pd.DataFrame({"raw_label": ["Doña Ana County, NM"], "canonical_label": ["Dona Ana, NM"]})


def grouped_frame(sizes, offsets, b0=1.0, b1=0.3, group="state", x="x", y="y"):
    """Noise-free log-linear counts, one random offset per group."""
    parts = []
    for g, (n, t) in enumerate(zip(sizes, offsets)):
        xs = np.linspace(-1.0, 1.0, n)
        parts.append(pd.DataFrame({group: f"S{g}", x: xs, y: np.exp(b0 + b1 * xs + t)}))
    return pd.concat(parts, ignore_index=True)
