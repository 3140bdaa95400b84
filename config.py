# =============================================================================
# County mortality pipeline configuration
#
# Inputs (already-parsed CSV/XLSX exports):
#   data/poverty.csv        FIPS + poverty percent (all ages)
#   data/mortality.csv      CDC WONDER export: County, County Code, Crude Rate
#   data/opioid.csv         county name + state + opioid prescribing rate
#   data/corrections.csv    raw label -> canonical label fixes
#   data/state_codes.csv    numeric state code <-> two-letter abbreviation
# Optional:
#   data/shapefiles/cb_2018_us_county_500k.shp   county polygons for the map
# =============================================================================

POVERTY_CSV     = "data/poverty.csv"
MORTALITY_CSV   = "data/mortality.csv"
OPIOID_CSV      = "data/opioid.csv"
CORRECTIONS_CSV = "data/corrections.csv"
STATE_CODES_CSV = "data/state_codes.csv"
COUNTY_SHP      = "data/shapefiles/cb_2018_us_county_500k.shp"

OUT_DIR         = "results"

# ---------- source column mappings (raw name -> canonical name) ----------
POVERTY_COLUMNS     = {"FIPS": "fips", "Poverty Percent, All Ages": "poverty_rate"}
MORTALITY_COLUMNS   = {"County Code": "fips", "County": "county", "Crude Rate": "mortality_rate"}
OPIOID_COLUMNS      = {"County": "opioid_county", "State": "state", "Opioid Prescribing Rate": "opioid_rate"}
CORRECTION_COLUMNS  = {"raw_label": "raw_label", "canonical_label": "canonical_label"}
STATE_CODE_COLUMNS  = {"STATEFP": "state_code", "STUSPS": "state"}

# ---------- sanitizing ----------
# compared case-insensitively after stripping whitespace
SENTINELS = ("Unreliable", "Suppressed", "Missing", "Not Applicable", "")

# longest first so "city and borough" wins over "city"
ADMIN_SUFFIXES = ("city and borough", "census area", "municipality", "borough", "county", "parish", "city")

# ---------- grouping ----------
MIN_GROUP_SIZE  = 5     # groups with n <= this are excluded from ordering/plots

# ---------- modeling ----------
OUTCOME         = "mortality_rate"
PREDICTORS      = ("poverty_z",)
GROUP_COL       = "state"

GLM_TOL         = 1e-8
GLM_MAX_ITER    = 25
GLMM_TOL        = 1e-8
GLMM_MAX_ITER   = 50
GLMM_OUTER_TOL  = 1e-6
GLMM_OUTER_MAX_ITER = 200
GLMM_TAU2_START = 0.1

EFFECT_VALUES   = (-1.0, 1.0)   # one sd below / above the mean

# ---------- map ----------
MAP_PALETTE     = "YlOrRd"
MAP_OPACITY     = 0.7
