# county_mortality/data_processing/glm_training.py
"""
GLM + random-intercept GLMM for county mortality.

Fits mortality_rate ~ standardized predictors (Poisson, log link) nationally and
with a random intercept per state, and writes into ./results:
  - group_summary.csv          per-state n / correlation / included flag
  - glm_coefficients.csv
  - glmm_coefficients.csv
  - glmm_random_effects.csv    per-state offsets, SEs and intercepts
  - fitted_effects.csv         fitted rate at -1 / +1 sd per included state
"""
import sys
from pathlib import Path

import pandas as pd

import config
from data_processing.groups import order_groups, summarize_groups
from modeling.design import build_design
from modeling.effects import coefficient_table, fitted_at, group_intercepts
from modeling.glm import fit_glm
from modeling.glmm import fit_glmm
from utils.log import Step, stamp


def run_model_training(county_data: pd.DataFrame, out_dir=config.OUT_DIR, outcome=config.OUTCOME,
                       predictors=config.PREDICTORS, group=config.GROUP_COL,
                       min_group_size=config.MIN_GROUP_SIZE, effect_values=config.EFFECT_VALUES,
                       write=True):
    """
    Returns dict with keys groups, glm, glmm, effects. Any fitting error
    propagates; nothing is written for a failed run.
    """
    predictors = list(predictors)

    with Step(f"Group summary by {group}"):
        groups = summarize_groups(county_data, group, outcome, predictors[0], min_size=min_group_size)
        stamp(f"groups={len(groups)}, included={int(groups['included'].sum())} (n > {min_group_size})")

    with Step("GLM Poisson (IRLS)"):
        glm = fit_glm(build_design(county_data, outcome, predictors))
        stamp(f"rows={glm.nobs} | deviance={glm.deviance:.2f} (null {glm.null_deviance:.2f}) "
              f"| dispersion={glm.dispersion:.2f} | iterations={glm.iterations}")

    with Step(f"GLMM Poisson, random intercept by {group} (PQL)"):
        design = build_design(county_data, outcome, predictors, group=group)
        glmm = fit_glmm(design)
        stamp(f"groups={design.n_groups} | tau2={glmm.tau2:.4f} | deviance={glmm.deviance:.2f} "
              f"| outer iterations={glmm.outer_iterations}")

    with Step("Fitted effects per included group"):
        fitted_groups = set(glmm.random_effects["group"])
        rows = []
        for g in order_groups(groups)[group]:
            if g not in fitted_groups:
                continue
            for val, rate in fitted_at(glmm, predictors[0], effect_values, group=g).items():
                rows.append({group: g, "value": val, "fitted": rate})
        effects = pd.DataFrame(rows, columns=[group, "value", "fitted"])

    if write:
        out = Path(out_dir)
        out.mkdir(parents=True, exist_ok=True)
        groups.to_csv(out / "group_summary.csv", index=False)
        coefficient_table(glm).to_csv(out / "glm_coefficients.csv")
        coefficient_table(glmm).to_csv(out / "glmm_coefficients.csv")
        group_intercepts(glmm).to_csv(out / "glmm_random_effects.csv", index=False)
        effects.to_csv(out / "fitted_effects.csv", index=False)
        stamp(f"Wrote results to {out}/")

    return {"groups": groups, "glm": glm, "glmm": glmm, "effects": effects}


def main(argv=None):
    import argparse
    from data_processing.io_readers import (read_corrections, read_mortality_data, read_opioid_data,
                                            read_poverty_data, read_state_codes)
    from data_processing.pipeline import build_county_data

    parser = argparse.ArgumentParser(description="Fit county mortality GLM + state random-intercept GLMM")
    parser.add_argument("--out-dir", default=config.OUT_DIR)
    parser.add_argument("--predictor", action="append", dest="predictors",
                        help="standardized predictor column (repeatable); default poverty_z")
    args = parser.parse_args(argv)

    county_data = build_county_data(
        read_poverty_data(config.POVERTY_CSV),
        read_mortality_data(config.MORTALITY_CSV),
        read_state_codes(config.STATE_CODES_CSV),
        opioid=read_opioid_data(config.OPIOID_CSV) if Path(config.OPIOID_CSV).exists() else None,
        corrections=read_corrections(config.CORRECTIONS_CSV) if Path(config.CORRECTIONS_CSV).exists() else None,
    )
    run_model_training(county_data, out_dir=args.out_dir, predictors=args.predictors or config.PREDICTORS)
    stamp("All done.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
