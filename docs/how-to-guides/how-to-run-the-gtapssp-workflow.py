# ---
# jupyter:
#   jupytext:
#     text_representation:
#       extension: .py
#       format_name: percent
#       format_version: '1.3'
#       jupytext_version: 1.16.6
#   kernelspec:
#     display_name: Python 3 (ipykernel)
#     language: python
#     name: python3
# ---

# %% [markdown]
# # How to run the GTAP SSP workflow
#
# Here we demonstrate how to turn SSP-style projections
# into complete annual panels for GTAP-style models.
# We use synthetic data which looks like the SSP database
# so that this runs without downloading anything.
# For the real data, see `gtapssp.io.fetch_iiasa_ssp`
# and `gtapssp.io.read_csv_from_zip`.

# %% [markdown]
# ## Imports

# %%
import logging

import pandas as pd

from gtapssp.gempack import get_region_mapping, parse_gempack_lines
from gtapssp.testing import get_ssp_like_correspondence, get_ssp_like_raw_data
from gtapssp.workflow import GTAPSSPWorkflow

# %%
logging.basicConfig(level=logging.INFO)

# %% [markdown]
# ## Starting point
#
# The raw data is a long table with columns
# `["model", "scenario", "region", "variable", "unit", "year", "value"]`.
# Regions are country names.
# Demographic variables encode gender, cohort and education level
# in the variable name, separated by `|`.

# %%
raw = get_ssp_like_raw_data()
raw

# %%
raw["variable"].unique()

# %% [markdown]
# The correspondence table maps the raw data's country names
# to ISO3 codes and GTAP regions.

# %%
correspondence = get_ssp_like_correspondence()
correspondence

# %% [markdown]
# ## Running
#
# The workflow aggregates to the correspondence table's regions,
# interpolates GDP with cubic splines and population with Beers interpolation,
# then reconciles everything into a complete panel.

# %%
workflow = GTAPSSPWorkflow(progress=False, n_processes=None)
res = workflow(raw, correspondence)
res

# %% [markdown]
# Every combination of key, region, year and scenario is in the output.
# Uruguay has no raw data so its values are zero.

# %%
res.groupby("ISO")["POP"].sum()

# %% [markdown]
# The historical reference scenario is used for years
# which the other scenarios don't report.

# %%
res[
    (res["VAR"] == "Population")
    & (res["GND"] == "TOTL")
    & (res["AGE"] == "TOTL")
    & (res["MOD"] == "IIASA-WiC POP 2023")
    & (res["ISO"] == "BRA")
].pivot_table(index="SCE", columns="YRS", values="POP")

# %% [markdown]
# ## Writing output
#
# Pass `out_file` to write the output.
# The extension selects the format.
# `.csv` is written directly.
# `.har` needs a writer of GEMPACK header array files,
# which receives the dense arrays prepared by `gtapssp.output.get_header_arrays`.

# %%
res_csv = workflow(raw, correspondence, out_file="gtap_ssp.csv")
pd.read_csv("gtap_ssp.csv").head()

# %% [markdown]
# ## Overriding the aggregation
#
# The GTAP regions can be re-mapped with an aggregation definition file.
# The mapping's codes are looked up in the correspondence's `reg_gtap_code`
# and the new codes replace the output regions,
# so Brazil and Argentina are summed into `SAM` here.
# Regions which aren't in the mapping are dropped.

# %%
sections = parse_gempack_lines(
    [
        "! Section 4",
        "bra & SAM",
        "arg & SAM",
        "xsm & XSM",
    ]
)
agg_override = get_region_mapping(sections)
agg_override

# %%
res_override = workflow(raw, correspondence, agg_override=agg_override)
res_override["ISO"].unique()

# %% [markdown]
# ## Growth rates
#
# The growth-rate variant skips reconciliation.
# Demographic totals are dropped
# (except for the baseline scenario and the youngest cohorts)
# and year-over-year growth rates are calculated for each timeseries.

# %%
growth = workflow.run_growth_rates(raw, correspondence)
growth.head(10)
