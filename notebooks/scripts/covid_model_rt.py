# ---
# jupyter:
#   jupytext:
#     formats: ipynb,scripts//py:percent
#     text_representation:
#       extension: .py
#       format_name: percent
#       format_version: '1.2'
#       jupytext_version: 1.2.4
#   kernelspec:
#     display_name: Python 3
#     language: python
#     name: python3
# ---

# %%
import logging

import pandas as pd
import altair as A

logging.basicConfig(level=logging.INFO)

# pystan runs asyncio.run; the kernel loop is already running
import nest_asyncio
nest_asyncio.apply()

# %%
import covid_scrape as cvs
import covid_jhu_utils as cju
import model_transformations as mtx
import stan_sampling as ms
import models.stan_mods as sm

# %% [markdown]
# # Time-varying R
#
# log r is a random walk with step sd 0.035. Expected cases today are
# r * (cases yesterday) + 0.01.

# %%
dfs = cju.proc(cvs.load_confirmed())
region = "Italy"
rdf = cju.region_series(dfs, region)
n = len(rdf)

# %% [markdown]
# ## Prior predictive
#
# Starts from 1 case and feeds each simulated count into the next day.

# %%
sims = sm.simulate_prior(sm.RtWalk, n, num_draws=100)
mtx.plot_prior_sims(sims, log=True) | mtx.plot_prior_sims(sims, y="r")

# %%
prior = ms.sample_prior(sm.RtWalk, n)
prior_summ = mtx.summarize(prior, pars=sm.RtWalk.tracked)
mtx.plot_summaries(prior_summ, sm.RtWalk.tracked, log=False, title="rt walk: prior")

# %% [markdown]
# ## Posterior

# %%
m4 = ms.fit_model(sm.RtWalk, rdf)
if m4.partial:
    print(f"Failed chains: {m4.failures}")
m4_summ = mtx.summarize(m4, pars=sm.RtWalk.tracked, observed=rdf[["i", "date", "cases"]])
m4_summ[:3]

# %%
mtx.plot_summaries(m4_summ, sm.RtWalk.tracked, actual="cases", x="date", title=region)

# %% [markdown]
# These r estimates run lower than the ones published at the time
# for the same regions; the model is kept as is.

# %%
mtx.par_summary(m4, ["alpha"])
