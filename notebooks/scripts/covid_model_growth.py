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

import numpy as np
import pandas as pd
import altair as A

logging.basicConfig(level=logging.INFO)

# pystan runs asyncio.run; the kernel loop is already running
import nest_asyncio
nest_asyncio.apply()

pd.options.display.max_rows = 100

# %%
import covid_scrape as cvs
import covid_jhu_utils as cju
import model_transformations as mtx
import stan_sampling as ms
import models.stan_mods as sm

# %% [markdown]
# # Load

# %%
dfs = cju.proc(cvs.load_confirmed())
region = "Germany"

# Long horizons overflow the exponential mean; fit the first weeks only
n_days = 30
rdf = cju.region_series(dfs, region, n_days=n_days)
rdf[:3]

# %% [markdown]
# # Exponential growth, gaussian noise
#
# ## Prior predictive

# %%
sims = sm.simulate_prior(sm.ExpNormal, n_days, num_draws=100)
mtx.plot_prior_sims(sims)

# %%
prior = ms.sample_prior(sm.ExpNormal, n_days)
prior_summ = mtx.summarize(prior, observed=rdf[["i", "cases"]])
mtx.plot_preds_act(prior_summ, actual="cases", title="exp normal: prior")

# %% [markdown]
# ## Posterior
#
# a ~ N(0, 1) leaves the scale to the growth rate; the fit is poor.

# %%
m1 = ms.fit_model(sm.ExpNormal, rdf)
m1_summ = mtx.summarize(m1, observed=rdf[["i", "cases"]])
mtx.plot_preds_act(m1_summ, actual="cases", log=True, title="exp normal")

# %%
mtx.par_summary(m1, ["a", "b", "sigma"])

# %% [markdown]
# # Exponential growth, negative binomial

# %%
sims = sm.simulate_prior(sm.ExpNegBinom, n_days, num_draws=100)
mtx.plot_prior_sims(sims, log=True)

# %%
m2 = ms.fit_model(sm.ExpNegBinom, rdf)
if m2.partial:
    print(f"Failed chains: {m2.failures}")
m2_summ = mtx.summarize(m2, observed=rdf[["i", "cases"]])
print(f"Observed inside 89% band: {mtx.covered(m2_summ, 'cases_sim', 'cases'):.0%}")
mtx.plot_preds_act(m2_summ, actual="cases", log=True, title="exp negbin")

# %%
growth = mtx.par_summary(m2, ["a", "b", "alpha"])
growth

# %% [markdown]
# Doubling time in days implied by b

# %%
growth.query("par == 'b'").iloc[:, 1:].apply(mtx.doubling_time)

# %% [markdown]
# # Logistic growth, negative binomial

# %%
sims = sm.simulate_prior(sm.LogisticNegBinom, n_days, num_draws=100)
mtx.plot_prior_sims(sims, log=True)

# %%
rdf_full = cju.region_series(dfs, region)
m3 = ms.fit_model(sm.LogisticNegBinom, rdf_full)
m3_summ = mtx.summarize(m3, observed=rdf_full[["i", "cases"]])
mtx.plot_preds_act(m3_summ, actual="cases", log=True, title="logistic negbin")

# %%
mtx.par_summary(m3, ["intercept", "b", "cc", "alpha"])
