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
import pandas as pd
import altair as A

pd.options.display.max_rows = 100
pd.options.display.min_rows = 40

# %% [markdown]
# # Load

# %%
import covid_scrape as cvs
import covid_jhu_utils as cju
from covid_scrape import pl

dfw = cvs.load_confirmed()
dfw.iloc[:3, :8]

# %%
# cvs.pull_and_save_confirmed()

# %% [markdown]
# ## Reshape
#
# Wide to long, daily deltas, then `t` = days since 100 cases.

# %%
dfl = cju.wide2long(dfw)
print(f"{dfl.region.nunique()} regions x {dfl.date.nunique()} dates = {len(dfl)} rows")

# %%
dfs = cju.proc(dfw)
print(f"Max date {dfs.date.max()}")

non_consecutive = (
    dfs.groupby(["region"]).date.agg(cju.consecutive_dates).pipe(lambda x: x[~x])
    .index.tolist()
)
print(f"non_consecutive regions: {non_consecutive}")

# %%
dfs[:3]

# %% [markdown]
# # Plot

# %%
regions = ("Italy", "Germany", "Switzerland", "Korea, South", "US")
pdf = dfs.query("region in @regions")

p1 = pl(pdf, x="t", y="cases", logy=True)
p2 = pl(pdf.query("cases_new > 0"), x="t", y="cases_new", logy=True)
p1 | p2

# %% [markdown]
# Reporting corrections show up as negative daily deltas.

# %%
dfs.query("cases_new < 0").groupby("region").size().sort_values(ascending=False)[:10]
