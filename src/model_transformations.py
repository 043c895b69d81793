from functools import reduce

import altair as A
import numpy as np
import pandas as pd

from covid_scrape import lgs

# 89% interval
QS = (0.055, 0.945)


def summarize_arr(arr, pref, qs=QS):
    """
    `arr`: row per draw, column per 1-based index, as from
    `DrawSet.extract_arrs`.
    """
    lo, hi = qs
    return pd.DataFrame(
        {
            "i": np.asarray(arr.columns, dtype=int),
            f"{pref}_lo": arr.quantile(lo).values,
            f"{pref}_hi": arr.quantile(hi).values,
            f"{pref}_mu": arr.mean().values,
        }
    )


def summarize(draws, pars=("cases_sim",), observed=None, on="i", qs=QS):
    """
    One row per index with the interval and mean of each of `pars`.
    `observed` is left joined, so indices without an observation are
    kept with NaN.
    """
    arrs = draws.extract_arrs(list(pars))
    summs = [summarize_arr(arrs[par], par, qs=qs) for par in pars]
    summ = reduce(lambda l, r: l.merge(r, on="i", how="outer"), summs)
    if observed is not None:
        summ = summ.merge(
            observed, how="left", left_on="i", right_on=on, suffixes=("", "_obs")
        )
    return summ.sort_values("i").reset_index(drop=1)


def covered(summ, pref, actual):
    """Share of observed values inside the interval."""
    s = summ.dropna(subset=[actual])
    inside = s[actual].between(s[f"{pref}_lo"], s[f"{pref}_hi"])
    return inside.mean()


def par_summary(draws, pars, qs=(0.05, 0.5, 0.95)):
    """Quantiles of scalar parameters, a row per parameter."""
    arrs = draws.extract_arrs(pars)
    return (
        pd.DataFrame({par: arrs[par] for par in pars})
        .quantile(list(qs))
        .T.rename(columns=lambda x: "p{:02}".format(int(round(x * 100))))
        .rename_axis("par")
        .reset_index(drop=0)
    )


def doubling_time(b):
    """Days to double under growth of (1 + b) per day."""
    return np.log(2) / np.log1p(b)


def draws2long(arr, name, n=None):
    """Row per (draw, i). `n` keeps only the first n draws."""
    if n is not None:
        arr = arr.iloc[:n]
    return (
        arr.rename_axis(index="draw", columns="i")
        .stack()
        .rename(name)
        .reset_index(drop=0)
    )


def plot_preds_act(summ, pref="cases_sim", actual=None, x="i", log=False, title=""):
    yargs = dict(scale=lgs) if log else {}
    base = A.Chart(summ).encode(x=A.X(x, title=x))

    band = base.mark_errorband().encode(
        y=A.Y(f"{pref}_lo", title=pref, **yargs), y2=f"{pref}_hi"
    )
    est = base.mark_line().encode(
        y=A.Y(f"{pref}_mu", title=pref, **yargs),
        tooltip=[x, f"{pref}_lo", f"{pref}_mu", f"{pref}_hi"],
    )
    ch = band + est + est.mark_point()

    if actual is not None and actual in summ:
        act = base.mark_line(color="black").encode(
            y=A.Y(actual, **yargs), tooltip=[x, actual]
        )
        ch = ch + act + act.mark_point(color="black")
    return ch.properties(title=title)


def plot_summaries(summ, pars, actual=None, x="i", log=False, title=""):
    """Stack one panel per tracked quantity."""
    chs = [
        plot_preds_act(
            summ,
            pref=par,
            actual=actual if i == 0 else None,
            x=x,
            log=log,
            title=title if i == 0 else "",
        )
        for i, par in enumerate(pars)
    ]
    return A.vconcat(*chs)


def plot_prior_sims(sims, x="i", y="cases_sim", n=50, log=False):
    """Spaghetti plot of the first `n` prior draws."""
    yargs = dict(scale=lgs) if log else {}
    pdf = sims.query("draw < @n")
    return (
        A.Chart(pdf)
        .mark_line(opacity=0.3)
        .encode(
            x=A.X(x, title=x),
            y=A.Y(y, title=y, **yargs),
            detail="draw:N",
            tooltip=["draw", x, y],
        )
    )
