import re

import numpy as np
import pandas as pd

THRESHOLD = 100
DATE_PREFIX = "x"
DATE_FMT = "%m_%d_%y"
ID_COLS = ["province_state", "country_region"]
GEO_COLS = ["lat", "long"]


class DataShapeError(ValueError):
    pass


def clean_name(c):
    """
    'Province/State' -> 'province_state', '1/22/20' -> 'x1_22_20'
    """
    c = re.sub(r"[^0-9a-zA-Z]+", "_", str(c)).strip("_").lower()
    if c[:1].isdigit():
        c = DATE_PREFIX + c
    return c


def clean_names(df):
    return df.rename(columns=clean_name)


def parse_date_col(c, prefix=DATE_PREFIX):
    if not c.startswith(prefix):
        raise DataShapeError(
            f"Date column {c!r} doesn't start with prefix {prefix!r}"
        )
    try:
        return pd.to_datetime(c[len(prefix):], format=DATE_FMT)
    except ValueError:
        raise DataShapeError(f"Can't parse a date from column {c!r}") from None


def region_name(df):
    prov = df.province_state.fillna("").astype(str)
    return (
        df.country_region.astype(str)
        .str.cat(prov, sep="/")
        .str.rstrip("/")
    )


def wide2long(df, prefix=DATE_PREFIX):
    """
    Reshape the wide JHU table (one column per date) to one row
    per (region, date). Every cell of the date block becomes a row.
    """
    df = clean_names(df)
    missing = [c for c in ID_COLS + GEO_COLS if c not in df]
    if missing:
        raise DataShapeError(f"Missing expected columns: {missing}")
    date_cols = [c for c in df if c not in ID_COLS + GEO_COLS]
    if not date_cols:
        raise DataShapeError("No date columns found")
    col2date = {c: parse_date_col(c, prefix=prefix) for c in date_cols}

    res = (
        df.drop(GEO_COLS, axis=1)
        .assign(region=region_name)
        .melt(
            id_vars=["region"] + ID_COLS,
            value_vars=date_cols,
            var_name="date",
            value_name="cases",
        )
        .assign(date=lambda x: x.date.map(col2date))
        .sort_values(["region", "date"], ascending=True)
        .reset_index(drop=1)
    )
    return res


def consecutive_dates(ds):
    """Return True if all dates in `ds` are ordered
    and consecutive.
    """
    diff = ds - ds.shift(1)
    return diff.dt.days.fillna(1).eq(1).all()


def diff(cs):
    return cs - cs.shift(1)


def days_since_first(ds):
    return (ds - ds.min()).dt.days.astype(int)


def add_new_cases(df):
    """
    Daily deltas of the cumulative count, per region. The first row
    of each region has nothing to diff against and is dropped. Negative
    deltas (data corrections) are kept.
    """
    return (
        df.sort_values(["region", "date"], ascending=True)
        .assign(cases_new=lambda x: x.groupby(["region"]).cases.transform(diff))
        .dropna(subset=["cases_new"])
        .assign(cases_new=lambda x: x.cases_new.astype(int))
        .reset_index(drop=1)
    )


def days_since_threshold(df, threshold=THRESHOLD):
    """
    Keep rows with more than `threshold` cumulative cases and add `t`,
    days since the region's first such row. Regions that never get past
    the threshold disappear.
    """
    df = df.query("cases > @threshold").reset_index(drop=1)
    if df.empty:
        return df.assign(t=pd.Series(dtype=int))
    return df.assign(
        t=lambda x: x.groupby(["region"]).date.transform(days_since_first)
    )


def proc(df, threshold=THRESHOLD):
    return (
        wide2long(df)
        .pipe(add_new_cases)
        .pipe(days_since_threshold, threshold=threshold)
    )


def region_series(df, region, n_days=None):
    """
    Rows of a single region ordered by `t`, optionally cut to the first
    `n_days`. `i` is the 1-based position the Stan programs index by.
    """
    res = df.query("region == @region").sort_values("t").reset_index(drop=1)
    if n_days is not None:
        res = res.iloc[:n_days]
    return res.assign(i=lambda x: np.arange(1, len(x) + 1))
