import datetime as dt
import io
from pathlib import Path

import altair as A
import pandas as pd
import requests

pth = Path("~/repos/covid/data").expanduser()
URL_CONFIRMED = (
    "https://raw.githubusercontent.com/CSSEGISandData/COVID-19/master/"
    "csse_covid_19_data/csse_covid_19_time_series/"
    "time_series_covid19_confirmed_global.csv"
)


##############
# JHU global #
##############
def load_confirmed(url=URL_CONFIRMED):
    """
    Wide table, one row per province/country and one column
    per date.
    """
    r = requests.get(url, timeout=60)
    r.raise_for_status()
    return pd.read_csv(io.StringIO(r.text))


def read_confirmed(fn):
    return pd.read_csv(fn)


def save_confirmed(df, pth=pth):
    fout = pth / f"confirmed-{dt.date.today()}.csv"
    if fout.exists():
        print(f"File for {fout.stem} already exists!")
        return fout
    print("New data!")
    df.to_csv(fout, index=False)
    return fout


def pull_and_save_confirmed(url=URL_CONFIRMED, pth=pth):
    df = load_confirmed(url)
    fout = save_confirmed(df, pth=pth)
    return fout


# Plot
lgs = A.Scale(type="log", zero=False)


def add_point(ch):
    return ch + ch.mark_point()


def add_line(ch):
    return ch + ch.mark_line()


def pl(
    pdf,
    color="region",
    x="date",
    y="cases",
    ii=True,
    logy=True,
    logx=False,
    tt=[],
):
    tt = list(tt)
    ykw = dict(scale=lgs) if logy else {}
    xkw = dict(scale=lgs) if logx else {}
    h = (
        A.Chart(pdf)
        .mark_line()
        .encode(
            x=A.X(x, title=x, **xkw),
            y=A.Y(y, title=y, **ykw),
            color=color,
            tooltip=[color, x, y] + tt,
        )
    )
    hh = add_point(h)
    if ii:
        return hh.interactive()
    return hh
