import logging
from dataclasses import dataclass, field, replace
from typing import List

import numpy as np
import pandas as pd
import stan

log = logging.getLogger(__name__)

SEED = 1234
NUM_CHAINS = 4
NUM_WARMUP = 1000
NUM_SAMPLES = 1000
IX_COLS = ["chain", "draw"]


@dataclass(frozen=True)
class ChainFailure:
    chain: int
    message: str


class SamplingError(RuntimeError):
    def __init__(self, failures):
        self.failures = list(failures)
        msg = "; ".join(f"chain {f.chain}: {f.message}" for f in self.failures)
        super().__init__(f"No chain finished. {msg}")


@dataclass
class DrawSet:
    """
    Draws from the chains that finished. `draws` has `chain` and `draw`
    columns plus one column per scalar; vector elements are `name.i`
    with 1-based i. Chains that failed only show up in `failures`.
    """

    draws: pd.DataFrame
    failures: List[ChainFailure] = field(default_factory=list)
    mode: str = "posterior"

    @property
    def ok_chains(self):
        return sorted(self.draws.chain.unique().tolist())

    @property
    def partial(self):
        return bool(self.failures) and not self.draws.empty

    @property
    def par_names(self):
        pars = [c.split(".")[0] for c in self.draws if c not in IX_COLS]
        return list(dict.fromkeys(pars))

    def extract_arrs(self, pars=None):
        """
        Scalars come back as a Series of draws; vectors as a DataFrame
        with a row per draw and the 1-based index as columns.
        """
        pars = [pars] if isinstance(pars, str) else pars
        pars = pars or self.par_names
        res = {}
        for par in pars:
            cols = [
                c for c in self.draws if c == par or c.startswith(par + ".")
            ]
            if not cols:
                raise KeyError(f"{par!r} not in draws")
            if cols == [par]:
                res[par] = self.draws[par].reset_index(drop=1)
            else:
                res[par] = (
                    self.draws[cols]
                    .rename(columns=lambda c: int(c.split(".")[-1]))
                    .reset_index(drop=1)
                )
        return res


def fit2frame(fit, chain):
    cols = {}
    for name, dims in zip(fit.param_names, fit.dims):
        arr = np.asarray(fit[name])
        if not dims:
            cols[name] = arr.ravel()
            continue
        arr = arr.reshape(int(np.prod(dims)), -1, order="F")
        for i, row in enumerate(arr, start=1):
            cols[f"{name}.{i}"] = row
    ndraws = len(next(iter(cols.values()))) if cols else 0
    return pd.DataFrame(dict(chain=chain, draw=np.arange(ndraws), **cols))


def sample_posterior(
    model,
    data,
    num_chains=NUM_CHAINS,
    num_warmup=NUM_WARMUP,
    num_samples=NUM_SAMPLES,
    seed=SEED,
):
    """
    Build once, then run each chain on its own so a chain that blows up
    (overflow, degenerate parameters) leaves the others intact. Build
    errors (bad data, compile errors, no usable event loop) propagate.
    Raises `SamplingError` only if no chain finishes.
    """
    posterior = stan.build(model.stan_code, data=data, random_seed=seed)
    frames, failures = [], []
    for chain in range(1, num_chains + 1):
        # pystan seeds from the build; give every chain its own stream
        chain_post = replace(posterior, random_seed=seed + chain)
        try:
            fit = chain_post.sample(
                num_chains=1, num_warmup=num_warmup, num_samples=num_samples
            )
        except RuntimeError as e:
            log.warning("%s: chain %s failed: %s", model.name, chain, e)
            failures.append(ChainFailure(chain, str(e)))
            continue
        frames.append(fit2frame(fit, chain))

    if not frames:
        raise SamplingError(failures)
    draws = pd.concat(frames, ignore_index=True)
    return DrawSet(draws, failures=failures, mode="posterior")


def sample_prior(model, n, num_samples=NUM_SAMPLES, seed=SEED, **kw):
    """
    Unroll `model.prior_code` once per draw with the fixed_param
    sampler: one chain, no warmup.
    """
    data = model.mk_prior_data(n, **kw)
    posterior = stan.build(model.prior_code, data=data, random_seed=seed)
    try:
        fit = posterior.fixed_param(num_chains=1, num_samples=num_samples)
    except RuntimeError as e:
        log.warning("%s: prior simulation failed: %s", model.name, e)
        raise SamplingError([ChainFailure(1, str(e))]) from e
    return DrawSet(fit2frame(fit, 1), mode="prior")


def fit_model(model, df, col="cases", **kw):
    data = model.mk_data(df, col=col)
    log.info("Fitting %s on %s rows", model.name, data["N"])
    return sample_posterior(model, data, **kw)
