import numpy as np
import pandas as pd
import pytest

import models.stan_mods as sm


def test_nbinom2_mean_and_variance():
    d = sm.nbinom2(50.0, 4.0)
    assert d.mean() == pytest.approx(50.0)
    assert d.var() == pytest.approx(50 + 50 ** 2 / 4)


def test_registry():
    assert set(sm.MODELS) == {"exp_normal", "exp_negbin", "logistic_negbin", "rt_walk"}
    for model in sm.MODELS.values():
        assert "cases_sim" in model.tracked
        assert "generated quantities" in model.stan_code
        assert "parameters" not in model.prior_code.replace("generated quantities", "")


def test_growth_means():
    t = np.arange(4)
    mu = sm.ExpNegBinom.mean(t, dict(a=100, b=0.5))
    np.testing.assert_allclose(mu, [100, 150, 225, 337.5])

    params = dict(intercept=100, b=0.3, cc=1e6)
    mu = sm.LogisticNegBinom.mean(t, params)
    assert mu[0] == pytest.approx(100)
    assert np.all(np.diff(mu) > 0)
    assert np.all(mu < 1e6)


def test_growth_mk_data():
    df = pd.DataFrame(dict(t=[0, 1, 2], cases=[101, 130, 170], cases_new=[5, 29, 40]))
    data = sm.ExpNegBinom.mk_data(df)
    assert data == dict(N=3, t=[0, 1, 2], cases=[101, 130, 170])
    data = sm.ExpNormal.mk_data(df, col="cases_new")
    assert data["cases"] == [5.0, 29.0, 40.0]
    assert sm.LogisticNegBinom.mk_prior_data(3) == dict(N=3, t=[0, 1, 2])


@pytest.mark.parametrize("model", [sm.ExpNormal, sm.ExpNegBinom, sm.LogisticNegBinom])
def test_growth_prior_draws_in_support(model):
    rng = np.random.default_rng(2)
    for _ in range(50):
        params = model.draw_priors(rng, 10)
        for k in ("sigma", "alpha", "intercept"):
            if k in params:
                assert params[k] > 0
        if model is sm.ExpNegBinom:
            assert params["a"] > 0
        if "cc" in params:
            assert 1e5 <= params["cc"] <= 8e7


def test_rt_prior_simulation_first_is_seed():
    rng = np.random.default_rng(0)
    t = np.arange(5)
    for _ in range(200):
        params = sm.RtWalk.draw_priors(rng, 5)
        sim = sm.RtWalk.simulate(t, params, rng)
        assert len(sim) == 5
        assert sim[0] == 1
        # a 0 draw leaves a mean of only MEAN_FLOOR, so the walk can die out at 0
        assert (sim >= 0).all()


def test_rt_mean_floor():
    params = dict(r=np.array([1.0, 0.0, 2.0]))
    assert sm.RtWalk.mean(1, params, prev=0) == pytest.approx(sm.MEAN_FLOOR)
    assert sm.RtWalk.mean(1, params, prev=1000) == pytest.approx(sm.MEAN_FLOOR)
    assert sm.RtWalk.mean(2, params, prev=0) >= sm.MEAN_FLOOR
    rng = np.random.default_rng(1)
    for _ in range(100):
        params = sm.RtWalk.draw_priors(rng, 20)
        for k, prev in enumerate(rng.integers(0, 10_000, size=20)):
            assert sm.RtWalk.mean(k, params, prev) >= sm.MEAN_FLOOR


def test_rt_simulation_ceiling():
    rng = np.random.default_rng(3)
    n = 30
    # r = 10 every day takes the count past the ceiling quickly
    params = dict(r=np.full(n, 10.0), alpha=36.0)
    sim = sm.RtWalk.simulate(np.arange(n), params, rng, seed_cases=1000)
    assert sim.max() == sm.SIM_CEILING
    assert (sim <= sm.SIM_CEILING).all()

    sim = sm.RtWalk.simulate(
        np.arange(n), params, rng, seed_cases=100, sim_ceiling=500
    )
    assert sim.max() == 500


def test_rt_simulation_recurses_on_simulated():
    n = 6
    params = dict(r=np.ones(n), alpha=1e9)
    rng = np.random.default_rng(4)
    # huge alpha: nearly poisson, so counts stay near the seed of 1
    sim = sm.RtWalk.simulate(np.arange(n), params, rng)
    assert sim[0] == 1
    assert sim.max() < 50

    observed = np.array([1000, 1000, 1000, 1000, 1000, 1000])
    sim = sm.RtWalk.simulate(np.arange(n), params, rng, observed=observed)
    assert sim[0] == 1000
    assert (sim[1:] > 800).all()


def test_rt_mk_data():
    df = pd.DataFrame(dict(cases=[120, 150, 160]))
    data = sm.RtWalk.mk_data(df)
    assert data["N"] == 3
    assert data["cases"] == [120, 150, 160]
    assert data["mean_floor"] == sm.MEAN_FLOOR
    assert data["sim_ceiling"] == sm.SIM_CEILING
    assert data["rw_scale"] == sm.RW_SCALE
    assert sm.RtWalk.mk_prior_data(5)["seed_cases"] == 1


def test_simulate_prior_frames():
    sims = sm.simulate_prior(sm.RtWalk, 5, num_draws=20, seed=0)
    assert len(sims) == 20 * 5
    assert {"draw", "i", "cases_sim", "r", "alpha"} <= set(sims.columns)
    assert sims.query("i == 1").cases_sim.eq(1).all()
    assert (sims.cases_sim <= sm.SIM_CEILING).all()

    sims = sm.simulate_prior(sm.ExpNegBinom, 8, num_draws=10, seed=0)
    assert len(sims) == 80
    assert {"a", "b", "alpha"} <= set(sims.columns)
