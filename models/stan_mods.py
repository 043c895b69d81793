"""
Growth models for cumulative case counts.

Every model carries two Stan programs: `stan_code`, fit against data
with posterior predictive draws in `cases_sim`, and `prior_code`, a
generated-quantities-only program run with the fixed_param sampler to
simulate from the priors. The numpy/scipy methods (`draw_priors`,
`mean`, `likelihood`, `simulate`) restate the same generative recipe
for quick prior checks without compiling anything.
"""
import numpy as np
import pandas as pd
from scipy import stats

# Added to the negative binomial mean of the time-varying R model
# so it stays positive when r or the previous count is 0.
MEAN_FLOOR = 0.01
# Cap on counts generated by the time-varying R model.
SIM_CEILING = 10_000_000
RW_SCALE = 0.035
SEED_CASES = 1


def nbinom2(mu, alpha):
    """
    Negative binomial with mean `mu` and dispersion `alpha`, Stan's
    `neg_binomial_2`. Variance is mu + mu^2 / alpha.
    """
    mu = np.asarray(mu, dtype=float)
    return stats.nbinom(n=alpha, p=alpha / (alpha + mu))


def growth_data(df, col="cases"):
    return dict(
        N=len(df),
        t=df.t.astype(int).tolist(),
        cases=df[col].astype(int).tolist(),
    )


def growth_prior_data(n):
    return dict(N=n, t=list(range(n)))


class GrowthModel:
    """
    Models whose mean is a function of `t` alone.
    """

    name = None
    tracked = ["cases_sim"]
    mk_data = staticmethod(growth_data)
    mk_prior_data = staticmethod(growth_prior_data)

    @classmethod
    def simulate(cls, t, params, rng):
        mu = cls.mean(t, params)
        return cls.likelihood(mu, params).rvs(random_state=rng)


class ExpNormal(GrowthModel):
    stan_code = """
    /*
    Exponential growth with gaussian noise
    t: days since 100 cases
    */
    data {
        int<lower=1> N;
        array[N] int t;
        vector[N] cases;
    }

    parameters {
        real a;
        real b;
        real<lower=0> sigma;
    }

    transformed parameters {
        vector[N] mu;
        for (n in 1:N) {
            mu[n] = a * (1 + b) ^ t[n];
        }
    }

    model {
        a ~ normal(0, 1);
        b ~ normal(0.3, 0.5);
        sigma ~ normal(0, 1);
        cases ~ normal(mu, sigma);
    }

    generated quantities {
        array[N] real cases_sim = normal_rng(mu, sigma);
    }
    """

    prior_code = """
    data {
        int<lower=1> N;
        array[N] int t;
    }

    generated quantities {
        real a = normal_rng(0, 1);
        real b = normal_rng(0.3, 0.5);
        real sigma = abs(normal_rng(0, 1));
        array[N] real cases_sim;
        for (n in 1:N) {
            cases_sim[n] = normal_rng(a * (1 + b) ^ t[n], sigma);
        }
    }
    """

    name = "exp_normal"

    @staticmethod
    def mk_data(df, col="cases"):
        data = growth_data(df, col=col)
        data["cases"] = df[col].astype(float).tolist()
        return data

    @staticmethod
    def draw_priors(rng, n=None):
        return dict(
            a=rng.normal(0, 1),
            b=rng.normal(0.3, 0.5),
            sigma=abs(rng.normal(0, 1)),
        )

    @staticmethod
    def mean(t, params):
        return params["a"] * (1 + params["b"]) ** np.asarray(t)

    @staticmethod
    def likelihood(mu, params):
        return stats.norm(loc=mu, scale=params["sigma"])


class ExpNegBinom(GrowthModel):
    stan_code = """
    /*
    Exponential growth, overdispersed counts
    */
    data {
        int<lower=1> N;
        array[N] int t;
        array[N] int<lower=0> cases;
    }

    parameters {
        real<lower=0> a;
        real b;
        real<lower=0> alpha;
    }

    transformed parameters {
        vector[N] mu;
        for (n in 1:N) {
            mu[n] = a * (1 + b) ^ t[n];
        }
    }

    model {
        a ~ exponential(0.01);
        b ~ normal(0.3, 0.1);
        alpha ~ gamma(6, 1);
        cases ~ neg_binomial_2(mu, alpha);
    }

    generated quantities {
        array[N] int cases_sim = neg_binomial_2_rng(mu, alpha);
    }
    """

    prior_code = """
    data {
        int<lower=1> N;
        array[N] int t;
    }

    generated quantities {
        real a = exponential_rng(0.01);
        real b = normal_rng(0.3, 0.1);
        real alpha = gamma_rng(6, 1);
        array[N] int cases_sim;
        for (n in 1:N) {
            cases_sim[n] = neg_binomial_2_rng(a * (1 + b) ^ t[n], alpha);
        }
    }
    """

    name = "exp_negbin"

    @staticmethod
    def draw_priors(rng, n=None):
        # numpy takes scale, Stan takes rate
        return dict(
            a=rng.exponential(1 / 0.01),
            b=rng.normal(0.3, 0.1),
            alpha=rng.gamma(6, 1),
        )

    @staticmethod
    def mean(t, params):
        return params["a"] * (1 + params["b"]) ** np.asarray(t)

    @staticmethod
    def likelihood(mu, params):
        return nbinom2(mu, params["alpha"])


class LogisticNegBinom(GrowthModel):
    stan_code = """
    /*
    Logistic growth towards carrying capacity cc.
    intercept: cases at t = 0
    */
    data {
        int<lower=1> N;
        array[N] int t;
        array[N] int<lower=0> cases;
    }

    parameters {
        real<lower=0> intercept;
        real b;
        real<lower=1e5, upper=8e7> cc;
        real<lower=0> alpha;
    }

    transformed parameters {
        real a = cc / intercept - 1;
        vector[N] mu;
        for (n in 1:N) {
            mu[n] = cc / (1 + a * exp(-b * t[n]));
        }
    }

    model {
        intercept ~ exponential(0.01);
        b ~ normal(0.3, 0.1);
        cc ~ uniform(1e5, 8e7);
        alpha ~ gamma(6, 1);
        cases ~ neg_binomial_2(mu, alpha);
    }

    generated quantities {
        array[N] int cases_sim = neg_binomial_2_rng(mu, alpha);
    }
    """

    prior_code = """
    data {
        int<lower=1> N;
        array[N] int t;
    }

    generated quantities {
        real intercept = exponential_rng(0.01);
        real b = normal_rng(0.3, 0.1);
        real cc = uniform_rng(1e5, 8e7);
        real alpha = gamma_rng(6, 1);
        real a = cc / intercept - 1;
        array[N] int cases_sim;
        for (n in 1:N) {
            cases_sim[n] = neg_binomial_2_rng(cc / (1 + a * exp(-b * t[n])), alpha);
        }
    }
    """

    name = "logistic_negbin"

    @staticmethod
    def draw_priors(rng, n=None):
        return dict(
            intercept=rng.exponential(1 / 0.01),
            b=rng.normal(0.3, 0.1),
            cc=rng.uniform(1e5, 8e7),
            alpha=rng.gamma(6, 1),
        )

    @staticmethod
    def mean(t, params):
        a = params["cc"] / params["intercept"] - 1
        return params["cc"] / (1 + a * np.exp(-params["b"] * np.asarray(t)))

    @staticmethod
    def likelihood(mu, params):
        return nbinom2(mu, params["alpha"])


class RtWalk:
    """
    Time-varying reproduction number. log r is a random walk with
    step sd `rw_scale`; the count at step n is negative binomial
    with mean r[n] * cases[n - 1] + mean_floor.

    When fitting, each step conditions on the observed previous count
    and `cases_sim` holds the one-step-ahead draws. The prior program
    instead starts from `seed_cases` and feeds every simulated count into
    the next step.
    """

    stan_code = """
    data {
        int<lower=2> N;
        array[N] int<lower=0> cases;
        real<lower=0> mean_floor;
        real<lower=0> rw_scale;
        int<lower=1> sim_ceiling;
    }

    parameters {
        vector[N] logr;
        real<lower=0> alpha;
    }

    transformed parameters {
        vector[N] r = exp(logr);
    }

    model {
        logr[1] ~ normal(0, rw_scale);
        logr[2:N] ~ normal(logr[1:(N - 1)], rw_scale);
        alpha ~ gamma(36, 6);
        for (n in 2:N) {
            cases[n] ~ neg_binomial_2(r[n] * cases[n - 1] + mean_floor, alpha);
        }
    }

    generated quantities {
        array[N] int cases_sim;
        cases_sim[1] = cases[1];
        for (n in 2:N) {
            cases_sim[n] = min(
                neg_binomial_2_rng(r[n] * cases[n - 1] + mean_floor, alpha),
                sim_ceiling
            );
        }
    }
    """

    prior_code = """
    data {
        int<lower=2> N;
        real<lower=0> mean_floor;
        real<lower=0> rw_scale;
        int<lower=1> sim_ceiling;
        int<lower=0> seed_cases;
    }

    generated quantities {
        real alpha = gamma_rng(36, 6);
        vector[N] logr;
        vector[N] r;
        array[N] int cases_sim;

        logr[1] = normal_rng(0, rw_scale);
        for (n in 2:N) {
            logr[n] = normal_rng(logr[n - 1], rw_scale);
        }
        r = exp(logr);

        cases_sim[1] = seed_cases;
        for (n in 2:N) {
            cases_sim[n] = min(
                neg_binomial_2_rng(r[n] * cases_sim[n - 1] + mean_floor, alpha),
                sim_ceiling
            );
        }
    }
    """

    name = "rt_walk"
    tracked = ["cases_sim", "r"]

    @staticmethod
    def mk_data(
        df,
        col="cases",
        mean_floor=MEAN_FLOOR,
        rw_scale=RW_SCALE,
        sim_ceiling=SIM_CEILING,
    ):
        return dict(
            N=len(df),
            cases=df[col].astype(int).tolist(),
            mean_floor=mean_floor,
            rw_scale=rw_scale,
            sim_ceiling=sim_ceiling,
        )

    @staticmethod
    def mk_prior_data(
        n,
        mean_floor=MEAN_FLOOR,
        rw_scale=RW_SCALE,
        sim_ceiling=SIM_CEILING,
        seed_cases=SEED_CASES,
    ):
        return dict(
            N=n,
            mean_floor=mean_floor,
            rw_scale=rw_scale,
            sim_ceiling=sim_ceiling,
            seed_cases=seed_cases,
        )

    @staticmethod
    def draw_priors(rng, n, rw_scale=RW_SCALE):
        logr = np.empty(n)
        logr[0] = rng.normal(0, rw_scale)
        for k in range(1, n):
            logr[k] = rng.normal(logr[k - 1], rw_scale)
        return dict(logr=logr, r=np.exp(logr), alpha=rng.gamma(36, 1 / 6))

    @staticmethod
    def mean(k, params, prev, mean_floor=MEAN_FLOOR):
        return params["r"][k] * prev + mean_floor

    @staticmethod
    def likelihood(mu, params):
        return nbinom2(mu, params["alpha"])

    @classmethod
    def simulate(
        cls,
        t,
        params,
        rng,
        observed=None,
        seed_cases=SEED_CASES,
        mean_floor=MEAN_FLOOR,
        sim_ceiling=SIM_CEILING,
    ):
        """
        Step through `t` one day at a time. Without `observed`, each
        mean uses the previous simulated count; with it, the previous
        observed count, and the first value is copied from `observed`.
        """
        n = len(t)
        sim = np.empty(n, dtype=np.int64)
        sim[0] = seed_cases if observed is None else observed[0]
        for k in range(1, n):
            prev = sim[k - 1] if observed is None else observed[k - 1]
            mu = cls.mean(k, params, prev, mean_floor=mean_floor)
            draw = cls.likelihood(mu, params).rvs(random_state=rng)
            sim[k] = min(int(draw), sim_ceiling)
        return sim


MODELS = {
    m.name: m for m in [ExpNormal, ExpNegBinom, LogisticNegBinom, RtWalk]
}


def simulate_prior(model, n, num_draws=100, seed=0):
    """
    Prior predictive draws without Stan. Long format: one row per
    (draw, i) with the simulated count and, for vector parameters,
    their value at i.
    """
    rng = np.random.default_rng(seed)
    t = np.arange(n)
    dfs = []
    for draw in range(num_draws):
        params = model.draw_priors(rng, n)
        df = pd.DataFrame(
            dict(draw=draw, i=t + 1, t=t, cases_sim=model.simulate(t, params, rng))
        )
        for k, v in params.items():
            if np.ndim(v) == 0 or k in model.tracked:
                df[k] = v
        dfs.append(df)
    return pd.concat(dfs, ignore_index=True)
