#!/usr/bin/env python
"""
# Strength Inference in Tug of War

This notebook explores the cognitive model on its own: given three observed
rounds, what should an observer believe about person A's strength?

**Topics**:
1. The 20 experimental conditions
2. Strength posteriors by rejection sampling
3. How laziness explains away evidence
4. Exact inference on a strength grid
5. The non-negative strength prior
6. Cross-checking with PyMC
"""

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from tug_of_war.model import (
    Condition,
    Enumerate,
    InferenceConfig,
    PyMCSampler,
    Rejection,
    TugOfWarConfig,
    TugOfWarModel,
    lookup_match,
    match_table,
)
from tug_of_war.notebook_utils import configure_plot_style, plot_strength_posterior

configure_plot_style()

# %%
# ## 1. Conditions
#
# Each condition shows three rounds. Loss conditions show the same rounds as
# the matching win condition with every result reversed.

table = match_table()
print(table.to_string(index=False))

# %%
# ## 2. Strength Posterior
#
# Condition on A beating B three times in a row.

model = TugOfWarModel()
condition = Condition("single", "win", "confounded evidence")
match = lookup_match(condition)

posterior = model.run(lazy_pulling=0.5, laziness_prior=0.3, match=match, strategy=Rejection(samples=5000, seed=0))
prior = model.prior(lazy_pulling=0.5, laziness_prior=0.3, match=match, strategy=Rejection(samples=5000, seed=1))

print(f"{condition}: {match}")
print(f"  Prior mean:     {prior.expectation():+.3f}")
print(f"  Posterior mean: {posterior.expectation():+.3f}")
print(f"  95% HDI:        {posterior.hdi(0.95)}")

plot_strength_posterior(posterior, prior)
plt.show()

# %%
# ## 3. Explaining Away
#
# When people are often lazy, a win says less about strength: the opponent
# may just have been slacking. Posterior means shrink toward zero as the
# laziness prior grows.

rows = []
for laziness_prior in [0.0, 0.2, 0.4, 0.6, 0.8]:
    for lazy_pulling in [0.1, 0.5, 0.9]:
        post = model.run(lazy_pulling, laziness_prior, match, Rejection(samples=2000, seed=2))
        rows.append({
            "laziness_prior": laziness_prior,
            "lazy_pulling": lazy_pulling,
            "mean_strength": post.expectation(),
        })

sweep = pd.DataFrame(rows)
print(sweep.pivot(index="laziness_prior", columns="lazy_pulling", values="mean_strength").round(3))

# %%
# Weak indirect evidence: A beat B, but B then lost to two others.

for pattern in ["strong indirect evidence", "weak indirect evidence"]:
    cond = Condition("single", "win", pattern)
    post = model.run(0.5, 0.3, lookup_match(cond), Rejection(samples=5000, seed=3))
    print(f"{pattern:<28} E[strength] = {post.expectation():+.3f}")

# %%
# ## 4. Exact Inference
#
# Enumeration needs every choice to be finite, so strengths are restricted to
# a grid weighted by the normal density.

grid_model = TugOfWarModel(TugOfWarConfig(strength_grid=tuple(np.round(np.arange(-2, 2.01, 0.5), 1))))
exact = grid_model.run(0.5, 0.3, match, Enumerate())
print(exact.to_dataframe("histogram").sort_values("value").to_string(index=False))

# %%
# ## 5. Non-negative Strengths
#
# Version 2 of the model draws strengths from |N(2.2, 1)|, which puts ratings
# on a 0 to 4.4 scale.

positive_model = TugOfWarModel(TugOfWarConfig.half_normal())
for outcome in ["win", "loss"]:
    cond = Condition("double", outcome, "confounded with partner")
    post = positive_model.run(0.5, 0.3, lookup_match(cond), Rejection(samples=3000, seed=4))
    print(f"{cond}: mean {post.expectation():.2f}, min {min(post.values):.1f}")

# %%
# ## 6. PyMC Cross-check
#
# The same model as a pm.Model, sampled from a feasible start with
# Metropolis steps. Means should agree with rejection sampling.

sampler = PyMCSampler(InferenceConfig(method="pymc", samples=2000, burn=1000, chains=2, random_seed=5))
pymc_post = model.run(0.5, 0.3, match, sampler)

print(f"Rejection: {posterior.expectation():+.3f}")
print(f"PyMC:      {pymc_post.expectation():+.3f}")
