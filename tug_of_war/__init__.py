"""
Tug of War: Bayesian data analysis of a cognitive model of strength inference.

This package provides:
- A generative tug-of-war model inferring a person's latent strength from
  observed match results
- Native inference strategies (enumeration, rejection sampling, trace MCMC)
  and a PyMC backend
- Smoothing of model posteriors onto the human rating scale
- An outer data-analysis model fitting laziness and noise hyperparameters
  to human ratings, with posterior-predictive comparison
"""

__version__ = "0.1.0"
