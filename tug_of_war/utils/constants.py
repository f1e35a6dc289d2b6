"""Shared constants for tug-of-war models."""

import numpy as np

# Floor added to every smoothed bin weight
EPSILON = float(np.finfo(float).eps)

# Rating scale (z-scored ratings)
BIN_LOW = -2.2
BIN_HIGH = 2.2
BIN_STEP = 0.1

# Shifted scale used with the half-normal strength prior
SHIFTED_BIN_LOW = 0.0
SHIFTED_BIN_HIGH = 4.4

# Decimal places for strengths and ratings
ROUND_DIGITS = 1

# Half-normal strength prior: |N(2.2, 1)|
HALF_NORMAL_MEAN = 2.2
HALF_NORMAL_SD = 1.0

# Rounds per tournament item
N_ROUNDS = 3
