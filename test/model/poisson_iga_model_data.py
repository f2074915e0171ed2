import numpy as np


def solution(p):
    x, y = p[..., 0], p[..., 1]
    return np.exp(x) * np.sin(y)


def gradient(p):
    x, y = p[..., 0], p[..., 1]
    val = np.zeros(p.shape, dtype=np.float64)
    val[..., 0] = np.exp(x) * np.sin(y)
    val[..., 1] = np.exp(x) * np.cos(y)
    return val


# harmonic, so the source vanishes
model_data = [
    {"solver": "cg", "nx": 2, "ny": 2, "degree": 2},
    {"solver": "minres", "nx": 1, "ny": 2, "degree": 2},
    {"solver": "direct", "nx": 3, "ny": 2, "degree": 3},
]
