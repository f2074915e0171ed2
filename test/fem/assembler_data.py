import numpy as np


def linear_solution(p):
    x, y = p[..., 0], p[..., 1]
    return 1.0 + 2.0*x - 3.0*y


def linear_gradient(p):
    val = np.zeros(p.shape, dtype=np.float64)
    val[..., 0] = 2.0
    val[..., 1] = -3.0
    return val


def sin_solution(p):
    x, y = p[..., 0], p[..., 1]
    return np.sin(np.pi*x) * np.sin(np.pi*y)


def sin_gradient(p):
    x, y = p[..., 0], p[..., 1]
    val = np.zeros(p.shape, dtype=np.float64)
    val[..., 0] = np.pi * np.cos(np.pi*x) * np.sin(np.pi*y)
    val[..., 1] = np.pi * np.sin(np.pi*x) * np.cos(np.pi*y)
    return val


def sin_source(p):
    return 2*np.pi**2 * sin_solution(p)


# harmonic, with non-polynomial boundary data
def exp_solution(p):
    x, y = p[..., 0], p[..., 1]
    return np.exp(x) * np.sin(y)


# domains on which linear functions are reproduced exactly
linear_data = [
    {
        "grid": (1, 1),
        "box": (0.0, 1.0, 0.0, 1.0),
        "degree": 1,
        "refine": 2,
    },
    {
        "grid": (2, 2),
        "box": (0.0, 2.0, 0.0, 1.0),
        "degree": 2,
        "refine": 1,
    },
    {
        "grid": (3, 1),
        "box": (-1.0, 2.0, 0.0, 0.5),
        "degree": 3,
        "refine": 0,
    },
]
