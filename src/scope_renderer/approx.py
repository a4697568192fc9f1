"""Analytic approximations used by the splat kernels.

Both functions are rational corrections fed into a cheap closed form, so a
whole clip box can be evaluated as one vectorised numpy expression with no
branches and no transcendental calls:

    gauss_approx(x) ≈ exp(-x²)          (≈3.2e-3 absolute error)
    erf_approx(x)   ≈ erf(x·√π/2)       (≈1.6e-3 absolute error)

The polynomial coefficients are a fitted minimax approximation. Changing
them changes the rendered image.

Inputs may be Python floats or numpy arrays; outputs follow numpy
broadcasting and keep the input dtype (float32 arrays stay float32).
"""

# The box beyond which the gaussian can be clipped, as a multiple of radius.
CLIP_FACTOR = 2.5


def gauss_approx(x):
    """Approximate exp(-x*x).

    Parameters
    ----------
    x : float or np.ndarray
        Argument, any finite value

    Returns
    -------
    float or np.ndarray
        Value in (0, 1], equal to 1 at x=0 and decreasing monotonically in |x|
    """
    xx = x * x
    y = x + (0.215 + 0.0952 * xx) * (x * xx)
    return 1.0 / (1.0 + y * y)


def erf_approx(x):
    """Approximate erf(x * sqrt(pi) / 2).

    Parameters
    ----------
    x : float or np.ndarray
        Argument, any finite value

    Returns
    -------
    float or np.ndarray
        Odd function in (-1, 1), tending to ±1 as |x| grows

    Notes
    -----
    The √π/2 argument scaling makes the derivative at 0 equal to 1, which is
    what lets add_line integrate gauss_approx along the beam in closed form.
    """
    xx = x * x
    x = x + (0.217 + 0.072 * xx) * (x * xx)
    return x / (1.0 + x * x) ** 0.5
