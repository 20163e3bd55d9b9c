import jax.numpy as jnp
import numpy as np

LOG_HALF = -np.log(2.0)


def log1mexp(x: jnp.ndarray) -> jnp.ndarray:
    """Compute ``log(1 - exp(x))`` for ``x <= 0`` without cancellation.

    Uses ``log(-expm1(x))`` close to zero and ``log1p(-exp(x))`` in the tail,
    switching at ``x = -log(2)`` (Mächler, 2012). Returns ``-inf`` at ``x = 0``
    and ``0`` at ``x = -inf``.
    """
    x = jnp.asarray(x)
    # both branches are evaluated, keep the unused one finite for gradients
    near = jnp.where(x > LOG_HALF, x, LOG_HALF)
    far = jnp.where(x > LOG_HALF, LOG_HALF, x)
    return jnp.where(
        x > LOG_HALF,
        jnp.log(-jnp.expm1(near)),
        jnp.log1p(-jnp.exp(far)),
    )


def logdiffexp(a: jnp.ndarray, b: jnp.ndarray) -> jnp.ndarray:
    """Compute ``log(exp(a) - exp(b))`` for ``a >= b``.

    A zero-width interval (``a == b``, including both ``-inf``) gives
    ``-inf``. So does ``a < b``, which only arises from rounding when both
    masses have saturated; the result is never NaN.
    """
    a = jnp.asarray(a)
    b = jnp.asarray(b)
    valid = a > b
    safe_a = jnp.where(valid, a, 0.0)
    safe_diff = jnp.where(valid, b - a, -1.0)
    return jnp.where(valid, safe_a + log1mexp(safe_diff), -jnp.inf)
