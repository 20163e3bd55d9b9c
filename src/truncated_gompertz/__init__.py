import jax

# log-likelihoods of large samples need double precision
jax.config.update("jax_enable_x64", True)

__version__ = "0.1.0"
