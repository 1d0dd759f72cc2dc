import jax.numpy as jnp
import pytest

from rkjax.config import set_dtype


@pytest.fixture(autouse=True)
def _use_float64():
    """Run every test in float64 unless the module overrides the dtype.

    Convergence-order and Newton tolerance checks need double precision.
    test_config.py installs its own autouse fixture that switches back to
    float32.
    """
    set_dtype(jnp.float64)
