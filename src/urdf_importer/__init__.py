"""
URDF Importer: robot description ingestion for simulation.

This library expands xacro, parses URDF into an immutable, fixed-joint-reduced
kinematic model, answers structural queries, resolves world transforms and
mesh references, and spots drive wheels.
"""

import jax
jax.config.update("jax_enable_x64", True)

# Import core modules
from . import transforms
from . import core
from . import io
from . import graph
from . import chain
from . import resources
from . import wheels

__version__ = "0.1.0"
__all__ = ["transforms", "core", "io", "graph", "chain", "resources", "wheels"]
