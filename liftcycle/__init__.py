"""liftcycle: training-cycle tracking and analysis service."""

__version__ = "0.1.0"
