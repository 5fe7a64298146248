"""TuneAlert - new release notifications for followed artists."""

__version__ = "0.1.0"
