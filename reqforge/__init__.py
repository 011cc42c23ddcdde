"""reqforge: build HTTP requests from fuzzing templates."""

__version__ = "0.1.0"
